"""
JavaScript source scanning for Express controllers and routers.

A small tokenizer turns source text into a tagged token stream (comments,
strings, template literals, regex literals, identifiers, punctuation) so that
function bodies and call arguments can be matched by brace/paren depth
instead of by regular expressions that trip over nested literals.

Only the shapes used by folder-routed Express apps are recognized:

    const getAllTeachers = async (req, res) => { ... }
    router.get("/list", authorize("admin"), teacherController.getAllTeachers)
    router.use(authenticateToken)
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

logger = logging.getLogger("apidoc_synth.js_source")

JS_EXTENSIONS = {".js", ".mjs", ".cjs"}
ROUTER_VERBS = {"get", "post", "put", "delete", "patch"}

# Keywords after which a "/" starts a regex literal rather than a division
_EXPRESSION_KEYWORDS = {
    "return", "typeof", "instanceof", "in", "of", "new", "delete", "void",
    "throw", "case", "do", "else", "yield", "await",
}

# Longest first so that "===" wins over "==" and "=>" is never split
_PUNCTUATORS = (
    ">>>=", "...", "===", "!==", "**=", "<<=", ">>=", ">>>", "&&=", "||=", "??=",
    "=>", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "++", "--", "+=", "-=",
    "*=", "/=", "%=", "&=", "|=", "^=", "**", "<<", ">>",
)

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}


class TokenKind(Enum):
    BLOCK_COMMENT = "block_comment"
    LINE_COMMENT = "line_comment"
    STRING = "string"
    TEMPLATE = "template"
    REGEX = "regex"
    IDENT = "ident"
    NUMBER = "number"
    PUNCT = "punct"
    WHITESPACE = "whitespace"


_TRIVIA = {TokenKind.WHITESPACE, TokenKind.BLOCK_COMMENT, TokenKind.LINE_COMMENT}


class Token(NamedTuple):
    kind: TokenKind
    text: str
    start: int
    end: int
    line: int


class HandlerSpan(NamedTuple):
    """An `const name = async (...) => { ... }` handler at module level."""
    name: str
    start: int          # offset of the `const` keyword
    body_start: int     # offset of the opening brace
    body_end: int       # offset just past the closing brace
    line: int
    doc: Optional[Token]

    def body(self, source: str) -> str:
        return source[self.body_start:self.body_end]


class RouteCall(NamedTuple):
    """One `router.<verb>("<path>", ...)` registration."""
    verb: str
    path: str
    handler_ref: Optional[str]
    middleware: Tuple[str, ...]
    line: int
    start: int
    leading_doc: Optional[Token]


# =============================================================================
# TOKENIZER
# =============================================================================

def tokenize(source: str) -> List[Token]:
    """Split JavaScript source into tokens, whitespace and comments included."""
    tokens: List[Token] = []
    n = len(source)
    i = 0
    line = 1
    prev: Optional[Token] = None

    while i < n:
        c = source[i]
        kind = TokenKind.PUNCT

        if c.isspace():
            j = i + 1
            while j < n and source[j].isspace():
                j += 1
            kind = TokenKind.WHITESPACE
        elif source.startswith("/*", i):
            j = source.find("*/", i + 2)
            j = n if j == -1 else j + 2
            kind = TokenKind.BLOCK_COMMENT
        elif source.startswith("//", i):
            j = source.find("\n", i)
            j = n if j == -1 else j
            kind = TokenKind.LINE_COMMENT
        elif c in "'\"":
            j = _scan_string(source, i)
            kind = TokenKind.STRING
        elif c == "`":
            j = _scan_template(source, i)
            kind = TokenKind.TEMPLATE
        elif c.isalpha() or c in "_$":
            j = i + 1
            while j < n and (source[j].isalnum() or source[j] in "_$"):
                j += 1
            kind = TokenKind.IDENT
        elif c.isdigit() or (c == "." and i + 1 < n and source[i + 1].isdigit()):
            j = i + 1
            while j < n and (source[j].isalnum() or source[j] in "._"):
                j += 1
            kind = TokenKind.NUMBER
        else:
            j = None
            if c == "/" and _regex_allowed(prev):
                j = _scan_regex(source, i)
                if j is not None:
                    kind = TokenKind.REGEX
            if j is None:
                j = i + 1
                for punct in _PUNCTUATORS:
                    if source.startswith(punct, i):
                        j = i + len(punct)
                        break

        token = Token(kind, source[i:j], i, j, line)
        tokens.append(token)
        line += token.text.count("\n")
        if kind not in _TRIVIA:
            prev = token
        i = j

    return tokens


def _scan_string(source: str, i: int) -> int:
    quote = source[i]
    j = i + 1
    n = len(source)
    while j < n:
        ch = source[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            return j + 1
        if ch == "\n":
            return j
        j += 1
    return n


def _scan_template(source: str, i: int) -> int:
    j = i + 1
    n = len(source)
    while j < n:
        ch = source[j]
        if ch == "\\":
            j += 2
        elif ch == "`":
            return j + 1
        elif source.startswith("${", j):
            j = _skip_substitution(source, j + 2)
        else:
            j += 1
    return n


def _skip_substitution(source: str, j: int) -> int:
    """Skip a `${ ... }` body, returning the offset after its closing brace."""
    depth = 1
    n = len(source)
    while j < n:
        ch = source[j]
        if ch in "'\"":
            j = _scan_string(source, j)
            continue
        if ch == "`":
            j = _scan_template(source, j)
            continue
        if source.startswith("/*", j):
            end = source.find("*/", j + 2)
            j = n if end == -1 else end + 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return j + 1
        j += 1
    return n


def _scan_regex(source: str, i: int) -> Optional[int]:
    """Scan a regex literal; None when the slash cannot start one."""
    j = i + 1
    n = len(source)
    in_class = False
    if j < n and source[j] in "/*":
        return None
    while j < n:
        ch = source[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "\n":
            return None
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "/":
            j += 1
            while j < n and source[j].isalpha():
                j += 1
            return j
        j += 1
    return None


def _regex_allowed(prev: Optional[Token]) -> bool:
    if prev is None:
        return True
    if prev.kind == TokenKind.IDENT:
        return prev.text in _EXPRESSION_KEYWORDS
    if prev.kind in (TokenKind.NUMBER, TokenKind.STRING, TokenKind.TEMPLATE, TokenKind.REGEX):
        return False
    return prev.text not in (")", "]")


# =============================================================================
# HELPERS
# =============================================================================

def significant(tokens: List[Token]) -> List[Tuple[int, Token]]:
    """Non-trivia tokens paired with their index in the full stream."""
    return [(idx, tok) for idx, tok in enumerate(tokens) if tok.kind not in _TRIVIA]


def strip_comments(source: str, tokens: Optional[List[Token]] = None) -> str:
    """Blank out comments while preserving offsets and line breaks."""
    tokens = tokens if tokens is not None else tokenize(source)
    parts = []
    for tok in tokens:
        if tok.kind in (TokenKind.BLOCK_COMMENT, TokenKind.LINE_COMMENT):
            parts.append(re.sub(r"[^\n]", " ", tok.text))
        else:
            parts.append(tok.text)
    return "".join(parts)


def is_doc_comment(tok: Optional[Token]) -> bool:
    return tok is not None and tok.kind == TokenKind.BLOCK_COMMENT and tok.text.startswith("/**")


def doc_comment_lines(comment: str) -> List[str]:
    """The lines of a `/** */` block with delimiters and `*` gutters removed."""
    body = comment
    if body.startswith("/**"):
        body = body[3:]
    elif body.startswith("/*"):
        body = body[2:]
    if body.endswith("*/"):
        body = body[:-2]

    lines = []
    for raw in body.splitlines():
        text = raw.strip()
        if text.startswith("*"):
            text = text[1:].strip()
        lines.append(text)
    return lines


def doc_comment_text(comment: str) -> str:
    """Free text of a doc comment, `@tag` lines excluded."""
    return " ".join(
        line for line in doc_comment_lines(comment)
        if line and not line.startswith("@")
    )


def string_value(tok: Token) -> Optional[str]:
    """Literal value of a string token, or None for interpolated templates."""
    if tok.kind == TokenKind.STRING:
        return tok.text[1:-1] if len(tok.text) >= 2 else ""
    if tok.kind == TokenKind.TEMPLATE and "${" not in tok.text:
        return tok.text[1:-1]
    return None


def _preceding_doc(tokens: List[Token], raw_index: int, skip_line_comments: bool) -> Optional[Token]:
    k = raw_index - 1
    while k >= 0:
        tok = tokens[k]
        if tok.kind == TokenKind.WHITESPACE:
            k -= 1
            continue
        if skip_line_comments and tok.kind == TokenKind.LINE_COMMENT:
            k -= 1
            continue
        return tok if is_doc_comment(tok) else None
    return None


def _match_closer(sig: List[Tuple[int, Token]], open_pos: int) -> Optional[int]:
    """Index in `sig` of the token closing the bracket at `open_pos`."""
    stack = []
    for pos in range(open_pos, len(sig)):
        text = sig[pos][1].text
        if sig[pos][1].kind != TokenKind.PUNCT:
            continue
        if text in _OPENERS:
            stack.append(_OPENERS[text])
        elif text in _CLOSERS:
            if not stack or stack[-1] != text:
                return None
            stack.pop()
            if not stack:
                return pos
    return None


def _split_arguments(sig: List[Tuple[int, Token]], open_pos: int, close_pos: int) -> List[List[Token]]:
    """Split the tokens between a call's parentheses at top-level commas."""
    args: List[List[Token]] = []
    current: List[Token] = []
    depth = 0
    for pos in range(open_pos + 1, close_pos):
        tok = sig[pos][1]
        if tok.kind == TokenKind.PUNCT:
            if tok.text in _OPENERS:
                depth += 1
            elif tok.text in _CLOSERS:
                depth -= 1
            elif tok.text == "," and depth == 0:
                args.append(current)
                current = []
                continue
        current.append(tok)
    if current:
        args.append(current)
    return args


def _dotted_reference(arg: List[Token]) -> Optional[str]:
    """`a.b.c` when the argument is nothing but a dotted identifier."""
    if not arg or len(arg) % 2 == 0:
        return None
    for pos, tok in enumerate(arg):
        if pos % 2 == 0 and tok.kind != TokenKind.IDENT:
            return None
        if pos % 2 == 1 and tok.text != ".":
            return None
    return "".join(tok.text for tok in arg)


def _is_punct(tok: Token, text: str) -> bool:
    return tok.kind == TokenKind.PUNCT and tok.text == text


# =============================================================================
# FINDERS
# =============================================================================

def find_handlers(source: str, tokens: Optional[List[Token]] = None) -> List[HandlerSpan]:
    """Locate top-level `const name = async (...) => { ... }` handlers."""
    tokens = tokens if tokens is not None else tokenize(source)
    sig = significant(tokens)
    handlers: List[HandlerSpan] = []
    depth = 0
    k = 0

    while k < len(sig):
        raw_idx, tok = sig[k]
        if tok.kind == TokenKind.PUNCT and tok.text == "{":
            depth += 1
        elif tok.kind == TokenKind.PUNCT and tok.text == "}":
            depth = max(depth - 1, 0)
        elif depth == 0 and tok.kind == TokenKind.IDENT and tok.text == "const":
            span = _match_handler(tokens, sig, k)
            if span is not None:
                handler, close_pos = span
                handlers.append(handler)
                k = close_pos + 1
                continue
        k += 1

    return handlers


def _match_handler(tokens: List[Token], sig: List[Tuple[int, Token]], k: int):
    def at(pos: int) -> Optional[Token]:
        return sig[pos][1] if pos < len(sig) else None

    name_tok, eq_tok, async_tok = at(k + 1), at(k + 2), at(k + 3)
    if name_tok is None or name_tok.kind != TokenKind.IDENT:
        return None
    if eq_tok is None or not _is_punct(eq_tok, "="):
        return None
    if async_tok is None or async_tok.kind != TokenKind.IDENT or async_tok.text != "async":
        return None

    params_tok = at(k + 4)
    if params_tok is None:
        return None
    if _is_punct(params_tok, "("):
        params_end = _match_closer(sig, k + 4)
        if params_end is None:
            return None
    elif params_tok.kind == TokenKind.IDENT:
        params_end = k + 4
    else:
        return None

    arrow_tok, brace_tok = at(params_end + 1), at(params_end + 2)
    if arrow_tok is None or not _is_punct(arrow_tok, "=>"):
        return None
    if brace_tok is None or not _is_punct(brace_tok, "{"):
        return None

    close_pos = _match_closer(sig, params_end + 2)
    if close_pos is None:
        logger.debug(f"Unbalanced body for handler {name_tok.text}")
        return None

    const_raw = sig[k][0]
    handler = HandlerSpan(
        name=name_tok.text,
        start=sig[k][1].start,
        body_start=brace_tok.start,
        body_end=sig[close_pos][1].end,
        line=sig[k][1].line,
        doc=_preceding_doc(tokens, const_raw, skip_line_comments=False),
    )
    return handler, close_pos


def find_route_registrations(source: str, tokens: Optional[List[Token]] = None) -> List[RouteCall]:
    """Locate `router.<verb>("<path>", ..., handler)` registrations."""
    tokens = tokens if tokens is not None else tokenize(source)
    sig = significant(tokens)
    calls: List[RouteCall] = []

    for k in range(len(sig) - 4):
        router_tok = sig[k][1]
        if router_tok.kind != TokenKind.IDENT or router_tok.text != "router":
            continue
        if not _is_punct(sig[k + 1][1], "."):
            continue
        verb_tok = sig[k + 2][1]
        if verb_tok.kind != TokenKind.IDENT or verb_tok.text not in ROUTER_VERBS:
            continue
        if not _is_punct(sig[k + 3][1], "("):
            continue
        path = string_value(sig[k + 4][1])
        if path is None:
            continue

        close_pos = _match_closer(sig, k + 3)
        if close_pos is None:
            logger.debug(f"Unbalanced router.{verb_tok.text} call at line {router_tok.line}")
            continue

        args = _split_arguments(sig, k + 3, close_pos)
        handler_ref = _dotted_reference(args[-1]) if len(args) > 1 else None
        middleware = tuple(
            arg[0].text for arg in args[1:-1]
            if arg and arg[0].kind == TokenKind.IDENT
        )

        calls.append(RouteCall(
            verb=verb_tok.text.upper(),
            path=path,
            handler_ref=handler_ref,
            middleware=middleware,
            line=router_tok.line,
            start=router_tok.start,
            leading_doc=_preceding_doc(tokens, sig[k][0], skip_line_comments=True),
        ))

    return calls


def find_router_middleware(source: str, tokens: Optional[List[Token]] = None) -> List[str]:
    """Identifiers passed to `router.use(...)` anywhere in the file."""
    tokens = tokens if tokens is not None else tokenize(source)
    sig = significant(tokens)
    names: List[str] = []

    for k in range(len(sig) - 3):
        if sig[k][1].text != "router" or not _is_punct(sig[k + 1][1], "."):
            continue
        if sig[k + 2][1].text != "use" or not _is_punct(sig[k + 3][1], "("):
            continue
        close_pos = _match_closer(sig, k + 3)
        if close_pos is None:
            continue
        for arg in _split_arguments(sig, k + 3, close_pos):
            if arg and arg[0].kind == TokenKind.IDENT:
                names.append(arg[0].text)

    return names
