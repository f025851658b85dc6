"""
Enum Extractor
==============
Collects permitted-value tables ("enums") for path, query and body fields
from annotation comments and inline validation idioms.

Annotation grammar, one tag per line inside a `/** ... */` block:

    @enum status: [active, inactive] - Record status               (body)
    @paramEnum type: [primary, secondary] - School type            (path)
    @queryEnum sortBy: [name, created_at] - Sort column             (query)
    @routeEnum status: [active, inactive] - Applies to a route file
    @endpointEnum format: [json, csv] - Applies to one registration

Rules live in one table keyed by (scope, scope_key, kind, name). Lookups merge
controller < method < route < endpoint, later scopes overwriting earlier ones.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

from .base import EnumRule, EnumScope, ParamKind, RuleSource
from .deterministic import DeterministicParameterExtractor
from .js_source import (
    JS_EXTENSIONS,
    HandlerSpan,
    doc_comment_lines,
    find_handlers,
    find_route_registrations,
    is_doc_comment,
    strip_comments,
    tokenize,
)
from .schema_generator import singular_name

logger = logging.getLogger("apidoc_synth.enum_extractor")

CONTROLLER_TAGS = {
    "enum": ParamKind.BODY,
    "paramEnum": ParamKind.PATH,
    "queryEnum": ParamKind.QUERY,
}

INLINE_CONFIDENCE = 0.3

LEGACY_SCOPE_NAMES = {
    EnumScope.CONTROLLER: "controllers",
    EnumScope.METHOD: "methods",
    EnumScope.ROUTE: "routes",
    EnumScope.ENDPOINT: "endpoints",
}

_TAG_LINE = re.compile(r'@(\w+)\s+([A-Za-z_$][\w$]*)\s*:\s*(.*)$')
_ALLOWED_ARRAY = re.compile(r'\bconst\s+allowed(\w+)\s*=\s*\[([^\]]*)\]')
_INCLUDES_GUARD = re.compile(r'\bif\s*\(\s*!\s*\[([^\]]*)\]\s*\.includes\s*\(\s*([A-Za-z_$][\w$]*)\s*\)\s*\)')


class MalformedAnnotation(ValueError):
    """An annotation tag that cannot be parsed; the tag is skipped."""


class ParsedTag(NamedTuple):
    tag: str
    name: str
    values: Tuple[str, ...]
    description: str


# =============================================================================
# TAG GRAMMAR
# =============================================================================

def split_values(raw: str) -> Tuple[str, ...]:
    """Split `a, 'b', "c"` into unique trimmed values, first occurrence kept."""
    values: List[str] = []
    for part in raw.split(","):
        value = part.strip().strip("'\"`").strip()
        if value and value not in values:
            values.append(value)
    return tuple(values)


def parse_tag_line(line: str) -> Optional[ParsedTag]:
    """
    Parse one `@<tag> <name>: [v1, v2] - <description>` line.

    Returns None for lines that carry no tag at all.

    Raises:
        MalformedAnnotation: missing `]`, missing `-` separator or no values
    """
    match = _TAG_LINE.search(line)
    if not match:
        return None

    tag, name, rest = match.group(1), match.group(2), match.group(3).strip()

    if not rest.startswith("["):
        raise MalformedAnnotation(f"@{tag} {name}: value list must start with '['")
    close = rest.find("]")
    if close == -1:
        raise MalformedAnnotation(f"@{tag} {name}: missing ']'")

    values = split_values(rest[1:close])
    if not values:
        raise MalformedAnnotation(f"@{tag} {name}: empty value list")

    tail = rest[close + 1:].strip()
    if not tail.startswith("-"):
        raise MalformedAnnotation(f"@{tag} {name}: missing '- ' separator before description")

    return ParsedTag(tag, name, values, tail[1:].strip())


def iter_tags(comment: str, accepted) -> Iterator[ParsedTag]:
    """Yield well-formed tags of the accepted kinds from one comment block."""
    for line in doc_comment_lines(comment):
        try:
            parsed = parse_tag_line(line)
        except MalformedAnnotation as e:
            logger.debug(f"Skipping malformed annotation: {e}")
            continue
        if parsed is not None and parsed.tag in accepted:
            yield parsed


def iter_js_files(directory: str, recursive: bool) -> Iterator[str]:
    """JS source files under a directory, in sorted listing order."""
    try:
        names = sorted(os.listdir(directory))
    except OSError as e:
        logger.debug(f"Cannot list {directory}: {e}")
        return

    for name in names:
        path = os.path.join(directory, name)
        if os.path.isdir(path):
            if recursive:
                yield from iter_js_files(path, recursive)
        elif os.path.splitext(name)[1] in JS_EXTENSIONS:
            yield path


def read_source(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (IOError, UnicodeDecodeError) as e:
        logger.debug(f"Error reading {path}: {e}")
        return None


def route_key_for(route_dir: str, path: str) -> str:
    """`routes/private/Schools/index.js` -> `private/Schools/index`."""
    rel = os.path.relpath(path, route_dir)
    return os.path.splitext(rel)[0].replace(os.sep, "/")


def endpoint_key_for(route_key: str, verb: str, local_path: str) -> str:
    return f"{route_key}:{verb.upper()} {local_path}"


def classify_route_param(name: str, paths: List[str]) -> ParamKind:
    for path in paths:
        if DeterministicParameterExtractor.has_path_param(path, name):
            return ParamKind.PATH
    return ParamKind.QUERY


# =============================================================================
# EXTRACTOR
# =============================================================================

class EnumExtractor:
    """Scoped enum table built from controllers and route files."""

    def __init__(self):
        self._table: Dict[EnumScope, Dict[str, Dict[Tuple[ParamKind, str], EnumRule]]] = {}
        self.clear()

    def clear(self) -> None:
        self._table = {scope: {} for scope in EnumScope}

    def add_rule(self, rule: EnumRule) -> bool:
        """
        Store a rule, overwriting any rule with the same key.

        An inline rule never replaces an annotation rule. Returns whether the
        rule was stored.
        """
        bucket = self._table[rule.scope].setdefault(rule.scope_key, {})
        key = (rule.kind, rule.name)
        existing = bucket.get(key)

        if existing is not None and existing.source == RuleSource.ANNOTATION and rule.source == RuleSource.INLINE:
            logger.debug(f"Inline rule for {rule.name} ignored, annotation already present at {rule.scope.value}:{rule.scope_key}")
            return False

        bucket[key] = rule
        logger.debug(
            f"Found {rule.scope.value}-level {rule.kind.value} enum in {rule.scope_key}: "
            f"{rule.name} = [{', '.join(rule.values)}] ({rule.source.value})"
        )
        return True

    def rules(self) -> List[EnumRule]:
        return [
            rule
            for scope in EnumScope
            for bucket in self._table[scope].values()
            for rule in bucket.values()
        ]

    def __len__(self) -> int:
        return len(self.rules())

    # =========================================================================
    # CONTROLLERS
    # =========================================================================

    def extract_from_controllers(self, controller_dir: str) -> None:
        if not os.path.isdir(controller_dir):
            logger.debug(f"Controllers directory not found: {controller_dir}")
            return

        for path in iter_js_files(controller_dir, recursive=False):
            source = read_source(path)
            if source is None:
                continue
            controller = os.path.splitext(os.path.basename(path))[0]
            self.parse_controller_source(source, controller)

    def parse_controller_source(self, source: str, controller: str) -> None:
        tokens = tokenize(source)
        handlers = find_handlers(source, tokens)
        stripped = strip_comments(source, tokens)

        for tok in tokens:
            if not is_doc_comment(tok):
                continue

            owner = self._owning_handler(tok.start, handlers)
            if owner is None:
                scope, scope_key = EnumScope.CONTROLLER, controller
            else:
                scope, scope_key = EnumScope.METHOD, f"{controller}.{owner.name}"

            for parsed in iter_tags(tok.text, CONTROLLER_TAGS):
                self.add_rule(EnumRule(
                    name=parsed.name,
                    values=parsed.values,
                    description=parsed.description,
                    scope=scope,
                    scope_key=scope_key,
                    kind=CONTROLLER_TAGS[parsed.tag],
                ))

        for handler in handlers:
            body = stripped[handler.body_start:handler.body_end]
            self.parse_inline_enums(body, f"{controller}.{handler.name}")

    @staticmethod
    def _owning_handler(offset: int, handlers: List[HandlerSpan]) -> Optional[HandlerSpan]:
        """
        The handler a comment at `offset` belongs to, or None for
        controller level.
        """
        for handler in handlers:
            if handler.doc is not None and handler.doc.start == offset:
                return handler
            if handler.body_start <= offset < handler.body_end:
                return handler

        preceding = [h for h in handlers if h.start <= offset]
        return preceding[-1] if preceding else None

    def parse_inline_enums(self, body: str, scope_key: str) -> None:
        """Record `const allowedX = [...]` and `if (![...].includes(x))` idioms."""
        for match in _ALLOWED_ARRAY.finditer(body):
            values = split_values(match.group(2))
            if not values:
                continue
            field_name = singular_name(match.group(1).lower())
            self.add_rule(EnumRule(
                name=field_name,
                values=values,
                description=f"Allowed {field_name} values",
                scope=EnumScope.METHOD,
                scope_key=scope_key,
                kind=self._inline_kind(body, field_name),
                source=RuleSource.INLINE,
                confidence=INLINE_CONFIDENCE,
            ))

        for match in _INCLUDES_GUARD.finditer(body):
            values = split_values(match.group(1))
            if not values:
                continue
            field_name = match.group(2)
            self.add_rule(EnumRule(
                name=field_name,
                values=values,
                description=f"Valid {field_name} values",
                scope=EnumScope.METHOD,
                scope_key=scope_key,
                kind=self._inline_kind(body, field_name),
                source=RuleSource.INLINE,
                confidence=INLINE_CONFIDENCE,
            ))

    @staticmethod
    def _inline_kind(body: str, name: str) -> ParamKind:
        escaped = re.escape(name)
        if re.search(r'\breq\.params\.%s\b' % escaped, body):
            return ParamKind.PATH
        if re.search(r'\{[^{}]*\b%s\b[^{}]*\}\s*=\s*req\.params\b' % escaped, body):
            return ParamKind.PATH
        return ParamKind.QUERY

    # =========================================================================
    # ROUTES
    # =========================================================================

    def extract_from_routes(self, route_dir: str) -> None:
        if not os.path.isdir(route_dir):
            logger.debug(f"Routes directory not found: {route_dir}")
            return

        for path in iter_js_files(route_dir, recursive=True):
            source = read_source(path)
            if source is None:
                continue
            self.parse_route_source(source, route_key_for(route_dir, path))

    def parse_route_source(self, source: str, route_key: str) -> None:
        tokens = tokenize(source)
        calls = find_route_registrations(source, tokens)
        file_paths = [call.path for call in calls]

        for tok in tokens:
            if not is_doc_comment(tok):
                continue
            for parsed in iter_tags(tok.text, {"routeEnum"}):
                self.add_rule(EnumRule(
                    name=parsed.name,
                    values=parsed.values,
                    description=parsed.description,
                    scope=EnumScope.ROUTE,
                    scope_key=route_key,
                    kind=classify_route_param(parsed.name, file_paths),
                ))

        for call in calls:
            if call.leading_doc is None:
                continue
            for parsed in iter_tags(call.leading_doc.text, {"endpointEnum"}):
                self.add_rule(EnumRule(
                    name=parsed.name,
                    values=parsed.values,
                    description=parsed.description,
                    scope=EnumScope.ENDPOINT,
                    scope_key=endpoint_key_for(route_key, call.verb, call.path),
                    kind=classify_route_param(parsed.name, [call.path]),
                ))

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get_rules(self, scope: EnumScope, scope_key: str) -> Dict[Tuple[ParamKind, str], EnumRule]:
        return dict(self._table[scope].get(scope_key, {}))

    def resolve(
        self,
        controller: str = "",
        method: str = "",
        route_key: str = "",
        endpoint_key: str = "",
    ) -> Dict[Tuple[ParamKind, str], EnumRule]:
        """
        Merge the four scopes for one endpoint.

        Controller rules are overwritten by method rules, then route rules,
        then endpoint rules, field by field on (kind, name).
        """
        layers = [
            (EnumScope.CONTROLLER, controller),
            (EnumScope.METHOD, f"{controller}.{method}" if controller and method else ""),
            (EnumScope.ROUTE, route_key),
            (EnumScope.ENDPOINT, endpoint_key),
        ]

        merged: Dict[Tuple[ParamKind, str], EnumRule] = {}
        for scope, key in layers:
            if key:
                merged.update(self._table[scope].get(key, {}))
        return merged

    def get_extracted_enums(self) -> Dict[str, Dict[str, Dict[str, Dict]]]:
        """
        Legacy four-way view:
        {controllers|methods|routes|endpoints: {scope_key: {field_key: rule}}}
        where field_key is `param_<n>`, `query_<n>` or `<n>` for body fields.
        """
        view: Dict[str, Dict[str, Dict[str, Dict]]] = {}
        for scope, name in LEGACY_SCOPE_NAMES.items():
            view[name] = {
                scope_key: {rule.field_key: rule.to_dict() for rule in bucket.values()}
                for scope_key, bucket in self._table[scope].items()
                if bucket
            }
        return view
