#!/usr/bin/env python3
"""
HTTP Method Analyzer
=====================
Infers the HTTP verb of an Express handler function.

Two sources of evidence, weakest first:
- Name tokens: createTeacher -> POST, updateSchool -> PUT, ...
- Body evidence (comments stripped): status(201) / INSERT INTO -> POST,
  UPDATE <table> SET -> PUT, DELETE FROM -> DELETE

Body evidence overrides the name. SET only counts inside an UPDATE
statement, so pagination code using OFFSET stays a GET.
"""

import re
import logging
from typing import List, Optional, Tuple

from ..base import Inference

logger = logging.getLogger("apidoc_synth.deterministic.http_method_analyzer")


class HTTPMethodAnalyzer:
    """
    Infer HTTP verbs from handler names and bodies.

    Based on the CRUD naming conventions of Express controllers.
    """

    METHOD_RULES = {
        "GET": {"has_request_body": False},
        "POST": {"has_request_body": True},
        "PUT": {"has_request_body": True},
        "PATCH": {"has_request_body": True},
        "DELETE": {"has_request_body": False},
    }

    # Checked in order; the first verb with a matching name token wins
    NAME_TOKENS: List[Tuple[str, Tuple[str, ...]]] = [
        ("POST", ("create", "register", "add")),
        ("PUT", ("update", "edit", "modify")),
        ("DELETE", ("delete", "remove")),
        ("GET", ("get", "find", "list")),
    ]

    # Checked in order against comment-stripped handler bodies
    BODY_EVIDENCE: List[Tuple[str, str, "re.Pattern"]] = [
        ("POST", "status(201)", re.compile(r'\.status\s*\(\s*201\s*\)')),
        ("POST", "INSERT INTO", re.compile(r'\bINSERT\s+INTO\b', re.IGNORECASE)),
        ("PUT", "UPDATE ... SET", re.compile(r'\bUPDATE\s+`?\w+`?\s+SET\b', re.IGNORECASE)),
        ("DELETE", "DELETE FROM", re.compile(r'\bDELETE\s+FROM\b', re.IGNORECASE)),
    ]

    NAME_CONFIDENCE = 0.7
    BODY_CONFIDENCE = 0.9
    DEFAULT_CONFIDENCE = 0.3

    @staticmethod
    def split_words(name: str) -> List[str]:
        """
        Split a camelCase / snake_case identifier into lower-case words.

        Example:
            >>> split_words("getAllTeachers")
            ['get', 'all', 'teachers']
        """
        spaced = re.sub(r'([a-z0-9])([A-Z])', r'\1 \2', name)
        spaced = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1 \2', spaced)
        return [w.lower() for w in re.split(r'[\s_\-]+', spaced) if w]

    @staticmethod
    def infer_from_name(name: str) -> Inference:
        words = HTTPMethodAnalyzer.split_words(name)
        for verb, tokens in HTTPMethodAnalyzer.NAME_TOKENS:
            for token in tokens:
                if token in words:
                    return Inference(verb, f"name token '{token}'", HTTPMethodAnalyzer.NAME_CONFIDENCE)
        return Inference("GET", "default", HTTPMethodAnalyzer.DEFAULT_CONFIDENCE)

    @staticmethod
    def infer_from_body(body: str) -> Optional[Inference]:
        """Return an Inference when the body carries write evidence, else None."""
        for verb, label, pattern in HTTPMethodAnalyzer.BODY_EVIDENCE:
            if pattern.search(body):
                return Inference(verb, f"body evidence: {label}", HTTPMethodAnalyzer.BODY_CONFIDENCE)
        return None

    @staticmethod
    def infer_from_handler(name: str, body: str) -> Inference:
        """
        Infer the verb of one handler.

        Args:
            name: Handler function name (e.g. "createTeacher")
            body: Handler body with comments already stripped

        Returns:
            Inference with value in GET/POST/PUT/DELETE/PATCH
        """
        by_name = HTTPMethodAnalyzer.infer_from_name(name)
        by_body = HTTPMethodAnalyzer.infer_from_body(body)

        if by_body is not None:
            if by_body.value != by_name.value:
                logger.debug(f"{name}: {by_body.reason} overrides {by_name.reason} ({by_name.value} -> {by_body.value})")
            return by_body

        return by_name

    @staticmethod
    def has_request_body(method: str) -> bool:
        rules = HTTPMethodAnalyzer.METHOD_RULES.get(method.upper())
        return bool(rules and rules["has_request_body"])

    @staticmethod
    def humanize(name: str) -> str:
        """
        camelCase handler name to a capitalized summary.

        Example:
            >>> humanize("getAllTeachers")
            'Get All Teachers'
        """
        spaced = re.sub(r'([A-Z])', r' \1', name).strip()
        return spaced[:1].upper() + spaced[1:]
