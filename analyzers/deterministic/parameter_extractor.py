#!/usr/bin/env python3
"""
Deterministic Parameter Extractor
===================================
Extracts path and query parameter descriptors from Express route templates
and handler bodies.

- Path: /teachers/:id, /teachers/{id}
- Query: req.query.page, const { search, status } = req.query
- Pagination: /list and /all endpoints get page/limit
"""

import re
import logging
from typing import List, Set

from ..base import ParameterDescriptor

logger = logging.getLogger("apidoc_synth.deterministic.parameter_extractor")


class DeterministicParameterExtractor:
    """
    Extract parameters from route patterns and handler bodies using regex.
    """

    _EXPRESS_PARAM = re.compile(r':(\w+)')
    _BRACED_PARAM = re.compile(r'\{(\w+)\}')
    _QUERY_ACCESS = re.compile(r'\bquery\.(\w+)')
    _QUERY_DESTRUCTURE = re.compile(r'\{([^{}]*)\}\s*=\s*req\.query\b')

    PAGINATION_NAMES = ("page", "limit")
    LIST_SEGMENTS = {"list", "all"}

    @staticmethod
    def path_param_names(route: str) -> List[str]:
        """Distinct parameter names of a route template, in order of appearance."""
        names: List[str] = []
        for pattern in (DeterministicParameterExtractor._EXPRESS_PARAM, DeterministicParameterExtractor._BRACED_PARAM):
            for match in pattern.finditer(route):
                if match.group(1) not in names:
                    names.append(match.group(1))
        return names

    @staticmethod
    def has_path_param(route: str, name: str) -> bool:
        return re.search(r'(?::%s\b|\{%s\})' % (re.escape(name), re.escape(name)), route) is not None

    @staticmethod
    def extract_path_params(route: str) -> List[ParameterDescriptor]:
        """
        Path parameters of an Express route.

        Names containing "id" are integers with example 1; everything else is a
        string with example "example-<name>".

        Example:
            >>> [p.name for p in extract_path_params("/teachers/:id/status/:status")]
            ['id', 'status']
        """
        parameters = []

        for name in DeterministicParameterExtractor.path_param_names(route):
            is_id = "id" in name.lower()
            parameters.append(ParameterDescriptor(
                location="path",
                name=name,
                required=True,
                value_type="integer" if is_id else "string",
                description=f"{DeterministicParameterExtractor.capitalize_first(name)} identifier",
                example=1 if is_id else f"example-{name}",
            ))

        if parameters:
            logger.debug(f"Extracted {len(parameters)} parameters from route: {route}")

        return parameters

    @staticmethod
    def query_param_names(body: str) -> List[str]:
        """Distinct query names read by a handler body, in order of appearance."""
        found = []
        for match in DeterministicParameterExtractor._QUERY_ACCESS.finditer(body):
            found.append((match.start(), match.group(1)))

        for match in DeterministicParameterExtractor._QUERY_DESTRUCTURE.finditer(body):
            for entry in match.group(1).split(","):
                # `{ page = 1, sortBy: sort }` binds page and sortBy
                name = entry.split("=")[0].split(":")[0].strip()
                if re.fullmatch(r'[A-Za-z_$][\w$]*', name):
                    found.append((match.start(), name))

        names: List[str] = []
        seen: Set[str] = set()
        for _, name in sorted(found, key=lambda item: item[0]):
            if name not in seen:
                seen.add(name)
                names.append(name)
        return names

    @staticmethod
    def extract_query_params(body: str) -> List[ParameterDescriptor]:
        return [
            ParameterDescriptor(
                location="query",
                name=name,
                required=False,
                value_type="string",
                description=f"{DeterministicParameterExtractor.capitalize_first(name)} query parameter",
            )
            for name in DeterministicParameterExtractor.query_param_names(body)
        ]

    @staticmethod
    def is_list_route(route: str) -> bool:
        segments = route.split("/")
        return any(segment in DeterministicParameterExtractor.LIST_SEGMENTS for segment in segments)

    @staticmethod
    def pagination_params() -> List[ParameterDescriptor]:
        return [
            ParameterDescriptor(
                location="query",
                name="page",
                value_type="integer",
                description="Page number for pagination",
                default=1,
                minimum=1,
            ),
            ParameterDescriptor(
                location="query",
                name="limit",
                value_type="integer",
                description="Number of items per page",
                default=10,
                minimum=1,
                maximum=100,
            ),
        ]

    @staticmethod
    def capitalize_first(text: str) -> str:
        return text[:1].upper() + text[1:]
