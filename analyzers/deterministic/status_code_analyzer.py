#!/usr/bin/env python3
"""
Status Code Analyzer
=====================
Detects status codes sent by Express handlers and provides their descriptions.

Combines:
- Code analysis (res.status(NNN), res.sendStatus(NNN))
- A fixed status -> description table
"""

import re
import logging
from typing import Dict, Set

from ..base import ResponseDescriptor

logger = logging.getLogger("apidoc_synth.deterministic.status_code_analyzer")

SUCCESS_SCHEMA = "SuccessResponse"
ERROR_SCHEMA = "ErrorResponse"


class StatusCodeAnalyzer:
    """
    Analyze status codes used in handler bodies.

    Extracts:
    - res.status(404).json(...)
    - res.sendStatus(204)
    """

    STANDARD_DESCRIPTIONS = {
        200: "Success",
        201: "Created successfully",
        400: "Bad Request - Invalid input",
        401: "Unauthorized - Authentication required",
        403: "Forbidden - Insufficient permissions",
        404: "Not Found - Resource not found",
        409: "Conflict - Resource already exists",
        500: "Internal Server Error",
    }

    UNKNOWN_DESCRIPTION = "Response"

    # Used when a handler sends no literal status code
    DEFAULT_RESPONSES = {
        200: "Success",
        400: "Bad Request",
        500: "Internal Server Error",
    }

    # Used for route registrations with no matching handler
    MINIMAL_RESPONSES = {
        200: "Success",
        400: "Bad Request",
        401: "Unauthorized",
        500: "Internal Server Error",
    }

    _STATUS_CALL = re.compile(r'\b(?:status|sendStatus)\s*\(\s*(\d{3})\s*\)')

    @staticmethod
    def extract_from_code(code: str) -> Set[int]:
        """
        Extract literal status codes from a handler body.

        Args:
            code: Handler source, ideally with comments stripped

        Returns:
            Set of status code integers
        """
        codes = {int(m.group(1)) for m in StatusCodeAnalyzer._STATUS_CALL.finditer(code)}

        if codes:
            logger.debug(f"Extracted {len(codes)} status codes from code: {sorted(codes)}")

        return codes

    @staticmethod
    def get_standard_description(code: int) -> str:
        return StatusCodeAnalyzer.STANDARD_DESCRIPTIONS.get(code, StatusCodeAnalyzer.UNKNOWN_DESCRIPTION)

    @staticmethod
    def is_success(code: int) -> bool:
        return 200 <= code < 300

    @staticmethod
    def generate_responses(detected_codes: Set[int]) -> Dict[int, ResponseDescriptor]:
        """
        Build response descriptors in ascending code order.

        2xx codes reference SuccessResponse, everything else ErrorResponse.
        With no detected codes the 200/400/500 defaults are returned.
        """
        if not detected_codes:
            return StatusCodeAnalyzer._from_table(StatusCodeAnalyzer.DEFAULT_RESPONSES)

        return {
            code: ResponseDescriptor(
                status_code=code,
                description=StatusCodeAnalyzer.get_standard_description(code),
                schema_name=SUCCESS_SCHEMA if StatusCodeAnalyzer.is_success(code) else ERROR_SCHEMA,
            )
            for code in sorted(detected_codes)
        }

    @staticmethod
    def minimal_responses() -> Dict[int, ResponseDescriptor]:
        return StatusCodeAnalyzer._from_table(StatusCodeAnalyzer.MINIMAL_RESPONSES)

    @staticmethod
    def _from_table(table: Dict[int, str]) -> Dict[int, ResponseDescriptor]:
        return {
            code: ResponseDescriptor(
                status_code=code,
                description=description,
                schema_name=SUCCESS_SCHEMA if StatusCodeAnalyzer.is_success(code) else ERROR_SCHEMA,
            )
            for code, description in table.items()
        }
