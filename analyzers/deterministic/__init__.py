#!/usr/bin/env python3
"""
Deterministic Analyzers
========================
Rule-table analyzers that infer endpoint facts from Express source text.

- HTTP verb inference from handler names and body evidence
- Status code detection and standard descriptions
- Path/query parameter descriptors from Express route templates

Every heuristic result carries an Inference (value, reason, confidence) so
callers can tell why a value was chosen.
"""

from .http_method_analyzer import HTTPMethodAnalyzer
from .status_code_analyzer import StatusCodeAnalyzer
from .parameter_extractor import DeterministicParameterExtractor

__all__ = [
    'HTTPMethodAnalyzer',
    'StatusCodeAnalyzer',
    'DeterministicParameterExtractor',
]
