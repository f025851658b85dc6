"""
Analyzer package for the Express API documentation synthesizer.

Exports the three source analyzers and the shared data models.
"""

from .base import (
    ParamKind,
    EnumScope,
    RuleSource,
    Inference,
    EnumRule,
    ParameterDescriptor,
    ResponseDescriptor,
    EndpointDescriptor,
    FeatureFolder,
    RouteContext,
)

from .enum_extractor import EnumExtractor, MalformedAnnotation
from .schema_generator import SchemaGenerator, singularize
from .api_analyzer import APIAnalyzer

__all__ = [
    # Data models
    "ParamKind",
    "EnumScope",
    "RuleSource",
    "Inference",
    "EnumRule",
    "ParameterDescriptor",
    "ResponseDescriptor",
    "EndpointDescriptor",
    "FeatureFolder",
    "RouteContext",
    # Analyzers
    "EnumExtractor",
    "MalformedAnnotation",
    "SchemaGenerator",
    "singularize",
    "APIAnalyzer",
]
