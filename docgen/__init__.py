"""
Document generation for the Express API documentation synthesizer.

Usage:
    from docgen import GeneratorConfig, generate_swagger

    config = GeneratorConfig.from_env()
    generate_swagger(config)          # writes public/swagger.json
"""

from .config import GeneratorConfig
from .swagger import (
    SwaggerGenerationError,
    analyze_project,
    build_document,
    generate_swagger,
    rewrite_refs,
)
from .startup import cancel_scheduled_generation, schedule_swagger_generation

__all__ = [
    "GeneratorConfig",
    "SwaggerGenerationError",
    "analyze_project",
    "build_document",
    "generate_swagger",
    "rewrite_refs",
    "schedule_swagger_generation",
    "cancel_scheduled_generation",
]
