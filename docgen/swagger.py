"""
OpenAPI Document Assembler
==========================
Runs the analyzers over a project, composes the OpenAPI 3.0 envelope and
writes it atomically.

The document carries no timestamps, so two generations over the same tree
produce byte-identical files.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
import threading
from typing import Any, Dict, List, Optional

from analyzers import APIAnalyzer, SchemaGenerator

from .config import GeneratorConfig

logger = logging.getLogger("apidoc_synth.swagger")

LEGACY_REF_PREFIX = "#/definitions/"
COMPONENTS_REF_PREFIX = "#/components/schemas/"

# Mode of a newly created artifact; an existing artifact keeps its own
ARTIFACT_MODE = 0o644

BEARER_AUTH_SCHEME = {
    "type": "http",
    "scheme": "bearer",
    "bearerFormat": "JWT",
    "description": "Enter JWT token in format: Bearer <token>",
}

# Serializes generations within one process
_generation_lock = threading.Lock()


class SwaggerGenerationError(Exception):
    """The artifact could not be persisted; the previous file is untouched."""


def rewrite_refs(node: Any) -> Any:
    """Recursively move `#/definitions/X` references to `#/components/schemas/X`."""
    if isinstance(node, dict):
        rewritten = {}
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str) and value.startswith(LEGACY_REF_PREFIX):
                rewritten[key] = COMPONENTS_REF_PREFIX + value[len(LEGACY_REF_PREFIX):]
            else:
                rewritten[key] = rewrite_refs(value)
        return rewritten
    if isinstance(node, list):
        return [rewrite_refs(item) for item in node]
    return node


def analyze_project(config: GeneratorConfig) -> Dict[str, Any]:
    """Run schema discovery and route analysis for one project tree."""
    schema_generator = SchemaGenerator()
    schema_generator.scan_route_structure(config.routes_path)

    analyzer = APIAnalyzer(api_prefix=config.api_prefix, base_dir=config.resolve("."))
    analyzer.set_folder_structure(schema_generator.get_folder_structure())
    analyzer.set_schemas(schema_generator.get_schemas())
    analyzer.analyze_controllers(config.controllers_path)
    analyzer.analyze_routes(config.routes_path, config.controllers_path)

    results = analyzer.get_results()
    return {
        "schemas": schema_generator.get_schemas(),
        "tags": schema_generator.get_tags(),
        "paths": results["swagger_paths"],
        "operation_tags": results["tags"],
        "endpoints": results["endpoints"],
    }


def _merge_tags(tags: List[Dict[str, str]], operation_tags: List[str]) -> List[Dict[str, str]]:
    merged = [dict(tag) for tag in tags]
    known = {tag["name"] for tag in merged}
    for name in operation_tags:
        if name not in known:
            known.add(name)
            merged.append({"name": name, "description": f"{name} endpoints"})
    return merged


def _convert_paths(paths: Dict[str, Dict[str, Dict[str, Any]]]) -> Dict[str, Dict[str, Dict[str, Any]]]:
    converted: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for path, operations in paths.items():
        converted[path] = {}
        for method, operation in operations.items():
            operation = dict(operation)
            if "requestBody" in operation:
                operation["requestBody"] = rewrite_refs(operation["requestBody"])
            if "responses" in operation:
                operation["responses"] = rewrite_refs(operation["responses"])
            converted[path][method] = operation
    return converted


def build_document(config: GeneratorConfig, analysis: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Compose the in-memory OpenAPI document."""
    if analysis is None:
        analysis = analyze_project(config)

    return {
        "openapi": "3.0.0",
        "info": {
            "title": config.title,
            "description": config.description,
            "version": config.version,
            "contact": {
                "name": config.contact_name,
                "email": config.contact_email,
            },
        },
        "servers": [
            {
                "url": f"http://localhost:{config.port}",
                "description": "Development server",
            }
        ],
        "components": {
            "securitySchemes": {"bearerAuth": dict(BEARER_AUTH_SCHEME)},
            "schemas": rewrite_refs(analysis["schemas"]),
        },
        "tags": _merge_tags(analysis["tags"], analysis["operation_tags"]),
        "paths": _convert_paths(analysis["paths"]),
    }


def serialize_document(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def artifact_mode(output_path: str) -> int:
    try:
        return stat.S_IMODE(os.stat(output_path).st_mode)
    except FileNotFoundError:
        return ARTIFACT_MODE


def write_document(document: Dict[str, Any], output_path: str) -> None:
    """Write via a temp file in the target directory and rename over the artifact."""
    payload = serialize_document(document)
    directory = os.path.dirname(os.path.abspath(output_path))
    tmp_path = None

    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".swagger-", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        # mkstemp creates the file as 0600
        os.chmod(tmp_path, artifact_mode(output_path))
        os.replace(tmp_path, output_path)
        tmp_path = None
    except OSError as e:
        raise SwaggerGenerationError(f"Failed to write {output_path}: {e}") from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)


def count_operations(document: Dict[str, Any]) -> int:
    return sum(len(operations) for operations in document.get("paths", {}).values())


def generate_swagger(config: GeneratorConfig) -> Dict[str, Any]:
    """
    Build the document and persist it to config.output_path.

    Generations are serialized by a process-wide lock. Errors propagate; a
    failed write leaves the previous artifact in place.
    """
    with _generation_lock:
        document = build_document(config)
        write_document(document, config.output_path)

    logger.info(
        f"Swagger documentation generated: {config.output_path} "
        f"({len(document['paths'])} paths, {count_operations(document)} operations)"
    )
    return document
