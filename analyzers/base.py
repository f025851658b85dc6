"""
Shared data models for the API documentation synthesizer.

All analyzers and the document assembler import from this module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional


# =============================================================================
# ENUMS
# =============================================================================

class ParamKind(Enum):
    PATH = "path"
    QUERY = "query"
    BODY = "body"


class EnumScope(Enum):
    """Annotation scopes, declared in ascending precedence."""
    CONTROLLER = "controller"
    METHOD = "method"
    ROUTE = "route"
    ENDPOINT = "endpoint"

    @property
    def precedence(self) -> int:
        return list(EnumScope).index(self)


class RuleSource(Enum):
    ANNOTATION = "annotation"
    INLINE = "inline"


HTTP_VERBS = ("GET", "POST", "PUT", "DELETE", "PATCH")
BODY_VERBS = {"POST", "PUT", "PATCH"}

# Legacy field-key prefixes used by the four-way enum view
KIND_PREFIXES = {
    ParamKind.PATH: "param_",
    ParamKind.QUERY: "query_",
    ParamKind.BODY: "",
}


# =============================================================================
# DATA STRUCTURES
# =============================================================================

class Inference(NamedTuple):
    """A heuristic result together with the evidence that produced it."""
    value: Any
    reason: str
    confidence: float


@dataclass(frozen=True)
class EnumRule:
    """Permitted literal values for one parameter or body field."""
    name: str
    values: tuple
    description: str
    scope: EnumScope
    scope_key: str
    kind: ParamKind
    source: RuleSource = RuleSource.ANNOTATION
    confidence: float = 1.0

    @property
    def field_key(self) -> str:
        return f"{KIND_PREFIXES[self.kind]}{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enum": list(self.values),
            "description": self.description,
            "source": f"{self.source.value}:{self.scope.value}:{self.scope_key}",
            "type": self.kind.value,
            "confidence": self.confidence,
        }


@dataclass
class ParameterDescriptor:
    """A path or query parameter of one operation."""
    location: str
    name: str
    required: bool = False
    value_type: str = "string"
    enum_values: Optional[List[str]] = None
    description: str = ""
    default: Optional[int] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    example: Any = None

    def to_openapi(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.value_type}
        if self.enum_values:
            schema["enum"] = list(self.enum_values)
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.default is not None:
            schema["default"] = self.default
        if self.example is not None:
            schema["example"] = self.example

        return {
            "in": self.location,
            "name": self.name,
            "required": self.required,
            "schema": schema,
            "description": self.description,
        }


@dataclass(frozen=True)
class ResponseDescriptor:
    status_code: int
    description: str
    schema_name: str


@dataclass(frozen=True)
class EndpointDescriptor:
    """The inferred model of one controller handler function."""
    handler_id: str
    name: str
    controller: str
    inferred_verb: Inference
    summary: str
    description: str
    parameters: tuple = ()
    responses: Dict[int, ResponseDescriptor] = field(default_factory=dict)
    requires_auth: Inference = Inference(False, "no auth evidence", 0.5)
    source_file: str = ""
    line_number: int = 0

    @property
    def verb(self) -> str:
        return self.inferred_verb.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "handler_id": self.handler_id,
            "method": self.verb,
            "method_reason": self.inferred_verb.reason,
            "summary": self.summary,
            "description": self.description,
            "parameters": [p.to_openapi() for p in self.parameters],
            "responses": {
                str(code): {"description": r.description, "schema": r.schema_name}
                for code, r in self.responses.items()
            },
            "requires_auth": self.requires_auth.value,
            "auth_reason": self.requires_auth.reason,
            "source_file": self.source_file,
            "line_number": self.line_number,
        }


@dataclass
class FeatureFolder:
    """One resource folder discovered under routes/{public,private}/."""
    folder_name: str
    tag_name: str
    route_segment: str
    path: str
    singular: Inference

    @property
    def schema_name(self) -> str:
        return self.singular.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.folder_name,
            "path": self.path,
            "schemaName": self.folder_name,
            "tagName": self.tag_name,
            "routePath": self.route_segment,
            "singular": self.singular.value,
            "singularRule": self.singular.reason,
        }


class RouteContext(NamedTuple):
    """Accumulated route prefix and feature schema name for one subtree."""
    prefix: str = ""
    schema_name: str = ""

    def descend(self, folder: str) -> "RouteContext":
        return RouteContext(f"{self.prefix}/{folder.lower()}", folder)
