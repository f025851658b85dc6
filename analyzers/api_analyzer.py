"""
API Analyzer
============
Turns controllers/ and routes/ into OpenAPI path items.

1. analyze_controllers(): one EndpointDescriptor per top-level async arrow
   handler (verb, summary, description, naive query params, responses, auth).
2. analyze_routes(): walks routes/{public,private}/<Feature>/..., binds every
   `router.<verb>(path, ..., controller.method)` registration to a descriptor
   by bare method name and emits one operation per registered verb, decorated
   with the scoped enum rules that apply to it.

Registrations whose handler cannot be found still produce a minimal
operation; they are never dropped.
"""

from __future__ import annotations

import copy
import logging
import os
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .base import (
    BODY_VERBS,
    EndpointDescriptor,
    EnumRule,
    FeatureFolder,
    Inference,
    ParamKind,
    ParameterDescriptor,
    ResponseDescriptor,
    RouteContext,
)
from .deterministic import DeterministicParameterExtractor, HTTPMethodAnalyzer, StatusCodeAnalyzer
from .enum_extractor import EnumExtractor, endpoint_key_for, iter_js_files, read_source, route_key_for
from .js_source import (
    JS_EXTENSIONS,
    RouteCall,
    doc_comment_text,
    find_handlers,
    find_route_registrations,
    find_router_middleware,
    strip_comments,
    tokenize,
)
from .schema_generator import TRANSPARENT_DIRS, singular_name

logger = logging.getLogger("apidoc_synth.api_analyzer")

DEFAULT_API_PREFIX = "/api/v1"
AUTH_TAG_NAME = "Authentication"
DEFAULT_TAG_NAME = "General"
AUTH_MIDDLEWARE = "authenticateToken"

SKIP_MARKERS = ("health", "metrics")
PUBLIC_METHODS = ("login", "register", "forgotPassword", "resetPassword", "verifyEmail")

# Query names documented regardless of verb
CROSS_CUTTING_QUERY = {"page", "limit", "sort", "sortBy", "format", "status"}

BEARER_SECURITY = [{"bearerAuth": []}]


def to_openapi_path(path: str) -> str:
    """`/teachers/:id` -> `/teachers/{id}`."""
    return re.sub(r':(\w+)', r'{\1}', path)


def generate_operation_id(route: str, method: str) -> str:
    clean_route = route.replace("/", "_").replace("{", "").replace("}", "")
    clean_route = re.sub(r'[^a-zA-Z0-9_]', '', clean_route)
    clean_route = clean_route.strip("_")

    if not clean_route:
        clean_route = "root"

    return f"{method.lower()}_{clean_route}"


def schema_ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


class APIAnalyzer:
    """Builds endpoint descriptors and path items for one project."""

    def __init__(
        self,
        enum_extractor: Optional[EnumExtractor] = None,
        api_prefix: str = DEFAULT_API_PREFIX,
        base_dir: Optional[str] = None,
    ):
        self.enum_extractor = enum_extractor or EnumExtractor()
        self.api_prefix = api_prefix
        self.base_dir = base_dir
        self.endpoints: List[EndpointDescriptor] = []
        self.swagger_paths: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.tags: List[str] = []
        self.schemas: Dict[str, Dict[str, Any]] = {}
        self.folder_structure: Dict[str, FeatureFolder] = {}

    def set_folder_structure(self, folder_structure: Dict[str, FeatureFolder]) -> None:
        self.folder_structure = dict(folder_structure)

    def set_schemas(self, schemas: Dict[str, Dict[str, Any]]) -> None:
        """Known component schemas, used to pick request/response references."""
        self.schemas = dict(schemas)

    def _relative(self, path: str) -> str:
        rel = os.path.relpath(path, self.base_dir) if self.base_dir else path
        return rel.replace(os.sep, "/")

    # =========================================================================
    # CONTROLLERS
    # =========================================================================

    def analyze_controllers(self, controller_dir: str) -> List[EndpointDescriptor]:
        self.endpoints = []

        if not os.path.isdir(controller_dir):
            logger.debug(f"Controllers directory not found: {controller_dir}")
            return self.endpoints

        for path in iter_js_files(controller_dir, recursive=False):
            source = read_source(path)
            if source is None:
                continue
            controller = os.path.splitext(os.path.basename(path))[0]
            self.endpoints.extend(self.extract_endpoints_from_controller(source, controller, self._relative(path)))

        logger.info(f"Analyzed {len(self.endpoints)} handlers in {controller_dir}")
        return self.endpoints

    def extract_endpoints_from_controller(
        self, source: str, controller: str, source_file: str = ""
    ) -> List[EndpointDescriptor]:
        tokens = tokenize(source)
        stripped = strip_comments(source, tokens)
        endpoints = []

        for handler in find_handlers(source, tokens):
            body = stripped[handler.body_start:handler.body_end]
            description = doc_comment_text(handler.doc.text) if handler.doc is not None else ""

            endpoints.append(EndpointDescriptor(
                handler_id=f"{controller}.{handler.name}",
                name=handler.name,
                controller=controller,
                inferred_verb=HTTPMethodAnalyzer.infer_from_handler(handler.name, body),
                summary=HTTPMethodAnalyzer.humanize(handler.name),
                description=description or f"Auto-generated endpoint for {handler.name}",
                parameters=tuple(DeterministicParameterExtractor.extract_query_params(body)),
                responses=StatusCodeAnalyzer.generate_responses(StatusCodeAnalyzer.extract_from_code(body)),
                requires_auth=self.detect_auth(body),
                source_file=source_file,
                line_number=handler.line,
            ))

        return endpoints

    @staticmethod
    def detect_auth(body: str) -> Inference:
        if "req.user" in body:
            return Inference(True, "body references req.user", 0.8)
        if AUTH_MIDDLEWARE in body:
            return Inference(True, f"body references {AUTH_MIDDLEWARE}", 0.8)
        return Inference(False, "no auth evidence", 0.5)

    @staticmethod
    def needs_authentication(path: str, method_name: str) -> Inference:
        """Name-based auth heuristic for registrations without a handler."""
        if "auth" in path.split("/") and "logout" not in method_name:
            return Inference(False, "auth route", 0.6)

        for public in PUBLIC_METHODS:
            if public in method_name:
                return Inference(False, f"public method '{public}'", 0.6)

        return Inference(True, "default", 0.4)

    def find_endpoint_by_method(self, handler_ref: str) -> Optional[EndpointDescriptor]:
        """First descriptor whose name equals the last segment of `handler_ref`."""
        if not handler_ref:
            return None
        name = handler_ref.split(".")[-1]
        for endpoint in self.endpoints:
            if endpoint.name == name:
                return endpoint
        return None

    # =========================================================================
    # ROUTES
    # =========================================================================

    def analyze_routes(self, route_dir: str, controller_dir: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        self.swagger_paths = {}
        self.tags = []

        self.enum_extractor.clear()
        if controller_dir:
            self.enum_extractor.extract_from_controllers(controller_dir)
        self.enum_extractor.extract_from_routes(route_dir)
        logger.info(f"Extracted {len(self.enum_extractor)} enum rules")

        if not os.path.isdir(route_dir):
            logger.debug(f"Routes directory not found: {route_dir}")
            return self.swagger_paths

        self._scan_route_directory(route_dir, route_dir, RouteContext())

        logger.info(f"Built {sum(len(ops) for ops in self.swagger_paths.values())} operations on {len(self.swagger_paths)} paths")
        return self.swagger_paths

    def _scan_route_directory(self, route_dir: str, directory: str, context: RouteContext) -> None:
        try:
            names = sorted(os.listdir(directory))
        except OSError as e:
            logger.debug(f"Cannot list {directory}: {e}")
            return

        for name in names:
            path = os.path.join(directory, name)
            if os.path.isdir(path):
                if name in TRANSPARENT_DIRS:
                    self._scan_route_directory(route_dir, path, context)
                else:
                    self._scan_route_directory(route_dir, path, context.descend(name))
            elif os.path.splitext(name)[1] in JS_EXTENSIONS:
                rel = os.path.relpath(path, route_dir).replace(os.sep, "/")
                if any(marker in rel for marker in SKIP_MARKERS):
                    logger.debug(f"Skipping operational route file: {rel}")
                    continue
                self.analyze_route_file(route_dir, path, context)

    def analyze_route_file(self, route_dir: str, path: str, context: RouteContext) -> None:
        source = read_source(path)
        if source is None:
            return

        tokens = tokenize(source)
        calls = find_route_registrations(source, tokens)
        file_auth = AUTH_MIDDLEWARE in find_router_middleware(source, tokens)

        prefix, schema_name = context
        if "auth" in prefix.split("/") or schema_name == "Auth":
            prefix, schema_name = "/auth", AUTH_TAG_NAME

        route_key = route_key_for(route_dir, path)
        tag = self.get_tag_from_schema(schema_name)

        for call in calls:
            self._register(call, prefix, schema_name, tag, route_key, file_auth, self._relative(path))

    def build_full_path(self, prefix: str, local_path: str) -> str:
        local = "" if local_path == "/" else local_path
        return re.sub(r'/+', '/', f"{self.api_prefix}{prefix}{local}")

    def get_tag_from_schema(self, schema_name: str) -> str:
        if schema_name in ("Auth", AUTH_TAG_NAME):
            return AUTH_TAG_NAME
        if not schema_name:
            return DEFAULT_TAG_NAME
        folder = self.folder_structure.get(schema_name)
        if folder is not None:
            return folder.tag_name
        return schema_name

    def _register(
        self,
        call: RouteCall,
        prefix: str,
        schema_name: str,
        tag: str,
        route_key: str,
        file_auth: bool,
        source_file: str,
    ) -> None:
        full_path = self.build_full_path(prefix, call.path)
        handler_ref = call.handler_ref or ""
        endpoint = self.find_endpoint_by_method(handler_ref)
        uses_auth_middleware = file_auth or AUTH_MIDDLEWARE in call.middleware

        scoped = self.get_scoped_enums_for_endpoint(
            full_path,
            call.verb,
            endpoint.handler_id if endpoint is not None else handler_ref,
            route_key,
            route_path=call.path,
        )

        if endpoint is not None:
            operation = self.create_operation(full_path, call, endpoint, tag, schema_name, scoped, uses_auth_middleware)
        else:
            logger.debug(f"No handler found for {call.verb} {full_path} ({handler_ref or 'inline handler'})")
            operation = self.create_minimal_operation(full_path, call, tag, schema_name, scoped, uses_auth_middleware)

        operation["x-source-file"] = source_file
        operation["x-source-line"] = call.line

        swagger_path = to_openapi_path(full_path)
        self.swagger_paths.setdefault(swagger_path, {})[call.verb.lower()] = operation

        if tag not in self.tags:
            self.tags.append(tag)

    # =========================================================================
    # SCOPED ENUMS
    # =========================================================================

    def get_scoped_enums_for_endpoint(
        self,
        api_path: str,
        http_method: str,
        controller_method_ref: str,
        source_file_path: str,
        route_path: Optional[str] = None,
    ) -> Dict[ParamKind, Dict[str, EnumRule]]:
        """
        Merge controller < method < route < endpoint rules for one endpoint and
        keep only the rules that can apply to it.

        Args:
            api_path: Full path template, e.g. /api/v1/schools/:type
            http_method: Registered verb
            controller_method_ref: `controller.method` of the bound handler
            source_file_path: Route key (`private/Classes/index.route`) or the
                route file path relative to the routes directory
            route_path: Local path of the registration, for endpoint rules
        """
        verb = http_method.upper()
        controller, _, method = controller_method_ref.rpartition(".")
        route_key = source_file_path.replace(os.sep, "/")
        stem, ext = os.path.splitext(route_key)
        if ext in JS_EXTENSIONS:
            # `index.route` is already a key; only a real file suffix is dropped
            route_key = stem
        endpoint_key = endpoint_key_for(route_key, verb, route_path) if route_path is not None else ""

        merged = self.enum_extractor.resolve(controller, method, route_key, endpoint_key)

        scoped: Dict[ParamKind, Dict[str, EnumRule]] = {kind: {} for kind in ParamKind}
        for (kind, name), rule in merged.items():
            if kind == ParamKind.PATH:
                keep = DeterministicParameterExtractor.has_path_param(api_path, name)
            elif kind == ParamKind.QUERY:
                keep = verb == "GET" or name in CROSS_CUTTING_QUERY
            else:
                keep = verb in BODY_VERBS
            if keep:
                scoped[kind][name] = rule
        return scoped

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def create_operation(
        self,
        full_path: str,
        call: RouteCall,
        endpoint: EndpointDescriptor,
        tag: str,
        schema_name: str,
        scoped: Dict[ParamKind, Dict[str, EnumRule]],
        uses_auth_middleware: bool,
    ) -> Dict[str, Any]:
        operation: Dict[str, Any] = {
            "tags": [tag],
            "summary": endpoint.summary,
            "description": endpoint.description,
            "operationId": generate_operation_id(to_openapi_path(full_path), call.verb),
            "parameters": self.generate_parameters(full_path, endpoint, scoped),
            "responses": self.generate_responses(endpoint.responses, schema_name, full_path),
            "security": BEARER_SECURITY if endpoint.requires_auth.value or uses_auth_middleware else [],
        }
        if HTTPMethodAnalyzer.has_request_body(call.verb):
            operation["requestBody"] = self.generate_request_body(endpoint.name, schema_name, scoped)
        operation["x-handler"] = endpoint.handler_id
        return operation

    def create_minimal_operation(
        self,
        full_path: str,
        call: RouteCall,
        tag: str,
        schema_name: str,
        scoped: Dict[ParamKind, Dict[str, EnumRule]],
        uses_auth_middleware: bool,
    ) -> Dict[str, Any]:
        method_name = (call.handler_ref or "").split(".")[-1]
        summary = HTTPMethodAnalyzer.humanize(method_name) if method_name else f"{call.verb} {call.path}"
        description = doc_comment_text(call.leading_doc.text) if call.leading_doc is not None else ""
        auth = self.needs_authentication(full_path, method_name)

        operation: Dict[str, Any] = {
            "tags": [tag],
            "summary": summary,
            "description": description or f"Auto-generated endpoint for {method_name or summary}",
            "operationId": generate_operation_id(to_openapi_path(full_path), call.verb),
            "parameters": self.generate_parameters(full_path, None, scoped),
            "responses": self.generate_responses(StatusCodeAnalyzer.minimal_responses(), schema_name, full_path),
            "security": BEARER_SECURITY if auth.value or uses_auth_middleware else [],
        }
        if HTTPMethodAnalyzer.has_request_body(call.verb):
            operation["requestBody"] = self.generate_request_body(method_name, schema_name, scoped)
        operation["x-handler"] = call.handler_ref or ""
        return operation

    def generate_parameters(
        self,
        full_path: str,
        endpoint: Optional[EndpointDescriptor],
        scoped: Dict[ParamKind, Dict[str, EnumRule]],
    ) -> List[Dict[str, Any]]:
        path_rules = scoped.get(ParamKind.PATH, {})
        query_rules = scoped.get(ParamKind.QUERY, {})

        params: List[ParameterDescriptor] = []
        for param in DeterministicParameterExtractor.extract_path_params(full_path):
            rule = path_rules.get(param.name)
            if rule is not None:
                param = replace(
                    param,
                    value_type="string",
                    enum_values=list(rule.values),
                    example=rule.values[0],
                    description=rule.description or param.description,
                )
            params.append(param)

        naive = list(endpoint.parameters) if endpoint is not None else []
        for param in naive:
            rule = query_rules.get(param.name)
            if rule is not None:
                param = replace(
                    param,
                    enum_values=list(rule.values),
                    description=rule.description or param.description,
                )
            params.append(param)

        naive_names = {p.name for p in naive}
        for name, rule in query_rules.items():
            if name in naive_names:
                continue
            params.append(ParameterDescriptor(
                location="query",
                name=name,
                required=False,
                value_type="string",
                enum_values=list(rule.values),
                description=rule.description or f"{DeterministicParameterExtractor.capitalize_first(name)} query parameter",
            ))

        if DeterministicParameterExtractor.is_list_route(full_path):
            params = [
                p for p in params
                if not (p.location == "query" and p.name in DeterministicParameterExtractor.PAGINATION_NAMES)
            ]
            params.extend(DeterministicParameterExtractor.pagination_params())

        seen = set()
        unique = []
        for param in params:
            key = (param.location, param.name)
            if key not in seen:
                seen.add(key)
                unique.append(param.to_openapi())
        return unique

    def get_request_schema_name(self, method_name: str, schema_name: str) -> str:
        method = method_name.lower()

        if schema_name == AUTH_TAG_NAME:
            if "register" in method:
                return "UserRegistration"
            if "login" in method:
                return "UserLogin"

        base = singular_name(schema_name)
        if "create" in method or "add" in method:
            return f"{base}Create"
        if "update" in method or "edit" in method:
            return f"{base}Update"
        return f"{base}Create"

    def generate_request_body(
        self,
        method_name: str,
        schema_name: str,
        scoped: Dict[ParamKind, Dict[str, EnumRule]],
    ) -> Dict[str, Any]:
        request_schema = self.get_request_schema_name(method_name, schema_name)
        if request_schema in self.schemas:
            schema: Dict[str, Any] = schema_ref(request_schema)
        else:
            schema = {"type": "object"}

        body_rules = scoped.get(ParamKind.BODY, {})
        if body_rules:
            schema = {
                "allOf": [
                    schema,
                    {
                        "type": "object",
                        "properties": {
                            name: {"type": "string", "enum": list(rule.values), "description": rule.description}
                            for name, rule in body_rules.items()
                        },
                    },
                ]
            }

        return {
            "required": True,
            "content": {"application/json": {"schema": schema}},
        }

    def get_success_schema_name(self, schema_name: str, full_path: str) -> str:
        if schema_name == AUTH_TAG_NAME:
            return "LoginResponse"

        paginated = f"Paginated{schema_name}"
        if DeterministicParameterExtractor.is_list_route(full_path) and paginated in self.schemas:
            return paginated

        singular = singular_name(schema_name) if schema_name else ""
        if singular and singular in self.schemas:
            return singular

        return "SuccessResponse"

    def generate_responses(
        self,
        responses: Dict[int, ResponseDescriptor],
        schema_name: str,
        full_path: str,
    ) -> Dict[str, Dict[str, Any]]:
        success_schema = self.get_success_schema_name(schema_name, full_path)
        result = {}
        for code in sorted(responses):
            response = responses[code]
            target = success_schema if StatusCodeAnalyzer.is_success(code) else "ErrorResponse"
            result[str(code)] = {
                "description": response.description,
                "content": {"application/json": {"schema": schema_ref(target)}},
            }
        return result

    # =========================================================================
    # RESULTS
    # =========================================================================

    def get_results(self) -> Dict[str, Any]:
        return {
            "endpoints": list(self.endpoints),
            "tags": list(self.tags),
            "schemas": copy.deepcopy(self.schemas),
            "swagger_paths": copy.deepcopy(self.swagger_paths),
        }
