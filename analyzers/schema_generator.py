"""
Schema Generator
================
Discovers feature folders under routes/{public,private}/ and derives the
component schemas and tags of the document from them.

For a folder named `Teachers` the generator emits `Teacher`, `TeacherCreate`,
`TeacherUpdate` and `PaginatedTeachers`, plus one `Teachers` tag. The common
auth and envelope schemas are always present.
"""

from __future__ import annotations

import copy
import logging
import os
from typing import Any, Dict, List, Optional

from .base import FeatureFolder, Inference

logger = logging.getLogger("apidoc_synth.schema_generator")

TRANSPARENT_DIRS = {"public", "private"}

AUTH_TAG = {
    "name": "Authentication",
    "description": "User authentication and authorization endpoints",
}

TIMESTAMP_EXAMPLE = "2024-01-01T00:00:00Z"


def singularize(name: str) -> Inference:
    """
    Naive English singular of a folder name.

        Categories -> Category   (rule "ies")
        Teachers   -> Teacher    (rule "s")
        Staff      -> Staff      (rule "unchanged")
    """
    if name.endswith("ies"):
        return Inference(name[:-3] + "y", "ies", 0.8)
    if name.endswith("s"):
        return Inference(name[:-1], "s", 0.6)
    return Inference(name, "unchanged", 0.5)


def singular_name(name: str) -> str:
    return singularize(name).value


class SchemaGenerator:
    """Builds component schemas and tags from the route folder layout."""

    def __init__(self):
        self.schemas: Dict[str, Dict[str, Any]] = {}
        self.tags: List[Dict[str, str]] = []
        self.folder_structure: Dict[str, FeatureFolder] = {}

    # =========================================================================
    # DISCOVERY
    # =========================================================================

    def scan_route_structure(self, route_dir: str) -> None:
        """Discover feature folders, then regenerate schemas and tags."""
        self.schemas = {}
        self.tags = []
        self.folder_structure = {}

        if not os.path.isdir(route_dir):
            logger.debug(f"Route directory not found, no features discovered: {route_dir}")
        else:
            self._scan_directory(route_dir, level=0)

        self.generate_schemas_from_structure()
        self.generate_tags_from_structure()

    def _scan_directory(self, directory: str, level: int) -> None:
        try:
            names = sorted(os.listdir(directory))
        except OSError as e:
            logger.debug(f"Cannot list {directory}: {e}")
            return

        for name in names:
            path = os.path.join(directory, name)
            if not os.path.isdir(path):
                continue

            if name in TRANSPARENT_DIRS:
                self._scan_directory(path, level + 1)
            elif level > 0:
                if name not in self.folder_structure:
                    logger.debug(f"Discovered feature folder: {name}")
                self.folder_structure[name] = FeatureFolder(
                    folder_name=name,
                    tag_name=name,
                    route_segment=name.lower(),
                    path=path,
                    singular=singularize(name),
                )
                self._scan_directory(path, level)

    # =========================================================================
    # SCHEMAS
    # =========================================================================

    def generate_schemas_from_structure(self) -> Dict[str, Dict[str, Any]]:
        for folder in self.folder_structure.values():
            self.generate_schemas_for_feature(folder)

        self.add_common_schemas()
        return self.schemas

    def generate_schemas_for_feature(self, folder: FeatureFolder) -> None:
        singular = folder.schema_name

        self.schemas[singular] = self.generate_base_schema(singular)
        self.schemas[f"{singular}Create"] = self.generate_create_schema(singular)
        self.schemas[f"{singular}Update"] = self.generate_update_schema(singular)
        self.schemas[f"Paginated{folder.folder_name}"] = self.generate_paginated_schema(singular, folder.folder_name)

        logger.debug(
            f"Generated schemas for {folder.folder_name}: {singular}, {singular}Create, "
            f"{singular}Update, Paginated{folder.folder_name} (singular rule: {folder.singular.reason})"
        )

    def generate_base_schema(self, entity_name: str) -> Dict[str, Any]:
        properties = {
            "id": {"type": "integer", "example": 1},
            "created_at": {"type": "string", "format": "date-time", "example": TIMESTAMP_EXAMPLE},
            "updated_at": {"type": "string", "format": "date-time", "example": TIMESTAMP_EXAMPLE},
        }
        properties.update(self.get_entity_properties(entity_name))

        return {"type": "object", "properties": properties}

    def generate_create_schema(self, entity_name: str) -> Dict[str, Any]:
        return {
            "type": "object",
            "required": ["name"],
            "properties": self.get_entity_properties(entity_name),
        }

    def generate_update_schema(self, entity_name: str) -> Dict[str, Any]:
        return {"type": "object", "properties": self.get_entity_properties(entity_name)}

    @staticmethod
    def generate_paginated_schema(singular: str, plural: str) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "success"},
                "data": {
                    "type": "object",
                    "properties": {
                        plural.lower(): {
                            "type": "array",
                            "items": {"$ref": f"#/components/schemas/{singular}"},
                        },
                        "pagination": {
                            "type": "object",
                            "properties": {
                                "page": {"type": "integer", "example": 1},
                                "limit": {"type": "integer", "example": 10},
                                "total": {"type": "integer", "example": 100},
                                "totalPages": {"type": "integer", "example": 10},
                            },
                        },
                    },
                },
            },
        }

    @staticmethod
    def get_entity_properties(entity_name: str) -> Dict[str, Any]:
        """Entity fields; only User has a specialized layout."""
        if entity_name == "User":
            return {
                "name": {"type": "string", "example": "User Name"},
                "email": {"type": "string", "format": "email", "example": "user@example.com"},
                "status": {"type": "string", "enum": ["active", "inactive"], "example": "active"},
                "phone": {"type": "string", "example": "1234567890"},
                "bio": {"type": "string", "example": "User biography"},
                "role": {"type": "string", "enum": ["user", "admin"], "example": "user"},
            }

        return {
            "name": {"type": "string", "example": f"{entity_name} Name"},
            "description": {"type": "string", "example": f"{entity_name} description"},
            "status": {"type": "string", "enum": ["active", "inactive"], "example": "active"},
        }

    def add_common_schemas(self) -> None:
        self.schemas["UserRegistration"] = {
            "type": "object",
            "required": ["name", "email", "password", "confirmPassword"],
            "properties": {
                "name": {"type": "string", "minLength": 2, "maxLength": 50, "example": "John Doe"},
                "email": {"type": "string", "format": "email", "example": "john@example.com"},
                "password": {"type": "string", "minLength": 6, "example": "password123"},
                "confirmPassword": {"type": "string", "example": "password123"},
            },
        }

        self.schemas["UserLogin"] = {
            "type": "object",
            "required": ["email", "password"],
            "properties": {
                "email": {"type": "string", "format": "email", "example": "john@example.com"},
                "password": {"type": "string", "example": "password123"},
            },
        }

        self.schemas["LoginResponse"] = {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "success"},
                "message": {"type": "string", "example": "Login successful"},
                "data": {
                    "type": "object",
                    "properties": {
                        "token": {"type": "string", "example": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."},
                        "user": {
                            "type": "object",
                            "properties": {
                                "id": {"type": "integer", "example": 1},
                                "name": {"type": "string", "example": "John Doe"},
                                "email": {"type": "string", "example": "john@example.com"},
                                "role": {"type": "string", "example": "user"},
                            },
                        },
                    },
                },
            },
        }

        self.schemas["SuccessResponse"] = {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "success"},
                "message": {"type": "string", "example": "Operation successful"},
                "data": {"type": "object"},
            },
        }

        self.schemas["ErrorResponse"] = {
            "type": "object",
            "properties": {
                "status": {"type": "string", "example": "error"},
                "message": {"type": "string", "example": "Error message"},
            },
        }

    # =========================================================================
    # TAGS
    # =========================================================================

    def generate_tags_from_structure(self) -> List[Dict[str, str]]:
        self.tags = [dict(AUTH_TAG)]
        for folder in self.folder_structure.values():
            self.tags.append({
                "name": folder.tag_name,
                "description": f"{folder.tag_name} management endpoints",
            })

        logger.info(f"Generated {len(self.tags)} tags: {', '.join(t['name'] for t in self.tags)}")
        return self.tags

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_schemas(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self.schemas)

    def get_tags(self) -> List[Dict[str, str]]:
        return [dict(tag) for tag in self.tags]

    def get_folder_structure(self) -> Dict[str, FeatureFolder]:
        return dict(self.folder_structure)

    def get_folder(self, name: str) -> Optional[FeatureFolder]:
        return self.folder_structure.get(name)
