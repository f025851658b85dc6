"""Tests for feature folder discovery, schemas and tags."""

import os

import pytest

from analyzers import SchemaGenerator, singularize


@pytest.fixture
def generator(express_project):
    generator = SchemaGenerator()
    generator.scan_route_structure(os.path.join(express_project, "routes"))
    return generator


class TestSingularize:
    """Naive folder-name singularization."""

    @pytest.mark.parametrize("name,singular,reason", [
        ("Designations", "Designation", "s"),
        ("Categories", "Category", "ies"),
        ("Teachers", "Teacher", "s"),
        ("Staff", "Staff", "unchanged"),
    ])
    def test_rules(self, name, singular, reason):
        result = singularize(name)
        assert result.value == singular
        assert result.reason == reason


class TestDiscovery:
    """Feature folders under routes/{public,private}/."""

    def test_feature_folders_in_listing_order(self, generator):
        assert list(generator.get_folder_structure()) == [
            "Categories", "Classes", "Departments", "Designations", "Teachers", "Auth", "ServerInfo",
        ]

    def test_folders_outside_public_private_are_not_features(self, generator):
        assert generator.get_folder("shared") is None
        assert generator.get_folder("private") is None

    def test_folder_metadata(self, generator):
        folder = generator.get_folder("Designations")
        assert folder.schema_name == "Designation"
        assert folder.route_segment == "designations"
        assert folder.to_dict()["singularRule"] == "s"

    def test_missing_route_directory(self, tmp_path):
        generator = SchemaGenerator()
        generator.scan_route_structure(str(tmp_path / "routes"))

        assert generator.get_folder_structure() == {}
        assert set(generator.get_schemas()) == {
            "UserRegistration", "UserLogin", "LoginResponse", "SuccessResponse", "ErrorResponse",
        }
        assert [t["name"] for t in generator.get_tags()] == ["Authentication"]

    def test_rescan_resets_state(self, generator, tmp_path):
        generator.scan_route_structure(str(tmp_path / "empty"))
        assert "Teacher" not in generator.get_schemas()


class TestSchemas:
    """Per-feature component schemas."""

    def test_feature_schema_family(self, generator):
        schemas = generator.get_schemas()
        for name in ("Teacher", "TeacherCreate", "TeacherUpdate", "PaginatedTeachers"):
            assert name in schemas

    def test_base_schema(self, generator):
        teacher = generator.get_schemas()["Teacher"]
        assert set(teacher["properties"]) == {"id", "created_at", "updated_at", "name", "description", "status"}
        assert teacher["properties"]["name"]["example"] == "Teacher Name"

    def test_create_requires_name(self, generator):
        schemas = generator.get_schemas()
        assert schemas["TeacherCreate"]["required"] == ["name"]
        assert "required" not in schemas["TeacherUpdate"]

    def test_paginated_schema_references_singular(self, generator):
        paginated = generator.get_schemas()["PaginatedCategories"]
        items = paginated["properties"]["data"]["properties"]["categories"]["items"]
        assert items == {"$ref": "#/components/schemas/Category"}

    def test_user_entity_properties(self):
        properties = SchemaGenerator.get_entity_properties("User")
        assert properties["email"]["format"] == "email"
        assert properties["role"]["enum"] == ["user", "admin"]

    def test_common_schemas_always_present(self, generator):
        schemas = generator.get_schemas()
        assert schemas["UserLogin"]["required"] == ["email", "password"]
        assert "token" in schemas["LoginResponse"]["properties"]["data"]["properties"]

    def test_get_schemas_returns_copy(self, generator):
        generator.get_schemas()["Teacher"]["properties"].clear()
        assert generator.get_schemas()["Teacher"]["properties"]


class TestTags:
    """Document tags."""

    def test_authentication_first_then_folders(self, generator):
        tags = generator.get_tags()
        assert tags[0] == {
            "name": "Authentication",
            "description": "User authentication and authorization endpoints",
        }
        assert [t["name"] for t in tags[1:]] == list(generator.get_folder_structure())

    def test_folder_tag_description(self, generator):
        teachers = [t for t in generator.get_tags() if t["name"] == "Teachers"][0]
        assert teachers["description"] == "Teachers management endpoints"
