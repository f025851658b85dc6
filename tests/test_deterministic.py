"""
Tests for the deterministic analyzers: verb inference, status codes and
parameter extraction.
"""

import pytest

from analyzers.deterministic import (
    DeterministicParameterExtractor,
    HTTPMethodAnalyzer,
    StatusCodeAnalyzer,
)


class TestHTTPMethodAnalyzer:
    """Verb inference from names and bodies."""

    @pytest.mark.parametrize("name,verb", [
        ("createTeacher", "POST"),
        ("registerUser", "POST"),
        ("addStudent", "POST"),
        ("updateSchool", "PUT"),
        ("editProfile", "PUT"),
        ("deleteTeacher", "DELETE"),
        ("removeMember", "DELETE"),
        ("getAllTeachers", "GET"),
        ("listClasses", "GET"),
        ("login", "GET"),
    ])
    def test_infer_from_name(self, name, verb):
        assert HTTPMethodAnalyzer.infer_from_name(name).value == verb

    def test_name_tokens_are_whole_words(self):
        """"address" contains "add" but is not an add operation."""
        result = HTTPMethodAnalyzer.infer_from_name("getAddressBook")
        assert result.value == "GET"

    def test_default_has_low_confidence(self):
        result = HTTPMethodAnalyzer.infer_from_name("login")
        assert result.reason == "default"
        assert result.confidence < HTTPMethodAnalyzer.NAME_CONFIDENCE

    def test_body_insert_with_created_status(self):
        body = '{ await db.query("INSERT INTO teachers (name) VALUES (?)"); res.status(201).json({}); }'
        result = HTTPMethodAnalyzer.infer_from_handler("createTeacher", body)
        assert result.value == "POST"
        assert result.reason.startswith("body evidence")

    def test_offset_is_not_update_evidence(self):
        """Pagination SQL with OFFSET stays a GET."""
        body = '{ await db.query(`SELECT * FROM teachers LIMIT ? OFFSET ?`); res.status(200).json(rows); }'
        result = HTTPMethodAnalyzer.infer_from_handler("getAllTeachers", body)
        assert result.value == "GET"
        assert result.reason == "name token 'get'"

    def test_body_evidence_overrides_name(self):
        body = '{ await db.query("DELETE FROM sessions WHERE user_id = ?"); }'
        assert HTTPMethodAnalyzer.infer_from_handler("getLogout", body).value == "DELETE"

    def test_update_set_evidence(self):
        body = '{ await db.query("UPDATE teachers SET name = ? WHERE id = ?"); }'
        assert HTTPMethodAnalyzer.infer_from_body(body).value == "PUT"

    def test_update_outranks_delete(self):
        """A handler that deletes child rows and updates the parent is a PUT."""
        body = (
            '{ await db.query("DELETE FROM teacher_subjects WHERE teacher_id = ?", [id]);'
            ' await db.query("UPDATE teachers SET subjects = ? WHERE id = ?", [subjects, id]); }'
        )
        result = HTTPMethodAnalyzer.infer_from_handler("replaceTeacherSubjects", body)
        assert result.value == "PUT"
        assert result.reason == "body evidence: UPDATE ... SET"

    def test_no_body_evidence(self):
        assert HTTPMethodAnalyzer.infer_from_body("{ res.json(rows); }") is None

    def test_has_request_body(self):
        assert HTTPMethodAnalyzer.has_request_body("post")
        assert HTTPMethodAnalyzer.has_request_body("PATCH")
        assert not HTTPMethodAnalyzer.has_request_body("GET")
        assert not HTTPMethodAnalyzer.has_request_body("DELETE")

    def test_humanize(self):
        assert HTTPMethodAnalyzer.humanize("getAllTeachers") == "Get All Teachers"
        assert HTTPMethodAnalyzer.humanize("forgotPassword") == "Forgot Password"

    def test_split_words(self):
        assert HTTPMethodAnalyzer.split_words("getHTTPStatus_byId") == ["get", "http", "status", "by", "id"]


class TestStatusCodeAnalyzer:
    """Status code detection and response descriptors."""

    def test_extract_from_code(self):
        body = "res.status(404).json({}); res.sendStatus(204); res.status( 500 ).end();"
        assert StatusCodeAnalyzer.extract_from_code(body) == {204, 404, 500}

    def test_generate_responses_sorted(self):
        responses = StatusCodeAnalyzer.generate_responses({500, 201, 400})
        assert list(responses) == [201, 400, 500]
        assert responses[201].description == "Created successfully"
        assert responses[201].schema_name == "SuccessResponse"
        assert responses[400].schema_name == "ErrorResponse"

    def test_defaults_when_no_codes(self):
        responses = StatusCodeAnalyzer.generate_responses(set())
        assert sorted(responses) == [200, 400, 500]
        assert responses[400].description == "Bad Request"

    def test_minimal_responses(self):
        assert sorted(StatusCodeAnalyzer.minimal_responses()) == [200, 400, 401, 500]

    def test_unknown_code_description(self):
        assert StatusCodeAnalyzer.get_standard_description(418) == "Response"


class TestParameterExtractor:
    """Path and query parameter descriptors."""

    def test_path_params(self):
        params = DeterministicParameterExtractor.extract_path_params("/api/v1/teachers/:teacherId/status/:status")
        assert [p.name for p in params] == ["teacherId", "status"]

        teacher_id, status = params
        assert teacher_id.value_type == "integer"
        assert teacher_id.example == 1
        assert teacher_id.required
        assert teacher_id.description == "TeacherId identifier"
        assert status.value_type == "string"
        assert status.example == "example-status"

    def test_braced_path_params(self):
        assert DeterministicParameterExtractor.path_param_names("/schools/{type}/:id") == ["id", "type"]

    def test_has_path_param_is_exact(self):
        assert DeterministicParameterExtractor.has_path_param("/teachers/:status", "status")
        assert not DeterministicParameterExtractor.has_path_param("/teachers/:statusCode", "status")
        assert not DeterministicParameterExtractor.has_path_param("/teachers/:id", "status")

    def test_query_param_names(self):
        body = """{
          const { page = 1, limit = 10, sortBy: sort, search } = req.query;
          const format = req.query.format;
        }"""
        assert DeterministicParameterExtractor.query_param_names(body) == ["page", "limit", "sortBy", "search", "format"]

    def test_query_param_descriptors(self):
        params = DeterministicParameterExtractor.extract_query_params("{ const q = req.query.search; }")
        assert len(params) == 1
        assert params[0].to_openapi() == {
            "in": "query",
            "name": "search",
            "required": False,
            "schema": {"type": "string"},
            "description": "Search query parameter",
        }

    def test_list_routes(self):
        assert DeterministicParameterExtractor.is_list_route("/api/v1/teachers/list")
        assert DeterministicParameterExtractor.is_list_route("/api/v1/categories/all")
        assert not DeterministicParameterExtractor.is_list_route("/api/v1/teachers/:id")

    @pytest.mark.parametrize("route", [
        "/api/v1/allowances",
        "/api/v1/listings/:id",
        "/api/v1/teachers/all-subjects",
        "/api/v1/wishlist",
    ])
    def test_list_route_matches_whole_segments(self, route):
        assert not DeterministicParameterExtractor.is_list_route(route)

    def test_pagination_params(self):
        page, limit = [p.to_openapi() for p in DeterministicParameterExtractor.pagination_params()]
        assert page["schema"] == {"type": "integer", "minimum": 1, "default": 1}
        assert limit["schema"] == {"type": "integer", "minimum": 1, "maximum": 100, "default": 10}
