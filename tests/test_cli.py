"""Tests for the command-line entry point and configuration loading."""

import json

import pytest

import main
from docgen import GeneratorConfig, SwaggerGenerationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("PORT", "SWAGGER_OUTPUT_FILE", "SWAGGER_TITLE", "SWAGGER_PROJECT_ROOT", "SWAGGER_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


def run(argv):
    with pytest.raises(SystemExit) as exc:
        main.main(argv)
    return exc.value.code


class TestMain:
    def test_success(self, express_project, tmp_path):
        output = tmp_path / "out" / "swagger.json"
        assert run([express_project, "-q", "-o", str(output)]) == 0

        document = json.loads(output.read_text(encoding="utf-8"))
        assert "/api/v1/teachers/list" in document["paths"]

    def test_default_output_inside_project(self, express_project):
        assert run([express_project, "-q"]) == 0
        with open(f"{express_project}/public/swagger.json", encoding="utf-8") as f:
            assert json.load(f)["openapi"] == "3.0.0"

    def test_cli_overrides(self, express_project, tmp_path):
        output = tmp_path / "swagger.json"
        code = run([express_project, "-q", "-o", str(output), "--port", "8080",
                    "--title", "School API", "--api-version", "2.1.0"])
        assert code == 0

        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["servers"][0]["url"] == "http://localhost:8080"
        assert document["info"]["title"] == "School API"
        assert document["info"]["version"] == "2.1.0"

    def test_missing_project_directory(self, tmp_path):
        assert run([str(tmp_path / "missing"), "-q"]) == 1

    def test_generation_failure(self, express_project, monkeypatch):
        def failing_generation(config):
            raise SwaggerGenerationError("disk full")

        monkeypatch.setattr(main, "generate_swagger", failing_generation)
        assert run([express_project, "-q"]) == 1

    def test_yaml_config(self, express_project, tmp_path):
        config_file = tmp_path / "swagger.yaml"
        config_file.write_text("port: 5000\ntitle: From YAML\n", encoding="utf-8")
        output = tmp_path / "swagger.json"

        assert run([express_project, "-q", "-o", str(output), "--config", str(config_file)]) == 0
        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["servers"][0]["url"] == "http://localhost:5000"
        assert document["info"]["title"] == "From YAML"

    def test_invalid_config(self, express_project, tmp_path):
        config_file = tmp_path / "swagger.json"
        config_file.write_text(json.dumps({"prot": 5000}), encoding="utf-8")
        assert run([express_project, "-q", "--config", str(config_file)]) == 1

    def test_git_url_detection(self):
        assert main.is_git_url("https://github.com/org/api.git")
        assert main.is_git_url("git@github.com:org/api.git")
        assert not main.is_git_url("./backend")

    def test_operation_rows(self, generator_config):
        from docgen import build_document

        rows = main.operation_rows(build_document(generator_config))
        export = [r for r in rows if r["path"] == "/api/v1/teachers/export"][0]
        assert export == {
            "method": "GET",
            "path": "/api/v1/teachers/export",
            "tag": "Teachers",
            "handler": "teacherController.exportTeachers",
            "secured": True,
        }


class TestGeneratorConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PORT", "4000")
        monkeypatch.setenv("SWAGGER_TITLE", "Env API")
        config = GeneratorConfig.from_env()
        assert config.port == 4000
        assert config.title == "Env API"
        assert config.routes_dir == "routes"

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"api_prefix": "/api/v2", "output_file": "docs/api.json"}), encoding="utf-8")
        config = GeneratorConfig.from_file(str(path))
        assert config.api_prefix == "/api/v2"
        assert config.output_file == "docs/api.json"

    def test_unknown_keys_rejected(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"colour": "blue"}), encoding="utf-8")
        with pytest.raises(ValueError):
            GeneratorConfig.from_file(str(path))

    def test_override_ignores_none(self):
        config = GeneratorConfig().override(port=None, title="T")
        assert config.port == 3000
        assert config.title == "T"

    def test_paths_resolve_against_project_root(self, tmp_path):
        config = GeneratorConfig(project_root=str(tmp_path))
        assert config.routes_path == str(tmp_path / "routes")
        assert config.output_path == str(tmp_path / "public" / "swagger.json")
