"""
Generator Configuration
=======================
Settings for one documentation generation, loadable from environment
variables, a JSON/YAML file, or CLI overrides.
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional


@dataclass
class GeneratorConfig:
    """
    Generation settings with the defaults of a folder-routed Express app.

    Relative directories are resolved against project_root.
    """
    # Source layout
    project_root: str = "."
    controllers_dir: str = "controllers"
    routes_dir: str = "routes"
    output_file: str = "public/swagger.json"

    # Document envelope
    port: int = 3000
    api_prefix: str = "/api/v1"
    title: str = "DPS Ghaziabad API Documentation"
    description: str = "Completely automated API documentation with dynamic schema and tag generation"
    version: str = "1.0.0"
    contact_name: str = "API Support"
    contact_email: str = "support@example.com"

    # Runtime
    startup_delay_seconds: float = 0.5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        """Load configuration from environment variables."""
        defaults = cls()
        return cls(
            project_root=os.getenv("SWAGGER_PROJECT_ROOT", defaults.project_root),
            controllers_dir=os.getenv("SWAGGER_CONTROLLERS_DIR", defaults.controllers_dir),
            routes_dir=os.getenv("SWAGGER_ROUTES_DIR", defaults.routes_dir),
            output_file=os.getenv("SWAGGER_OUTPUT_FILE", defaults.output_file),
            port=int(os.getenv("PORT", defaults.port)),
            api_prefix=os.getenv("SWAGGER_API_PREFIX", defaults.api_prefix),
            title=os.getenv("SWAGGER_TITLE", defaults.title),
            description=os.getenv("SWAGGER_DESCRIPTION", defaults.description),
            version=os.getenv("SWAGGER_VERSION", defaults.version),
            contact_name=os.getenv("SWAGGER_CONTACT_NAME", defaults.contact_name),
            contact_email=os.getenv("SWAGGER_CONTACT_EMAIL", defaults.contact_email),
            startup_delay_seconds=float(os.getenv("SWAGGER_STARTUP_DELAY", defaults.startup_delay_seconds)),
            log_level=os.getenv("SWAGGER_LOG_LEVEL", defaults.log_level),
        )

    @classmethod
    def from_file(cls, path: str) -> "GeneratorConfig":
        """Load configuration from JSON or YAML file."""
        with open(path, 'r') as f:
            if path.endswith(('.yaml', '.yml')):
                try:
                    import yaml
                    data = yaml.safe_load(f)
                except ImportError:
                    raise RuntimeError("PyYAML required for YAML config files: pip install pyyaml")
            else:
                data = json.load(f)

        data = data or {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")

        return cls(**data)

    def override(self, **changes: Optional[Any]) -> "GeneratorConfig":
        """Apply non-None overrides, e.g. from CLI arguments."""
        for key, value in changes.items():
            if value is not None:
                setattr(self, key, value)
        return self

    def resolve(self, path: str) -> str:
        """Absolute path of a project-relative setting."""
        if os.path.isabs(path):
            return path
        return os.path.abspath(os.path.join(self.project_root, path))

    @property
    def controllers_path(self) -> str:
        return self.resolve(self.controllers_dir)

    @property
    def routes_path(self) -> str:
        return self.resolve(self.routes_dir)

    @property
    def output_path(self) -> str:
        return self.resolve(self.output_file)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)
