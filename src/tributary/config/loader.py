"""
Configuration file loading.

Loads config.yaml, overlays config.{env}.yaml and resolves placeholders.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from tributary.config.resolver import resolve_config
from tributary.exceptions import ConfigurationError

DEFAULT_MAX_DEPTH = 5
DEFAULT_MAX_DEPTH_LIMIT = 50


class Config:
    """Tributary configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data
        # Convenience properties for common config sections
        self.state = data.get("state") or {}
        self.traversal = data.get("traversal") or {}
        self.snapshot = data.get("snapshot") or {}
        self.rules = data.get("rules") or []

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        keys = key.split(".")
        value = self.data
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        """Dict-like access: config['key'] or config['nested']['key']."""
        if isinstance(key, str) and "." in key:
            return self.get(key)
        if key in self.data:
            value = self.data[key]
            # Return nested dicts as Config objects for chaining
            if isinstance(value, dict):
                return Config(value)
            return value
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        if isinstance(key, str) and "." in key:
            keys = key.split(".")
            value = self.data
            for k in keys:
                if not isinstance(value, dict) or k not in value:
                    return False
                value = value[k]
            return True
        return key in self.data

    def __iter__(self) -> "Iterator[str]":
        """Iterate over top-level keys."""
        return iter(self.data)

    def keys(self):
        """Get top-level keys."""
        return self.data.keys()

    def values(self):
        """Get top-level values."""
        return self.data.values()

    def items(self):
        """Get top-level items."""
        return self.data.items()

    @property
    def default_max_depth(self) -> int:
        return int(self.get("traversal.default_max_depth", DEFAULT_MAX_DEPTH))

    @property
    def max_depth_limit(self) -> int:
        return int(self.get("traversal.max_depth_limit", DEFAULT_MAX_DEPTH_LIMIT))

    def validate(self) -> None:
        """Validate configuration structure and content."""
        errors = []

        if not isinstance(self.data, dict):
            errors.append(f"Configuration must be a dictionary/mapping, got {type(self.data).__name__}")
            raise ConfigurationError("\n".join(errors))

        for section in ("state", "traversal", "snapshot", "logging", "service"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"Configuration '{section}' must be a dictionary, got {type(value).__name__}")

        rules = self.data.get("rules")
        if rules is not None and not isinstance(rules, list):
            errors.append(f"Configuration 'rules' must be a list, got {type(rules).__name__}")

        if isinstance(self.data.get("traversal"), dict):
            for key in ("default_max_depth", "max_depth_limit"):
                value = self.data["traversal"].get(key)
                if value is None:
                    continue
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    errors.append(f"Configuration 'traversal.{key}' must be a non-negative integer, got {value!r}")
            if not errors and self.default_max_depth > self.max_depth_limit:
                errors.append(
                    f"Configuration 'traversal.default_max_depth' ({self.default_max_depth}) "
                    f"exceeds 'traversal.max_depth_limit' ({self.max_depth_limit})"
                )

        if errors:
            raise ConfigurationError("\n".join(errors))


def load_config(project_path: Path | None = None, env: str | None = None) -> Config:
    """
    Load Tributary configuration.

    Args:
        project_path: Path to project root (default: current directory)
        env: Environment name (dev, staging, prod)

    Returns:
        Config instance with merged configuration
    """
    if project_path is None:
        project_path = Path.cwd()

    base_config_path = project_path / "config.yaml"
    if not base_config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create a config.yaml file in your project root"
        )

    if not base_config_path.is_file():
        raise ConfigurationError(f"Configuration path is not a file: {base_config_path}")

    config_data = _read_yaml(base_config_path)

    if env:
        env_config_path = project_path / f"config.{env}.yaml"
        if env_config_path.exists():
            _merge_dict(config_data, _read_yaml(env_config_path))

    env_name = env or "dev"
    config = Config(resolve_config(config_data, env_name))
    config.validate()
    return config


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        if hasattr(e, "problem_mark"):
            mark = e.problem_mark
            raise ConfigurationError(
                f"Error parsing {path.name} at line {mark.line + 1}, column {mark.column + 1}:\n"
                f"  {e}\n"
                f"  File: {path}\n"
                f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes"
            ) from e
        raise ConfigurationError(f"Error parsing {path.name}: {e}\n  File: {path}") from e
    except PermissionError as e:
        raise ConfigurationError(
            f"Permission denied reading {path.name}: {path}\n" f"  Suggestion: Check file permissions"
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration must be a dictionary/mapping, got {type(data).__name__}\n  File: {path}")
    return data


def _merge_dict(base: dict, override: dict):
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
