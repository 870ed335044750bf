"""
Configuration resolution and environment variable substitution.

Supported in any string value:
- ``${VAR}``: the environment variable, left verbatim when unset
- ``${VAR:-fallback}``: the environment variable, or ``fallback`` (no braces) when unset or empty
- ``{env}``: the active environment name, e.g. ``state/lineage_{env}.duckdb``
"""

import os
import re
from typing import Any

from tributary.utils.logging import get_logger

_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def resolve_config(config_data: dict[str, Any], env: str = "dev") -> dict[str, Any]:
    """
    Resolve configuration with environment variable substitution.

    Args:
        config_data: Configuration dictionary
        env: Current environment name

    Returns:
        Resolved configuration
    """
    unset: set[str] = set()
    resolved = _resolve_value(config_data, env, unset)
    if unset:
        get_logger("tributary.config").warning(f"Unset environment variable(s) in config: {', '.join(sorted(unset))}")
    return resolved


def _resolve_value(value: Any, env: str, unset: set[str]) -> Any:
    if isinstance(value, dict):
        return {k: _resolve_value(v, env, unset) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_value(item, env, unset) for item in value]
    elif isinstance(value, str):
        return _substitute(value, unset).replace("{env}", env)
    else:
        return value


def _substitute(value: str, unset: set[str]) -> str:
    def replace(match: re.Match) -> str:
        name, fallback = match.group(1), match.group(2)
        current = os.environ.get(name)
        if fallback is not None:
            return current or fallback
        if current is None:
            # Left as-is so a missing secret is visible in errors
            unset.add(name)
            return match.group(0)
        return current

    return _VAR_PATTERN.sub(replace, value)
