"""Environment variable interpolation for config values

Supports ``${VAR}`` and ``${VAR:-default}``. A reference without a default to
an unset variable is an error.
"""

import os
import re
from typing import Any

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def interpolate_env(value: str) -> str:
    """Replace every ``${VAR}`` in ``value`` with its environment value"""

    def _replace(match: re.Match) -> str:
        var_name, default = match.group(1), match.group(2)
        env_val = os.environ.get(var_name)
        if env_val is None:
            if default is None:
                raise ValueError(f"environment variable not set: {var_name}")
            return default
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def interpolate_value(value: Any) -> Any:
    if isinstance(value, str):
        return interpolate_env(value)
    if isinstance(value, dict):
        return interpolate_dict(value)
    if isinstance(value, list):
        return [interpolate_value(item) for item in value]
    return value


def interpolate_dict(data: dict) -> dict:
    """Recursively interpolate all string values of ``data``"""
    return {key: interpolate_value(value) for key, value in data.items()}
