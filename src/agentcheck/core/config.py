"""Global configuration loading

.env -> agentcheck.yaml -> env interpolation -> pydantic -> AgentCheckConfig.
"""

import os
from pathlib import Path

from agentcheck.core.exceptions import ConfigError, YAMLValidationError
from agentcheck.schema.config import AgentCheckConfig
from agentcheck.utils.template import interpolate_dict
from agentcheck.utils.yaml_loader import load_yaml


def load_dotenv(env_path: str | Path | None = None) -> None:
    """Load KEY=VALUE lines from a .env file without overriding the environment"""
    if env_path is None:
        env_path = Path.cwd() / ".env"
    path = Path(env_path)
    if not path.exists():
        return
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            if key.startswith("export "):
                key = key[len("export "):].strip()
            value = value.strip().strip('"').strip("'")
            if key not in os.environ:
                os.environ[key] = value


def load_config(config_path: str | Path) -> AgentCheckConfig:
    """Load and validate agentcheck.yaml"""
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")

    load_dotenv(path.parent / ".env")

    try:
        raw = load_yaml(path)
    except YAMLValidationError as e:
        raise ConfigError(str(e)) from e

    try:
        interpolated = interpolate_dict(raw)
    except ValueError as e:
        raise ConfigError(f"environment interpolation failed: {e}") from e

    try:
        config = AgentCheckConfig.model_validate(interpolated)
    except Exception as e:
        raise ConfigError(f"config validation failed: {e}") from e

    # relative directories are resolved against the config file
    if not Path(config.suites_dir).is_absolute():
        config.suites_dir = str(path.parent / config.suites_dir)
    return config
