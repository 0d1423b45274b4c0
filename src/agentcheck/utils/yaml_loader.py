"""YAML loading with pydantic validation"""

from pathlib import Path
from typing import TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from agentcheck.core.exceptions import YAMLValidationError

T = TypeVar("T", bound=BaseModel)


def load_yaml(path: str | Path) -> dict:
    """Safely load a YAML mapping"""
    path = Path(path)
    if not path.exists():
        raise YAMLValidationError(f"file not found: {path}", file_path=str(path))
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise YAMLValidationError(f"invalid YAML ({path}): {e}", file_path=str(path)) from e
    if not isinstance(data, dict):
        raise YAMLValidationError(f"top level of YAML must be a mapping: {path}", file_path=str(path))
    return data


def load_and_validate(path: str | Path, model: type[T]) -> T:
    """Load a YAML file and validate it into ``model``"""
    data = load_yaml(path)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise YAMLValidationError(f"validation failed ({path}):\n{e}", file_path=str(path)) from e
