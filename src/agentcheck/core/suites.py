"""Locating and loading suite files"""

from pathlib import Path

from agentcheck.core.exceptions import SuiteNotFoundError, YAMLValidationError
from agentcheck.core.logging import get_logger
from agentcheck.schema.test_case import TestSuiteSpec
from agentcheck.utils.yaml_loader import load_and_validate

logger = get_logger(__name__)

_SUITE_SUFFIXES = (".yaml", ".yml")


def load_suite(path: str | Path) -> TestSuiteSpec:
    return load_and_validate(path, TestSuiteSpec)


def find_suite(name_or_path: str, suites_dir: str | Path | None = None) -> TestSuiteSpec:
    """Load a suite by file path, or by its ``name`` among the files in ``suites_dir``"""
    candidate = Path(name_or_path)
    if candidate.suffix in _SUITE_SUFFIXES and candidate.exists():
        return load_suite(candidate)

    if suites_dir is not None:
        directory = Path(suites_dir)
        if directory.is_dir():
            for file in sorted(directory.iterdir()):
                if file.suffix not in _SUITE_SUFFIXES:
                    continue
                if file.stem == name_or_path:
                    return load_suite(file)
                try:
                    suite = load_suite(file)
                except YAMLValidationError as e:
                    logger.debug(f"skipping invalid suite file {file}: {e}")
                    continue
                if suite.name == name_or_path:
                    return suite

    raise SuiteNotFoundError(f"test suite not found: {name_or_path}")
