"""gittrainer package: a simulated git console for practice lessons."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from .interpreter import GitInterpreter, InterpretationResult, interpret
from .state import RepositoryState, initial_state

__all__ = [
    "GitInterpreter",
    "InterpretationResult",
    "RepositoryState",
    "__version__",
    "initial_state",
    "interpret",
]

DIST_NAME = "gittrainer"


def _version_from_pyproject() -> str | None:
    """Read the version from a source checkout's pyproject.toml, if there is one."""
    for base in Path(__file__).resolve().parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        with pyproject.open("rb") as handle:
            project = tomllib.load(handle).get("project", {})
        if project.get("name") == DIST_NAME and "version" in project:
            return str(project["version"])
    return None


def _resolve_version() -> str:
    source_version = _version_from_pyproject()
    if source_version is not None:
        return source_version
    try:
        return version(DIST_NAME)
    except PackageNotFoundError:
        return "0+unknown"


__version__ = _resolve_version()
