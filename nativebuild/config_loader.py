"""Loading of per-project default settings."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Mapping

import json
import tomllib

from .errors import ConfigurationError

ConfigLoader = Callable[[Any], Mapping[str, Any]]

FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
}
"""Mapping of file suffixes to loader callables."""

PROJECT_FILES = ("nativebuild.toml", "nativebuild.json")
ALLOWED_KEYS = frozenset({"runtime", "runtime-version", "arch"})


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Load and decode a configuration mapping from ``path``."""

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS)) or "<none>"
        raise ConfigurationError(
            f"Unsupported configuration file extension: {suffix}. Supported: {supported}"
        )

    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"

    try:
        with path.open(mode, **kwargs) as handle:
            data = loader(handle)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Could not parse '{path}': {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Could not read '{path}': {exc}") from exc

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Configuration file '{path}' must contain a mapping at the root")

    return data


def _validate(section: Mapping[str, Any], source: Path) -> Dict[str, str]:
    unknown = {str(key) for key in section if str(key) not in ALLOWED_KEYS}
    if unknown:
        joined = ", ".join(sorted(unknown))
        raise ConfigurationError(f"'{source}' contains unknown keys: {joined}")
    result: Dict[str, str] = {}
    for key, value in section.items():
        if isinstance(value, (dict, list)):
            raise ConfigurationError(f"'{source}': value for '{key}' must be a scalar")
        result[str(key)] = str(value)
    return result


def load_project_defaults(directory: Path | None) -> Dict[str, str]:
    """Return runtime defaults declared by the project in ``directory``.

    ``[tool.nativebuild]`` in ``pyproject.toml`` takes priority over a
    standalone ``nativebuild.toml`` or ``nativebuild.json``.
    """

    if directory is None or not directory.is_dir():
        return {}

    pyproject = directory / "pyproject.toml"
    if pyproject.is_file():
        data = load_config_file(pyproject)
        tool = data.get("tool", {})
        section = tool.get("nativebuild") if isinstance(tool, Mapping) else None
        if section is not None:
            if not isinstance(section, Mapping):
                raise ConfigurationError(f"'{pyproject}': [tool.nativebuild] must be a table")
            return _validate(section, pyproject)

    for name in PROJECT_FILES:
        candidate = directory / name
        if candidate.is_file():
            return _validate(load_config_file(candidate), candidate)
    return {}
