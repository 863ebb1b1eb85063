"""Resolution of raw command line flags into a canonical build configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple
import re

from .errors import ConfigurationError
from .log import normalize_log_level

LEGACY_STANDARD = "c++98"
CUSTOM_DEFINE_PREFIX = "CD"

_STANDARD_PATTERN = re.compile(r"^(c|gnu)\+\+\d{2}$")

# Raw flag keys read by the resolver. Anything else is ignored unless it
# carries the custom define prefix.
_STRING_FLAGS = (
    "cmake_path",
    "generator",
    "toolset",
    "platform",
    "target",
    "cc",
    "cxx",
    "std",
    "runtime",
    "runtime_version",
    "arch",
)
_BOOLEAN_FLAGS = (
    "debug",
    "prefer_make",
    "prefer_xcode",
    "prefer_gnu",
    "prefer_clang",
    "prec11",
    "silent",
)
_OTHER_FLAGS = ("directory", "out", "parallel", "log_level")
_KNOWN_FLAGS = frozenset(_STRING_FLAGS + _BOOLEAN_FLAGS + _OTHER_FLAGS)

_DEFAULTABLE = {
    "runtime": "runtime",
    "runtime-version": "runtime_version",
    "arch": "arch",
}
"""Project defaults keys mapped to the flag they stand in for."""


def _empty_defines() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class BuildConfiguration:
    project_directory: Path | None = None
    debug: bool = False
    cmake_path: str | None = None
    generator: str | None = None
    toolset: str | None = None
    platform: str | None = None
    target: str | None = None
    prefer_make: bool = False
    prefer_xcode: bool = False
    prefer_gnu: bool = False
    prefer_clang: bool = False
    cc: str | None = None
    cxx: str | None = None
    standard: str | None = None
    runtime: str | None = None
    runtime_version: str | None = None
    arch: str | None = None
    parallel: int | None = None
    custom_defines: Mapping[str, str] = field(default_factory=_empty_defines)
    silent: bool = False
    output_directory: Path | None = None
    log_level: str | None = None

    @property
    def build_type(self) -> str:
        return "Debug" if self.debug else "Release"

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "project_directory": str(self.project_directory) if self.project_directory else None,
            "debug": self.debug,
            "cmake_path": self.cmake_path,
            "generator": self.generator,
            "toolset": self.toolset,
            "platform": self.platform,
            "target": self.target,
            "prefer_make": self.prefer_make,
            "prefer_xcode": self.prefer_xcode,
            "prefer_gnu": self.prefer_gnu,
            "prefer_clang": self.prefer_clang,
            "cc": self.cc,
            "cxx": self.cxx,
            "standard": self.standard,
            "runtime": self.runtime,
            "runtime_version": self.runtime_version,
            "arch": self.arch,
            "parallel": self.parallel,
            "custom_defines": dict(self.custom_defines),
            "silent": self.silent,
            "output_directory": str(self.output_directory) if self.output_directory else None,
            "log_level": self.log_level,
        }


RawFlags = Mapping[str, Any] | Iterable[Tuple[str, Any]]


def _iter_flags(flags: RawFlags) -> Iterable[Tuple[str, Any]]:
    if isinstance(flags, Mapping):
        return flags.items()
    return flags


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _as_path(value: Any, cwd: Path | None) -> Path | None:
    if value is None:
        return None
    path = Path(str(value))
    if cwd is not None and not path.is_absolute():
        return cwd / path
    return path


def _resolve_standard(explicit: str | None, legacy: bool) -> str | None:
    if explicit:
        if not _STANDARD_PATTERN.match(explicit):
            raise ConfigurationError(
                f"Invalid C++ standard '{explicit}'. Expected a value such as c++17 or gnu++20"
            )
        return explicit
    if explicit is not None:
        return explicit
    if legacy:
        return LEGACY_STANDARD
    return None


def _resolve_parallel(value: Any) -> int | None:
    if value is None:
        return None
    try:
        jobs = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parallel job count must be an integer, got '{value}'") from None
    if jobs < 1:
        raise ConfigurationError(f"Parallel job count must be at least 1, got {jobs}")
    return jobs


def resolve_configuration(
    flags: RawFlags,
    *,
    defaults: Mapping[str, Any] | None = None,
    cwd: Path | None = None,
) -> BuildConfiguration:
    """Turn raw ``flags`` into a :class:`BuildConfiguration`.

    ``flags`` is either a mapping or an ordered sequence of ``(key, value)``
    pairs. Keys starting with ``CD`` become custom defines with the prefix
    stripped; the last occurrence of a key wins. ``defaults`` supplies project
    level values for runtime, runtime version and arch that flags override.
    ``cwd`` anchors relative directories and stands in for a missing project
    directory. No filesystem access happens here.
    """

    values: Dict[str, Any] = {}
    defines: Dict[str, str] = {}
    for key, value in _iter_flags(flags):
        if key in _KNOWN_FLAGS:
            values[key] = value
            continue
        if key.startswith(CUSTOM_DEFINE_PREFIX) and len(key) > len(CUSTOM_DEFINE_PREFIX):
            if not value:
                continue
            defines[key[len(CUSTOM_DEFINE_PREFIX):]] = str(value)

    for default_key, flag_key in _DEFAULTABLE.items():
        if values.get(flag_key) is not None:
            continue
        if defaults and defaults.get(default_key) is not None:
            values[flag_key] = defaults[default_key]

    strings = {key: _as_optional_str(values.get(key)) for key in _STRING_FLAGS}
    booleans = {key: bool(values.get(key)) for key in _BOOLEAN_FLAGS}

    project_directory = _as_path(values.get("directory"), cwd)
    if project_directory is None:
        project_directory = cwd

    return BuildConfiguration(
        project_directory=project_directory,
        debug=booleans["debug"],
        cmake_path=strings["cmake_path"],
        generator=strings["generator"],
        toolset=strings["toolset"],
        platform=strings["platform"],
        target=strings["target"],
        prefer_make=booleans["prefer_make"],
        prefer_xcode=booleans["prefer_xcode"],
        prefer_gnu=booleans["prefer_gnu"],
        prefer_clang=booleans["prefer_clang"],
        cc=strings["cc"],
        cxx=strings["cxx"],
        standard=_resolve_standard(strings["std"], booleans["prec11"]),
        runtime=strings["runtime"],
        runtime_version=strings["runtime_version"],
        arch=strings["arch"],
        parallel=_resolve_parallel(values.get("parallel")),
        custom_defines=MappingProxyType(defines),
        silent=booleans["silent"],
        output_directory=_as_path(values.get("out"), None),
        log_level=normalize_log_level(values.get("log_level")),
    )
