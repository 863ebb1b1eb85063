"""Location of runtime headers that native modules compile against."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping
import os
import platform
import sys
import sysconfig

from loguru import logger

from .config import BuildConfiguration
from .errors import DistributionError

DEFAULT_RUNTIME = "python"
DIST_DIR_ENV = "NATIVEBUILD_DIST_DIR"


def _interpreter_version() -> str:
    return f"{sys.version_info.major}.{sys.version_info.minor}"


@dataclass(frozen=True, slots=True)
class RuntimeTarget:
    runtime: str
    version: str
    arch: str

    @classmethod
    def from_configuration(cls, config: BuildConfiguration) -> "RuntimeTarget":
        return cls(
            runtime=config.runtime or DEFAULT_RUNTIME,
            version=config.runtime_version or _interpreter_version(),
            arch=config.arch or platform.machine().lower(),
        )

    @property
    def is_current_interpreter(self) -> bool:
        return (
            self.runtime == DEFAULT_RUNTIME
            and self.version == _interpreter_version()
            and self.arch == platform.machine().lower()
        )


class RuntimeDistribution:
    """Resolves include directories for a :class:`RuntimeTarget`.

    The running interpreter uses the paths reported by :mod:`sysconfig`.
    Other runtimes are looked up below ``$NATIVEBUILD_DIST_DIR`` as
    ``<runtime>/<version>/<arch>/include``.
    """

    def __init__(self, target: RuntimeTarget, *, environ: Mapping[str, str] | None = None) -> None:
        self.target = target
        env = os.environ if environ is None else environ
        root = env.get(DIST_DIR_ENV)
        self.dist_root = Path(root).expanduser() if root else Path.home() / ".nativebuild" / "dist"

    @property
    def include_dirs(self) -> List[Path]:
        if self.target.is_current_interpreter:
            paths = sysconfig.get_paths()
            dirs: List[Path] = []
            for key in ("include", "platinclude"):
                value = paths.get(key)
                if value and Path(value) not in dirs:
                    dirs.append(Path(value))
            return dirs
        target = self.target
        return [self.dist_root / target.runtime / target.version / target.arch / "include"]

    def is_installed(self) -> bool:
        dirs = self.include_dirs
        return bool(dirs) and all(path.is_dir() for path in dirs)

    async def ensure_installed(self) -> None:
        target = self.target
        if self.is_installed():
            logger.debug(f"Runtime headers for {target.runtime} {target.version} ({target.arch}) found")
            return
        missing = ", ".join(str(path) for path in self.include_dirs if not path.is_dir())
        raise DistributionError(
            f"headers for {target.runtime} {target.version} ({target.arch}) not found: {missing or '<none>'}"
        )
