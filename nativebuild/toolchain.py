"""Generator and compiler selection from user preference flags."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
import platform
import shutil

from .config import BuildConfiguration

MAKEFILES = "Unix Makefiles"
NINJA = "Ninja"
XCODE = "Xcode"

Which = Callable[[str], "str | None"]


@dataclass(frozen=True, slots=True)
class Toolchain:
    generator: str | None
    cc: str | None
    cxx: str | None
    default_multi_config: bool = False

    @property
    def is_multi_config(self) -> bool:
        if self.generator is None:
            return self.default_multi_config
        return is_multi_config_generator(self.generator)


def is_multi_config_generator(generator: str | None) -> bool:
    if not generator:
        return False
    normalized = generator.lower()
    multi_keywords = ["multi-config", "visual studio", "xcode"]
    return any(keyword in normalized for keyword in multi_keywords)


def _current_os() -> str:
    return platform.system().lower()


def _select_generator(config: BuildConfiguration, *, os_name: str, which: Which) -> str | None:
    if config.generator is not None:
        return config.generator
    if os_name == "windows":
        return None
    if os_name == "darwin" and config.prefer_xcode:
        return XCODE
    if config.prefer_make:
        return MAKEFILES
    if which("ninja"):
        return NINJA
    return MAKEFILES


def _select_compilers(config: BuildConfiguration, *, os_name: str) -> tuple[str | None, str | None]:
    if config.cc is not None or config.cxx is not None:
        return config.cc, config.cxx
    if os_name == "windows":
        return None, None
    if config.prefer_clang:
        return "clang", "clang++"
    if config.prefer_gnu:
        return "gcc", "g++"
    return None, None


def select_toolchain(
    config: BuildConfiguration,
    *,
    os_name: str | None = None,
    which: Which = shutil.which,
) -> Toolchain:
    """Pick a CMake generator and compiler pair for ``config``.

    An explicit generator or compiler always wins. Xcode is only honoured on
    macOS; on Windows the generator and compilers are left to CMake, whose
    default Visual Studio generator is multi-config.
    """

    os_name = os_name or _current_os()
    generator = _select_generator(config, os_name=os_name, which=which)
    cc, cxx = _select_compilers(config, os_name=os_name)
    return Toolchain(
        generator=generator,
        cc=cc,
        cxx=cxx,
        default_multi_config=generator is None and os_name == "windows",
    )
