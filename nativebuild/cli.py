"""Command line interface for nativebuild."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace, RawDescriptionHelpFormatter
from pathlib import Path
from typing import Any, Iterable, List, Sequence, Tuple
import asyncio
import sys

from loguru import logger

from . import __version__
from .build_system import CMakeBuildSystem
from .config import CUSTOM_DEFINE_PREFIX, resolve_configuration
from .config_loader import load_project_defaults
from .dispatch import OPERATION_HELP, dispatch
from .errors import ConfigurationError, UnknownCommandError
from .exit_policy import EXIT_FAILURE, finalize
from .log import LOG_LEVELS, setup_logging
from .pipeline import PipelineExecutor

_DEFINE_OPTION = f"--{CUSTOM_DEFINE_PREFIX}"


def _split_custom_defines(argv: Sequence[str]) -> Tuple[List[str], List[Tuple[str, str | None]]]:
    """Pull ``--CD<key>=<value>`` and ``--CD<key> <value>`` out of ``argv``."""

    remaining: List[str] = []
    defines: List[Tuple[str, str | None]] = []
    index = 0
    while index < len(argv):
        token = argv[index]
        index += 1
        if not token.startswith(_DEFINE_OPTION) or len(token) <= len(_DEFINE_OPTION):
            remaining.append(token)
            continue
        name, separator, value = token[2:].partition("=")
        if separator:
            defines.append((name, value))
            continue
        if index < len(argv) and not argv[index].startswith("-"):
            defines.append((name, argv[index]))
            index += 1
        else:
            defines.append((name, None))
    return remaining, defines


def _epilog() -> str:
    width = max(len(operation.value) for operation in OPERATION_HELP)
    lines = ["commands:"]
    for operation, description in OPERATION_HELP.items():
        lines.append(f"  {operation.value.ljust(width)}  {description}")
    lines.append("")
    lines.append(f"custom CMake definitions: {_DEFINE_OPTION}<name>=<value>")
    return "\n".join(lines)


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(
        prog="nativebuild",
        description="Build native extension modules with CMake",
        epilog=_epilog(),
        formatter_class=RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument("command", nargs="?", help="Command to run (default: build)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-l",
        "--log-level",
        metavar="LEVEL",
        help=f"Log level ({', '.join(LOG_LEVELS)}); unknown levels are ignored",
    )
    parser.add_argument("-d", "--directory", help="Project directory (default: current directory)")
    parser.add_argument("-D", "--debug", action="store_true", help="Build the Debug configuration")
    parser.add_argument("-c", "--cmake-path", help="Path of the cmake executable")
    parser.add_argument("-m", "--prefer-make", action="store_true", help="Prefer Unix Makefiles over Ninja")
    parser.add_argument("-x", "--prefer-xcode", action="store_true", help="Prefer the Xcode generator (macOS only)")
    parser.add_argument("-g", "--prefer-gnu", action="store_true", help="Prefer the GNU compilers")
    parser.add_argument("-C", "--prefer-clang", action="store_true", help="Prefer the Clang compilers")
    parser.add_argument("-G", "--generator", help="Use this CMake generator")
    parser.add_argument("-t", "--toolset", help="CMake toolset specification (-T)")
    parser.add_argument("-A", "--platform", help="CMake platform name (-A)")
    parser.add_argument("-T", "--target", help="Only build this target")
    parser.add_argument("--cc", help="Path of the C compiler")
    parser.add_argument("--cxx", help="Path of the C++ compiler")
    parser.add_argument("-r", "--runtime", help="Target runtime (default: python)")
    parser.add_argument("-v", "--runtime-version", help="Target runtime version (default: current interpreter)")
    parser.add_argument("-a", "--arch", help="Target architecture (default: host)")
    parser.add_argument("-p", "--parallel", type=int, metavar="JOBS", help="Number of parallel build jobs")
    parser.add_argument("-s", "--std", help="C++ standard, e.g. c++17 or gnu++20")
    parser.add_argument(
        "-o",
        "--prec11",
        action="store_true",
        help="Use the C++98 standard (deprecated: use --std c++98)",
    )
    parser.add_argument("-O", "--out", help="Build directory (default: build)")
    parser.add_argument("-i", "--silent", action="store_true", help="Do not pass build tool output through")
    return parser.parse_args(list(argv))


def _raw_flags(args: Namespace, defines: Iterable[Tuple[str, str | None]]) -> List[Tuple[str, Any]]:
    flags: List[Tuple[str, Any]] = [(key, value) for key, value in vars(args).items() if key != "command"]
    flags.extend(defines)
    return flags


def main(argv: Iterable[str] | None = None) -> int:
    arguments = list(argv) if argv is not None else sys.argv[1:]
    remaining, defines = _split_custom_defines(arguments)
    args = _parse_arguments(remaining)
    return _handle(args, defines, Path.cwd())


def _handle(args: Namespace, defines: Iterable[Tuple[str, str | None]], workspace: Path) -> int:
    flags = _raw_flags(args, defines)
    try:
        project_directory = resolve_configuration(flags, cwd=workspace).project_directory
        defaults = load_project_defaults(project_directory)
        config = resolve_configuration(flags, defaults=defaults, cwd=workspace)
    except ConfigurationError as exc:
        setup_logging(None)
        logger.error(str(exc))
        return EXIT_FAILURE

    setup_logging(config.log_level)
    logger.debug(f"options: {config.to_mapping()}")

    try:
        invocation = dispatch(args.command, config)
    except UnknownCommandError as exc:
        logger.error(str(exc))
        return EXIT_FAILURE

    executor = PipelineExecutor(CMakeBuildSystem(invocation.configuration))
    result = asyncio.run(executor.execute(invocation.operation))
    return finalize(result)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
