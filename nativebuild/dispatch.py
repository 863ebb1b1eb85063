"""Mapping of command names onto build operations."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .config import BuildConfiguration
from .errors import UnknownCommandError


class Operation(str, Enum):
    INSTALL = "install"
    CONFIGURE = "configure"
    PRINT_CONFIGURE = "print-configure"
    BUILD = "build"
    PRINT_BUILD = "print-build"
    CLEAN = "clean"
    PRINT_CLEAN = "print-clean"
    RECONFIGURE = "reconfigure"
    REBUILD = "rebuild"
    COMPILE = "compile"


DEFAULT_OPERATION = Operation.BUILD

OPERATION_HELP: dict[Operation, str] = {
    Operation.INSTALL: "Locate and verify the target runtime headers",
    Operation.CONFIGURE: "Configure the CMake project",
    Operation.PRINT_CONFIGURE: "Print the configure command",
    Operation.BUILD: "Build the project (configures first if required)",
    Operation.PRINT_BUILD: "Print the build command",
    Operation.CLEAN: "Remove the build directory",
    Operation.PRINT_CLEAN: "Print the clean command",
    Operation.RECONFIGURE: "Clean the build directory, then configure",
    Operation.REBUILD: "Clean the build directory, then build",
    Operation.COMPILE: "Build the project, falling back to a full rebuild on failure",
}


@dataclass(frozen=True, slots=True)
class Invocation:
    operation: Operation
    configuration: BuildConfiguration


def dispatch(command: str | None, configuration: BuildConfiguration) -> Invocation:
    """Select the operation named by ``command``; no command means ``build``."""

    if not command:
        return Invocation(DEFAULT_OPERATION, configuration)
    try:
        operation = Operation(command)
    except ValueError:
        raise UnknownCommandError(command) from None
    return Invocation(operation, configuration)
