"""Exception types raised while resolving and running build operations."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .command_runner import CommandResult


class NativeBuildError(RuntimeError):
    """Base class for failures reported by nativebuild."""


class ConfigurationError(NativeBuildError):
    """Raised when a flag value cannot be turned into a valid configuration."""


class UnknownCommandError(NativeBuildError):
    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown command: {command}")
        self.command = command


class StageFailure(NativeBuildError):
    """A single build stage reported failure."""

    def __init__(self, stage: str, message: str, *, result: CommandResult | None = None) -> None:
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.result = result


class DistributionError(StageFailure):
    """Runtime headers required by the ``install`` stage are missing."""

    def __init__(self, message: str) -> None:
        super().__init__("install", message)


class CompositeFailure(NativeBuildError):
    """A stage inside a sequenced operation failed; later stages were skipped."""

    def __init__(self, operation: str, stage: str) -> None:
        super().__init__(f"{operation} aborted: stage '{stage}' failed")
        self.operation = operation
        self.stage = stage
