"""Execution of build operations against a :class:`BuildSystem`."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence, Tuple, assert_never

from loguru import logger

from .dispatch import Operation
from .errors import CompositeFailure, NativeBuildError, StageFailure

if TYPE_CHECKING:
    from .build_system import BuildSystem

StageCall = Callable[[], Awaitable[None]]
Stage = Tuple[str, StageCall]


@dataclass(frozen=True, slots=True)
class PipelineResult:
    operation: Operation
    success: bool
    output: str | None = None
    error: NativeBuildError | None = None


async def run_in_sequence(operation: str, stages: Sequence[Stage]) -> None:
    """Await ``stages`` one after another, stopping at the first failure."""

    for name, call in stages:
        logger.info(f"{operation}: running {name}")
        try:
            await call()
        except StageFailure as exc:
            raise CompositeFailure(operation, name) from exc


async def run_with_fallback(primary: StageCall, fallback: StageCall) -> None:
    """Await ``primary``; if it fails, await ``fallback`` exactly once."""

    try:
        await primary()
    except StageFailure as exc:
        logger.warning(f"{exc}; retrying with a full rebuild")
        await fallback()


class PipelineExecutor:
    """Runs one :class:`Operation` and reports its outcome as a :class:`PipelineResult`."""

    def __init__(self, build_system: BuildSystem) -> None:
        self._build_system = build_system

    async def execute(self, operation: Operation) -> PipelineResult:
        try:
            output = await self._run(operation)
        except NativeBuildError as exc:
            logger.error(str(exc))
            return PipelineResult(operation=operation, success=False, error=exc)
        return PipelineResult(operation=operation, success=True, output=output)

    async def _stage(self, name: str, call: StageCall) -> None:
        logger.info(f"Running {name}")
        await call()

    async def _rebuild(self) -> None:
        system = self._build_system
        await run_in_sequence(Operation.REBUILD.value, [("clean", system.clean), ("build", system.build)])

    async def _run(self, operation: Operation) -> str | None:
        system = self._build_system
        match operation:
            case Operation.INSTALL:
                await self._stage("install", system.install)
            case Operation.CONFIGURE:
                await self._stage("configure", system.configure)
            case Operation.BUILD:
                await self._stage("build", system.build)
            case Operation.CLEAN:
                await self._stage("clean", system.clean)
            case Operation.PRINT_CONFIGURE:
                return await system.get_configure_command()
            case Operation.PRINT_BUILD:
                return await system.get_build_command()
            case Operation.PRINT_CLEAN:
                return await system.get_clean_command()
            case Operation.RECONFIGURE:
                await run_in_sequence(
                    operation.value,
                    [("clean", system.clean), ("configure", system.configure)],
                )
            case Operation.REBUILD:
                await self._rebuild()
            case Operation.COMPILE:
                await run_with_fallback(lambda: self._stage("build", system.build), self._rebuild)
            case _:
                assert_never(operation)
        return None
