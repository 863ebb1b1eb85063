"""CMake-backed implementation of the build stages."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence

from loguru import logger

from .command_runner import CommandError, CommandRunner, SubprocessCommandRunner, format_command
from .config import BuildConfiguration
from .dist import RuntimeDistribution, RuntimeTarget
from .errors import StageFailure
from .pipeline import run_in_sequence, run_with_fallback
from .toolchain import Toolchain, select_toolchain

DEFAULT_BUILD_DIR = "build"


class BuildSystem(Protocol):
    """Stages consumed by :class:`~nativebuild.pipeline.PipelineExecutor`.

    Every stage raises :class:`~nativebuild.errors.StageFailure` on failure.
    """

    async def install(self) -> None: ...

    async def configure(self) -> None: ...

    async def build(self) -> None: ...

    async def clean(self) -> None: ...

    async def reconfigure(self) -> None: ...

    async def rebuild(self) -> None: ...

    async def compile(self) -> None: ...

    async def get_configure_command(self) -> str: ...

    async def get_build_command(self) -> str: ...

    async def get_clean_command(self) -> str: ...


class CMakeBuildSystem:
    def __init__(
        self,
        config: BuildConfiguration,
        *,
        runner: CommandRunner | None = None,
        toolchain: Toolchain | None = None,
        distribution: RuntimeDistribution | None = None,
    ) -> None:
        self._config = config
        self._runner = runner or SubprocessCommandRunner()
        self._toolchain = toolchain or select_toolchain(config)
        self._distribution = distribution or RuntimeDistribution(RuntimeTarget.from_configuration(config))

    @property
    def source_dir(self) -> Path:
        return self._config.project_directory or Path(".")

    @property
    def build_dir(self) -> Path:
        out = self._config.output_directory
        if out is None:
            return self.source_dir / DEFAULT_BUILD_DIR
        if out.is_absolute():
            return out
        return self.source_dir / out

    @property
    def cmake(self) -> str:
        return self._config.cmake_path or "cmake"

    def is_configured(self) -> bool:
        return (self.build_dir / "CMakeCache.txt").exists()

    def _definitions(self) -> Dict[str, Any]:
        config = self._config
        toolchain = self._toolchain
        target = self._distribution.target
        definitions: Dict[str, Any] = {}

        if not toolchain.is_multi_config:
            definitions["CMAKE_BUILD_TYPE"] = config.build_type
        definitions["CMAKE_LIBRARY_OUTPUT_DIRECTORY"] = self.build_dir / config.build_type
        definitions["NATIVEBUILD_INC"] = ";".join(str(path) for path in self._distribution.include_dirs)
        definitions["NATIVEBUILD_RUNTIME"] = target.runtime
        definitions["NATIVEBUILD_RUNTIME_VERSION"] = target.version
        definitions["NATIVEBUILD_ARCH"] = target.arch

        if config.standard:
            dialect, _, version = config.standard.partition("++")
            definitions["CMAKE_CXX_STANDARD"] = version
            definitions["CMAKE_CXX_EXTENSIONS"] = dialect == "gnu"

        if toolchain.cc:
            definitions["CMAKE_C_COMPILER"] = toolchain.cc
        if toolchain.cxx:
            definitions["CMAKE_CXX_COMPILER"] = toolchain.cxx
        return definitions

    def _environment(self) -> Dict[str, str]:
        environment: Dict[str, str] = {}
        if self._toolchain.cc:
            environment["CC"] = self._toolchain.cc
        if self._toolchain.cxx:
            environment["CXX"] = self._toolchain.cxx
        return environment

    def configure_command(self) -> List[str]:
        config = self._config
        args: List[str] = [self.cmake, "-S", str(self.source_dir), "-B", str(self.build_dir), "--no-warn-unused-cli"]
        if self._toolchain.generator is not None:
            args.extend(["-G", self._toolchain.generator])
        if config.toolset is not None:
            args.extend(["-T", config.toolset])
        if config.platform is not None:
            args.extend(["-A", config.platform])
        for key, value in self._definitions().items():
            args.extend(["-D", self._cmake_definition_flag(name=key, value=value)])
        for key, value in config.custom_defines.items():
            args.append(f"-D{key}={value}")
        return args

    def build_command(self) -> List[str]:
        config = self._config
        cmd = [self.cmake, "--build", str(self.build_dir)]
        if self._toolchain.is_multi_config:
            cmd.extend(["--config", config.build_type])
        if config.target:
            cmd.extend(["--target", config.target])
        if config.parallel:
            cmd.extend(["--parallel", str(config.parallel)])
        return cmd

    def clean_command(self) -> List[str]:
        return [self.cmake, "-E", "remove_directory", str(self.build_dir)]

    async def _run(self, stage: str, command: Sequence[str]) -> None:
        logger.debug(f"{stage}: {format_command(command)}")
        try:
            await self._runner.run(
                command,
                cwd=self.source_dir,
                env=self._environment(),
                note=stage,
                stream=not self._config.silent,
            )
        except CommandError as exc:
            raise StageFailure(stage, str(exc), result=exc.result) from exc

    async def install(self) -> None:
        await self._distribution.ensure_installed()

    async def configure(self) -> None:
        if not self.source_dir.is_dir():
            raise StageFailure("configure", f"project directory does not exist: {self.source_dir}")
        try:
            self.build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StageFailure("configure", f"cannot create build directory: {exc}") from exc
        await self._run("configure", self.configure_command())

    async def build(self) -> None:
        if not self.is_configured():
            logger.info("Build directory is not configured; configuring first")
            await self.configure()
        await self._run("build", self.build_command())

    async def clean(self) -> None:
        await self._run("clean", self.clean_command())

    async def reconfigure(self) -> None:
        await run_in_sequence("reconfigure", [("clean", self.clean), ("configure", self.configure)])

    async def rebuild(self) -> None:
        await run_in_sequence("rebuild", [("clean", self.clean), ("build", self.build)])

    async def compile(self) -> None:
        await run_with_fallback(self.build, self.rebuild)

    async def get_configure_command(self) -> str:
        return format_command(self.configure_command())

    async def get_build_command(self) -> str:
        return format_command(self.build_command())

    async def get_clean_command(self) -> str:
        return format_command(self.clean_command())

    @staticmethod
    def _format_cmake_value(value: Any) -> str:
        if isinstance(value, bool):
            return "ON" if value else "OFF"
        return str(value)

    @staticmethod
    def _cmake_definition_type(value: Any) -> str | None:
        if isinstance(value, bool):
            return "BOOL"
        if isinstance(value, Path):
            return "PATH"
        if isinstance(value, str):
            return "STRING"
        return None

    def _cmake_definition_flag(self, *, name: str, value: Any) -> str:
        type_hint = self._cmake_definition_type(value)
        formatted_value = self._format_cmake_value(value)
        if type_hint:
            return f"{name}:{type_hint}={formatted_value}"
        return f"{name}={formatted_value}"
