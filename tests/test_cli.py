from __future__ import annotations

from contextlib import redirect_stdout
from pathlib import Path
import io
import tempfile
import textwrap
import unittest
from unittest.mock import patch

from loguru import logger

from fakes import FakeBuildSystem
from nativebuild import cli


class SplitCustomDefinesTests(unittest.TestCase):
    def test_extracts_both_spellings(self) -> None:
        remaining, defines = cli._split_custom_defines(
            ["configure", "--CDfoo=bar", "-D", "--CDbaz", "qux", "--CDflag", "--out", "dist"]
        )
        self.assertEqual(remaining, ["configure", "-D", "--out", "dist"])
        self.assertEqual(defines, [("CDfoo", "bar"), ("CDbaz", "qux"), ("CDflag", None)])

    def test_bare_prefix_is_left_for_argparse(self) -> None:
        remaining, defines = cli._split_custom_defines(["--CD"])
        self.assertEqual(remaining, ["--CD"])
        self.assertEqual(defines, [])


class MainTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.project = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()
        logger.remove()

    def _run(self, argv: list[str], system: FakeBuildSystem) -> tuple[int, str, list]:
        buffer = io.StringIO()
        with patch("nativebuild.cli.CMakeBuildSystem", side_effect=lambda config: system) as factory:
            with redirect_stdout(buffer):
                code = cli.main([*argv, "-d", str(self.project)])
        configs = [call.args[0] for call in factory.call_args_list]
        return code, buffer.getvalue(), configs

    def test_help_exits_zero(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer), self.assertRaises(SystemExit) as ctx:
            cli.main(["--help"])
        self.assertEqual(ctx.exception.code, 0)
        self.assertIn("print-configure", buffer.getvalue())

    def test_no_command_runs_build(self) -> None:
        system = FakeBuildSystem()
        code, output, _ = self._run([], system)
        self.assertEqual(code, 0)
        self.assertEqual(system.calls, ["build"])
        self.assertEqual(output, "")

    def test_unknown_command_fails_without_build_system(self) -> None:
        system = FakeBuildSystem()
        code, _, configs = self._run(["deploy"], system)
        self.assertEqual(code, 1)
        self.assertEqual(configs, [])
        self.assertEqual(system.calls, [])

    def test_print_command_writes_to_stdout(self) -> None:
        system = FakeBuildSystem()
        code, output, _ = self._run(["print-build"], system)
        self.assertEqual(code, 0)
        self.assertEqual(output, "cmake --build build\n")
        self.assertEqual(system.calls, ["get_build_command"])

    def test_stage_failure_exits_one(self) -> None:
        system = FakeBuildSystem({"clean": 1})
        code, output, _ = self._run(["rebuild"], system)
        self.assertEqual(code, 1)
        self.assertEqual(output, "")
        self.assertEqual(system.calls, ["clean"])

    def test_compile_fallback_success_exits_zero(self) -> None:
        system = FakeBuildSystem({"build": 1})
        code, _, _ = self._run(["compile"], system)
        self.assertEqual(code, 0)
        self.assertEqual(system.calls, ["build", "clean", "build"])

    def test_flags_reach_the_configuration(self) -> None:
        code, _, configs = self._run(
            [
                "configure",
                "-D",
                "-m",
                "-G",
                "Ninja",
                "-T",
                "addon",
                "--prec11",
                "--std",
                "c++20",
                "--CDfoo=bar",
                "--CDbaz",
                "qux",
                "--CDskip",
                "-O",
                "out",
                "-i",
                "-l",
                "nonsense",
            ],
            FakeBuildSystem(),
        )
        self.assertEqual(code, 0)
        config = configs[0]
        self.assertTrue(config.debug)
        self.assertTrue(config.prefer_make)
        self.assertEqual(config.generator, "Ninja")
        self.assertEqual(config.target, "addon")
        self.assertEqual(config.standard, "c++20")
        self.assertEqual(dict(config.custom_defines), {"foo": "bar", "baz": "qux"})
        self.assertEqual(config.output_directory, Path("out"))
        self.assertTrue(config.silent)
        self.assertIsNone(config.log_level)
        self.assertEqual(config.project_directory, self.project)

    def test_project_defaults_are_applied(self) -> None:
        (self.project / "pyproject.toml").write_text(
            textwrap.dedent(
                """
                [tool.nativebuild]
                runtime = "pypy"
                arch = "arm64"
                """
            )
        )
        code, _, configs = self._run(["configure", "--arch", "x86_64"], FakeBuildSystem())
        self.assertEqual(code, 0)
        self.assertEqual(configs[0].runtime, "pypy")
        self.assertEqual(configs[0].arch, "x86_64")

    def test_undecodable_project_file_exits_one(self) -> None:
        (self.project / "pyproject.toml").write_bytes(b"[tool.nativebuild]\nruntime = \"\xff\"\n")
        system = FakeBuildSystem()
        code, _, configs = self._run(["print-clean"], system)
        self.assertEqual(code, 1)
        self.assertEqual(configs, [])
        self.assertEqual(system.calls, [])

    def test_configuration_error_exits_one(self) -> None:
        system = FakeBuildSystem()
        code, _, configs = self._run(["build", "--std", "latest"], system)
        self.assertEqual(code, 1)
        self.assertEqual(configs, [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
