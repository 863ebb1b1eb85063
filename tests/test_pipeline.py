from __future__ import annotations

import unittest

from fakes import FakeBuildSystem
from nativebuild.dispatch import Operation
from nativebuild.errors import CompositeFailure, StageFailure
from nativebuild.pipeline import PipelineExecutor, run_in_sequence, run_with_fallback


class PrimitiveOperationTests(unittest.IsolatedAsyncioTestCase):
    async def test_primitives_make_a_single_call(self) -> None:
        for operation, stage in [
            (Operation.INSTALL, "install"),
            (Operation.CONFIGURE, "configure"),
            (Operation.BUILD, "build"),
            (Operation.CLEAN, "clean"),
        ]:
            with self.subTest(operation=operation):
                system = FakeBuildSystem()
                result = await PipelineExecutor(system).execute(operation)
                self.assertTrue(result.success)
                self.assertIsNone(result.output)
                self.assertEqual(system.calls, [stage])

    async def test_primitive_failure_is_propagated_unchanged(self) -> None:
        system = FakeBuildSystem({"configure": 1})
        result = await PipelineExecutor(system).execute(Operation.CONFIGURE)
        self.assertFalse(result.success)
        self.assertIsInstance(result.error, StageFailure)
        self.assertEqual(result.error.stage, "configure")

    async def test_every_operation_is_handled(self) -> None:
        for operation in Operation:
            with self.subTest(operation=operation):
                result = await PipelineExecutor(FakeBuildSystem()).execute(operation)
                self.assertTrue(result.success)
                self.assertIs(result.operation, operation)


class PrintOperationTests(unittest.IsolatedAsyncioTestCase):
    async def test_print_operations_only_describe(self) -> None:
        cases = [
            (Operation.PRINT_CONFIGURE, "get_configure_command", "cmake -S . -B build"),
            (Operation.PRINT_BUILD, "get_build_command", "cmake --build build"),
            (Operation.PRINT_CLEAN, "get_clean_command", "cmake -E remove_directory build"),
        ]
        for operation, call, output in cases:
            with self.subTest(operation=operation):
                system = FakeBuildSystem()
                result = await PipelineExecutor(system).execute(operation)
                self.assertTrue(result.success)
                self.assertEqual(result.output, output)
                self.assertEqual(system.calls, [call])


class CompositeOperationTests(unittest.IsolatedAsyncioTestCase):
    async def test_reconfigure_cleans_then_configures(self) -> None:
        system = FakeBuildSystem()
        result = await PipelineExecutor(system).execute(Operation.RECONFIGURE)
        self.assertTrue(result.success)
        self.assertEqual(system.calls, ["clean", "configure"])

    async def test_reconfigure_stops_when_clean_fails(self) -> None:
        system = FakeBuildSystem({"clean": 1})
        result = await PipelineExecutor(system).execute(Operation.RECONFIGURE)
        self.assertFalse(result.success)
        self.assertEqual(system.calls, ["clean"])
        self.assertIsInstance(result.error, CompositeFailure)
        self.assertEqual(result.error.stage, "clean")
        self.assertIsInstance(result.error.__cause__, StageFailure)

    async def test_reconfigure_fails_when_configure_fails(self) -> None:
        system = FakeBuildSystem({"configure": 1})
        result = await PipelineExecutor(system).execute(Operation.RECONFIGURE)
        self.assertFalse(result.success)
        self.assertEqual(system.calls, ["clean", "configure"])

    async def test_rebuild_cleans_then_builds(self) -> None:
        system = FakeBuildSystem()
        result = await PipelineExecutor(system).execute(Operation.REBUILD)
        self.assertTrue(result.success)
        self.assertEqual(system.calls, ["clean", "build"])

    async def test_rebuild_stops_when_clean_fails(self) -> None:
        system = FakeBuildSystem({"clean": 1})
        result = await PipelineExecutor(system).execute(Operation.REBUILD)
        self.assertFalse(result.success)
        self.assertEqual(system.calls, ["clean"])
        self.assertEqual(result.error.operation, "rebuild")


class CompileFallbackTests(unittest.IsolatedAsyncioTestCase):
    async def test_successful_build_skips_rebuild(self) -> None:
        system = FakeBuildSystem()
        result = await PipelineExecutor(system).execute(Operation.COMPILE)
        self.assertTrue(result.success)
        self.assertEqual(system.calls, ["build"])

    async def test_failed_build_falls_back_to_rebuild_once(self) -> None:
        system = FakeBuildSystem({"build": 1})
        result = await PipelineExecutor(system).execute(Operation.COMPILE)
        self.assertTrue(result.success)
        self.assertEqual(system.calls, ["build", "clean", "build"])

    async def test_failed_fallback_fails_without_third_attempt(self) -> None:
        system = FakeBuildSystem({"build": 5})
        result = await PipelineExecutor(system).execute(Operation.COMPILE)
        self.assertFalse(result.success)
        self.assertEqual(system.calls, ["build", "clean", "build"])
        self.assertIsInstance(result.error, CompositeFailure)

    async def test_fallback_clean_failure_skips_second_build(self) -> None:
        system = FakeBuildSystem({"build": 1, "clean": 1})
        result = await PipelineExecutor(system).execute(Operation.COMPILE)
        self.assertFalse(result.success)
        self.assertEqual(system.calls, ["build", "clean"])


class SequencingHelperTests(unittest.IsolatedAsyncioTestCase):
    async def test_run_in_sequence_wraps_stage_failure(self) -> None:
        system = FakeBuildSystem({"build": 1})
        with self.assertRaises(CompositeFailure) as ctx:
            await run_in_sequence("rebuild", [("clean", system.clean), ("build", system.build), ("install", system.install)])
        self.assertEqual(ctx.exception.stage, "build")
        self.assertEqual(system.calls, ["clean", "build"])

    async def test_run_with_fallback_does_not_retry_the_fallback(self) -> None:
        system = FakeBuildSystem({"build": 1, "rebuild": 1})
        with self.assertRaises(StageFailure):
            await run_with_fallback(system.build, system.rebuild)
        self.assertEqual(system.calls, ["build", "rebuild"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
