"""Translate an operation outcome into the process exit status."""
from __future__ import annotations

from typing import TextIO
import sys

from .pipeline import PipelineResult

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def finalize(result: PipelineResult, *, stream: TextIO | None = None) -> int:
    if not result.success:
        return EXIT_FAILURE
    if result.output is not None:
        print(result.output, file=stream or sys.stdout)
    return EXIT_SUCCESS
