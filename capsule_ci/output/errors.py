"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from capsule_ci.core.errors import ErrorCode
from capsule_ci.core.result import Err
from capsule_ci.output.console import Style
from capsule_ci.pipeline.errors import (
    BuildFailed,
    CoverageFailed,
    InvalidInput,
    PackagingFailed,
    PipelineError,
    ProvisionFailed,
    PublicationFailed,
    TestsFailed,
    ToolMissing,
)

if TYPE_CHECKING:
    from capsule_ci.output.console import ConsoleProtocol
    from capsule_ci.pipeline.model import RunReport

__all__ = [
    "pipeline_error_exit_code",
    "print_pipeline_error",
    "print_run_report",
    "report_exit_code",
]


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    match error:
        case ToolMissing(tool=tool, hint=hint):
            console.error(f"{tool}: missing")
            console.print(f"hint: {hint}", Style.DIM)
            return
        case ProvisionFailed(channel=channel, message=message):
            console.error(f"toolchain {channel}: {message}")
        case BuildFailed(message=message) | TestsFailed(message=message):
            console.error(message)
        case PackagingFailed(message=message):
            console.error(f"packaging: {message}")
        case PublicationFailed(message=message):
            console.error(f"publish: {message}")
        case CoverageFailed(step=step, message=message):
            console.error(f"coverage {step}: {message}")
        case InvalidInput(message=message):
            console.error(message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def pipeline_error_exit_code(error: PipelineError) -> int:
    match error:
        case InvalidInput():
            return int(ErrorCode.USER_ERROR)
        case ToolMissing() | ProvisionFailed():
            return int(ErrorCode.ENV_ERROR)
        case BuildFailed() | TestsFailed():
            return int(ErrorCode.BUILD_ERROR)
        case PublicationFailed(kind="gh_missing"):
            return int(ErrorCode.ENV_ERROR)
        case PublicationFailed() | CoverageFailed(step="upload"):
            return int(ErrorCode.NETWORK_ERROR)
        case CoverageFailed():
            return int(ErrorCode.ENV_ERROR)
        case PackagingFailed():
            return int(ErrorCode.IO_ERROR)
    return int(ErrorCode.USER_ERROR)


def print_run_report(report: RunReport, console: ConsoleProtocol) -> None:
    console.header(f"{report.run.pipeline} summary")
    for outcome in report.outcomes:
        platform = outcome.execution.platform.id
        stages = " -> ".join(outcome.completed) or "-"
        if outcome.failed:
            console.print(f"  FAIL {platform}  [{stages}]", Style.ERROR)
        else:
            console.print(f"  ok   {platform}  [{stages}]", Style.SUCCESS)


def report_exit_code(report: RunReport) -> int:
    """Exit code of the first failing execution in matrix order, or 0."""
    for outcome in report.outcomes:
        if isinstance(outcome.result, Err):
            return pipeline_error_exit_code(outcome.result.error)
    return int(ErrorCode.OK)
