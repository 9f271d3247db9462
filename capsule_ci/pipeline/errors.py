"""Typed failures of a pipeline run.

A failure is a value, returned in `Err(...)`. It belongs to exactly one
platform execution and never aborts sibling executions.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal


@dataclass(frozen=True, slots=True)
class InvalidInput:
    """Bad ref, unknown platform or other caller mistake."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ToolMissing:
    tool: str
    hint: str

    @property
    def message(self) -> str:
        return f"{self.tool}: missing"


@dataclass(frozen=True, slots=True)
class ProvisionFailed:
    channel: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class BuildFailed:
    returncode: int
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class TestsFailed:
    __test__ = False

    returncode: int
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class PackagingFailed:
    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class PublicationFailed:
    kind: Literal["gh_missing", "auth_required", "asset_exists", "release_missing", "upload_failed"]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class CoverageFailed:
    step: Literal["report", "upload"]
    message: str
    hint: str | None = None


PipelineError = (
    InvalidInput
    | ToolMissing
    | ProvisionFailed
    | BuildFailed
    | TestsFailed
    | PackagingFailed
    | PublicationFailed
    | CoverageFailed
)


class PackageStateError(RuntimeError):
    """Packaging transitions called out of order (a programming error)."""
