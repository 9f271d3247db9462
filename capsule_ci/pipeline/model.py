from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

from capsule_ci.core.result import Err, Result
from capsule_ci.pipeline.errors import PipelineError
from capsule_ci.platform.detection import RunnerPlatform

EventKind = Literal["push", "pull_request"]

TAG_PREFIX = "refs/tags/"
BRANCH_PREFIX = "refs/heads/"


class Pipeline(str, Enum):
    CI = "ci"
    COVERAGE = "coverage"
    RELEASE = "release"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Event:
    """The event that triggered a run.

    `ref` is a full reference (`refs/heads/master`, `refs/tags/v1.2.3`).
    `base_ref` is the branch a pull request targets.
    """

    kind: EventKind
    ref: str
    base_ref: str | None = None
    sha: str | None = None

    @property
    def is_tag(self) -> bool:
        return self.ref.startswith(TAG_PREFIX)

    @property
    def tag_name(self) -> str | None:
        if not self.is_tag:
            return None
        return self.ref.removeprefix(TAG_PREFIX)

    @property
    def branch_name(self) -> str | None:
        if self.ref.startswith(BRANCH_PREFIX):
            return self.ref.removeprefix(BRANCH_PREFIX)
        return None

    @property
    def target_branch(self) -> str | None:
        """Branch a pull request targets, without `refs/heads/`."""
        if self.base_ref is None:
            return None
        return self.base_ref.removeprefix(BRANCH_PREFIX) or None

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Event | None:
        """Read the event from GitHub Actions variables, if present."""
        name = environ.get("GITHUB_EVENT_NAME", "").strip()
        ref = environ.get("GITHUB_REF", "").strip()
        if not ref:
            return None
        kind: EventKind = "pull_request" if name.startswith("pull_request") else "push"
        return cls(
            kind=kind,
            ref=ref,
            base_ref=environ.get("GITHUB_BASE_REF", "").strip() or None,
            sha=environ.get("GITHUB_SHA", "").strip() or None,
        )


@dataclass(frozen=True, slots=True)
class PlatformExecution:
    """One isolated (run, platform) unit of work."""

    platform: RunnerPlatform
    toolchain: str
    version_tag: str | None = None


@dataclass(frozen=True, slots=True)
class Run:
    pipeline: Pipeline
    event: Event
    executions: tuple[PlatformExecution, ...]

    @property
    def version_tag(self) -> str | None:
        if not self.executions:
            return None
        return self.executions[0].version_tag


@dataclass(frozen=True, slots=True)
class Artifact:
    """A packaged archive holding exactly one executable."""

    path: Path
    binary_name: str
    platform: RunnerPlatform

    @property
    def name(self) -> str:
        return self.path.name


Stage = Literal["provision", "clean", "test", "build", "package", "publish", "coverage"]


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    execution: PlatformExecution
    result: Result[Artifact | None, PipelineError]
    completed: tuple[Stage, ...]

    @property
    def failed(self) -> bool:
        return isinstance(self.result, Err)


@dataclass(frozen=True, slots=True)
class RunReport:
    run: Run
    outcomes: tuple[ExecutionOutcome, ...]

    @property
    def failed(self) -> bool:
        return any(o.failed for o in self.outcomes)
