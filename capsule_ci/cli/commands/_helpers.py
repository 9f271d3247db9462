"""Shared helpers for CLI commands."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from capsule_ci.core.errors import ErrorCode
from capsule_ci.core.result import Err, Result
from capsule_ci.output.errors import pipeline_error_exit_code, print_pipeline_error
from capsule_ci.pipeline.errors import PipelineError
from capsule_ci.pipeline.model import Event, EventKind

if TYPE_CHECKING:
    from capsule_ci.cli.context import CLIContext

T = TypeVar("T")


def exit_on_error(result: Result[T, PipelineError], ctx: CLIContext) -> T:
    """Return the Ok value, or print the error and exit with its code."""
    if isinstance(result, Err):
        print_pipeline_error(result.error, ctx.console)
        raise typer.Exit(code=pipeline_error_exit_code(result.error))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)


def resolve_event(
    *,
    kind: str | None,
    ref: str | None,
    base_ref: str | None,
    sha: str | None,
) -> Event:
    """Event from explicit options, falling back to the GitHub Actions env."""
    from_env = Event.from_env(os.environ)

    ref = ref or (from_env.ref if from_env else None)
    if not ref:
        typer.echo("error: no ref given (use --ref or set GITHUB_REF)", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if kind is None:
        event_kind: EventKind = from_env.kind if from_env else "push"
    elif kind in ("push", "pull_request"):
        event_kind = "push" if kind == "push" else "pull_request"
    else:
        typer.echo(f"error: unknown event kind: {kind} (push|pull_request)", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if not ref.startswith("refs/"):
        ref = f"refs/heads/{ref}"

    return Event(
        kind=event_kind,
        ref=ref,
        base_ref=base_ref or (from_env.base_ref if from_env else None),
        sha=sha or (from_env.sha if from_env else None),
    )
