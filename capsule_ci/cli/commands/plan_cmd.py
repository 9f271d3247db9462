"""Read-only commands: trigger gate, matrix, version tag, artifact name."""

from __future__ import annotations

import typer

from capsule_ci.cli.commands._helpers import exit_on_error, resolve_event
from capsule_ci.cli.context import build_context
from capsule_ci.core.errors import ErrorCode
from capsule_ci.output.console import Style
from capsule_ci.pipeline import trigger
from capsule_ci.pipeline.matrix import github_matrix, platforms_for
from capsule_ci.pipeline.model import Pipeline
from capsule_ci.pipeline.packaging import archive_name, binary_name
from capsule_ci.pipeline.version import derive_version_tag
from capsule_ci.platform.detection import RunnerPlatform

EVENT_HELP = "Event kind: push|pull_request (default: $GITHUB_EVENT_NAME)"
REF_HELP = "Full ref, e.g. refs/tags/v1.2.3 (default: $GITHUB_REF); bare names are branches"
BASE_REF_HELP = "Pull request target branch (default: $GITHUB_BASE_REF)"


def gate(
    pipeline: Pipeline = typer.Argument(..., help="ci|coverage|release"),
    event: str | None = typer.Option(None, "--event", help=EVENT_HELP),
    ref: str | None = typer.Option(None, "--ref", help=REF_HELP),
    base_ref: str | None = typer.Option(None, "--base-ref", help=BASE_REF_HELP),
    strict: bool = typer.Option(
        False, "--strict", help="Exit 1 when the gate rejects the event"
    ),
) -> None:
    """Evaluate the trigger gate of a pipeline. Prints run or skip."""
    ctx = build_context(require_project=False, stderr=True)
    ev = resolve_event(kind=event, ref=ref, base_ref=base_ref, sha=None)
    decision = trigger.evaluate(pipeline, ev, ctx.config.project)

    typer.echo("run" if decision.fires else "skip")
    ctx.console.print(decision.reason, Style.DIM)
    if strict and not decision.fires:
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))


def matrix(
    pipeline: Pipeline = typer.Argument(..., help="ci|coverage|release"),
) -> None:
    """Print the platform matrix as GitHub Actions JSON ({"os": [...]})."""
    ctx = build_context(require_project=False, stderr=True)
    typer.echo(github_matrix(platforms_for(pipeline, ctx.config)))


def version_tag(
    ref: str = typer.Argument(..., help="Tag reference, e.g. refs/tags/v1.2.3"),
) -> None:
    """Print the version tag derived from a tag reference."""
    ctx = build_context(require_project=False, stderr=True)
    typer.echo(exit_on_error(derive_version_tag(ref, ctx.config.project.version_regex), ctx))


def artifact_name(
    platform: str = typer.Argument(..., help="Runner id, e.g. windows-latest"),
    ref: str = typer.Argument(..., help="Tag reference, e.g. refs/tags/v1.2.3"),
) -> None:
    """Print the release archive name and the binary it contains."""
    ctx = build_context(require_project=False, stderr=True)
    try:
        runner = RunnerPlatform(platform)
    except ValueError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    version = exit_on_error(derive_version_tag(ref, ctx.config.project.version_regex), ctx)
    tool = ctx.config.project.tool
    typer.echo(archive_name(tool, runner, version))
    ctx.console.print(f"contains: {binary_name(tool, runner.family)}", Style.DIM)
