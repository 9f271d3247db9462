"""`capsule-ci run <pipeline>`: gate, matrix and every stage."""

from __future__ import annotations

import os

import typer

from capsule_ci.cli.commands._helpers import exit_on_error, exit_with_code, resolve_event
from capsule_ci.cli.commands.plan_cmd import BASE_REF_HELP, EVENT_HELP, REF_HELP
from capsule_ci.cli.context import build_context
from capsule_ci.core.errors import ErrorCode
from capsule_ci.output.console import ConsoleProtocol, Style
from capsule_ci.output.errors import print_run_report, report_exit_code
from capsule_ci.pipeline.execution import ExecutionOptions, ExecutionService
from capsule_ci.pipeline.matrix import plan_run, platforms_for
from capsule_ci.pipeline.model import Pipeline
from capsule_ci.pipeline.runner import run_executions
from capsule_ci.platform.detection import default_runner_id


def _default_platforms(
    host_runner: str | None, matrix_ids: set[str], console: ConsoleProtocol, pipeline: Pipeline
) -> list[str]:
    env = os.environ.get("CAPSULE_CI_PLATFORM", "").strip()
    if env:
        return [env]
    if host_runner is None:
        return []
    # A host outside the matrix (coverage on macOS) runs the whole matrix instead.
    if host_runner not in matrix_ids:
        console.info(f"{host_runner} is not in the {pipeline} matrix, running every entry")
        return []
    return [host_runner]


def run(
    pipeline: Pipeline = typer.Argument(..., help="ci|coverage|release"),
    event: str | None = typer.Option(None, "--event", help=EVENT_HELP),
    ref: str | None = typer.Option(None, "--ref", help=REF_HELP),
    base_ref: str | None = typer.Option(None, "--base-ref", help=BASE_REF_HELP),
    sha: str | None = typer.Option(None, "--sha", help="Commit sha (default: $GITHUB_SHA)"),
    platform: list[str] | None = typer.Option(
        None,
        "--platform",
        "-p",
        help=(
            "Matrix entry to execute (repeatable; default: $CAPSULE_CI_PLATFORM or the host,"
            " else the whole matrix)"
        ),
    ),
    all_platforms: bool = typer.Option(
        False, "--all-platforms", help="Execute every matrix entry on this host"
    ),
    jobs: int | None = typer.Option(None, "--jobs", "-j", min=1, help="Parallel executions"),
    clobber: bool = typer.Option(False, "--clobber", help="Overwrite existing release assets"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print commands only"),
) -> None:
    """Run a pipeline for the selected platforms."""
    ctx = build_context()
    project = ctx.require_project()
    ev = resolve_event(kind=event, ref=ref, base_ref=base_ref, sha=sha)

    only: list[str] = []
    if not all_platforms:
        matrix_ids = {p.id for p in platforms_for(pipeline, ctx.config)}
        only = platform or _default_platforms(
            default_runner_id(ctx.platform), matrix_ids, ctx.console, pipeline
        )
    planned = exit_on_error(plan_run(pipeline, ev, ctx.config, only=only), ctx)
    if planned is None:
        ctx.console.info(f"{pipeline} skipped: {ev.kind} {ev.ref} does not trigger it")
        exit_with_code(int(ErrorCode.OK))

    if planned.version_tag:
        ctx.console.print(f"version tag: {planned.version_tag}", Style.DIM)

    service = ExecutionService(
        pipeline=pipeline,
        event=ev,
        project=project,
        config=ctx.config,
        console=ctx.console,
        options=ExecutionOptions(
            dry_run=dry_run,
            clobber=clobber,
            host_family=ctx.platform.family,
        ),
    )
    report = run_executions(planned, service.execute, jobs=jobs or ctx.config.matrix.jobs)

    print_run_report(report, ctx.console)
    code = report_exit_code(report)
    if code != int(ErrorCode.OK):
        exit_with_code(code)
