"""Standalone release steps: package a built binary, publish an archive."""

from __future__ import annotations

from pathlib import Path

import typer

from capsule_ci.cli.commands._helpers import exit_on_error
from capsule_ci.cli.context import build_context
from capsule_ci.core.errors import ErrorCode
from capsule_ci.pipeline.model import Artifact
from capsule_ci.pipeline.packaging import package
from capsule_ci.pipeline.publish import ReleasePublisher
from capsule_ci.pipeline.version import derive_version_tag
from capsule_ci.platform.detection import RunnerPlatform


def _runner(platform: str) -> RunnerPlatform:
    try:
        return RunnerPlatform(platform)
    except ValueError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))


def package_cmd(
    platform: str = typer.Argument(..., help="Runner id, e.g. ubuntu-latest"),
    ref: str = typer.Argument(..., help="Tag reference, e.g. refs/tags/v1.2.3"),
    release_dir: Path | None = typer.Option(
        None, "--release-dir", help="Directory holding the built binary"
    ),
    out: Path | None = typer.Option(None, "--out", help="Output directory for the archive"),
) -> None:
    """Package an already built binary into its release archive."""
    ctx = build_context()
    project = ctx.require_project()
    runner = _runner(platform)
    version = exit_on_error(derive_version_tag(ref, ctx.config.project.version_regex), ctx)

    artifact = exit_on_error(
        package(
            tool=ctx.config.project.tool,
            platform=runner,
            version_tag=version,
            release_dir=release_dir or project.release_dir(runner.id),
            console=ctx.console,
            out_dir=out,
        ),
        ctx,
    )
    ctx.console.success(str(artifact.path))


def publish_cmd(
    archive: Path = typer.Argument(..., help="Archive to upload"),
    ref: str = typer.Argument(..., help="Tag reference, e.g. refs/tags/v1.2.3"),
    platform: str = typer.Option(
        "unknown", "--platform", help="Runner id the archive was built on"
    ),
    clobber: bool = typer.Option(False, "--clobber", help="Overwrite an existing asset"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print commands only"),
) -> None:
    """Upload an archive to the release of a tag."""
    ctx = build_context()
    project = ctx.require_project()
    if not dry_run and not archive.is_file():
        typer.echo(f"error: archive not found: {archive}", err=True)
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))

    runner = _runner(platform)
    publisher = ReleasePublisher(
        project_root=project.root,
        console=ctx.console,
        clobber=clobber or ctx.config.release.overwrite_assets,
        timeout=ctx.config.timeouts.upload,
        dry_run=dry_run,
    )
    artifact = Artifact(
        path=archive.resolve(),
        binary_name=runner.family.exe_name(ctx.config.project.tool),
        platform=runner,
    )
    exit_on_error(publisher.publish(ref, artifact), ctx)
