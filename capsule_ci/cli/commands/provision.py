from __future__ import annotations

import typer

from capsule_ci.cli.commands._helpers import exit_on_error
from capsule_ci.cli.context import build_context
from capsule_ci.pipeline.toolchain import ToolchainProvisioner


def provision(
    channel: str | None = typer.Option(
        None, "--channel", help="Toolchain channel (default: [toolchain].channel, nightly)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print commands only"),
) -> None:
    """Install the pinned rust toolchain and select it for the project."""
    ctx = build_context()
    project = ctx.require_project()
    provisioner = ToolchainProvisioner(
        project_root=project.root,
        channel=channel or ctx.config.toolchain.channel,
        console=ctx.console,
        timeout=ctx.config.timeouts.toolchain,
        dry_run=dry_run,
    )
    exit_on_error(provisioner.provision(), ctx)
