from __future__ import annotations

import os
from pathlib import Path

import typer

from capsule_ci import __version__
from capsule_ci.cli.commands.plan_cmd import artifact_name, gate, matrix, version_tag
from capsule_ci.cli.commands.provision import provision
from capsule_ci.cli.commands.release_cmd import package_cmd, publish_cmd
from capsule_ci.cli.commands.run_cmd import run
from capsule_ci.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(gate)
app.command()(matrix)
app.command("version-tag")(version_tag)
app.command("artifact-name")(artifact_name)
app.command()(provision)
app.command()(run)
app.command("package")(package_cmd)
app.command("publish")(publish_cmd)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    project: Path | None = typer.Option(
        None,
        "--project",
        help="Cargo project root (overrides auto detection)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (default: <project>/capsule-ci.toml)",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    if project is not None:
        try:
            root = project.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --project: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not (root / "Cargo.toml").is_file():
            typer.echo(f"error: --project '{root}' has no Cargo.toml", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ["CAPSULE_CI_PROJECT"] = str(root)

    if config is not None:
        os.environ["CAPSULE_CI_CONFIG"] = str(config.expanduser().resolve())


def main() -> None:
    app()
