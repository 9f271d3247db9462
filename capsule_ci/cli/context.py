from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from capsule_ci.core.config import CONFIG_FILENAME, Config, load_config_or_default
from capsule_ci.core.errors import ErrorCode
from capsule_ci.core.project import Project, detect_project
from capsule_ci.core.result import Err
from capsule_ci.output.console import ConsoleProtocol, RichConsole
from capsule_ci.platform.detection import Platform, detect_platform


@dataclass(frozen=True, slots=True)
class CLIContext:
    project: Project | None
    platform: Platform
    config: Config
    console: ConsoleProtocol

    def require_project(self) -> Project:
        if self.project is None:
            typer.echo("error: no Cargo.toml found (use --project)", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        return self.project


def _config_path(project: Project | None) -> Path:
    env = os.environ.get("CAPSULE_CI_CONFIG")
    if env:
        return Path(env).expanduser()
    if project is not None:
        return project.config_path
    return Path.cwd() / CONFIG_FILENAME


def build_context(*, require_project: bool = True, stderr: bool = False) -> CLIContext:
    """Detect project, load config and pick the console.

    `stderr=True` keeps stdout free for machine-readable output.
    """
    project_result = detect_project()
    project: Project | None = None
    if isinstance(project_result, Err):
        if require_project:
            error = project_result.error
            typer.echo(f"error: {error.message}", err=True)
            if error.hint:
                typer.echo(f"hint: {error.hint}", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    else:
        project = project_result.value

    config_result = load_config_or_default(_config_path(project))
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        project=project,
        platform=detect_platform(),
        config=config_result.value,
        console=RichConsole(stderr=stderr),
    )
