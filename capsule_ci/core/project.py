"""Project detection and paths.

The project is the cargo package being built: the directory holding
`Cargo.toml`. Build outputs live under `target/`, one subdirectory per
runner platform so that concurrent executions never share a target dir.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .config import CONFIG_FILENAME
from .result import Err, Ok, Result

__all__ = ["Project", "ProjectError", "detect_project"]


@dataclass(frozen=True)
class ProjectError:
    """Error when no cargo project can be found."""

    message: str
    searched_from: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class Project:
    root: Path

    @property
    def manifest_path(self) -> Path:
        return self.root / "Cargo.toml"

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME

    @property
    def target_dir(self) -> Path:
        return self.root / "target"

    def platform_target_dir(self, platform_id: str) -> Path:
        """Cargo target dir for one platform execution."""
        return self.target_dir / platform_id

    def release_dir(self, platform_id: str) -> Path:
        """Directory holding `cargo build --release` outputs for a platform."""
        return self.platform_target_dir(platform_id) / "release"


def detect_project(start: Path | None = None) -> Result[Project, ProjectError]:
    """Find the cargo project containing `start` (default: cwd).

    `CAPSULE_CI_PROJECT` overrides the search.
    """
    env = os.environ.get("CAPSULE_CI_PROJECT")
    if env:
        root = Path(env).expanduser().resolve()
        if (root / "Cargo.toml").is_file():
            return Ok(Project(root=root))
        return Err(
            ProjectError(
                message=f"CAPSULE_CI_PROJECT has no Cargo.toml: {root}",
                searched_from=root,
            )
        )

    origin = (start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if (candidate / "Cargo.toml").is_file():
            return Ok(Project(root=candidate))

    return Err(
        ProjectError(
            message="no Cargo.toml found",
            searched_from=origin,
            hint="Run from the project directory or pass --project",
        )
    )
