"""Release packaging.

One archive per platform execution:

    <tool>-cli-<platform>-<version>.tar.gz

holding exactly one file at the archive root, the platform binary
(`<tool>.exe` for the Windows family, `<tool>` otherwise). Windows archives
are gzip tarballs too; there is no zip variant.

Packaging is a small state machine:

    NOT_PACKAGED --select_platform--> PLATFORM_SELECTED --archive--> ARCHIVED
"""

from __future__ import annotations

import os
import tarfile
from enum import Enum, auto
from pathlib import Path

from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.output.console import ConsoleProtocol, Style
from capsule_ci.pipeline.errors import PackageStateError, PackagingFailed
from capsule_ci.pipeline.model import Artifact
from capsule_ci.platform.detection import OsFamily, RunnerPlatform

ARCHIVE_SUFFIX = ".tar.gz"


def binary_name(tool: str, family: OsFamily) -> str:
    return family.exe_name(tool)


def archive_name(tool: str, platform: RunnerPlatform, version_tag: str) -> str:
    return f"{tool}-cli-{platform.id}-{version_tag}{ARCHIVE_SUFFIX}"


class PackageState(Enum):
    NOT_PACKAGED = auto()
    PLATFORM_SELECTED = auto()
    ARCHIVED = auto()


class Packager:
    """Packages the built binary of one platform execution."""

    def __init__(
        self,
        *,
        tool: str,
        version_tag: str,
        console: ConsoleProtocol,
        dry_run: bool = False,
    ) -> None:
        self._tool = tool
        self._version_tag = version_tag
        self._console = console
        self._dry_run = dry_run
        self._state = PackageState.NOT_PACKAGED
        self._platform: RunnerPlatform | None = None
        self._artifact: Artifact | None = None

    @property
    def state(self) -> PackageState:
        return self._state

    @property
    def artifact(self) -> Artifact | None:
        return self._artifact

    def select_platform(self, platform: RunnerPlatform) -> str:
        """Fix the platform and return the binary file name to package."""
        if self._state is not PackageState.NOT_PACKAGED:
            raise PackageStateError(f"platform already selected ({self._state.name})")
        self._platform = platform
        self._state = PackageState.PLATFORM_SELECTED
        return binary_name(self._tool, platform.family)

    def archive(
        self,
        release_dir: Path,
        out_dir: Path | None = None,
    ) -> Result[Artifact, PackagingFailed]:
        """Write the archive (next to the binary unless out_dir is given)."""
        if self._state is not PackageState.PLATFORM_SELECTED or self._platform is None:
            raise PackageStateError(f"cannot archive in state {self._state.name}")

        platform = self._platform
        binary = binary_name(self._tool, platform.family)
        src = release_dir / binary
        dest_dir = out_dir or release_dir
        dest = dest_dir / archive_name(self._tool, platform, self._version_tag)

        self._console.print(f"tar -czf {dest} {binary}", Style.DIM)
        if not self._dry_run:
            if not src.is_file():
                return Err(
                    PackagingFailed(
                        message=f"binary not found: {src}",
                        path=src,
                        hint="Run the release build for this platform first",
                    )
                )
            written = _write_archive(dest, src, arcname=binary)
            if isinstance(written, Err):
                return written

        artifact = Artifact(path=dest, binary_name=binary, platform=platform)
        self._artifact = artifact
        self._state = PackageState.ARCHIVED
        return Ok(artifact)


def _write_archive(dest: Path, src: Path, *, arcname: str) -> Result[None, PackagingFailed]:
    tmp = dest.with_name(f"{dest.name}.tmp")
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(tmp, "w:gz") as tar:
            tar.add(src, arcname=arcname, recursive=False)
        os.replace(tmp, dest)
    except (OSError, tarfile.TarError) as e:
        tmp.unlink(missing_ok=True)
        return Err(PackagingFailed(message=f"failed to write {dest.name}: {e}", path=dest))
    return Ok(None)


def package(
    *,
    tool: str,
    platform: RunnerPlatform,
    version_tag: str,
    release_dir: Path,
    console: ConsoleProtocol,
    out_dir: Path | None = None,
    dry_run: bool = False,
) -> Result[Artifact, PackagingFailed]:
    """Run the packaging state machine from start to ARCHIVED."""
    packager = Packager(tool=tool, version_tag=version_tag, console=console, dry_run=dry_run)
    packager.select_platform(platform)
    return packager.archive(release_dir, out_dir)
