"""Publication: attach an archive to the release of the triggering tag (via `gh`).

Re-publishing an existing asset fails fast unless overwrite is requested
explicitly (`--clobber`). Uploads are never retried; only read-only `gh`
queries are retried on transient errors.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping
from pathlib import Path
from time import sleep

from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.output.console import ConsoleProtocol, Style
from capsule_ci.pipeline.errors import PublicationFailed
from capsule_ci.pipeline.model import Artifact
from capsule_ci.pipeline.version import tag_name_from_ref
from capsule_ci.platform.process import ProcessError
from capsule_ci.platform.process import run as run_process

GH_TIMEOUT_SECONDS = 60.0
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0

_TRANSIENT_MARKERS = (
    "timed out",
    "timeout",
    "connection reset",
    "connection refused",
    "temporarily unavailable",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    "network is unreachable",
    "http 429",
    "http 500",
    "http 502",
    "http 503",
    "http 504",
)


def _is_transient(error: ProcessError) -> bool:
    if error.timed_out:
        return True
    text = f"{error.stderr}\n{error.stdout}".lower()
    return any(marker in text for marker in _TRANSIENT_MARKERS)


def _is_duplicate_asset(error: ProcessError) -> bool:
    return "already exists" in f"{error.stderr}\n{error.stdout}".lower()


def _is_release_missing(error: ProcessError) -> bool:
    return "release not found" in f"{error.stderr}\n{error.stdout}".lower()


class ReleasePublisher:
    def __init__(
        self,
        *,
        project_root: Path,
        console: ConsoleProtocol,
        clobber: bool = False,
        timeout: float | None = None,
        environ: Mapping[str, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        self._root = project_root
        self._console = console
        self._clobber = clobber
        self._timeout = timeout
        self._environ = os.environ if environ is None else environ
        self._dry_run = dry_run

    def _repo_args(self) -> list[str]:
        repo = self._environ.get("GITHUB_REPOSITORY", "").strip()
        return ["--repo", repo] if repo else []

    def ensure_ready(self) -> Result[None, PublicationFailed]:
        if shutil.which("gh") is None:
            return Err(
                PublicationFailed(
                    kind="gh_missing",
                    message="gh: missing",
                    hint="Install GitHub CLI: https://cli.github.com/",
                )
            )
        if self._environ.get("GH_TOKEN") or self._environ.get("GITHUB_TOKEN"):
            return Ok(None)
        status = run_process(["gh", "auth", "status"], cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(status, Err):
            return Err(
                PublicationFailed(
                    kind="auth_required",
                    message="gh auth required",
                    hint="Set GITHUB_TOKEN or run: gh auth login",
                )
            )
        return Ok(None)

    def _gh_read(self, cmd: list[str]) -> Result[str, ProcessError]:
        result: Result[str, ProcessError] = Err(ProcessError(tuple(cmd), -1, "", "not run"))
        for attempt in range(GH_READ_RETRY_ATTEMPTS):
            result = run_process(cmd, cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
            if isinstance(result, Ok):
                return result
            if attempt < GH_READ_RETRY_ATTEMPTS - 1 and _is_transient(result.error):
                sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
                continue
            return result
        return result

    def ensure_release(self, tag: str) -> Result[None, PublicationFailed]:
        """Create the release for `tag` if it does not exist yet."""
        view = self._gh_read(
            ["gh", "release", "view", tag, "--json", "tagName", *self._repo_args()]
        )
        if isinstance(view, Ok):
            return Ok(None)
        if not _is_release_missing(view.error):
            return Err(
                PublicationFailed(
                    kind="upload_failed",
                    message=f"failed to query release {tag}",
                    hint=view.error.stderr.strip() or None,
                )
            )

        cmd = ["gh", "release", "create", tag, "--verify-tag", "--title", tag, "--notes", ""]
        cmd += self._repo_args()
        self._console.print(" ".join(cmd), Style.DIM)
        created = run_process(cmd, cwd=self._root, timeout=self._timeout)
        # Sibling executions may create the same release concurrently.
        if isinstance(created, Err) and not _is_duplicate_asset(created.error):
            return Err(
                PublicationFailed(
                    kind="release_missing",
                    message=f"failed to create release {tag}",
                    hint=created.error.stderr.strip() or None,
                )
            )
        return Ok(None)

    def upload_command(self, tag: str, artifact: Artifact) -> list[str]:
        cmd = ["gh", "release", "upload", tag, str(artifact.path)]
        if self._clobber:
            cmd.append("--clobber")
        return cmd + self._repo_args()

    def publish(self, ref: str, artifact: Artifact) -> Result[str, PublicationFailed]:
        """Upload `artifact` as an asset named after its file.

        Returns the asset name.
        """
        tag = tag_name_from_ref(ref)
        cmd = self.upload_command(tag, artifact)
        if self._dry_run:
            self._console.print(" ".join(cmd), Style.DIM)
            return Ok(artifact.name)

        ready = self.ensure_ready()
        if isinstance(ready, Err):
            return ready

        release = self.ensure_release(tag)
        if isinstance(release, Err):
            return release

        self._console.print(" ".join(cmd), Style.DIM)
        result = run_process(cmd, cwd=self._root, timeout=self._timeout)
        if isinstance(result, Err):
            e = result.error
            if _is_duplicate_asset(e):
                return Err(
                    PublicationFailed(
                        kind="asset_exists",
                        message=f"asset {artifact.name} already exists on release {tag}",
                        hint="Re-run with --clobber to overwrite it",
                    )
                )
            return Err(
                PublicationFailed(
                    kind="upload_failed",
                    message=f"upload of {artifact.name} failed",
                    hint=e.stderr.strip() or None,
                )
            )

        self._console.success(f"{artifact.name} -> {tag}")
        return Ok(artifact.name)
