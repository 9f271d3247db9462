"""Toolchain provisioning via rustup.

Installs the pinned channel and overrides the project directory to use it,
regardless of the runner's preinstalled default. Both rustup commands are
idempotent.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.output.console import ConsoleProtocol, Style
from capsule_ci.pipeline.errors import ProvisionFailed, ToolMissing
from capsule_ci.platform.process import run as run_process
from capsule_ci.platform.process import run_silent

RUSTUP_HINT = "Install rustup: https://rustup.rs"


class ToolchainProvisioner:
    def __init__(
        self,
        *,
        project_root: Path,
        channel: str,
        console: ConsoleProtocol,
        timeout: float | None = None,
        dry_run: bool = False,
    ) -> None:
        self._root = project_root
        self._channel = channel
        self._console = console
        self._timeout = timeout
        self._dry_run = dry_run

    def commands(self) -> list[list[str]]:
        return [
            ["rustup", "toolchain", "install", self._channel, "--profile", "minimal"],
            ["rustup", "override", "set", self._channel],
        ]

    def provision(self) -> Result[str | None, ProvisionFailed | ToolMissing]:
        """Install and select the channel.

        Returns the active `rustc --version` line (None in dry-run).
        """
        if not self._dry_run and shutil.which("rustup") is None:
            return Err(ToolMissing(tool="rustup", hint=RUSTUP_HINT))

        for cmd in self.commands():
            self._console.print(" ".join(cmd), Style.DIM)
            if self._dry_run:
                continue
            result = run_silent(cmd, cwd=self._root, timeout=self._timeout)
            if isinstance(result, Err):
                e = result.error
                reason = "timed out" if e.timed_out else f"exit {e.returncode}"
                return Err(
                    ProvisionFailed(
                        channel=self._channel,
                        message=f"{' '.join(cmd[:3])} failed ({reason})",
                        hint=e.stderr.strip() or None,
                    )
                )

        if self._dry_run:
            return Ok(None)

        version = run_process(["rustc", "--version"], cwd=self._root, timeout=self._timeout)
        if isinstance(version, Err):
            return Err(
                ProvisionFailed(
                    channel=self._channel,
                    message=f"rustc unavailable after selecting {self._channel}",
                    hint=version.error.stderr.strip() or RUSTUP_HINT,
                )
            )

        line = version.value.strip()
        self._console.info(line)
        return Ok(line)
