"""Build/test stage: cargo clean, test and build for one platform execution."""

from __future__ import annotations

import shutil
from collections.abc import Mapping
from pathlib import Path

from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.output.console import ConsoleProtocol, Style
from capsule_ci.pipeline.errors import BuildFailed, TestsFailed, ToolMissing
from capsule_ci.platform.process import ProcessError, run_silent

CARGO_HINT = "Install rustup: https://rustup.rs"

TEST_ARGS = ("--all-features", "--no-fail-fast")


def _reason(error: ProcessError) -> str:
    if error.timed_out:
        return "timed out"
    return f"exit {error.returncode}"


class CargoStage:
    """Runs cargo for one execution with its own target directory."""

    def __init__(
        self,
        *,
        project_root: Path,
        target_dir: Path,
        console: ConsoleProtocol,
        build_timeout: float | None = None,
        test_timeout: float | None = None,
        dry_run: bool = False,
    ) -> None:
        self._root = project_root
        self._target_dir = target_dir
        self._console = console
        self._build_timeout = build_timeout
        self._test_timeout = test_timeout
        self._dry_run = dry_run

    def env(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        env = {
            "CARGO_TERM_COLOR": "always",
            "CARGO_TARGET_DIR": str(self._target_dir),
        }
        if extra:
            env.update(extra)
        return env

    def ensure_cargo(self) -> Result[None, ToolMissing]:
        if self._dry_run or shutil.which("cargo") is not None:
            return Ok(None)
        return Err(ToolMissing(tool="cargo", hint=CARGO_HINT))

    def _run(
        self,
        cmd: list[str],
        *,
        env: Mapping[str, str],
        timeout: float | None,
    ) -> Result[None, ProcessError]:
        self._console.print(" ".join(cmd), Style.DIM)
        if self._dry_run:
            return Ok(None)
        return run_silent(cmd, cwd=self._root, env=env, timeout=timeout)

    def clean(self) -> Result[None, BuildFailed]:
        """Remove stale outputs so no artifact is reused across configurations."""
        result = self._run(["cargo", "clean"], env=self.env(), timeout=self._build_timeout)
        if isinstance(result, Err):
            return Err(
                BuildFailed(
                    returncode=result.error.returncode,
                    message=f"cargo clean failed ({_reason(result.error)})",
                )
            )
        return Ok(None)

    def test(self, extra_env: Mapping[str, str] | None = None) -> Result[None, TestsFailed]:
        """Run the whole suite with all features; failures do not stop the run early."""
        cmd = ["cargo", "test", *TEST_ARGS]
        result = self._run(cmd, env=self.env(extra_env), timeout=self._test_timeout)
        if isinstance(result, Err):
            return Err(
                TestsFailed(
                    returncode=result.error.returncode,
                    message=f"cargo test failed ({_reason(result.error)})",
                    hint="See the test output above for every failing test",
                )
            )
        return Ok(None)

    def build(self, *, release: bool) -> Result[None, BuildFailed]:
        cmd = ["cargo", "build", "--release"] if release else ["cargo", "build", "--all"]
        result = self._run(cmd, env=self.env(), timeout=self._build_timeout)
        if isinstance(result, Err):
            return Err(
                BuildFailed(
                    returncode=result.error.returncode,
                    message=f"{' '.join(cmd)} failed ({_reason(result.error)})",
                )
            )
        return Ok(None)
