"""Coverage stage: instrumented tests, grcov aggregation, Coveralls upload.

Failures here are reported with their own exit code and never affect the
ci or release pipelines.
"""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from pathlib import Path

from capsule_ci.core.config import CoverageConfig
from capsule_ci.core.result import Err, Ok, Result
from capsule_ci.output.console import ConsoleProtocol, Style
from capsule_ci.pipeline.errors import CoverageFailed
from capsule_ci.platform.process import run_silent

GRCOV_HINT = "Install grcov: cargo install grcov"
COVERALLS_HINT = "Install coverage-reporter: https://github.com/coverallsapp/coverage-reporter"


def instrumentation_env(rustflags: Sequence[str]) -> dict[str, str]:
    flags = " ".join(rustflags)
    return {
        "CARGO_INCREMENTAL": "0",
        "RUSTFLAGS": flags,
        "RUSTDOCFLAGS": flags,
    }


class CoverageReporter:
    def __init__(
        self,
        *,
        project_root: Path,
        config: CoverageConfig,
        console: ConsoleProtocol,
        platform_id: str | None = None,
        profile_dir: Path | None = None,
        timeout: float | None = None,
        dry_run: bool = False,
    ) -> None:
        self._root = project_root
        self._config = config
        self._platform_id = platform_id
        self._profile_dir = profile_dir
        self._console = console
        self._timeout = timeout
        self._dry_run = dry_run

    @property
    def report_path(self) -> Path:
        """Report file, suffixed with the platform id when one is set.

        `lcov.info` on `ubuntu-latest` becomes `lcov-ubuntu-latest.info`, so
        executions running side by side never share a report.
        """
        report = Path(self._config.report)
        if self._platform_id:
            report = report.with_name(f"{report.stem}-{self._platform_id}{report.suffix}")
        return self._root / report

    def grcov_command(self) -> list[str]:
        return [
            "grcov",
            str(self._profile_dir) if self._profile_dir else ".",
            "-s",
            ".",
            "-t",
            "lcov",
            *self._config.grcov_args,
            "--ignore",
            "/*",
            "-o",
            str(self.report_path),
        ]

    def upload_command(self, sha: str | None = None) -> list[str]:
        cmd = ["coveralls", "report", str(self.report_path), "--format", "lcov"]
        if sha:
            cmd += ["--commit", sha]
        return cmd

    def generate(self) -> Result[Path, CoverageFailed]:
        """Aggregate raw profile data into an lcov report."""
        if not self._dry_run and shutil.which("grcov") is None:
            return Err(CoverageFailed(step="report", message="grcov: missing", hint=GRCOV_HINT))

        cmd = self.grcov_command()
        self._console.print(" ".join(cmd), Style.DIM)
        if self._dry_run:
            return Ok(self.report_path)

        result = run_silent(cmd, cwd=self._root, timeout=self._timeout)
        if isinstance(result, Err):
            return Err(
                CoverageFailed(
                    step="report",
                    message=f"grcov failed (exit {result.error.returncode})",
                    hint=result.error.stderr.strip() or None,
                )
            )
        if not self.report_path.is_file():
            return Err(
                CoverageFailed(step="report", message=f"report not written: {self.report_path}")
            )
        return Ok(self.report_path)

    def upload(self, sha: str | None = None) -> Result[None, CoverageFailed]:
        if not self._dry_run and shutil.which("coveralls") is None:
            return Err(
                CoverageFailed(step="upload", message="coveralls: missing", hint=COVERALLS_HINT)
            )

        cmd = self.upload_command(sha)
        self._console.print(" ".join(cmd), Style.DIM)
        if self._dry_run:
            return Ok(None)

        result = run_silent(cmd, cwd=self._root, timeout=self._timeout)
        if isinstance(result, Err):
            return Err(
                CoverageFailed(
                    step="upload",
                    message=f"coverage upload failed (exit {result.error.returncode})",
                    hint="Set COVERALLS_REPO_TOKEN or GITHUB_TOKEN",
                )
            )
        self._console.success(f"coverage report uploaded: {self.report_path.name}")
        return Ok(None)
