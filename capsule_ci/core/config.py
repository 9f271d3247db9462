"""Typed configuration loading and access.

The optional `capsule-ci.toml` at the project root overrides the pipeline
defaults below. Every section and key is optional.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_float,
    get_int,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "Config",
    "ConfigError",
    "CoverageConfig",
    "MatrixConfig",
    "ProjectConfig",
    "ReleaseConfig",
    "TimeoutsConfig",
    "ToolchainConfig",
    "CONFIG_FILENAME",
    "COVERAGE_RUSTFLAGS",
    "DEFAULT_PLATFORMS",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "capsule-ci.toml"

DEFAULT_TOOL = "capsule"
DEFAULT_MAIN_BRANCH = "master"
DEFAULT_TAG_PATTERN = "v*"
DEFAULT_VERSION_REGEX = r"^v(.+)$"
DEFAULT_CHANNEL = "nightly"
DEFAULT_PLATFORMS = ("macos-latest", "ubuntu-latest", "windows-latest")
DEFAULT_COVERAGE_PLATFORMS = ("ubuntu-latest",)
DEFAULT_JOBS = 3
DEFAULT_COVERAGE_REPORT = "lcov.info"
DEFAULT_GRCOV_ARGS = ("--llvm", "--branch", "--ignore-not-existing")

# Instrumentation for line/branch coverage: no incremental builds, one codegen
# unit, no inlining, keep dead code, no overflow checks, abort on panic.
COVERAGE_RUSTFLAGS = (
    "-Zprofile",
    "-Ccodegen-units=1",
    "-Cinline-threshold=0",
    "-Clink-dead-code",
    "-Coverflow-checks=off",
    "-Cpanic=abort",
    "-Zpanic_abort_tests",
)

TOOLCHAIN_TIMEOUT_SECONDS = 15 * 60.0
BUILD_TIMEOUT_SECONDS = 60 * 60.0
TEST_TIMEOUT_SECONDS = 60 * 60.0
UPLOAD_TIMEOUT_SECONDS = 5 * 60.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    tool: str = DEFAULT_TOOL
    main_branch: str = DEFAULT_MAIN_BRANCH
    tag_pattern: str = DEFAULT_TAG_PATTERN
    version_regex: str = DEFAULT_VERSION_REGEX


@dataclass(frozen=True, slots=True)
class ToolchainConfig:
    channel: str = DEFAULT_CHANNEL


@dataclass(frozen=True, slots=True)
class MatrixConfig:
    """Runner ids per pipeline, as used in GitHub Actions `runs-on`."""

    platforms: tuple[str, ...] = DEFAULT_PLATFORMS
    coverage_platforms: tuple[str, ...] = DEFAULT_COVERAGE_PLATFORMS
    jobs: int = DEFAULT_JOBS


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    overwrite_assets: bool = False


@dataclass(frozen=True, slots=True)
class CoverageConfig:
    report: str = DEFAULT_COVERAGE_REPORT
    grcov_args: tuple[str, ...] = DEFAULT_GRCOV_ARGS
    rustflags: tuple[str, ...] = COVERAGE_RUSTFLAGS


@dataclass(frozen=True, slots=True)
class TimeoutsConfig:
    """Per-command subprocess timeouts in seconds."""

    toolchain: float = TOOLCHAIN_TIMEOUT_SECONDS
    build: float = BUILD_TIMEOUT_SECONDS
    test: float = TEST_TIMEOUT_SECONDS
    upload: float = UPLOAD_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    matrix: MatrixConfig = field(default_factory=MatrixConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a parsed TOML mapping.

        Raises:
            ValueError: if a value is present but unusable.
        """
        project: StrDict = get_table(data, "project") or {}
        toolchain: StrDict = get_table(data, "toolchain") or {}
        matrix: StrDict = get_table(data, "matrix") or {}
        release: StrDict = get_table(data, "release") or {}
        coverage: StrDict = get_table(data, "coverage") or {}
        timeouts: StrDict = get_table(data, "timeouts") or {}

        version_regex = get_str(project, "version_regex") or DEFAULT_VERSION_REGEX
        try:
            compiled = re.compile(version_regex)
        except re.error as e:
            raise ValueError(f"project.version_regex is not a valid regex: {e}") from e
        if compiled.groups < 1:
            raise ValueError("project.version_regex needs a capture group")

        platforms = _runner_ids(matrix, "platforms", DEFAULT_PLATFORMS)
        coverage_platforms = _runner_ids(matrix, "coverage_platforms", DEFAULT_COVERAGE_PLATFORMS)

        jobs = get_int(matrix, "jobs")
        if jobs is not None and jobs < 1:
            raise ValueError("matrix.jobs must be >= 1")

        return cls(
            project=ProjectConfig(
                tool=get_str(project, "tool") or DEFAULT_TOOL,
                main_branch=get_str(project, "main_branch") or DEFAULT_MAIN_BRANCH,
                tag_pattern=get_str(project, "tag_pattern") or DEFAULT_TAG_PATTERN,
                version_regex=version_regex,
            ),
            toolchain=ToolchainConfig(
                channel=get_str(toolchain, "channel") or DEFAULT_CHANNEL,
            ),
            matrix=MatrixConfig(
                platforms=platforms,
                coverage_platforms=coverage_platforms,
                jobs=jobs or DEFAULT_JOBS,
            ),
            release=ReleaseConfig(
                overwrite_assets=bool(get_bool(release, "overwrite_assets")),
            ),
            coverage=CoverageConfig(
                report=get_str(coverage, "report") or DEFAULT_COVERAGE_REPORT,
                grcov_args=get_str_list(coverage, "grcov_args") or DEFAULT_GRCOV_ARGS,
                rustflags=get_str_list(coverage, "rustflags") or COVERAGE_RUSTFLAGS,
            ),
            timeouts=TimeoutsConfig(
                toolchain=get_float(timeouts, "toolchain") or TOOLCHAIN_TIMEOUT_SECONDS,
                build=get_float(timeouts, "build") or BUILD_TIMEOUT_SECONDS,
                test=get_float(timeouts, "test") or TEST_TIMEOUT_SECONDS,
                upload=get_float(timeouts, "upload") or UPLOAD_TIMEOUT_SECONDS,
            ),
        )


def _runner_ids(matrix: StrDict, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Read a runner id list verbatim. A key that is present must hold valid ids."""
    value = matrix.get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not value:
        raise ValueError(f"matrix.{key} must be a non-empty list of runner ids")
    ids: list[str] = []
    for item in cast(list[object], value):
        if (
            not isinstance(item, str)
            or not item
            or item != item.strip()
            or "/" in item
        ):
            raise ValueError(f"matrix.{key}: invalid runner id {item!r}")
        ids.append(item)
    return tuple(ids)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Like load_config, but a missing file yields the default Config.

    A file that exists and is malformed is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
