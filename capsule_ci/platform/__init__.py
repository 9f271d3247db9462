"""Platform abstraction layer."""

from .detection import (
    OsFamily,
    Platform,
    RunnerPlatform,
    default_runner_id,
    detect_platform,
)
from .process import (
    ProcessError,
    run,
    run_silent,
)

__all__ = [
    # detection
    "OsFamily",
    "Platform",
    "RunnerPlatform",
    "default_runner_id",
    "detect_platform",
    # process
    "ProcessError",
    "run",
    "run_silent",
]
