"""Exit codes for capsule-ci commands.

Each pipeline failure kind maps to one of these codes so that a CI job
log can be triaged from the exit status alone.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes. Values are stable.

    - 0: Success (a run skipped by its trigger gate is also a success)
    - 1: User error (bad arguments, invalid config, ref not matching)
    - 2: Environment error (missing tools, toolchain provisioning)
    - 3: Build error (compilation failed, tests failed)
    - 4: Network error (release upload, coverage upload)
    - 5: I/O error (archive creation, missing binary)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
