"""Exit codes for the releng CLI.

These values are used as process exit codes and should remain stable:
- 0: Success, including runs where no release was needed
- 1: User error (bad arguments)
- 2: Configuration error (malformed branches or plugins)
- 3: Release failed (a pipeline step aborted the run)
- 4: Environment error (not a git checkout, git missing)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    RELEASE_FAILED = 3
    ENV_ERROR = 4

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
