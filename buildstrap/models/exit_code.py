"""
Exit code model.

Binary build outcome that maps onto conventional process exit statuses.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Build outcome: 0 for success, non-zero for failure."""

    SUCCESS = 0
    FAILURE = 1

    @property
    def is_success(self) -> bool:
        return self is ExitCode.SUCCESS

    @classmethod
    def from_returncode(cls, returncode: int) -> "ExitCode":
        """Map a process return code; anything non-zero is a failure."""
        return cls.SUCCESS if returncode == 0 else cls.FAILURE

    def __str__(self) -> str:
        return f"{self.name.lower()} ({self.value})"
