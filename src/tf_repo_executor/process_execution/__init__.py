"""Process execution exports."""

from .command_runner import (
    CommandNotFoundError,
    CommandResult,
    CommandRunner,
    SubprocessCommandRunner,
)

__all__ = [
    "CommandNotFoundError",
    "CommandResult",
    "CommandRunner",
    "SubprocessCommandRunner",
]
