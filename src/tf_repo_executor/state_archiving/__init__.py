"""State archiving exports."""

from .state_archiver import (
    TEMP_DIR_PREFIX,
    StateArchiveError,
    StateArchiver,
    commit_message,
    render_state_document,
)

__all__ = [
    "TEMP_DIR_PREFIX",
    "StateArchiveError",
    "StateArchiver",
    "commit_message",
    "render_state_document",
]
