"""Source fetching exports."""

from .git_transport import GIT_ENVIRONMENT, TransportError, authenticated_url, git_command
from .repository_fetcher import FOLDER_PERMISSIONS, CloneError, RepositoryFetcher

__all__ = [
    "GIT_ENVIRONMENT",
    "TransportError",
    "authenticated_url",
    "git_command",
    "FOLDER_PERMISSIONS",
    "CloneError",
    "RepositoryFetcher",
]
