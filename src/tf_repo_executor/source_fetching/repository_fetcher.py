"""Clone target repositories at a pinned revision."""

from __future__ import annotations

import logging
from pathlib import Path

from tf_repo_executor.process_execution import (
    CommandNotFoundError,
    CommandRunner,
    SubprocessCommandRunner,
)
from tf_repo_executor.redaction import redact_values

from .git_transport import GIT_ENVIRONMENT, TransportError, authenticated_url, git_command

LOGGER = logging.getLogger(__name__)

FOLDER_PERMISSIONS = 0o770


class CloneError(Exception):
    """Raised when a repository cannot be cloned or checked out."""


class RepositoryFetcher:
    """Clones remotes with injected short-lived credentials.

    Every error message has the token removed, since transport errors may echo
    the authenticated URL back verbatim.
    """

    def __init__(
        self,
        username: str,
        token: str,
        *,
        ca_bundle: Path | None = None,
        run_command: CommandRunner | None = None,
    ) -> None:
        self._username = username
        self._token = token
        self._ca_bundle = ca_bundle
        self._run_command = run_command or SubprocessCommandRunner()

    def clone(self, url: str, revision: str, destination_dir: Path, name: str) -> Path:
        """Clone `url` into `destination_dir/name` and check out `revision`."""
        checkout_dir = destination_dir / name
        try:
            checkout_dir.mkdir(mode=FOLDER_PERMISSIONS)
        except FileExistsError as exc:
            raise CloneError(f"Clone directory already exists: {checkout_dir}") from exc
        except OSError as exc:
            raise CloneError(f"Could not create clone directory {checkout_dir}: {exc}") from exc

        try:
            remote = authenticated_url(url, self._username, self._token)
        except TransportError as exc:
            raise CloneError(str(exc)) from exc

        LOGGER.info("Cloning %s at %s", url, revision)
        self._git(
            ("clone", "--quiet", remote, str(checkout_dir)),
            cwd=destination_dir,
            failure=f"could not clone repository {url}",
        )
        self._git(
            ("checkout", "--quiet", revision),
            cwd=checkout_dir,
            failure=f"could not check out ref '{revision}' of {url}",
        )
        return checkout_dir

    def _git(self, args: tuple[str, ...], *, cwd: Path, failure: str) -> None:
        command = git_command(*args, ca_bundle=self._ca_bundle)
        try:
            result = self._run_command(command, cwd, GIT_ENVIRONMENT)
        except CommandNotFoundError as exc:
            raise CloneError(f"{failure}: {exc}") from exc
        if not result.succeeded:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise CloneError(self._redact(f"{failure}: {detail}"))

    def _redact(self, text: str) -> str:
        return redact_values(text, (self._token,))
