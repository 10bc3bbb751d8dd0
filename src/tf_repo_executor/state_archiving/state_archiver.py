"""Archive human-readable terraform state into a git audit repository."""

from __future__ import annotations

import logging
import tempfile
import threading
from datetime import UTC, datetime
from pathlib import Path

from jinja2 import Environment, StrictUndefined

from tf_repo_executor.configuration.runtime_settings import Target
from tf_repo_executor.process_execution import (
    CommandNotFoundError,
    CommandRunner,
    SubprocessCommandRunner,
)
from tf_repo_executor.redaction import mask_vault_data_sources, redact_values
from tf_repo_executor.source_fetching import (
    GIT_ENVIRONMENT,
    TransportError,
    authenticated_url,
    git_command,
)

LOGGER = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "tf-repo-state"

_STATE_TEMPLATE = Environment(
    autoescape=False,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
).from_string(
    "# {{ name }}\n"
    "\n"
    "- Repository: {{ url }}\n"
    "- Ref: `{{ ref }}`\n"
    "\n"
    "```\n"
    "{{ state }}\n"
    "```\n"
)


class StateArchiveError(Exception):
    """Raised when the audit repository cannot be updated."""


def render_state_document(target: Target, state: str) -> str:
    """Render one target's masked state as a markdown document."""
    return _STATE_TEMPLATE.render(
        name=target.name,
        url=target.repository,
        ref=target.ref,
        state=mask_vault_data_sources(state).rstrip("\n"),
    )


def commit_message(target_name: str, now: datetime | None = None) -> str:
    timestamp = (now or datetime.now(UTC)).isoformat(timespec="seconds")
    return f"{target_name}: {timestamp}"


class StateArchiver:
    """Writes `<name>.md` into a fresh clone and pushes it when the content changed.

    Re-archiving identical state leaves the worktree clean and produces no commit. Archives
    run one at a time so that each clone sees the previous push.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        log_repository: str,
        username: str,
        token: str,
        author_email: str,
        *,
        ca_bundle: Path | None = None,
        run_command: CommandRunner | None = None,
    ) -> None:
        self._log_repository = log_repository
        self._username = username
        self._token = token
        self._author_email = author_email
        self._ca_bundle = ca_bundle
        self._run_command = run_command or SubprocessCommandRunner()
        self._lock = threading.Lock()

    def archive(self, target: Target, raw_state: str) -> None:
        with self._lock:
            pushed = self._archive(target, raw_state)
        if pushed:
            LOGGER.info("Archived state of %s", target.name)

    def _archive(self, target: Target, raw_state: str) -> bool:
        try:
            remote = authenticated_url(self._log_repository, self._username, self._token)
        except TransportError as exc:
            raise StateArchiveError(str(exc)) from exc

        with tempfile.TemporaryDirectory(prefix=TEMP_DIR_PREFIX) as tmp:
            clone_dir = Path(tmp)
            self._git(
                ("clone", "--quiet", remote, str(clone_dir)), clone_dir, "could not clone repo"
            )
            document = f"{target.name}.md"
            (clone_dir / document).write_text(
                render_state_document(target, raw_state), encoding="utf-8"
            )
            self._git(("add", document), clone_dir, "could not perform git add")
            status = self._git(
                ("status", "--porcelain"), clone_dir, "could not retrieve worktree status"
            )
            if not status.strip():
                LOGGER.info("State of %s is unchanged; nothing to archive", target.name)
                return False
            self._git(
                (
                    "-c",
                    f"user.name={self._username}",
                    "-c",
                    f"user.email={self._author_email}",
                    "commit",
                    "--quiet",
                    "-m",
                    commit_message(target.name),
                ),
                clone_dir,
                "could not perform git commit",
            )
            self._git(
                ("push", "--quiet", "origin", "HEAD"),
                clone_dir,
                "could not push git commit to remote",
            )
        return True

    def _git(self, args: tuple[str, ...], cwd: Path, failure: str) -> str:
        command = git_command(*args, ca_bundle=self._ca_bundle)
        try:
            result = self._run_command(command, cwd, GIT_ENVIRONMENT)
        except CommandNotFoundError as exc:
            raise StateArchiveError(f"{failure}: {exc}") from exc
        if not result.succeeded:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise StateArchiveError(redact_values(f"{failure}: '{detail}'", (self._token,)))
        return result.stdout
