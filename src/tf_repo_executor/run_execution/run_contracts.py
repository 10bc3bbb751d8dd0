"""Run execution entities."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from tf_repo_executor.configuration.runtime_settings import RuntimeSettings
from tf_repo_executor.process_execution import CommandRunner
from tf_repo_executor.provisioning import TerraformDriver
from tf_repo_executor.redaction import Redactor
from tf_repo_executor.secrets_access import KvSchemaResolver, VaultKvClient
from tf_repo_executor.source_fetching import RepositoryFetcher


class TargetExecutionError(Exception):
    """A per-target failure, already stripped of secret values."""

    def __init__(self, target_name: str, message: str) -> None:
        super().__init__(f"{target_name}: {message}")
        self.target_name = target_name
        self.message = message


@dataclass(frozen=True)
class RunRequest:
    """Input contract for executing one run."""

    settings: RuntimeSettings
    session_id: str = ""


@dataclass(frozen=True)
class RunContext:  # pylint: disable=too-many-instance-attributes
    """Run-scoped collaborators shared read-only by every target worker."""

    settings: RuntimeSettings
    secrets: VaultKvClient
    schemas: KvSchemaResolver
    redactor: Redactor
    run_command: CommandRunner
    cancel_event: threading.Event
    fetcher: RepositoryFetcher
    driver: TerraformDriver


@dataclass(frozen=True)
class TargetOutcome:
    """Success, or the cause of one target's failure."""

    target_name: str
    error: TargetExecutionError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RunResult:
    """Aggregated outcome; every target is attempted whatever the others do."""

    outcomes: tuple[TargetOutcome, ...]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.succeeded)

    @property
    def succeeded(self) -> bool:
        return self.failed_count == 0

    def failure_message(self) -> str:
        return f"errors encountered within {self.failed_count}/{self.total} targets"
