"""Run execution domain exports."""

from .reconciliation_run_use_case import (
    CANCELLED_MESSAGE,
    RunExecutionError,
    execute_reconciliation_run,
)
from .run_contracts import RunContext, RunRequest, RunResult, TargetExecutionError, TargetOutcome

__all__ = [
    "RunRequest",
    "RunContext",
    "RunResult",
    "TargetOutcome",
    "TargetExecutionError",
    "CANCELLED_MESSAGE",
    "RunExecutionError",
    "execute_reconciliation_run",
]
