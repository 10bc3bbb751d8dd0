"""External command execution with cancellation-aware shutdown."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)

DEFAULT_GRACE_SECONDS = 3.0
_POLL_SECONDS = 0.5


class CommandNotFoundError(Exception):
    """Raised when the executable of a command does not exist."""


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one external command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):  # pylint: disable=too-few-public-methods
    """Callable running one command to completion and capturing both streams."""

    def __call__(
        self,
        command: tuple[str, ...],
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult: ...


class SubprocessCommandRunner:  # pylint: disable=too-few-public-methods
    """Real command runner backed by `subprocess.Popen`.

    When the cancellation event is set while a command is in flight, the process
    is given `grace_seconds` to finish on its own, then terminated, then killed.
    """

    def __init__(
        self,
        cancel_event: threading.Event | None = None,
        *,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
    ) -> None:
        self._cancel_event = cancel_event or threading.Event()
        self._grace_seconds = grace_seconds

    def __call__(
        self,
        command: tuple[str, ...],
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        merged_env = dict(os.environ)
        if env:
            merged_env.update(env)
        try:
            process = subprocess.Popen(  # pylint: disable=consider-using-with
                list(command),
                cwd=cwd,
                env=merged_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            raise CommandNotFoundError(f"Command not found: {command[0]}") from exc

        stdout, stderr = self._wait(process, command)
        return CommandResult(returncode=process.returncode, stdout=stdout, stderr=stderr)

    def _wait(self, process: subprocess.Popen[str], command: tuple[str, ...]) -> tuple[str, str]:
        deadline: float | None = None
        terminated = False
        while True:
            try:
                return process.communicate(timeout=_POLL_SECONDS)
            except subprocess.TimeoutExpired:
                pass
            if not self._cancel_event.is_set():
                continue
            now = time.monotonic()
            if deadline is None:
                deadline = now + self._grace_seconds
                continue
            if now < deadline:
                continue
            if not terminated:
                LOGGER.warning("Terminating `%s` after cancellation grace period", command[0])
                process.terminate()
                terminated = True
                deadline = now + self._grace_seconds
            else:
                LOGGER.warning("Killing `%s` after it ignored termination", command[0])
                process.kill()
                return process.communicate()
