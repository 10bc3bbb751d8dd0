"""Progress heartbeat for long-running provisioning steps."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from types import TracebackType

LOGGER = logging.getLogger(__name__)


class Heartbeat:
    """Emit a progress line at a fixed interval while one step is in flight.

    Keeps an enclosing pipeline's idle-output timeout from firing. The timer is
    stopped when the `with` block exits, whether the step succeeded or raised.
    """

    def __init__(
        self,
        label: str,
        interval_seconds: float,
        *,
        emit: Callable[[str], None] | None = None,
    ) -> None:
        self._label = label
        self._interval_seconds = interval_seconds
        self._emit = emit or LOGGER.info
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None
        self._started_at = 0.0

    def __enter__(self) -> Heartbeat:
        self._started_at = time.monotonic()
        self._thread = threading.Thread(
            target=self._beat, name=f"heartbeat-{self._label}", daemon=True
        )
        self._thread.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _beat(self) -> None:
        while not self._stopped.wait(self._interval_seconds):
            elapsed = int(time.monotonic() - self._started_at)
            self._emit(f"Still running {self._label} ({elapsed}s elapsed)")
