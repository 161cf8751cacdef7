from __future__ import annotations
import threading
import time
from concurrent import futures
from typing import Optional

from ocr_runner import logging
from ocr_runner.errors import EngineCancelled, EngineTimeout
from ocr_runner.process.launcher import ProcessHandle

logger = logging.get_logger(__name__)


class WatchState:
    STARTED = "started"
    WAITING = "waiting"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    INTERRUPTED = "interrupted"


class Watchdog:
    """
    Bounds the wait for one engine process.

    A waiter on the run's executor blocks on process exit; the calling thread
    waits on the waiter for at most ``timeout`` seconds. When the bound passes,
    or ``cancel`` is set, or the calling thread gets KeyboardInterrupt, the
    process is terminated before control returns.
    """

    def __init__(
        self,
        timeout: float,
        cancel: Optional[threading.Event] = None,
        *,
        kill_grace: float = 5.0,
        poll_interval: float = 0.05,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.timeout = timeout
        self.cancel = cancel
        self.kill_grace = kill_grace
        self.poll_interval = poll_interval
        self.state = WatchState.STARTED

    def watch(self, handle: ProcessHandle, pool: futures.Executor) -> int:
        """Wait for the engine; returns its exit code (not a success signal)."""
        waiter = pool.submit(handle.wait)
        self.state = WatchState.WAITING
        deadline = time.monotonic() + self.timeout

        try:
            while True:
                if self.cancel is not None and self.cancel.is_set():
                    self._stop(handle, WatchState.INTERRUPTED)
                    raise EngineCancelled(f"OCR engine pid={handle.pid} cancelled by caller")

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._stop(handle, WatchState.TIMED_OUT)
                    raise EngineTimeout(
                        f"OCR engine pid={handle.pid} timed out after {self.timeout}s",
                        self.timeout,
                    )

                step = remaining if self.cancel is None else min(remaining, self.poll_interval)
                try:
                    exit_code = waiter.result(timeout=step)
                except futures.TimeoutError:
                    continue

                self.state = WatchState.COMPLETED
                return exit_code
        except KeyboardInterrupt:
            self._stop(handle, WatchState.INTERRUPTED)
            raise

    def _stop(self, handle: ProcessHandle, state: str) -> None:
        self.state = state
        handle.terminate(grace=self.kill_grace)
