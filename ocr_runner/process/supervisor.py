from __future__ import annotations
import threading
import time
from concurrent import futures
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from ocr_runner import logging
from ocr_runner.process.drain import StreamDrain
from ocr_runner.process.invocation import EngineInvocation
from ocr_runner.process.launcher import ProcessHandle, launch
from ocr_runner.process.watchdog import Watchdog

logger = logging.get_logger(__name__)


@dataclass(frozen=True)
class ProcessOutcome:
    exit_code: int
    stdout: str
    stderr: str
    elapsed: float


class Supervisor:
    """
    Runs one engine invocation to a terminal state.

    Per run: one executor with a stdout drain, a stderr drain and the
    watchdog's waiter. Drains are started before the bounded wait begins; the
    process is never left running when ``run`` returns or raises.
    """

    def __init__(
        self,
        timeout: float,
        cancel: Optional[threading.Event] = None,
        *,
        stream_limit: int = 64 * 1024,
        kill_grace: float = 5.0,
    ):
        self.timeout = timeout
        self.cancel = cancel
        self.stream_limit = stream_limit
        self.kill_grace = kill_grace
        self.watchdog: Optional[Watchdog] = None

    def run(self, invocation: EngineInvocation) -> ProcessOutcome:
        t0 = time.perf_counter()
        handle = launch(invocation)

        pool = ThreadPoolExecutor(max_workers=3, thread_name_prefix=f"ocr-{handle.pid}")
        out = StreamDrain("OCR MSG", handle.stdout, self.stream_limit)
        err = StreamDrain("OCR ERROR", handle.stderr, self.stream_limit)
        self.watchdog = Watchdog(self.timeout, self.cancel, kill_grace=self.kill_grace)
        drains = []
        try:
            drains.append(pool.submit(out))
            drains.append(pool.submit(err))
            exit_code = self.watchdog.watch(handle, pool)
        finally:
            handle.terminate(grace=self.kill_grace)
            self._join(drains, handle)
            pool.shutdown(wait=False)

        dt = time.perf_counter() - t0
        if exit_code != 0:
            logger.warning(
                f"OCR engine pid={handle.pid} exited with code {exit_code}: "
                f"{err.text().strip()[:300]}"
            )
        else:
            logger.info(f"OCR engine pid={handle.pid} finished in {dt:.2f}s")
        return ProcessOutcome(exit_code=exit_code, stdout=out.text(), stderr=err.text(), elapsed=dt)

    def _join(self, drains, handle: ProcessHandle) -> None:
        done, pending = futures.wait(drains, timeout=self.kill_grace)
        if not pending:
            return

        # Something the engine spawned still holds its pipes open
        logger.warning(
            f"Output streams of OCR engine pid={handle.pid} still open after "
            f"{self.kill_grace}s; killing its process group"
        )
        handle.kill_group()
        done, pending = futures.wait(pending, timeout=self.kill_grace)
        if pending:
            logger.warning(
                f"Output streams of OCR engine pid={handle.pid} still open after kill; "
                f"leaving {len(pending)} drain(s) behind"
            )
