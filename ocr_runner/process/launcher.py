from __future__ import annotations
import os
import signal
import subprocess
import threading
from typing import IO, Optional

from ocr_runner import logging
from ocr_runner.errors import LaunchFailure
from ocr_runner.process.invocation import EngineInvocation

logger = logging.get_logger(__name__)

_POSIX = os.name == "posix"


class ProcessStatus:
    PENDING = "pending"
    EXITED = "exited"
    TERMINATED = "terminated"


class ProcessHandle:
    """
    A live engine process owned by exactly one run.

    On POSIX the engine is the leader of its own process group, so termination
    reaches anything it spawned as well. ``terminate`` acts at most once.
    """

    def __init__(self, process: subprocess.Popen, invocation: EngineInvocation):
        self._process = process
        self.invocation = invocation
        self._lock = threading.Lock()
        self._terminated = False

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def stdout(self) -> IO[bytes]:
        return self._process.stdout

    @property
    def stderr(self) -> IO[bytes]:
        return self._process.stderr

    @property
    def returncode(self) -> Optional[int]:
        return self._process.poll()

    @property
    def status(self) -> str:
        if self._terminated:
            return ProcessStatus.TERMINATED
        if self._process.poll() is None:
            return ProcessStatus.PENDING
        return ProcessStatus.EXITED

    def is_running(self) -> bool:
        return self._process.poll() is None

    def wait(self, timeout: Optional[float] = None) -> int:
        return self._process.wait(timeout=timeout)

    def terminate(self, grace: float = 5.0) -> bool:
        """
        Stop the process: SIGTERM, then SIGKILL if it is still alive after ``grace``
        seconds. Returns True if this call did the terminating.
        """
        with self._lock:
            if self._terminated or not self.is_running():
                return False
            self._terminated = True

        logger.warning(f"Terminating OCR engine pid={self.pid}")
        self._signal(signal.SIGTERM if _POSIX else None)
        try:
            self._process.wait(timeout=grace)
        except subprocess.TimeoutExpired:
            logger.warning(f"OCR engine pid={self.pid} ignored SIGTERM; killing")
            self._signal(signal.SIGKILL if _POSIX else None, kill=True)
            self._process.wait()
        return True

    def kill_group(self) -> None:
        """
        SIGKILL everything left in the engine's process group, even after the
        engine itself has exited. No-op off POSIX.
        """
        if not _POSIX:
            return
        logger.warning(f"Killing process group of OCR engine pid={self.pid}")
        try:
            os.killpg(self._process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

    def _signal(self, sig, kill: bool = False) -> None:
        if _POSIX:
            try:
                os.killpg(self._process.pid, sig)
            except ProcessLookupError:
                pass
        elif kill:
            self._process.kill()
        else:
            self._process.terminate()


def launch(invocation: EngineInvocation) -> ProcessHandle:
    """
    Start the engine with stdin closed and stdout/stderr piped.
    Raises LaunchFailure if the executable cannot be spawned.
    """
    try:
        process = subprocess.Popen(
            list(invocation.argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=invocation.environment(),
            start_new_session=_POSIX,
        )
    except OSError as e:
        raise LaunchFailure(f"Could not start {invocation.executable!r}: {e}") from e

    logger.info(f"Started OCR engine pid={process.pid}: {' '.join(invocation.argv)}")
    return ProcessHandle(process, invocation)
