"""Tests for launching, draining and bounding one engine process."""
import os
import signal
import threading
import time

import pytest

from conftest import posix_only
from ocr_runner.errors import EngineCancelled, EngineTimeout, LaunchFailure
from ocr_runner.ocr.model import EngineConfig
from ocr_runner.process.invocation import EngineInvocation
from ocr_runner.process.launcher import ProcessStatus, launch
from ocr_runner.process.supervisor import Supervisor
from ocr_runner.process.watchdog import Watchdog, WatchState

pytestmark = posix_only


def shell(script: str) -> EngineInvocation:
    return EngineInvocation(executable="/bin/sh", args=("-c", script))


def pid_gone(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    return False


class TestLaunch:
    def test_missing_executable(self, tmp_path):
        inv = EngineInvocation(executable=str(tmp_path / "nope"), args=())
        with pytest.raises(LaunchFailure):
            launch(inv)

    def test_stdin_is_closed(self):
        handle = launch(shell("cat; echo done"))
        assert handle.wait(timeout=5) == 0
        assert handle.stdout.read() == b"done\n"
        handle.stdout.close()
        handle.stderr.close()

    def test_env_overlay(self, tmp_path):
        cfg = EngineConfig(tesseract_path=str(tmp_path))
        inv = EngineInvocation("/bin/sh", ("-c", "echo $TESSDATA_PREFIX"),
                               EngineInvocation.env_overlay_for(cfg))
        outcome = Supervisor(5).run(inv)
        assert outcome.stdout.strip() == str(tmp_path)

    def test_terminate_once(self):
        handle = launch(shell("exec sleep 30"))
        assert handle.status == ProcessStatus.PENDING
        assert handle.terminate(grace=1) is True
        assert handle.terminate(grace=1) is False
        assert handle.status == ProcessStatus.TERMINATED
        assert pid_gone(handle.pid)
        handle.stdout.close()
        handle.stderr.close()


class TestSupervisor:
    def test_completed(self):
        sup = Supervisor(5)
        outcome = sup.run(shell("echo hello; echo oops >&2"))
        assert outcome.exit_code == 0
        assert outcome.stdout == "hello\n"
        assert outcome.stderr == "oops\n"
        assert sup.watchdog.state == WatchState.COMPLETED

    def test_nonzero_exit_is_returned_not_raised(self):
        outcome = Supervisor(5).run(shell("exit 4"))
        assert outcome.exit_code == 4

    def test_large_output_does_not_deadlock(self):
        # far beyond any OS pipe buffer, on both streams
        script = "head -c 2000000 /dev/zero; head -c 2000000 /dev/zero >&2; echo end"
        outcome = Supervisor(20, stream_limit=16).run(shell(script))
        assert outcome.exit_code == 0
        assert outcome.stdout.endswith("end\n")
        assert len(outcome.stderr) == 16

    def test_timeout_terminates(self, tmp_path):
        pid_file = tmp_path / "pid"
        sup = Supervisor(1, kill_grace=1)
        t0 = time.monotonic()
        with pytest.raises(EngineTimeout) as info:
            sup.run(shell(f"echo $$ > {pid_file}; exec sleep 30"))
        assert time.monotonic() - t0 < 10
        assert info.value.timeout == 1
        assert sup.watchdog.state == WatchState.TIMED_OUT
        assert pid_gone(int(pid_file.read_text()))

    def test_sigterm_ignored_escalates_to_kill(self, tmp_path):
        pid_file = tmp_path / "pid"
        script = f"trap '' TERM; echo $$ > {pid_file}; while :; do sleep 0.1; done"
        with pytest.raises(EngineTimeout):
            Supervisor(1, kill_grace=0.5).run(shell(script))
        assert pid_gone(int(pid_file.read_text()))

    def test_grandchildren_are_terminated(self, tmp_path):
        pid_file = tmp_path / "pid"
        script = f"sleep 30 & echo $! > {pid_file}; wait"
        t0 = time.monotonic()
        with pytest.raises(EngineTimeout):
            Supervisor(1, kill_grace=1).run(shell(script))
        assert time.monotonic() - t0 < 10
        pid = int(pid_file.read_text())
        for _ in range(50):
            if pid_gone(pid):
                break
            time.sleep(0.1)
        # reaped by init or a zombie at worst; never still sleeping
        assert pid_gone(pid) or _is_zombie(pid)

    def test_background_child_is_killed_after_normal_exit(self, tmp_path):
        pid_file = tmp_path / "pid"
        script = f"sleep 30 & echo $! > {pid_file}; exit 0"
        t0 = time.monotonic()
        outcome = Supervisor(5, kill_grace=1).run(shell(script))
        assert outcome.exit_code == 0
        assert time.monotonic() - t0 < 10
        pid = int(pid_file.read_text())
        for _ in range(50):
            if pid_gone(pid):
                break
            time.sleep(0.1)
        assert pid_gone(pid) or _is_zombie(pid)

    @pytest.mark.skipif(
        signal.getsignal(signal.SIGINT) is not signal.default_int_handler,
        reason="SIGINT is not delivered as KeyboardInterrupt",
    )
    def test_keyboard_interrupt_terminates(self, tmp_path):
        pid_file = tmp_path / "pid"
        timer = threading.Timer(0.3, lambda: os.kill(os.getpid(), signal.SIGINT))
        sup = Supervisor(30, kill_grace=1)
        timer.start()
        try:
            with pytest.raises(KeyboardInterrupt):
                sup.run(shell(f"echo $$ > {pid_file}; exec sleep 30"))
        finally:
            timer.cancel()
        assert sup.watchdog.state == WatchState.INTERRUPTED
        assert pid_gone(int(pid_file.read_text()))

    def test_cancel_event(self, tmp_path):
        pid_file = tmp_path / "pid"
        cancel = threading.Event()
        timer = threading.Timer(0.3, cancel.set)
        timer.start()
        sup = Supervisor(30, cancel, kill_grace=1)
        try:
            with pytest.raises(EngineCancelled):
                sup.run(shell(f"echo $$ > {pid_file}; exec sleep 30"))
        finally:
            timer.cancel()
        assert cancel.is_set()
        assert sup.watchdog.state == WatchState.INTERRUPTED
        assert pid_gone(int(pid_file.read_text()))

    def test_cancel_before_start(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(EngineCancelled):
            Supervisor(30, cancel, kill_grace=1).run(shell("exec sleep 30"))


class TestWatchdog:
    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            Watchdog(0)

    def test_initial_state(self):
        assert Watchdog(1).state == WatchState.STARTED


def _is_zombie(pid: int) -> bool:
    try:
        with open(f"/proc/{pid}/stat") as f:
            return f.read().split(")")[-1].split()[0] == "Z"
    except OSError:
        return True
