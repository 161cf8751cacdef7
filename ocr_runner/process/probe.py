from __future__ import annotations
import subprocess

from ocr_runner import logging
from ocr_runner.errors import EngineUnavailable
from ocr_runner.ocr.model import EngineConfig
from ocr_runner.process.invocation import EngineInvocation

logger = logging.get_logger(__name__)


def is_engine_available(config: EngineConfig) -> bool:
    """
    Check whether the engine can be invoked at all.
    Any exit code counts as available; only a failed spawn (or a hung probe) does not.
    """
    invocation = EngineInvocation.probe(config)
    try:
        subprocess.run(
            list(invocation.argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=invocation.environment(),
            timeout=config.probe_timeout,
            check=False,
        )
    except OSError as e:
        logger.info(f"OCR engine not invocable at {invocation.executable!r}: {e}")
        return False
    except subprocess.TimeoutExpired:
        logger.warning(
            f"OCR engine probe {invocation.executable!r} did not answer within "
            f"{config.probe_timeout}s; treating as unavailable"
        )
        return False
    return True


def require_engine(config: EngineConfig) -> None:
    if not is_engine_available(config):
        raise EngineUnavailable(
            f"{EngineInvocation.executable_for(config)!r} is not installed or not executable"
        )
