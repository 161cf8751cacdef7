# ocr_runner/errors.py
from __future__ import annotations


class OCRError(Exception):
    """Base class for every failure raised by the OCR runner."""


class EngineUnavailable(OCRError):
    """
    The OCR engine could not be invoked.
    Not fatal: callers turn it into an empty, skipped result.
    """


class LaunchFailure(OCRError):
    """The engine executable could not be spawned."""


class EngineTimeout(OCRError):
    """The engine did not exit within the configured timeout and was terminated."""

    def __init__(self, message: str, timeout: float):
        super().__init__(message)
        self.timeout = timeout


class EngineCancelled(OCRError):
    """The caller cancelled the run; the engine was terminated."""


class EncodingFailure(OCRError):
    """An image could not be normalized into an engine input file."""


class SinkRejection(OCRError):
    """The downstream content sink failed while receiving recognized text."""
