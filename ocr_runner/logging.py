# ocr_runner/logging.py
from __future__ import annotations
import logging
import os
from typing import Optional, Union

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%H:%M:%S"


def configure(level: Optional[Union[int, str]] = None) -> None:
    """
    Install the default handler once. Level falls back to $OCR_LOG_LEVEL, then INFO.
    """
    if level is None:
        level = os.environ.get("OCR_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = level.upper()

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_FORMAT, datefmt=_DATEFMT)
    else:
        root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
