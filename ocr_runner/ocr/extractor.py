from __future__ import annotations
import os
from typing import List

from ocr_runner import logging
from ocr_runner.errors import SinkRejection
from ocr_runner.ocr.ports import ContentSink

logger = logging.get_logger(__name__)

CHUNK_SIZE = 1024


def extract_output(path: str, sink: ContentSink, chunk_size: int = CHUNK_SIZE) -> str:
    """
    Stream the engine's result file into ``sink`` and return the text.

    A missing file means the engine found nothing to recognize: no events are
    emitted and the result is empty. Otherwise the sink receives
    begin_region, the content in ``chunk_size`` pieces, then end_region.
    The file is closed before any sink error propagates.
    """
    if not os.path.exists(path):
        logger.info(f"No OCR output at {path}; nothing recognized")
        return ""

    parts: List[str] = []
    with open(path, "r", encoding="utf-8", errors="replace", newline="") as reader:
        _emit(sink.begin_region)
        for chunk in iter(lambda: reader.read(chunk_size), ""):
            _emit(sink.text, chunk)
            parts.append(chunk)
        _emit(sink.end_region)

    text = "".join(parts)
    logger.info(f"Extracted {len(text)} chars from {path}")
    return text


def _emit(event, *args) -> None:
    try:
        event(*args)
    except Exception as e:
        name = getattr(event, "__name__", "event")
        raise SinkRejection(f"Content sink rejected {name}: {e}") from e
