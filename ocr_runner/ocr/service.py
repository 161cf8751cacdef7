# ocr_runner/ocr/service.py
from __future__ import annotations
import os
import threading
from typing import Optional

from ocr_runner import logging
from ocr_runner.ocr.ports import OCREngine
from ocr_runner.ocr.sinks import TextCollector

logger = logging.get_logger(__name__)


class OCRService:
    """
    Minimal OCR service: accepts image bytes or an in-memory image and returns
    recognized text. Delegates to the injected engine; skipped runs (engine not
    installed, input outside size bounds) come back as an empty string.
    """

    def __init__(self, engine: OCREngine, *, cap_native_threads: bool = True):
        """
        :param engine: Any implementation of OCREngine (e.g., TesseractOCREngine)
        :param cap_native_threads: If True, default tesseract's OpenMP and OpenCV
                                   to one thread each, so concurrent runs do not
                                   oversubscribe the host.
        """
        self.engine = engine

        if cap_native_threads:
            os.environ.setdefault("OMP_THREAD_LIMIT", "1")
            import cv2 as _cv2
            _cv2.setNumThreads(1)

    def recognize(self, image_bytes: bytes, cancel: Optional[threading.Event] = None) -> str:
        """
        Do OCR on a single encoded image (bytes) and return text.
        """
        sink = TextCollector()
        result = self.engine.parse_bytes(image_bytes, sink, cancel)
        if result.skipped:
            logger.info(f"OCRService.recognize skipped: {result.skipped}")
        return sink.value

    def recognize_image(self, image, cancel: Optional[threading.Event] = None) -> str:
        """
        Do OCR on a PIL image or NumPy array and return text.
        """
        sink = TextCollector()
        result = self.engine.parse_image(image, sink, cancel)
        if result.skipped:
            logger.info(f"OCRService.recognize_image skipped: {result.skipped}")
        return sink.value
