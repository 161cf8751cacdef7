# ocr_runner/ocr/tesseract_ocr.py
from __future__ import annotations
import os
import threading
from typing import Callable, Optional

from ocr_runner import logging
from ocr_runner.errors import EngineUnavailable
from ocr_runner.ocr.extractor import extract_output
from ocr_runner.ocr.model import EngineConfig, RunResult, SkipReason
from ocr_runner.ocr.ports import ContentSink
from ocr_runner.preprocess.normalizer import PillowImageNormalizer
from ocr_runner.preprocess.ports import ImageNormalizerPort
from ocr_runner.process.invocation import OUTPUT_SUFFIX, EngineInvocation
from ocr_runner.process.probe import is_engine_available, require_engine
from ocr_runner.process.supervisor import Supervisor
from ocr_runner.scratch import ScratchBroker, ScratchFile

logger = logging.get_logger(__name__)

SUPPORTED_TYPES = frozenset({
    "image/png",
    "image/jpeg",
    "image/tiff",
    "image/x-ms-bmp",
    "image/gif",
})


class TesseractOCREngine:
    """
    Tesseract-backed OCR engine that implements the OCREngine port.
    - Runs the tesseract executable as a subprocess, one per call
    - Bounds each run by config.timeout and never leaves the process running
    - Streams the result file into a ContentSink
    - Removes every scratch file it created, whatever the outcome

    An engine that is not installed, or an input outside the configured size
    bounds, gives an empty result with ``skipped`` set rather than an error.
    Instances hold only the frozen config and can serve concurrent calls.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 normalizer: Optional[ImageNormalizerPort] = None):
        self.config = config or EngineConfig()
        self.normalizer = normalizer or PillowImageNormalizer()
        logger.info(
            f"TesseractOCREngine initialized with lang={self.config.language} "
            f"psm={self.config.page_seg_mode} timeout={self.config.timeout}s"
        )

    @staticmethod
    def supports_type(media_type: str) -> bool:
        return media_type.split(";")[0].strip().lower() in SUPPORTED_TYPES

    def is_available(self) -> bool:
        return is_engine_available(self.config)

    # ---------- entry points ----------

    def parse_file(self, path: str, sink: ContentSink,
                   cancel: Optional[threading.Event] = None) -> RunResult:
        """OCR an image file that already exists on disk."""
        def stage(broker: ScratchBroker) -> Optional[str]:
            return str(path) if self._within_bounds(os.path.getsize(path), path) else None
        return self._parse(stage, sink, cancel)

    def parse_bytes(self, data: bytes, sink: ContentSink,
                    cancel: Optional[threading.Event] = None) -> RunResult:
        """OCR encoded image bytes (PNG, JPEG, ...); spooled to a scratch file first."""
        def stage(broker: ScratchBroker) -> Optional[str]:
            if not self._within_bounds(len(data), "<bytes>"):
                return None
            scratch = broker.acquire()
            with open(scratch.path, "wb") as f:
                f.write(data)
            return scratch.path
        return self._parse(stage, sink, cancel)

    def parse_image(self, image, sink: ContentSink,
                    cancel: Optional[threading.Event] = None) -> RunResult:
        """OCR an in-memory image (PIL or NumPy); normalized to an RGB PNG first."""
        def stage(broker: ScratchBroker) -> Optional[str]:
            scratch = self.normalizer.write(image, broker)
            return scratch.path if self._within_bounds(scratch.size(), scratch.path) else None
        return self._parse(stage, sink, cancel)

    # ---------- orchestration ----------

    def _parse(self, stage: Callable[[ScratchBroker], Optional[str]], sink: ContentSink,
               cancel: Optional[threading.Event]) -> RunResult:
        try:
            require_engine(self.config)
        except EngineUnavailable as e:
            logger.warning(f"Skipping OCR: {e}")
            return RunResult.skip(SkipReason.ENGINE_UNAVAILABLE)

        with ScratchBroker(self.config.scratch_dir) as broker:
            input_path = stage(broker)
            if input_path is None:
                return RunResult.skip(SkipReason.SIZE_OUT_OF_BOUNDS)
            return self._recognize(input_path, broker, sink, cancel)

    def _recognize(self, input_path: str, broker: ScratchBroker, sink: ContentSink,
                   cancel: Optional[threading.Event]) -> RunResult:
        output_base: ScratchFile = broker.acquire()
        output = broker.derive(output_base, OUTPUT_SUFFIX)
        invocation = EngineInvocation.build(self.config, input_path, output_base.path)

        supervisor = Supervisor(
            self.config.timeout,
            cancel,
            stream_limit=self.config.stream_limit,
            kill_grace=self.config.kill_grace,
        )
        outcome = supervisor.run(invocation)
        text = extract_output(output.path, sink)
        return RunResult(
            text=text,
            exit_code=outcome.exit_code,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            elapsed=outcome.elapsed,
        )

    def _within_bounds(self, size: int, source: str) -> bool:
        if self.config.accepts_size(size):
            return True
        logger.info(
            f"Skipping OCR for {source}: {size} bytes outside "
            f"[{self.config.min_file_size}, {self.config.max_file_size}]"
        )
        return False
