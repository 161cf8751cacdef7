from typing import Optional, Protocol
import threading

from ocr_runner.ocr.model import RunResult


class ContentSink(Protocol):
    """
    Receiver of recognized text (port).
    Events arrive as: begin_region, text*, end_region.
    Chunk boundaries carry no meaning.
    """
    def begin_region(self) -> None: ...

    def text(self, chunk: str) -> None: ...

    def end_region(self) -> None: ...


class OCREngine(Protocol):
    """
    OCR Engine interface (port).
    Implementations run recognition on an input file and stream text into a sink.
    """
    def is_available(self) -> bool:
        ...

    def parse_file(self, path: str, sink: ContentSink,
                   cancel: Optional[threading.Event] = None) -> RunResult:
        ...

    def parse_bytes(self, data: bytes, sink: ContentSink,
                    cancel: Optional[threading.Event] = None) -> RunResult:
        ...

    def parse_image(self, image, sink: ContentSink,
                    cancel: Optional[threading.Event] = None) -> RunResult:
        ...
