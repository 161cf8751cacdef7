from __future__ import annotations
from typing import IO, Optional

from ocr_runner import logging

logger = logging.get_logger(__name__)

CHUNK_SIZE = 1024


class StreamDrain:
    """
    Reads one output stream of the engine until EOF so the child never blocks
    on a full pipe.

    Only the last ``limit`` bytes are kept. Read errors end the drain quietly;
    what was captured so far stays available through ``data``/``text()``.
    Instances are callables meant to be submitted to an executor.
    """

    def __init__(self, label: str, stream: Optional[IO[bytes]], limit: int = 64 * 1024):
        self.label = label
        self._stream = stream
        self._limit = max(0, int(limit))
        self._buffer = bytearray()
        self.total_bytes = 0
        self.truncated = False
        self.error: Optional[BaseException] = None

    def __call__(self) -> "StreamDrain":
        stream = self._stream
        if stream is None:
            return self
        try:
            read = getattr(stream, "read1", stream.read)
            for chunk in iter(lambda: read(CHUNK_SIZE), b""):
                self._keep(chunk)
        except (OSError, ValueError) as e:
            self.error = e
            logger.debug(f"[{self.label}] stream drain stopped: {e}")
        finally:
            try:
                stream.close()
            except OSError:
                pass

        if self._buffer:
            logger.debug(f"[{self.label}] {self.text().rstrip()}")
        return self

    def _keep(self, chunk: bytes) -> None:
        self.total_bytes += len(chunk)
        self._buffer.extend(chunk)
        overflow = len(self._buffer) - self._limit
        if overflow > 0:
            del self._buffer[:overflow]
            self.truncated = True

    @property
    def data(self) -> bytes:
        return bytes(self._buffer)

    def text(self) -> str:
        return self._buffer.decode("utf-8", errors="replace")
