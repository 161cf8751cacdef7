# ocr_runner/preprocess/ports.py
from typing import Protocol

from ocr_runner.scratch import ScratchBroker, ScratchFile


class ImageNormalizerPort(Protocol):
    """
    Normalization capability: takes an in-memory image, returns engine-ready PNG bytes
    or writes them to a scratch file.
    """
    def normalize(self, image) -> bytes: ...

    def write(self, image, broker: ScratchBroker) -> ScratchFile: ...
