# ocr_runner/scratch.py
from __future__ import annotations
import os
import tempfile
from dataclasses import dataclass
from typing import List, Optional

from ocr_runner import logging

logger = logging.get_logger(__name__)


@dataclass(frozen=True)
class ScratchFile:
    path: str

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def size(self) -> int:
        return os.path.getsize(self.path)

    def delete(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class ScratchBroker:
    """
    Owns the scratch files of a single OCR run.

    Files live in a private directory created on first use; ``release_all``
    deletes every file handed out (or registered) through this broker and then
    the directory itself. Use it as a context manager so release happens on
    every exit path.
    """

    def __init__(self, base_dir: Optional[str] = None, prefix: str = "ocr-"):
        self._base_dir = base_dir
        self._prefix = prefix
        self._dir: Optional[str] = None
        self._files: List[ScratchFile] = []

    def __enter__(self) -> "ScratchBroker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release_all()

    @property
    def directory(self) -> Optional[str]:
        return self._dir

    @property
    def files(self) -> List[ScratchFile]:
        return list(self._files)

    def _ensure_dir(self) -> str:
        if self._dir is None:
            if self._base_dir:
                os.makedirs(self._base_dir, exist_ok=True)
            self._dir = tempfile.mkdtemp(prefix=self._prefix, dir=self._base_dir)
        return self._dir

    def acquire(self, suffix: str = "") -> ScratchFile:
        """Create a new, empty, uniquely named scratch file."""
        fd, path = tempfile.mkstemp(suffix=suffix, dir=self._ensure_dir())
        os.close(fd)
        scratch = ScratchFile(path)
        self._files.append(scratch)
        return scratch

    def derive(self, scratch: ScratchFile, suffix: str) -> ScratchFile:
        """
        Register a sibling of ``scratch`` that some other party will create
        (tesseract writes ``<base>.txt``). Nothing is created here.
        """
        derived = ScratchFile(scratch.path + suffix)
        self._files.append(derived)
        return derived

    def release_all(self) -> None:
        files, self._files = self._files, []
        for scratch in reversed(files):
            try:
                scratch.delete()
            except OSError as e:
                logger.warning(f"Could not delete scratch file {scratch.path}: {e}")

        if self._dir is not None:
            directory, self._dir = self._dir, None
            try:
                os.rmdir(directory)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not remove scratch directory {directory}: {e}")
