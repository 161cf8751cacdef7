"""tests/conftest.py — Shared fixtures: stub tesseract executables and sample images."""
import os
import stat
import textwrap
from pathlib import Path

import pytest
from PIL import Image

from ocr_runner.ocr.model import EngineConfig

posix_only = pytest.mark.skipif(os.name != "posix", reason="stub engines are POSIX shell scripts")

_STUB = """\
#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "tesseract 3.04.01 (stub)"
  exit 0
fi
echo "$@" >> "{calls}"
{body}
"""


class FakeEngine:
    """A shell script named ``tesseract`` standing in for the real engine."""

    def __init__(self, root: Path, body: str):
        self.dir = root / "bin"
        self.dir.mkdir(parents=True, exist_ok=True)
        self.calls = root / "calls.log"
        self.scratch = root / "scratch"
        self.scratch.mkdir(exist_ok=True)
        self.path = self.dir / "tesseract"
        self.path.write_text(_STUB.format(calls=self.calls, body=textwrap.dedent(body)))
        self.path.chmod(self.path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    @property
    def invocations(self):
        if not self.calls.exists():
            return []
        return [line.split() for line in self.calls.read_text().splitlines()]

    def config(self, **kwargs) -> EngineConfig:
        kwargs.setdefault("timeout", 10)
        kwargs.setdefault("kill_grace", 1.0)
        return EngineConfig(
            tesseract_path=str(self.dir),
            scratch_dir=str(self.scratch),
            **kwargs,
        )

    def scratch_leftovers(self):
        return sorted(p.name for p in self.scratch.rglob("*"))


@pytest.fixture
def fake_tesseract(tmp_path):
    def make(body: str = "") -> FakeEngine:
        return FakeEngine(tmp_path, body)
    return make


@pytest.fixture
def png_file(tmp_path) -> Path:
    path = tmp_path / "page.png"
    Image.new("RGB", (40, 20), (255, 255, 255)).save(path, "PNG")
    return path


@pytest.fixture
def missing_engine_config(tmp_path) -> EngineConfig:
    (tmp_path / "scratch").mkdir(exist_ok=True)
    return EngineConfig(
        tesseract_path=str(tmp_path / "no-such-dir"),
        scratch_dir=str(tmp_path / "scratch"),
    )
