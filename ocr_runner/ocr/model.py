from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional, Dict, Any, Mapping

# Largest input size accepted by default (Integer.MAX_VALUE bytes)
DEFAULT_MAX_FILE_SIZE = 2**31 - 1

_ENV_KEYS = {
    "OCR_TESSERACT_PATH": "tesseract_path",
    "OCR_LANGUAGE": "language",
    "OCR_PSM": "page_seg_mode",
    "OCR_MIN_FILE_SIZE": "min_file_size",
    "OCR_MAX_FILE_SIZE": "max_file_size",
    "OCR_TIMEOUT": "timeout",
    "OCR_THREAD_LIMIT": "thread_limit",
    "OCR_SCRATCH_DIR": "scratch_dir",
}

_INT_FIELDS = {"min_file_size", "max_file_size", "thread_limit", "stream_limit"}
_FLOAT_FIELDS = {"timeout", "kill_grace", "probe_timeout"}


@dataclass(frozen=True)
class EngineConfig:
    tesseract_path: str = ""          # empty: find tesseract on PATH
    language: str = "eng"
    page_seg_mode: str = "1"
    min_file_size: int = 0
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    timeout: float = 120

    thread_limit: Optional[int] = None
    scratch_dir: Optional[str] = None
    stream_limit: int = 64 * 1024
    kill_grace: float = 5.0
    probe_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.min_file_size < 0:
            raise ValueError("min_file_size must be >= 0")
        if self.min_file_size > self.max_file_size:
            raise ValueError("min_file_size must be <= max_file_size")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.thread_limit is not None and self.thread_limit < 1:
            raise ValueError("thread_limit must be >= 1 when provided")
        if self.stream_limit < 0:
            raise ValueError("stream_limit must be >= 0")
        if self.kill_grace < 0:
            raise ValueError("kill_grace must be >= 0")
        if self.probe_timeout <= 0:
            raise ValueError("probe_timeout must be > 0")

    def accepts_size(self, size: int) -> bool:
        return self.min_file_size <= size <= self.max_file_size

    def to_kwargs(self) -> Dict[str, Any]:
        return dict(
            tesseract_path=self.tesseract_path,
            language=self.language,
            page_seg_mode=self.page_seg_mode,
            min_file_size=self.min_file_size,
            max_file_size=self.max_file_size,
            timeout=self.timeout,
            thread_limit=self.thread_limit,
            scratch_dir=self.scratch_dir,
            stream_limit=self.stream_limit,
            kill_grace=self.kill_grace,
            probe_timeout=self.probe_timeout,
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "EngineConfig":
        """
        Build a config from field names to (possibly string) values.
        Unknown keys raise ValueError; empty strings mean "use the default".
        """
        kwargs: Dict[str, Any] = {}
        for key, raw in values.items():
            if key not in cls.__dataclass_fields__:
                raise ValueError(f"Unknown EngineConfig field: {key}")
            if isinstance(raw, str):
                raw = raw.strip()
                if raw == "" and key != "tesseract_path":
                    continue
                if key in _INT_FIELDS:
                    raw = int(raw)
                elif key in _FLOAT_FIELDS:
                    raw = float(raw)
            kwargs[key] = raw
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        env = os.environ if environ is None else environ
        values = {field: env[name] for name, field in _ENV_KEYS.items() if name in env}
        return cls.from_mapping(values)


class SkipReason:
    ENGINE_UNAVAILABLE = "engine-unavailable"
    SIZE_OUT_OF_BOUNDS = "size-out-of-bounds"


@dataclass(frozen=True)
class RunResult:
    text: str = ""
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    skipped: Optional[str] = None
    elapsed: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.text == ""

    @classmethod
    def skip(cls, reason: str) -> "RunResult":
        return cls(skipped=reason)
