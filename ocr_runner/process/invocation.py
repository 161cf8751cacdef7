from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from ocr_runner.ocr.model import EngineConfig

ENGINE_NAME = "tesseract"
# Tesseract appends this to the output base it is given
OUTPUT_SUFFIX = ".txt"


@dataclass(frozen=True)
class EngineInvocation:
    """
    A fully materialized engine command: executable, ordered arguments and the
    environment variables to add on top of the parent environment.
    """
    executable: str
    args: Tuple[str, ...] = ()
    env_overlay: Mapping[str, str] = field(default_factory=dict)

    @staticmethod
    def executable_for(config: EngineConfig) -> str:
        if config.tesseract_path:
            return os.path.join(config.tesseract_path, ENGINE_NAME)
        return ENGINE_NAME

    @staticmethod
    def env_overlay_for(config: EngineConfig) -> Dict[str, str]:
        overlay: Dict[str, str] = {}
        if config.tesseract_path:
            overlay["TESSDATA_PREFIX"] = config.tesseract_path
        if config.thread_limit is not None:
            overlay["OMP_THREAD_LIMIT"] = str(config.thread_limit)
        return overlay

    @classmethod
    def build(cls, config: EngineConfig, input_path: str, output_base: str) -> "EngineInvocation":
        return cls(
            executable=cls.executable_for(config),
            args=(
                str(input_path),
                str(output_base),
                "-l", config.language,
                "-psm", str(config.page_seg_mode),
            ),
            env_overlay=cls.env_overlay_for(config),
        )

    @classmethod
    def probe(cls, config: EngineConfig) -> "EngineInvocation":
        return cls(
            executable=cls.executable_for(config),
            args=("--version",),
            env_overlay=cls.env_overlay_for(config),
        )

    @property
    def argv(self) -> Tuple[str, ...]:
        return (self.executable,) + tuple(self.args)

    def environment(self, base: Optional[Mapping[str, str]] = None) -> Optional[Dict[str, str]]:
        """
        Environment for the child process. ``None`` means "inherit unchanged".
        """
        if not self.env_overlay:
            return None
        env = dict(os.environ if base is None else base)
        env.update(self.env_overlay)
        return env

    @staticmethod
    def output_file(output_base: str) -> str:
        return output_base + OUTPUT_SUFFIX
