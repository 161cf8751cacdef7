# ocr_runner/preprocess/normalizer.py
import io
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image

from ocr_runner.errors import EncodingFailure
from ocr_runner.logging import get_logger
from ocr_runner.scratch import ScratchBroker, ScratchFile

logger = get_logger("PillowImageNormalizer")

ImageLike = Union[Image.Image, np.ndarray]

BACKGROUND = (255, 255, 255)


class PillowImageNormalizer:
    """
    Concrete implementation of ImageNormalizerPort using PIL + OpenCV.
    Any in-memory image → true-color RGB PNG, the one format handed to the engine.

    PIL images may be in any mode. NumPy arrays follow OpenCV conventions:
    HxW gray, HxWx3 BGR, HxWx4 BGRA.
    """

    def __init__(self, *, background: Tuple[int, int, int] = BACKGROUND, dpi: int = 300):
        self.background = tuple(background)
        self.dpi = dpi

    # ---------- internal helpers ----------

    @staticmethod
    def _size(image: ImageLike) -> Tuple[int, int]:
        if isinstance(image, np.ndarray):
            if image.ndim not in (2, 3):
                raise EncodingFailure(f"Unsupported array shape {image.shape}")
            return int(image.shape[1]), int(image.shape[0])
        if isinstance(image, Image.Image):
            return image.size
        raise EncodingFailure(f"Unsupported image type: {type(image).__name__}")

    def _array_to_pil(self, image: np.ndarray) -> Image.Image:
        if image.dtype != np.uint8:
            image = np.clip(image, 0, 255).astype(np.uint8)

        if image.ndim == 2:
            return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_GRAY2RGB))

        channels = image.shape[2]
        if channels == 1:
            return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_GRAY2RGB))
        if channels == 3:
            return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        if channels == 4:
            return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA))
        raise EncodingFailure(f"Unsupported channel count: {channels}")

    def _render(self, image: ImageLike) -> Image.Image:
        """Fresh RGB canvas of the source size with the source drawn onto it."""
        w, h = self._size(image)
        if w <= 0 or h <= 0:
            raise EncodingFailure(f"Invalid image dimensions {w}x{h}")

        src = self._array_to_pil(image) if isinstance(image, np.ndarray) else image
        canvas = Image.new("RGB", (w, h), self.background)

        # Palette/alpha images: flatten against the background
        if src.mode in ("RGBA", "RGBa", "LA", "La", "PA") or (src.mode == "P" and "transparency" in src.info):
            # Premultiplied modes only unpremultiply to their straight-alpha twin
            if src.mode == "La":
                src = src.convert("LA")
            rgba = src.convert("RGBA")
            canvas.paste(rgba, (0, 0), mask=rgba.split()[3])
        else:
            canvas.paste(src.convert("RGB"), (0, 0))
        return canvas

    # ---------- main API ----------

    def normalize(self, image: ImageLike) -> bytes:
        """
        Input: PIL image or NumPy array
        Output: RGB PNG bytes
        """
        try:
            canvas = self._render(image)
            buf = io.BytesIO()
            canvas.save(buf, "PNG", compress_level=1, dpi=(self.dpi, self.dpi), optimize=False)
            return buf.getvalue()
        except EncodingFailure:
            raise
        except Exception as e:
            logger.exception("Failed to normalize image")
            raise EncodingFailure(f"Could not encode image as PNG: {e}") from e

    def write(self, image: ImageLike, broker: ScratchBroker) -> ScratchFile:
        """Normalize ``image`` into a new scratch PNG; the file is removed on failure."""
        png = self.normalize(image)
        scratch = broker.acquire(suffix=".png")
        try:
            with open(scratch.path, "wb") as f:
                f.write(png)
        except OSError as e:
            scratch.delete()
            raise EncodingFailure(f"Could not write normalized image to {scratch.path}: {e}") from e
        w, h = self._size(image)
        logger.info(f"Normalized {w}x{h} image into {scratch.path}")
        return scratch
