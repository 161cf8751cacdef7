# main.py
import argparse
import dataclasses
import sys
from typing import List, Optional

from PIL import Image

from ocr_runner import logging
from ocr_runner.errors import EngineCancelled, OCRError
from ocr_runner.ocr.model import EngineConfig
from ocr_runner.ocr.sinks import TextCollector, XHTMLSink
from ocr_runner.ocr.tesseract_ocr import TesseractOCREngine

logger = logging.get_logger("ocr_runner")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ocr-runner",
        description="Run tesseract on an image and print the recognized text.",
    )
    parser.add_argument("image", help="Path to the image file")
    parser.add_argument("--lang", dest="language", help="Tesseract language code, e.g. eng+deu")
    parser.add_argument("--psm", dest="page_seg_mode", help="Page segmentation mode")
    parser.add_argument("--tesseract-path", help="Directory holding the tesseract executable")
    parser.add_argument("--timeout", type=float, help="Seconds before the engine is killed")
    parser.add_argument("--min-size", dest="min_file_size", type=int, help="Skip smaller inputs (bytes)")
    parser.add_argument("--max-size", dest="max_file_size", type=int, help="Skip larger inputs (bytes)")
    parser.add_argument("--normalize", action="store_true",
                        help="Re-encode the image as RGB PNG before OCR")
    parser.add_argument("--format", choices=("text", "xhtml"), default="text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.configure("DEBUG" if args.verbose else None)

    # --- Environment first, then command-line overrides ---
    overrides = {
        k: v for k, v in vars(args).items()
        if k in EngineConfig.__dataclass_fields__ and v is not None
    }
    try:
        config = dataclasses.replace(EngineConfig.from_env(), **overrides)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    engine = TesseractOCREngine(config)
    sink = XHTMLSink(sys.stdout) if args.format == "xhtml" else TextCollector()

    try:
        if args.normalize:
            with Image.open(args.image) as img:
                result = engine.parse_image(img, sink)
        else:
            result = engine.parse_file(args.image, sink)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    except EngineCancelled as e:
        logger.error(str(e))
        return 130
    except (OCRError, OSError) as e:
        logger.error(f"OCR failed for {args.image}: {e}")
        return 1

    if result.skipped:
        logger.warning(f"No OCR performed ({result.skipped})")
    if isinstance(sink, TextCollector):
        print(sink.value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
