"""Main entry point for lecturescan.

This module is executed when running:
- python -m lecturescan
- lecturescan (via pyproject.toml entry point)
"""

import argparse
import asyncio
import json
import sys

from . import log
from .config import Config
from .errors import RecognitionError, WorkerInitError
from .service import LectureScanService


def _parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Recognize lecture text from images and correct it"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config file (default: config.yml)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    recognize = subparsers.add_parser("recognize", help="Recognize text in an image")
    recognize.add_argument("image", help="Path to the image file")
    recognize.add_argument("--lang", "-l", default=None, help="Tesseract language(s), e.g. eng+fra")
    recognize.add_argument("--psm", type=int, default=None, help="Page segmentation mode")
    recognize.add_argument("--dpi", type=int, default=None, help="Image resolution hint")
    recognize.add_argument(
        "--correct",
        action="store_true",
        help="Pass the recognized text through correction"
    )

    correct = subparsers.add_parser("correct", help="Correct a piece of text")
    correct.add_argument("text", help="Text to correct")
    correct.add_argument("--meta", default="{}", help="JSON object forwarded to the engine")
    correct.add_argument(
        "--disabled",
        action="store_true",
        help="Run with correction disabled"
    )

    return parser.parse_args(argv)


async def _recognize(service: LectureScanService, args: argparse.Namespace) -> int:
    try:
        result = await service.recognize(args.image, lang=args.lang, page_seg_mode=args.psm, dpi=args.dpi)
    except (WorkerInitError, RecognitionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output = {
        "text": result.text,
        "language": result.language,
        "confidence": result.confidence,
    }
    if args.correct:
        meta = {"languages": result.language.split("+")}
        output["correction"] = await service.correct({"text": result.text, "meta": meta})

    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0


async def _correct(service: LectureScanService, args: argparse.Namespace) -> int:
    try:
        meta = json.loads(args.meta)
    except ValueError as e:
        print(f"Error: --meta is not valid JSON: {e}", file=sys.stderr)
        return 2
    if not isinstance(meta, dict):
        print("Error: --meta must be a JSON object", file=sys.stderr)
        return 2
    if args.disabled:
        service.set_correction_enabled(False)

    result = await service.correct({"text": args.text, "meta": meta})
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0 if "error" not in result else 1


async def _run(args: argparse.Namespace, config: Config) -> int:
    async with LectureScanService(config) as service:
        if args.command == "recognize":
            return await _recognize(service, args)
        return await _correct(service, args)


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    args = _parse_arguments(argv)
    config = Config.load(args.config)
    log.configure(config.log_level, debug=args.debug)
    return asyncio.run(_run(args, config))


if __name__ == "__main__":
    sys.exit(main())
