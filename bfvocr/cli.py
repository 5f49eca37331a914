"""Command-line entry point for server number extraction.

Usage:
    bfvocr file <image> [--optional]
    bfvocr screen [--monitor N] [--save DIR] [--optional]
    bfvocr text "<ocr text>"

``--optional`` prints nothing and exits with status 1 when no number is
found, instead of reporting the error.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from bfvocr.config import get_config
from bfvocr.exceptions import BFVOcrError, ServerNumberNotFoundError
from bfvocr.ocr.parser import ServerNumberParser, remove_hash_symbol
from bfvocr.service import ServerNumberService, open_service

logger = logging.getLogger(__name__)


def _run(service: ServerNumberService, image, optional: bool) -> int:
    if optional:
        server_number = service.try_extract_server_number(image)
        if server_number is None:
            logger.info("No server number could be extracted")
            return 1
        print(server_number)
        return 0

    try:
        print(service.extract_server_number(image))
        return 0
    except ServerNumberNotFoundError as e:
        print(f"No server number found: {e}", file=sys.stderr)
        return 1
    except BFVOcrError as e:
        print(f"OCR extraction error: {e}", file=sys.stderr)
        return 2


def cmd_file(args: argparse.Namespace) -> int:
    """Extract the server number from an image file."""
    with open_service() as service:
        return _run(service, Path(args.image), args.optional)


def cmd_screen(args: argparse.Namespace) -> int:
    """Capture a monitor and extract the server number from it."""
    from bfvocr.capture import capture_screen, save_screenshot

    try:
        frame = capture_screen(args.monitor)
        if args.save:
            saved = save_screenshot(frame, args.save)
            print(f"Screenshot saved: {saved}", file=sys.stderr)
    except (RuntimeError, OSError) as e:
        print(f"Screenshot capture error: {e}", file=sys.stderr)
        return 2

    with open_service() as service:
        return _run(service, frame, args.optional)


def cmd_text(args: argparse.Namespace) -> int:
    """Validate already recognized text, without running OCR."""
    server_number: Optional[str] = ServerNumberParser().find_server_number(args.text)
    if server_number is None:
        print("No valid server number found", file=sys.stderr)
        return 1
    print(remove_hash_symbol(server_number))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bfvocr",
        description="Extract the Battlefield V server number from a screenshot.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    file_parser = subparsers.add_parser("file", help="Read an image file")
    file_parser.add_argument("image", help="Path to the screenshot")
    file_parser.add_argument(
        "--optional",
        action="store_true",
        help="Best effort: exit 1 silently when nothing is found",
    )
    file_parser.set_defaults(func=cmd_file)

    screen_parser = subparsers.add_parser("screen", help="Capture the screen")
    screen_parser.add_argument(
        "--monitor",
        type=int,
        default=1,
        help="Monitor index (1 = primary, 0 = all monitors)",
    )
    screen_parser.add_argument(
        "--save",
        metavar="DIR",
        help="Also write the captured screenshot to this directory",
    )
    screen_parser.add_argument(
        "--optional",
        action="store_true",
        help="Best effort: exit 1 silently when nothing is found",
    )
    screen_parser.set_defaults(func=cmd_screen)

    text_parser = subparsers.add_parser("text", help="Validate recognized text")
    text_parser.add_argument("text", help="Raw OCR output")
    text_parser.set_defaults(func=cmd_text)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point: parse arguments and dispatch to a subcommand."""
    args = build_parser().parse_args(argv)

    level = "DEBUG" if args.verbose else get_config().log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return args.func(args)
    except BFVOcrError as e:
        # Setup failures surface here, before any extraction runs
        logger.error(f"OCR service unavailable: {e}")
        print(f"OCR service unavailable: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
