"""CLI entry point for tts-cli."""

from __future__ import annotations

import argparse
import locale
import logging
import sys

from tts_cli.config import DEFAULT_LOUDNESS, DEFAULT_RATE, RenderConfig, RenderRequest
from tts_cli.errors import (
    AudioIOError,
    ConfigError,
    OutputError,
    RenderError,
    SynthesisError,
)
from tts_cli.pipeline import render

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_SYNTHESIS = 3
EXIT_OUTPUT = 4
EXIT_IO = 5

_EXIT_CODES: dict[type[RenderError], int] = {
    ConfigError: EXIT_USAGE,
    SynthesisError: EXIT_SYNTHESIS,
    OutputError: EXIT_OUTPUT,
    AudioIOError: EXIT_IO,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tts-cli",
        description="This commandline application will create speech output from a text.",
        epilog='Example: tts-cli -o hello.mp3 "Hello, world! It is {TIME}."',
    )
    parser.add_argument("text", nargs="?", default="", help="Text to convert to speech")
    parser.add_argument(
        "-i", "--info",
        action="store_true",
        help="List available voice names",
    )
    parser.add_argument(
        "-v", "--voice",
        default="",
        help="Name of the voice to create the speech output",
    )
    parser.add_argument(
        "-l", "--loudness",
        type=int,
        default=DEFAULT_LOUDNESS,
        help=f"Volume of the output. Range is 0 (muted) to 100 (loud) (default: {DEFAULT_LOUDNESS})",
    )
    parser.add_argument(
        "-s", "--speed",
        type=int,
        default=DEFAULT_RATE,
        help=f"Speech rate. Range is from -10 to 10 (default: {DEFAULT_RATE})",
    )
    parser.add_argument(
        "-d", "--dateformat",
        default="",
        help="strftime pattern for {NOW}, {DATE} and {TIME}, e.g. \"%%d.%%m.%%Y\"",
    )
    parser.add_argument(
        "-o", "--output",
        default="",
        help="Output filename (.wav or .mp3); plays on the default device if omitted",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _build_request(args: argparse.Namespace) -> RenderRequest:
    config = RenderConfig(
        voice_name=args.voice or None,
        loudness=args.loudness,
        rate=args.speed,
        date_time_format=args.dateformat,
        output_path=args.output or None,
    )
    return RenderRequest(text=args.text, config=config)


def _cmd_voices() -> None:
    from tts_cli.synthesizer import Synthesizer

    voices = Synthesizer().list_voices()
    if not voices:
        print("No voices found.")
        return
    print("Available voice names:")
    for v in voices:
        print(f"\t{v.name}")


def _exit_code(exc: RenderError) -> int:
    for kind, code in _EXIT_CODES.items():
        if isinstance(exc, kind):
            return code
    return 1


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        # {NOW}, {DATE} and {TIME} use the user's date/time conventions
        locale.setlocale(locale.LC_TIME, "")
    except locale.Error as exc:
        logger.warning("Cannot apply the user locale: %s", exc)

    try:
        if args.info:
            _cmd_voices()
        else:
            render(_build_request(args))
    except RenderError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(_exit_code(exc))

    sys.exit(EXIT_OK)


if __name__ == "__main__":
    main()
