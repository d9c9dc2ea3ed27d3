"""Argument parsing helpers for the narrator CLI."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence


def _add_shared_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument(
        "--config",
        default=None,
        help=(
            "Path to a configuration override JSON file (defaults to conf/config.local.json "
            "if present)."
        ),
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging output.")
    return parser


def _add_render_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", help="Fetch the page at URL and narrate its text.")
    source.add_argument("--html-file", help="Narrate the text of a local HTML file.")
    source.add_argument("--text", help="Narrate TEXT as given.")
    parser.add_argument("--output", "-o", required=True, help="Destination video file.")
    parser.add_argument("--language", help="Narration language code, e.g. 'en'.")
    parser.add_argument("--region", help="Narration region code, e.g. 'US'.")
    parser.add_argument("--voice", help="Engine-specific voice name.")
    parser.add_argument("--pitch", type=float, default=1.0, help="Pitch multiplier (0.5-2.0).")
    parser.add_argument("--volume", type=float, default=1.0, help="Volume multiplier (0.0-1.0).")
    parser.add_argument("--width", type=int, help="Video width in pixels (even).")
    parser.add_argument("--height", type=int, help="Video height in pixels (even).")
    parser.add_argument("--frame-rate", type=float, help="Frames per second.")
    duration = parser.add_mutually_exclusive_group()
    duration.add_argument("--duration", type=float, help="Clip length in seconds.")
    duration.add_argument(
        "--fit-audio",
        action="store_true",
        help="Make the clip as long as the narration instead of a fixed duration.",
    )
    parser.add_argument(
        "--backend",
        help="Speech backend to use (gtts, macos_say, espeak or auto).",
    )
    parser.add_argument("--ffmpeg-path", help="Override the path to the FFmpeg executable.")
    parser.add_argument("--tmp-dir", help="Override the directory used for job scratch files.")
    parser.add_argument(
        "--frame-parallelism",
        choices=["off", "auto", "thread", "process"],
        help="Select the backend used for per-frame rendering.",
    )
    parser.add_argument(
        "--keep-scratch",
        action="store_true",
        default=None,
        help="Keep the job scratch directory after a successful render.",
    )
    return parser


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="narrator",
        description="Turn a web page into a narrated scrolling-text video.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", help="Render a narrated video")
    _add_shared_arguments(render_parser)
    _add_render_arguments(render_parser)

    backends_parser = subparsers.add_parser("backends", help="List the speech backends")
    _add_shared_arguments(backends_parser)
    return parser


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse ``argv``; argparse exits with status 2 on invalid arguments."""

    return build_cli_parser().parse_args(argv)


__all__ = ["build_cli_parser", "parse_cli_args"]
