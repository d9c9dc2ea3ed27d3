"""Console entry point for narrator."""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path
from typing import Optional, Sequence

from narrator import config_manager as cfg
from narrator import logging_manager as log_mgr
from narrator.audio.backends import available_backends, get_default_backend_name
from narrator.audio.options import Locale, SpeechOptions
from narrator.config_manager import NarratorSettings
from narrator.errors import PipelineCancelled, PipelineError
from narrator.pipeline import PipelineOrchestrator, RenderRequest
from narrator.text import PageFetchError, extract_narration_text, fetch_page_html

from .args import parse_cli_args

logger = log_mgr.get_logger()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def _fail(message: str, code: int = EXIT_FAILED) -> int:
    print(message, file=sys.stderr)
    return code


def _load_text(args: argparse.Namespace, settings: NarratorSettings) -> str:
    if args.text is not None:
        return args.text.strip()
    if args.html_file:
        html = Path(args.html_file).expanduser().read_text(encoding="utf-8", errors="replace")
    else:
        html = fetch_page_html(args.url, timeout=settings.fetch_timeout_seconds)
    return extract_narration_text(html)


def _speech_options(args: argparse.Namespace, settings: NarratorSettings) -> SpeechOptions:
    language = args.language or settings.default_language
    region = args.region or settings.default_region
    locale: Optional[Locale] = None
    if language or args.voice:
        locale = Locale(language or "en", region, args.voice)
    return SpeechOptions(locale=locale, pitch=args.pitch, volume=args.volume)


def _list_backends() -> int:
    default = get_default_backend_name()
    for name in available_backends():
        marker = " (default)" if name == default else ""
        print(f"{name}{marker}")
    return EXIT_OK


def _render(args: argparse.Namespace) -> int:
    overrides = {
        "tts_backend": args.backend,
        "ffmpeg_path": args.ffmpeg_path,
        "tmp_dir": args.tmp_dir,
        "frame_parallelism": args.frame_parallelism,
        "keep_scratch": args.keep_scratch,
    }
    try:
        cfg.load_configuration(args.config, overrides=overrides)
    except RuntimeError as exc:
        return _fail(f"{exc}: {exc.__cause__}" if exc.__cause__ else str(exc), EXIT_USAGE)
    settings = cfg.get_settings()

    try:
        options = _speech_options(args, settings)
    except ValueError as exc:
        return _fail(str(exc), EXIT_USAGE)

    try:
        text = _load_text(args, settings)
    except (PageFetchError, OSError) as exc:
        return _fail(str(exc))

    request = RenderRequest.from_settings(
        text,
        args.output,
        settings,
        speech_options=options,
        width=args.width,
        height=args.height,
        frame_rate=args.frame_rate,
        duration_seconds=args.duration,
    )
    if args.fit_audio:
        request = dataclasses.replace(request, duration_seconds=None)

    orchestrator = PipelineOrchestrator(settings)
    handle = orchestrator.start(request)
    try:
        output = handle.result()
    except KeyboardInterrupt:
        logger.warning(
            "Render interrupted by Ctrl+C; shutting down...",
            extra={"event": "cli.interrupted"},
        )
        handle.cancel()
        handle.wait()
        return EXIT_INTERRUPTED
    except PipelineCancelled:
        return EXIT_INTERRUPTED
    except PipelineError as exc:
        return _fail(str(exc))
    finally:
        orchestrator.close()

    print(output.path)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Execute the CLI with the supplied ``argv`` sequence."""

    args = parse_cli_args(argv)
    log_mgr.configure_logging_level(debug_enabled=args.debug)

    if args.command == "backends":
        return _list_backends()
    return _render(args)


if __name__ == "__main__":  # pragma: no cover - manual execution
    sys.exit(main())
