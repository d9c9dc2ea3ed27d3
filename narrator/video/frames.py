"""Scrolling-text frame generation built on Pillow."""

from __future__ import annotations

import os
import re
import sys
import threading
from concurrent.futures import Future, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from narrator import logging_manager as log_mgr
from narrator.config_manager import NarratorSettings
from narrator.config_manager.constants import (
    DEFAULT_FONT_SIZE,
    DEFAULT_SCROLL_SPEED,
    VALID_FRAME_PARALLELISM,
)
from narrator.errors import FrameGenerationError, PipelineCancelled

logger = log_mgr.logger

FRAME_NAME_TEMPLATE = "frame_{index:05d}.png"
FRAME_PATTERN = "frame_%05d.png"
MAX_FRAME_COUNT = 100_000
AUTO_PARALLEL_MIN_FRAMES = 64

_FRAME_NAME_RE = re.compile(r"^frame_(\d{5})\.png$")


def frame_count_for(frame_rate: float, duration_seconds: float) -> int:
    """Return the number of frames covering ``duration_seconds`` at ``frame_rate``."""

    return int(round(frame_rate * duration_seconds))


def frame_filename(index: int) -> str:
    return FRAME_NAME_TEMPLATE.format(index=index)


def get_default_font_path() -> str:
    if sys.platform == "darwin":
        for path in [
            "/System/Library/Fonts/Supplemental/Arial Unicode.ttf",
            "/System/Library/Fonts/Supplemental/Arial.ttf",
        ]:
            if os.path.exists(path):
                return path
    elif sys.platform == "win32":
        path = r"C:\\Windows\\Fonts\\arial.ttf"
        if os.path.exists(path):
            return path
    else:
        for path in [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        ]:
            if os.path.exists(path):
                return path
    return "Arial.ttf"


@lru_cache(maxsize=16)
def load_font(path: Optional[str], size: int) -> ImageFont.ImageFont:
    """Return a TrueType font, falling back to Pillow's bundled default."""

    try:
        return ImageFont.truetype(path or get_default_font_path(), size)
    except IOError:
        return ImageFont.load_default(size=size)


def _font_ascent(font: ImageFont.ImageFont) -> int:
    getmetrics = getattr(font, "getmetrics", None)
    if getmetrics is not None:
        return int(getmetrics()[0])
    return int(font.getbbox("Ag")[3])


def wrap_text(
    text: str,
    font: ImageFont.ImageFont,
    max_width: float,
) -> List[str]:
    """Greedily wrap ``text`` so each line fits ``max_width`` pixels.

    A single word wider than ``max_width`` gets a line of its own.
    """

    measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if not current or measure.textlength(candidate, font=font) <= max_width:
            current = candidate
            continue
        lines.append(current)
        current = word
    if current:
        lines.append(current)
    return lines


@dataclass(slots=True)
class FrameLayout:
    """Everything needed to paint one frame; picklable for process pools."""

    width: int
    height: int
    lines: Sequence[str]
    font_path: Optional[str]
    font_size: int
    line_height: int
    scroll_speed: float
    margin: int
    text_color: Tuple[int, int, int]
    background_color: Tuple[int, int, int]

    @property
    def block_height(self) -> int:
        return self.line_height * len(self.lines)

    def first_baseline(self, index: int) -> int:
        """Baseline of the first line in frame ``index``.

        Starts at the bottom edge and rises by ``scroll_speed`` per frame. Once
        the whole block has left the top edge the offset wraps so the text
        re-enters from the bottom.
        """

        cycle = self.height + self.block_height
        offset = (index * self.scroll_speed) % cycle
        return int(round(self.height - offset))


def render_layout_frame(layout: FrameLayout, index: int) -> Image.Image:
    image = Image.new("RGB", (layout.width, layout.height), tuple(layout.background_color))
    if not layout.lines:
        return image
    font = load_font(layout.font_path, layout.font_size)
    ascent = _font_ascent(font)
    draw = ImageDraw.Draw(image)
    baseline = layout.first_baseline(index)
    for line_number, line in enumerate(layout.lines):
        y = baseline + line_number * layout.line_height
        if y - ascent > layout.height:
            break
        if y + layout.line_height < 0:
            continue
        draw.text((layout.margin, y - ascent), line, font=font, fill=tuple(layout.text_color))
    return image


def _render_frame_task(layout: FrameLayout, index: int, output_path: str) -> str:
    image = render_layout_frame(layout, index)
    image.save(output_path, format="PNG")
    return output_path


@dataclass(frozen=True, slots=True)
class FrameSet:
    """Ordered, gap-free PNG frames sharing one geometry."""

    directory: Path
    frame_rate: float
    duration_seconds: float
    width: int
    height: int
    paths: Tuple[Path, ...]

    @property
    def count(self) -> int:
        return len(self.paths)

    @property
    def pattern(self) -> str:
        """Numeric input pattern understood by ffmpeg's image2 demuxer."""

        return str(self.directory / FRAME_PATTERN)


class FrameGenerator:
    """Render the narration text as a scrolling caption, one PNG per frame."""

    def __init__(
        self,
        *,
        scroll_speed: float = DEFAULT_SCROLL_SPEED,
        font_size: int = DEFAULT_FONT_SIZE,
        font_path: Optional[str] = None,
        text_color: Sequence[int] = (255, 255, 255),
        background_color: Sequence[int] = (0, 0, 0),
        margin: int = 10,
        line_spacing: float = 1.25,
        parallelism: str = "off",
        workers: Optional[int] = None,
    ) -> None:
        mode = (parallelism or "off").strip().lower()
        if mode == "none":
            mode = "off"
        if mode not in VALID_FRAME_PARALLELISM:
            raise ValueError(f"Unsupported frame parallelism '{parallelism}'")
        self.scroll_speed = float(scroll_speed)
        self.font_size = int(font_size)
        self.font_path = font_path
        self.text_color = tuple(int(c) for c in text_color)
        self.background_color = tuple(int(c) for c in background_color)
        self.margin = int(margin)
        self.line_spacing = float(line_spacing)
        self.parallelism = mode
        self.workers = workers

    @classmethod
    def from_settings(cls, settings: NarratorSettings) -> "FrameGenerator":
        return cls(
            scroll_speed=settings.scroll_speed,
            font_size=settings.font_size,
            font_path=settings.font_path,
            text_color=settings.text_color,
            background_color=settings.background_color,
            margin=settings.text_margin,
            line_spacing=settings.line_spacing,
            parallelism=settings.frame_parallelism,
            workers=settings.frame_workers,
        )

    def layout(self, text: str, *, width: int, height: int) -> FrameLayout:
        font = load_font(self.font_path, self.font_size)
        lines = wrap_text(text, font, max(1, width - 2 * self.margin))
        return FrameLayout(
            width=width,
            height=height,
            lines=tuple(lines),
            font_path=self.font_path,
            font_size=self.font_size,
            line_height=max(1, int(round(self.font_size * self.line_spacing))),
            scroll_speed=self.scroll_speed,
            margin=self.margin,
            text_color=self.text_color,
            background_color=self.background_color,
        )

    def render_frame(self, text: str, index: int, *, width: int, height: int) -> Image.Image:
        """Render frame ``index`` in memory without touching the filesystem."""

        return render_layout_frame(self.layout(text, width=width, height=height), index)

    def _resolve_parallelism(self, count: int) -> str:
        if self.parallelism == "auto":
            return "process" if count >= AUTO_PARALLEL_MIN_FRAMES else "off"
        return self.parallelism

    def generate(
        self,
        text: str,
        width: int,
        height: int,
        frame_rate: float,
        duration_seconds: float,
        output_dir: Path | str,
        stop_event: Optional[threading.Event] = None,
    ) -> FrameSet:
        """Write every frame for the clip into ``output_dir`` and verify the set."""

        count = frame_count_for(frame_rate, duration_seconds)
        if count < 1:
            raise FrameGenerationError(
                f"{frame_rate} fps for {duration_seconds}s yields no frames"
            )
        if count > MAX_FRAME_COUNT:
            raise FrameGenerationError(
                f"{count} frames exceeds the limit of {MAX_FRAME_COUNT}"
            )

        directory = Path(output_dir)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            layout = self.layout(text, width=width, height=height)
        except OSError as exc:
            raise FrameGenerationError(f"cannot prepare {directory}: {exc}", cause=exc) from exc

        paths = tuple(directory / frame_filename(index) for index in range(count))
        mode = self._resolve_parallelism(count)
        logger.info(
            "Rendering %s frames (%sx%s @ %s fps)",
            count,
            width,
            height,
            frame_rate,
            extra={
                "event": "video.frames.start",
                "frame_count": count,
                "parallelism": mode,
                "line_count": len(layout.lines),
            },
        )

        if mode == "off":
            self._render_sequential(layout, paths, stop_event)
        else:
            self._render_parallel(layout, paths, mode, stop_event)

        self._verify(directory, count)
        logger.info(
            "Frame set complete",
            extra={"event": "video.frames.complete", "frame_count": count},
        )
        return FrameSet(
            directory=directory,
            frame_rate=frame_rate,
            duration_seconds=duration_seconds,
            width=width,
            height=height,
            paths=paths,
        )

    def _render_sequential(
        self,
        layout: FrameLayout,
        paths: Sequence[Path],
        stop_event: Optional[threading.Event],
    ) -> None:
        for index, path in enumerate(paths):
            if stop_event is not None and stop_event.is_set():
                raise PipelineCancelled("Frame generation cancelled")
            try:
                _render_frame_task(layout, index, str(path))
            except (OSError, ValueError) as exc:
                raise FrameGenerationError(
                    f"could not write {path.name}: {exc}", cause=exc
                ) from exc

    def _render_parallel(
        self,
        layout: FrameLayout,
        paths: Sequence[Path],
        mode: str,
        stop_event: Optional[threading.Event],
    ) -> None:
        workers = self.workers
        if workers is None or workers < 1:
            workers = os.cpu_count() or 1

        executor_cls = ThreadPoolExecutor if mode == "thread" else ProcessPoolExecutor
        executor = executor_cls(max_workers=workers)
        try:
            futures: Dict[Future[str], int] = {
                executor.submit(_render_frame_task, layout, index, str(path)): index
                for index, path in enumerate(paths)
            }
            for future in as_completed(futures):
                if stop_event is not None and stop_event.is_set():
                    raise PipelineCancelled("Frame generation cancelled")
                index = futures[future]
                try:
                    future.result()
                except Exception as exc:
                    logger.error(
                        "Frame rendering worker failed for frame %s: %s",
                        index,
                        exc,
                        extra={"event": "video.frames.worker_failed", "frame_index": index},
                    )
                    raise FrameGenerationError(
                        f"could not write {frame_filename(index)}: {exc}", cause=exc
                    ) from exc
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    @staticmethod
    def _verify(directory: Path, count: int) -> None:
        present = set()
        try:
            for entry in os.listdir(directory):
                match = _FRAME_NAME_RE.match(entry)
                if match and (directory / entry).stat().st_size > 0:
                    present.add(int(match.group(1)))
        except OSError as exc:
            raise FrameGenerationError(f"cannot list frames in {directory}: {exc}", cause=exc) from exc
        missing = [index for index in range(count) if index not in present]
        if missing:
            raise FrameGenerationError(
                f"frame set incomplete: {len(missing)} of {count} frames missing "
                f"(first missing {frame_filename(missing[0])})"
            )


__all__ = [
    "FRAME_NAME_TEMPLATE",
    "FRAME_PATTERN",
    "FrameGenerator",
    "FrameLayout",
    "FrameSet",
    "MAX_FRAME_COUNT",
    "frame_count_for",
    "frame_filename",
    "get_default_font_path",
    "load_font",
    "render_layout_frame",
    "wrap_text",
]
