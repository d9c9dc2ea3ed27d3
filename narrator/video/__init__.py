"""Frame rendering and video encoding."""

from .backends import BaseVideoEncoder, FFmpegMuxer, VideoOutput, create_video_encoder
from .frames import FRAME_NAME_TEMPLATE, MAX_FRAME_COUNT, FrameGenerator, FrameSet, frame_count_for

__all__ = [
    "BaseVideoEncoder",
    "FFmpegMuxer",
    "FRAME_NAME_TEMPLATE",
    "FrameGenerator",
    "FrameSet",
    "MAX_FRAME_COUNT",
    "VideoOutput",
    "create_video_encoder",
    "frame_count_for",
]
