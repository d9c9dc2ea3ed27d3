from __future__ import annotations

import shutil
import threading
from pathlib import Path

import pytest
from PIL import Image
from pydub import AudioSegment

from narrator.errors import EncodeError, PipelineCancelled
from narrator.media.exceptions import CommandCancelledError, CommandExecutionError
from narrator.video.backends import FFmpegMuxer, create_video_encoder
from narrator.video.frames import FrameGenerator


class DummyRunner:
    """Records commands and writes a fake container to the requested output."""

    def __init__(self, *, payload: bytes = b"\x00\x00\x00\x18ftypmp42", error=None) -> None:
        self.commands: list[list[str]] = []
        self.kwargs: list[dict] = []
        self.payload = payload
        self.error = error

    def __call__(self, command, **kwargs):
        self.commands.append(list(command))
        self.kwargs.append(kwargs)
        Path(command[-1]).write_bytes(self.payload)
        if self.error is not None:
            raise self.error(command)


@pytest.fixture()
def media_inputs(tmp_path: Path) -> tuple[str, Path]:
    frames_dir = tmp_path / "frames"
    frames_dir.mkdir()
    for index in range(3):
        Image.new("RGB", (64, 48)).save(frames_dir / f"frame_{index:05d}.png")
    audio_path = tmp_path / "narration.wav"
    audio_path.write_bytes(b"RIFF....WAVEfmt ")
    return str(frames_dir / "frame_%05d.png"), audio_path


def test_encode_builds_command_in_required_order(tmp_path, media_inputs):
    pattern, audio = media_inputs
    runner = DummyRunner()
    muxer = FFmpegMuxer(executable="/usr/bin/ffmpeg", command_runner=runner, timeout=60)
    output = tmp_path / "out" / "clip.mp4"

    result = muxer.encode(pattern, 30, audio, 5.0, output)

    command = runner.commands[0]
    temp_output = command[-1]
    assert command == [
        "/usr/bin/ffmpeg",
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-framerate",
        "30",
        "-start_number",
        "0",
        "-i",
        pattern,
        "-i",
        str(audio),
        "-map",
        "0:v:0",
        "-map",
        "1:a:0",
        "-c:v",
        "libx264",
        "-pix_fmt",
        "yuv420p",
        "-r",
        "30",
        "-c:a",
        "aac",
        "-af",
        "apad",
        "-t",
        "5.000",
        temp_output,
    ]
    assert Path(temp_output).parent == output.parent
    assert Path(temp_output).name.startswith(".clip.")
    assert temp_output.endswith(".mp4")
    assert runner.kwargs[0]["timeout"] == 60
    assert output.read_bytes() == runner.payload
    assert not Path(temp_output).exists()
    assert result.path == output
    assert (result.width, result.height) == (64, 48)
    assert result.frame_count == 150
    assert result.video_codec == "libx264"


def test_encode_overwrites_existing_output(tmp_path, media_inputs):
    pattern, audio = media_inputs
    output = tmp_path / "clip.mp4"
    output.write_bytes(b"old")

    FFmpegMuxer(command_runner=DummyRunner(payload=b"new")).encode(pattern, 30, audio, 1.0, output)

    assert output.read_bytes() == b"new"


def test_failed_encode_leaves_no_output(tmp_path, media_inputs):
    pattern, audio = media_inputs
    output = tmp_path / "clip.mp4"

    def failing(command):
        return CommandExecutionError(command, returncode=1, stderr="Invalid data found")

    with pytest.raises(EncodeError) as excinfo:
        FFmpegMuxer(command_runner=DummyRunner(error=failing)).encode(
            pattern, 30, audio, 1.0, output
        )

    assert str(excinfo.value) == "Encoding failed: ffmpeg exited with status 1"
    assert list(tmp_path.glob("*.mp4")) == []
    assert list(tmp_path.glob(".clip.*")) == []


def test_failed_encode_keeps_previous_file_untouched(tmp_path, media_inputs):
    pattern, audio = media_inputs
    output = tmp_path / "clip.mp4"
    output.write_bytes(b"previous")

    def failing(command):
        return CommandExecutionError(command, returncode=1)

    with pytest.raises(EncodeError):
        FFmpegMuxer(command_runner=DummyRunner(error=failing)).encode(
            pattern, 30, audio, 1.0, output
        )

    assert output.read_bytes() == b"previous"


def test_cancelled_encode_deletes_partial_file(tmp_path, media_inputs):
    pattern, audio = media_inputs
    output = tmp_path / "clip.mp4"
    runner = DummyRunner(error=CommandCancelledError)
    stop_event = threading.Event()

    with pytest.raises(PipelineCancelled):
        FFmpegMuxer(command_runner=runner).encode(
            pattern, 30, audio, 1.0, output, stop_event=stop_event
        )

    assert runner.kwargs[0]["stop_event"] is stop_event
    assert not output.exists()
    assert list(tmp_path.glob(".clip.*")) == []


def test_missing_executable_maps_to_encode_error(tmp_path, media_inputs):
    pattern, audio = media_inputs

    def failing(command):
        return CommandExecutionError(command, cause=FileNotFoundError("ffmpeg"))

    with pytest.raises(EncodeError, match="could not start"):
        FFmpegMuxer(command_runner=DummyRunner(error=failing)).encode(
            pattern, 30, audio, 1.0, tmp_path / "clip.mp4"
        )


def test_timeout_maps_to_encode_error(tmp_path, media_inputs):
    pattern, audio = media_inputs

    def failing(command):
        return CommandExecutionError(command, timeout=True)

    with pytest.raises(EncodeError, match="did not finish within 5 seconds"):
        FFmpegMuxer(command_runner=DummyRunner(error=failing), timeout=5).encode(
            pattern, 30, audio, 1.0, tmp_path / "clip.mp4"
        )


def test_empty_output_is_an_encode_error(tmp_path, media_inputs):
    pattern, audio = media_inputs
    output = tmp_path / "clip.mp4"

    with pytest.raises(EncodeError, match="no output"):
        FFmpegMuxer(command_runner=DummyRunner(payload=b"")).encode(pattern, 30, audio, 1.0, output)

    assert not output.exists()


def test_missing_inputs_are_rejected_before_running(tmp_path, media_inputs):
    pattern, audio = media_inputs
    runner = DummyRunner()
    muxer = FFmpegMuxer(command_runner=runner)

    with pytest.raises(EncodeError, match="audio track"):
        muxer.encode(pattern, 30, tmp_path / "missing.wav", 1.0, tmp_path / "clip.mp4")
    with pytest.raises(EncodeError, match="first frame"):
        muxer.encode(str(tmp_path / "none_%05d.png"), 30, audio, 1.0, tmp_path / "clip.mp4")
    assert runner.commands == []


def test_create_video_encoder_reads_settings():
    encoder = create_video_encoder(
        "ffmpeg",
        {
            "ffmpeg_path": "/opt/ffmpeg",
            "ffmpeg_loglevel": "warning",
            "video_codec": "libx265",
            "encode_timeout_seconds": 30,
        },
    )
    command = encoder.build_command("f_%05d.png", 25, "a.wav", 2.5, "out.mkv")

    assert command[0] == "/opt/ffmpeg"
    assert command[3] == "warning"
    assert command[command.index("-c:v") + 1] == "libx265"
    assert command[-3:] == ["-t", "2.500", "out.mkv"]
    with pytest.raises(ValueError):
        create_video_encoder("gstreamer")


def test_silence_padding_is_always_applied():
    encoder = create_video_encoder("ffmpeg", {"ffmpeg_presets": {"audio_filter": []}})

    command = encoder.build_command("f_%05d.png", 30, "a.wav", 5.0, "out.mp4")

    assert command[command.index("-af") + 1] == "apad"


@pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg not installed",
)
def test_real_ffmpeg_pads_short_audio_to_target_duration(tmp_path):
    from pydub.utils import mediainfo

    frame_set = FrameGenerator().generate("Short clip", 160, 120, 10, 2.0, tmp_path / "frames")
    audio_path = tmp_path / "narration.wav"
    AudioSegment.silent(duration=500).export(str(audio_path), format="wav").close()
    output = tmp_path / "clip.mp4"

    result = FFmpegMuxer(executable=shutil.which("ffmpeg")).encode(
        frame_set.pattern, 10, audio_path, 2.0, output
    )

    assert result.path.exists()
    info = mediainfo(str(output))
    assert float(info["duration"]) == pytest.approx(2.0, abs=0.15)
