import types

import pytest
from gtts import gTTSError
from pydub import AudioSegment

from narrator.audio.backends import (
    ESpeakTTSBackend,
    GTTSBackend,
    MacOSTTSBackend,
    TTSBackendError,
    TTSInitializationError,
    available_backends,
    create_backend,
    get_tts_backend,
)
from narrator.audio.options import Locale, SpeechOptions
from narrator.errors import PipelineCancelled
from narrator.media.exceptions import CommandCancelledError, CommandExecutionError


def test_get_tts_backend_prefers_config_override():
    backend = get_tts_backend({"tts_backend": "gtts"})
    assert isinstance(backend, GTTSBackend)


def test_get_tts_backend_auto_uses_platform_default(monkeypatch):
    monkeypatch.setattr("narrator.audio.backends.sys.platform", "darwin")

    settings = types.SimpleNamespace(tts_backend="auto", tts_executable_path=None)
    monkeypatch.setattr("narrator.audio.backends.cfg.get_settings", lambda: settings)

    backend = get_tts_backend()
    assert isinstance(backend, MacOSTTSBackend)


def test_get_tts_backend_respects_executable_override():
    backend = get_tts_backend({"tts_backend": "macos", "tts_executable_path": "/custom/say"})
    assert isinstance(backend, MacOSTTSBackend)
    assert backend.executable_path == "/custom/say"


def test_get_tts_backend_accepts_aliases():
    assert isinstance(get_tts_backend({"tts_backend": "espeak-ng"}), ESpeakTTSBackend)
    assert isinstance(create_backend("say"), MacOSTTSBackend)


def test_get_tts_backend_defaults_when_unset(monkeypatch):
    monkeypatch.setattr("narrator.audio.backends.sys.platform", "linux")

    settings = types.SimpleNamespace(tts_backend=None, tts_executable_path=None)
    monkeypatch.setattr("narrator.audio.backends.cfg.get_settings", lambda: settings)

    backend = get_tts_backend({})
    assert isinstance(backend, GTTSBackend)


def test_unknown_backend_raises_key_error():
    with pytest.raises(KeyError):
        get_tts_backend({"tts_backend": "festival"})


def test_available_backends_lists_every_engine():
    assert available_backends() == ["espeak", "gtts", "macos_say"]


def test_macos_backend_invokes_command_with_expected_arguments(monkeypatch):
    invoked_commands: list[list[str]] = []
    received = {}

    def fake_run_command(command, **kwargs):
        invoked_commands.append(list(command))
        received.update(kwargs)
        text_path = command[command.index("-f") + 1]
        with open(text_path, encoding="utf-8") as handle:
            received["text"] = handle.read()

    dummy_audio = AudioSegment.silent(duration=100)

    def fake_from_file(path, format):
        assert format == "aiff"
        return dummy_audio

    monkeypatch.setattr("narrator.audio.backends.macos.run_command", fake_run_command)
    monkeypatch.setattr("narrator.audio.backends.macos.AudioSegment.from_file", fake_from_file)
    monkeypatch.setattr(MacOSTTSBackend, "check_available", lambda self, options: None)

    backend = MacOSTTSBackend(executable_path="/usr/bin/say")
    options = SpeechOptions(locale=Locale("en", "US", "Samantha"))

    result = backend.synthesize(text="Hello world", options=options)

    command = invoked_commands[0]
    assert command[:3] == ["/usr/bin/say", "-v", "Samantha"]
    assert command[3] == "-o" and command[4].endswith("narration.aiff")
    assert command[5] == "-f"
    assert received["text"] == "Hello world"
    assert "stop_event" in received
    assert result == dummy_audio


def test_macos_backend_wraps_command_errors(monkeypatch):
    def failing_run_command(command, **kwargs):
        raise CommandExecutionError(command, returncode=1, stderr="voice not found")

    monkeypatch.setattr("narrator.audio.backends.macos.run_command", failing_run_command)
    monkeypatch.setattr(MacOSTTSBackend, "check_available", lambda self, options: None)

    backend = MacOSTTSBackend(executable_path="/usr/bin/say")

    with pytest.raises(TTSBackendError, match="voice not found"):
        backend.synthesize(text="Hello world", options=SpeechOptions())


def test_macos_backend_maps_cancellation(monkeypatch):
    def cancelled_run_command(command, **kwargs):
        raise CommandCancelledError(command)

    monkeypatch.setattr("narrator.audio.backends.macos.run_command", cancelled_run_command)
    monkeypatch.setattr(MacOSTTSBackend, "check_available", lambda self, options: None)

    with pytest.raises(PipelineCancelled):
        MacOSTTSBackend().synthesize(text="Hello", options=SpeechOptions())


def test_macos_backend_unavailable_off_macos(monkeypatch):
    monkeypatch.setattr("narrator.audio.backends.macos.sys.platform", "linux")

    with pytest.raises(TTSInitializationError):
        MacOSTTSBackend().check_available(SpeechOptions())


def test_espeak_backend_maps_pitch_volume_and_voice():
    backend = ESpeakTTSBackend(executable_path="/usr/bin/espeak-ng")
    options = SpeechOptions(locale=Locale("en", "GB"), pitch=1.5, volume=0.5)

    command = backend.build_command("/usr/bin/espeak-ng", "in.txt", "out.wav", options)

    assert command == [
        "/usr/bin/espeak-ng",
        "-w",
        "out.wav",
        "-p",
        "75",
        "-a",
        "50",
        "-v",
        "en-gb",
        "-f",
        "in.txt",
    ]


def test_espeak_backend_clamps_pitch():
    backend = ESpeakTTSBackend(executable_path="espeak-ng")
    command = backend.build_command("espeak-ng", "in.txt", "out.wav", SpeechOptions(pitch=2.0))
    assert command[command.index("-p") + 1] == "99"
    assert "-v" not in command


def test_espeak_missing_voice_is_initialization_error(monkeypatch):
    def failing_run_command(command, **kwargs):
        raise CommandExecutionError(command, returncode=1, stderr="No voice found for 'xx'")

    monkeypatch.setattr("narrator.audio.backends.espeak.run_command", failing_run_command)
    monkeypatch.setattr(ESpeakTTSBackend, "check_available", lambda self, options: None)

    backend = ESpeakTTSBackend(executable_path="/usr/bin/espeak-ng")
    with pytest.raises(TTSInitializationError):
        backend.synthesize(text="Hello", options=SpeechOptions(locale=Locale("xx")))


def test_espeak_reports_missing_executable(monkeypatch):
    monkeypatch.setattr("narrator.audio.backends.espeak.shutil.which", lambda name: None)

    with pytest.raises(TTSInitializationError):
        ESpeakTTSBackend().check_available(SpeechOptions())


def test_gtts_resolves_language_and_region_domain(monkeypatch):
    monkeypatch.setattr(
        "narrator.audio.backends.gtts.tts_langs",
        lambda: {"en": "English", "fr": "French", "zh-CN": "Chinese"},
    )
    backend = GTTSBackend()

    assert backend.resolve_language(SpeechOptions()) == ("en", "com")
    assert backend.resolve_language(SpeechOptions(locale=Locale("en", "GB"))) == ("en", "co.uk")
    assert backend.resolve_language(SpeechOptions(locale=Locale("zh", "CN"))) == ("zh-CN", "com")
    with pytest.raises(TTSInitializationError):
        backend.resolve_language(SpeechOptions(locale=Locale("tlh")))


class _FakeGTTS:
    chunks = [b"ID3", b"data"]
    error = None

    def __init__(self, text, lang, tld):
        self.args = (text, lang, tld)

    def stream(self):
        for chunk in self.chunks:
            if self.error is not None:
                raise self.error
            yield chunk


def test_gtts_streams_and_decodes_mp3(monkeypatch):
    monkeypatch.setattr("narrator.audio.backends.gtts.gTTS", _FakeGTTS)
    monkeypatch.setattr("narrator.audio.backends.gtts.tts_langs", lambda: {"en": "English"})
    decoded = AudioSegment.silent(duration=250)
    seen = {}

    def fake_from_file(buffer, format):
        seen["bytes"] = buffer.read()
        seen["format"] = format
        return decoded

    monkeypatch.setattr("narrator.audio.backends.gtts.AudioSegment.from_file", fake_from_file)

    result = GTTSBackend().synthesize(text="Hello", options=SpeechOptions())

    assert result is decoded
    assert seen == {"bytes": b"ID3data", "format": "mp3"}


def test_gtts_wraps_service_errors(monkeypatch):
    class FailingGTTS(_FakeGTTS):
        error = gTTSError("429 (Too Many Requests)")

    monkeypatch.setattr("narrator.audio.backends.gtts.gTTS", FailingGTTS)

    with pytest.raises(TTSBackendError, match="Too Many Requests"):
        GTTSBackend().synthesize(text="Hello", options=SpeechOptions())
