import sys
import threading
import time

import pytest

from narrator.media.command_runner import run_command
from narrator.media.exceptions import CommandCancelledError, CommandExecutionError


def test_run_command_success_captures_output():
    result = run_command([sys.executable, "-c", "print('ok')"])
    assert result.returncode == 0
    assert result.stdout.strip() == "ok"
    assert result.command[0] == sys.executable


def test_run_command_raises_on_non_zero_exit():
    with pytest.raises(CommandExecutionError) as excinfo:
        run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad input'); sys.exit(2)"]
        )
    assert excinfo.value.returncode == 2
    assert "Command execution failed" in str(excinfo.value)
    assert excinfo.value.stderr_tail() == "bad input"


def test_run_command_without_check_returns_failure():
    result = run_command([sys.executable, "-c", "import sys; sys.exit(3)"], check=False)
    assert result.returncode == 3


def test_run_command_timeout():
    with pytest.raises(CommandExecutionError) as excinfo:
        run_command(
            [sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2
        )
    assert excinfo.value.timeout is True


def test_run_command_respects_text_mode():
    result = run_command(
        [sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'bin')"],
        text=False,
    )
    assert isinstance(result.stdout, (bytes, bytearray))
    assert result.stdout == b"bin"


def test_run_command_maps_file_not_found():
    with pytest.raises(CommandExecutionError) as excinfo:
        run_command(["__definitely_missing_executable__"])
    assert isinstance(excinfo.value.cause, FileNotFoundError)


def test_run_command_terminates_process_when_stop_event_set():
    stop_event = threading.Event()
    timer = threading.Timer(0.2, stop_event.set)
    timer.start()
    started = time.monotonic()
    try:
        with pytest.raises(CommandCancelledError):
            run_command(
                [sys.executable, "-c", "import time; time.sleep(30)"],
                stop_event=stop_event,
                poll_interval=0.05,
                terminate_grace=2.0,
            )
    finally:
        timer.cancel()
    assert time.monotonic() - started < 10


def test_run_command_refuses_to_start_when_already_cancelled():
    stop_event = threading.Event()
    stop_event.set()
    with pytest.raises(CommandCancelledError):
        run_command([sys.executable, "-c", "print('never')"], stop_event=stop_event)
