"""Helper utilities for running external commands consistently."""

from __future__ import annotations

import os
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping, Optional, Sequence

from narrator import logging_manager as log_mgr

from .exceptions import CommandCancelledError, CommandExecutionError

logger = log_mgr.logger

DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_TERMINATE_GRACE = 5.0


@dataclass(slots=True)
class CommandResult:
    """Container describing a completed command execution."""

    command: tuple[str, ...]
    returncode: int
    stdout: str | bytes | None
    stderr: str | bytes | None
    duration: float


def _prepare_environment(env: Mapping[str, str] | None) -> Mapping[str, str]:
    if not env:
        return os.environ.copy()
    merged: MutableMapping[str, str] = os.environ.copy()
    merged.update({str(key): str(value) for key, value in env.items()})
    return merged


def _coerce_command(command: Sequence[str] | str) -> tuple[str, ...]:
    if isinstance(command, (str, bytes)):
        return (str(command),)
    return tuple(str(part) for part in command)


def _terminate(process: subprocess.Popen, grace: float) -> tuple[Any, Any]:
    """Stop ``process`` with SIGTERM, escalating to SIGKILL after ``grace`` seconds."""

    process.terminate()
    try:
        return process.communicate(timeout=grace)
    except subprocess.TimeoutExpired:
        process.kill()
        return process.communicate()


def run_command(
    command: Sequence[str] | str,
    *,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    capture_output: bool = True,
    text: bool = True,
    check: bool = True,
    stop_event: Optional[threading.Event] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    terminate_grace: float = DEFAULT_TERMINATE_GRACE,
    logger_obj=logger,
) -> CommandResult:
    """Execute ``command`` and return a :class:`CommandResult`.

    The process is polled every ``poll_interval`` seconds while ``stop_event``
    is supplied; once the event is set the process is terminated and
    :class:`CommandCancelledError` is raised. Exceeding ``timeout`` terminates
    the process and raises :class:`CommandExecutionError` with ``timeout=True``.
    Non-zero exit codes raise :class:`CommandExecutionError` when ``check`` is
    true.
    """

    coerced = _coerce_command(command)
    pipe = subprocess.PIPE if capture_output else None
    start = time.monotonic()

    if logger_obj:
        logger_obj.debug(
            "Executing command",
            extra={"event": "media.command.execute", "command": list(coerced)},
        )

    if stop_event is not None and stop_event.is_set():
        raise CommandCancelledError(command)

    try:
        process = subprocess.Popen(
            command,
            stdout=pipe,
            stderr=pipe,
            cwd=cwd,
            env=_prepare_environment(env),
            text=text if capture_output else False,
        )
    except FileNotFoundError as exc:
        if logger_obj:
            logger_obj.error(
                "Command executable not found",
                extra={"event": "media.command.not_found", "command": list(coerced)},
            )
        raise CommandExecutionError(command, cause=exc) from exc
    except OSError as exc:
        if logger_obj:
            logger_obj.error(
                "Command execution failed due to OS error",
                extra={"event": "media.command.os_error", "command": list(coerced)},
            )
        raise CommandExecutionError(command, cause=exc) from exc

    while True:
        elapsed = time.monotonic() - start
        if stop_event is not None and stop_event.is_set():
            _terminate(process, terminate_grace)
            if logger_obj:
                logger_obj.info(
                    "Command terminated after cancellation request",
                    extra={"event": "media.command.cancelled", "command": list(coerced)},
                )
            raise CommandCancelledError(command)
        if timeout is not None and elapsed >= timeout:
            stdout, stderr = _terminate(process, terminate_grace)
            if logger_obj:
                logger_obj.warning(
                    "Command timed out after %.3fs",
                    elapsed,
                    extra={"event": "media.command.timeout", "command": list(coerced)},
                )
            raise CommandExecutionError(command, stdout=stdout, stderr=stderr, timeout=True)

        wait: Optional[float] = None
        if stop_event is not None:
            wait = poll_interval
        if timeout is not None:
            remaining = max(0.0, timeout - elapsed)
            wait = remaining if wait is None else min(wait, remaining)
        try:
            stdout, stderr = process.communicate(timeout=wait)
            break
        except subprocess.TimeoutExpired:
            continue

    duration = time.monotonic() - start
    result = CommandResult(
        command=coerced,
        returncode=process.returncode,
        stdout=stdout,
        stderr=stderr,
        duration=duration,
    )

    if check and process.returncode != 0:
        if logger_obj:
            logger_obj.warning(
                "Command returned non-zero status %s",
                process.returncode,
                extra={
                    "event": "media.command.failed",
                    "command": list(coerced),
                    "returncode": process.returncode,
                },
            )
        raise CommandExecutionError(
            command,
            returncode=process.returncode,
            stdout=stdout,
            stderr=stderr,
        )

    if logger_obj:
        logger_obj.debug(
            "Command completed in %.3fs",
            duration,
            extra={
                "event": "media.command.success",
                "command": list(coerced),
                "returncode": process.returncode,
            },
        )
    return result


__all__ = ["CommandResult", "run_command"]
