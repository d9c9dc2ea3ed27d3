"""Utilities shared across media backends."""

from .command_runner import CommandResult, run_command
from .exceptions import CommandCancelledError, CommandExecutionError, MediaBackendError

__all__ = [
    "CommandCancelledError",
    "CommandExecutionError",
    "CommandResult",
    "MediaBackendError",
    "run_command",
]
