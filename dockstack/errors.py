"""Exceptions raised while driving the container engine."""
from __future__ import annotations

from typing import Optional, Sequence


def format_command(command: Sequence[str]) -> str:
    return " ".join(command)


class DockstackError(Exception):
    """Base class for all dockstack errors."""


class ProcessError(DockstackError):
    def __init__(self, command: Sequence[str], message: str):
        super().__init__(message)
        self.command = list(command)


class ProcessLaunchError(ProcessError):
    """The engine binary could not be executed at all."""

    def __init__(self, command: Sequence[str], cause: OSError):
        super().__init__(command, f"Failed to execute {format_command(command)}: {cause}")
        self.cause = cause


class ProcessExitError(ProcessError):
    """The engine ran but exited with a non-zero code."""

    def __init__(self, command: Sequence[str], returncode: int, output: str = ""):
        self.returncode = returncode
        self.output = output
        super().__init__(command, f"{format_command(command)} failed: {self.detail}")

    @property
    def detail(self) -> str:
        text = self.output.strip()
        return text if text else f"Exit code: {self.returncode}"


class ProcessWaitError(ProcessError):
    """The OS failed to reap the engine process."""

    def __init__(self, command: Sequence[str], cause: Optional[BaseException]):
        super().__init__(command, f"Failed to wait for {format_command(command)}: {cause}")
        self.cause = cause
