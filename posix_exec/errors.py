from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .executor import InvocationResult


class ExecError(Exception):
    """Base class for invocation failures.

    Carries the ``InvocationResult`` when the failure happened after an
    invocation was attempted, so callers keep access to partial output.
    """

    def __init__(self, message: str, result: Optional["InvocationResult"] = None):
        super().__init__(message)
        self.result = result


class StartError(ExecError):
    """The child process could not be created."""


class PipeIOError(ExecError):
    """Writing, reading or closing one of the child's pipes failed."""


class ExitStatusError(ExecError):
    """The child ran to completion but exited with a non-zero status."""

    def __init__(self, message: str, exit_code: int, result: Optional["InvocationResult"] = None):
        super().__init__(message, result)
        self.exit_code = exit_code


class CancelledError(ExecError):
    """The invocation outlived its timeout and the child was killed."""


class ConfigError(ValueError):
    """Invalid configuration file or values."""
