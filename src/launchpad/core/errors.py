"""
Error types and exit codes for the launchpad CLI.

Exit codes:
- 0: Success
- 1: Warning (discover timed out, rewrite found nothing to replace)
- 10: Configuration error
- 11: Provider error (terraform, kubectl, docker or aws failure)
- 12: Validation error
- 20: Phase failed (a fatal pipeline phase aborted the run)
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Process exit codes; a degraded deployment still exits 0."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    PHASE_FAILED = 20
    UNKNOWN_ERROR = 127


class LaunchpadError(Exception):
    """Base error; subclasses pick the exit code."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(LaunchpadError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ProviderError(LaunchpadError):
    """Raised when an external tool (terraform, kubectl, docker, aws) fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class CommandError(ProviderError):
    """Raised when a command exits non-zero or cannot be started."""


class ProvisioningError(ProviderError):
    """Raised when the convergent infrastructure apply fails."""


class ArtifactError(ProviderError):
    """Raised when an image build, tag or push fails."""


class ClusterError(ProviderError):
    """Raised when a manifest apply or cluster operation fails."""


class ValidationError(LaunchpadError):
    """Raised for validation failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class PhaseFailedError(LaunchpadError):
    """Raised when a fatal pipeline phase aborts the run."""

    exit_code = ExitCode.PHASE_FAILED

    def __init__(self, phase: str, cause: BaseException):
        super().__init__(f"Phase {phase} failed: {cause}", details={"phase": phase})
        self.phase = phase
        self.cause = cause


F = TypeVar("F", bound=Callable[..., int])

SIGINT_EXIT = 130


def format_error_message(error: LaunchpadError) -> str:
    """One-line rendering of an error and its details for the terminal."""
    if not error.details:
        return error.message
    detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
    return f"{error.message} ({detail_str})"


def _print_error(message: str) -> None:
    from launchpad.cli.ux import error as print_error

    print_error(message)


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Turn a CLI entry point's exceptions into exit codes.

    LaunchpadError maps to its own ``exit_code`` and is shown to the
    operator; Ctrl-C maps to 130; anything else is logged with its type
    and maps to 127. ``show_traceback`` prints the stack for unexpected
    errors, and ``log_errors=False`` keeps structlog quiet.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except LaunchpadError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                _print_error(format_error_message(e))
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.warning("command_interrupted", reason="interrupted by operator")
                return SIGINT_EXIT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error", error_type=type(e).__name__, message=str(e)
                    )
                _print_error(f"Unexpected {type(e).__name__}: {e}")
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator
