"""
Error handling and signal management for the CLI.

This module provides utilities for handling exceptions, mapping them to
appropriate exit codes, and managing cancellation via SIGINT signals.
"""

import signal
import sys
from collections.abc import Callable

import click

from reve import (
    APIError,
    CancellationError,
    CancelToken,
    ConfigurationError,
    ImageProcessingError,
    RequestError,
    ReveError,
    ValidationError,
)
from reve.cli import progress
from reve.cli.utils import (
    EXIT_API_OR_NETWORK,
    EXIT_CANCELLED,
    EXIT_VALIDATION_OR_CONFIG,
)

# Cancellation token for the running command; cancelled on SIGINT
_cancel_token = CancelToken()


def cancel_token() -> CancelToken:
    """Return the token library calls should observe."""
    return _cancel_token


def handle_sigint(_signum: int, _frame: object) -> None:
    """Signal handler for SIGINT (Ctrl+C) - cancels the current token."""
    _cancel_token.cancel()


def reset_cancellation(timeout: float | None = None) -> CancelToken:
    """Start a fresh token for a new operation, optionally with a deadline."""
    global _cancel_token
    _cancel_token = CancelToken(timeout=timeout)
    return _cancel_token


def _api_error_message(exc: APIError) -> str:
    if exc.is_auth_error:
        return f"Authentication failed. Check your Reve API key. {exc}"
    if exc.is_insufficient_funds:
        return f"Not enough credits. {exc}"
    if exc.is_rate_limit:
        return f"Rate limit exceeded. Please wait before making more requests. {exc}"
    if exc.is_content_violation:
        return f"Request blocked by the content policy. {exc}"
    return str(exc)


def map_exception_to_exit(exc: BaseException) -> tuple[int, str]:
    """Map library and known exceptions to (exit_code, user_message)."""
    if isinstance(exc, ValidationError):
        msg = exc.args[0] if exc.args else "Validation failed."
        if getattr(exc, "field", None):
            msg = f"{msg} (field: {exc.field})"
        return (EXIT_VALIDATION_OR_CONFIG, msg)
    if isinstance(exc, ConfigurationError):
        return (EXIT_VALIDATION_OR_CONFIG, exc.args[0] if exc.args else "Invalid configuration.")
    if isinstance(exc, ImageProcessingError):
        return (EXIT_VALIDATION_OR_CONFIG, exc.args[0] if exc.args else "Image processing failed.")
    if isinstance(exc, CancellationError):
        return (EXIT_CANCELLED, exc.args[0] if exc.args else "Cancelled.")
    if isinstance(exc, APIError):
        return (EXIT_API_OR_NETWORK, _api_error_message(exc))
    if isinstance(exc, RequestError):
        return (EXIT_API_OR_NETWORK, exc.args[0] if exc.args else "Network error.")
    if isinstance(exc, ReveError):
        return (EXIT_API_OR_NETWORK, exc.args[0] if exc.args else "An error occurred.")
    # Unhandled
    return (EXIT_API_OR_NETWORK, str(exc) if exc.args else "An unexpected error occurred.")


def run_with_error_handling(
    fn: Callable[[], None],
    *,
    quiet: bool = False,
    debug: bool = False,
) -> None:
    """
    Run fn(); on exception map to exit code and message, print and sys.exit.
    Used so command bodies stay free of try/except for known errors.
    """
    try:
        fn()
    except ReveError as e:
        code, msg = map_exception_to_exit(e)
        if code == EXIT_CANCELLED:
            if not quiet:
                progress.print_warning(msg)
        else:
            if quiet:
                click.echo(msg, err=True)
            else:
                progress.print_error(msg)
        sys.exit(code)
    except Exception as e:
        if debug:
            raise
        code, msg = map_exception_to_exit(e)
        if quiet:
            click.echo(msg, err=True)
        else:
            progress.print_error(msg)
        sys.exit(EXIT_API_OR_NETWORK)


def install_sigint_handler() -> signal.Handlers:
    """Install SIGINT handler for cancellation, return old handler."""
    old_handler = signal.signal(signal.SIGINT, handle_sigint)
    return old_handler  # type: ignore[return-value]


def restore_sigint_handler(old_handler: signal.Handlers) -> None:
    """Restore previous SIGINT handler."""
    signal.signal(signal.SIGINT, old_handler)


__all__ = [
    "cancel_token",
    "handle_sigint",
    "reset_cancellation",
    "map_exception_to_exit",
    "run_with_error_handling",
    "install_sigint_handler",
    "restore_sigint_handler",
]
