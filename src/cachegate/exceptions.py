"""Exception hierarchy for cachegate.

All exceptions inherit from :class:`CachegateError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`cachegate.exit_codes`.
The CLI entry point in :func:`cachegate.app.main` catches ``CachegateError``
and exits with the appropriate code.

A cache miss is not an exception; lookups return ``None``.

Subclass hierarchy::

    CachegateError          (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- CommitRejected      (exit 5)
    +-- NetworkError        (exit 6)
    +-- StorageUnavailable  (exit 8)
    +-- ConfigError         (exit 1)
"""

from __future__ import annotations

from cachegate.exit_codes import (
    EXIT_COMMIT_REJECTED,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_ERROR,
    EXIT_STORAGE_UNAVAILABLE,
)


class CachegateError(Exception):
    """Base exception for all cachegate errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(CachegateError):
    """Raised for invalid CLI arguments (bad header syntax, unknown mutation kind)."""

    exit_code = EXIT_INVALID_USAGE


class NetworkError(CachegateError):
    """Raised when a fetch fails at the network level (unreachable, DNS, timeout).

    Request-serving strategies convert this into a fallback response. It
    only escapes the engine when the placeholder image or offline page that
    should replace the failed response has never been cached.
    """

    exit_code = EXIT_NETWORK_ERROR


class CommitRejected(CachegateError):
    """Raised when the server answers a pending-write commit with a non-2xx status.

    Args:
        message: Human-readable error description.
        status_code: The HTTP status the server returned.
    """

    exit_code = EXIT_COMMIT_REJECTED

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class StorageUnavailable(CachegateError):
    """Raised when the cache store or pending-write queue cannot be opened or read."""

    exit_code = EXIT_STORAGE_UNAVAILABLE


class ConfigError(CachegateError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
