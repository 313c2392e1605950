"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~cachegate.exceptions.CachegateError` subclass.

Example::

    $ cachegate fetch http://localhost:3000/offline-only --navigate
    $ echo $?
    6   # EXIT_NETWORK_ERROR -- offline and no offline page cached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_COMMIT_REJECTED = 5
"""The server rejected a batch of pending writes."""

EXIT_NETWORK_ERROR = 6
"""A network-level error occurred and no cached fallback was available."""

EXIT_STORAGE_UNAVAILABLE = 8
"""The cache store or pending-write queue could not be opened or read."""
