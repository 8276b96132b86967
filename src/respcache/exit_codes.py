"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~respcache.exceptions.RespcacheError` subclass.
Shell wrappers can inspect the exit code of ``respcache get`` to tell a
network failure from an HTTP error without parsing stderr.

Example::

    $ respcache get https://api.example.com/users
    $ echo $?
    5   # EXIT_HTTP_ERROR -- the server answered outside 2xx and no stale entry existed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_CACHE_MISS = 3
"""A cache-only lookup found no usable entry."""

EXIT_STORE_ERROR = 4
"""The cache store could not be read or written."""

EXIT_HTTP_ERROR = 5
"""The transport answered with a status outside the accepted range."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
