"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~tokenauth.exceptions.TokenAuthError` subclass.
Shell wrappers can inspect the exit code of ``tokenauth request`` to tell a
rejected credential apart from a network failure without parsing stderr.

Example::

    $ tokenauth request GET /invoices
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the retried request was still unauthorized
"""

EXIT_SUCCESS = 0
"""Success."""

EXIT_GENERIC_FAILURE = 1
"""Config errors and crashes."""

EXIT_INVALID_USAGE = 2
"""Bad arguments or misuse of the library API."""

EXIT_AUTH_FAILURE = 3
"""A token could not be obtained, or the server kept rejecting it."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP error other than 401/403/404."""

EXIT_CONNECTION_ERROR = 6
"""No response from the server, e.g. a timeout."""

EXIT_PROVIDER_NOT_FOUND = 8
"""No token provider is configured for the requested target."""
