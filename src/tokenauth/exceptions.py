"""Exception hierarchy for tokenauth.

All exceptions inherit from :class:`TokenAuthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`tokenauth.exit_codes`.
The CLI entry point :func:`tokenauth.app.main` catches ``TokenAuthError``
and exits with the appropriate code.  Library callers only ever see
:class:`ProviderNotFoundError`, :class:`TokenRequestError`,
:class:`InvalidUsageError` and :class:`ConfigError`; the interceptor itself
returns a persistent 401 as an ordinary response.

Subclass hierarchy::

    TokenAuthError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- AuthError              (exit 3)
    |   +-- TokenRequestError  (exit 3)
    +-- NotFoundError          (exit 4)
    +-- ServerError            (exit 5)
    +-- ConnectionError_       (exit 6)
    +-- ProviderNotFoundError  (exit 8)
    +-- ConfigError            (exit 1)
"""

from tokenauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PROVIDER_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class TokenAuthError(Exception):
    """Root of the hierarchy.  ``exit_code`` is what ``tokenauth`` exits with.

    Pass *exit_code* to override the class default for one instance.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(TokenAuthError):
    """Bad CLI input, or an async-only hook used with a sync client."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(TokenAuthError):
    """The server still rejected the request after the token was refreshed."""

    exit_code = EXIT_AUTH_FAILURE


class TokenRequestError(AuthError):
    """A provider could not produce a usable token."""


class NotFoundError(TokenAuthError):
    """HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(TokenAuthError):
    """Any other HTTP error status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(TokenAuthError):
    """The request never got a response.  Trailing underscore keeps the builtin visible."""

    exit_code = EXIT_CONNECTION_ERROR


class ProviderNotFoundError(TokenAuthError):
    """No provider registered for the target an interceptor was built for."""

    exit_code = EXIT_PROVIDER_NOT_FOUND


class ConfigError(TokenAuthError):
    """The config file or a credential source could not be used."""

    exit_code = EXIT_GENERIC_FAILURE
