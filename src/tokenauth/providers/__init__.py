"""Token providers -- the credential sources bound to a :class:`~tokenauth.handler.TokenAuth`.

- :class:`TokenProvider` -- abstract base with a single-flight token cache.
- :class:`CredentialSourceProvider` -- reads ``env:``, ``file:`` or ``prompt`` sources.
- :class:`CommandTokenProvider` -- runs a command that prints a token.
- :class:`FunctionTokenProvider` -- wraps an application callable.
"""

from tokenauth.providers.base import TokenProvider, coerce_token
from tokenauth.providers.command import CommandTokenProvider
from tokenauth.providers.credential import CredentialSourceProvider
from tokenauth.providers.function import FunctionTokenProvider

__all__ = [
    "TokenProvider",
    "CommandTokenProvider",
    "CredentialSourceProvider",
    "FunctionTokenProvider",
    "coerce_token",
]
