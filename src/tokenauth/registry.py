"""Provider registry -- maps API targets to their token providers.

A process that talks to several APIs typically needs a different credential
for each one.  The :class:`ProviderRegistry` holds one
:class:`~tokenauth.providers.base.TokenProvider` per target and is the
default dependency context handed to :class:`~tokenauth.handler.TokenAuth`,
whose resolver looks the target up here.

Targets are identified by name.  A class (for instance a typed API client)
may be used as the target, in which case its ``__name__`` is the key.

For configuration-driven setups, :func:`create_registry` builds a registry
from a :class:`~tokenauth.models.GlobalConfig`.

See Also:
    :func:`tokenauth.handler.resolve_provider` -- the default resolver.
"""

from __future__ import annotations

from typing import Any

from tokenauth.exceptions import ConfigError, ProviderNotFoundError
from tokenauth.models import GlobalConfig, ProviderConfig
from tokenauth.providers.base import TokenProvider


def target_name(target: Any) -> str:
    """Return the registry key for *target* (a name or a class)."""
    if isinstance(target, str):
        return target
    if isinstance(target, type):
        return target.__name__
    raise TypeError(f"API target must be a name or a class, got {type(target).__name__}")


class ProviderRegistry:
    """Registry of token providers keyed by API target.

    Example::

        registry = ProviderRegistry()
        registry.register("billing", CredentialSourceProvider("env:BILLING_TOKEN"))
        auth = TokenAuth(registry, "billing")
    """

    def __init__(self) -> None:
        self._providers: dict[str, TokenProvider] = {}

    def register(self, target: Any, provider: TokenProvider) -> None:
        """Bind *provider* to *target*, replacing any existing binding.

        Args:
            target: Target name or class.
            provider: The provider serving that target.
        """
        self._providers[target_name(target)] = provider

    def get(self, target: Any) -> TokenProvider:
        """Return the provider bound to *target*.

        Raises:
            ProviderNotFoundError: If nothing is registered for *target*.
        """
        name = target_name(target)
        provider = self._providers.get(name)
        if provider is None:
            available = ", ".join(sorted(self._providers)) or "(none)"
            raise ProviderNotFoundError(
                f"No token provider registered for target '{name}'. "
                f"Available targets: {available}"
            )
        return provider

    def list_targets(self) -> list[str]:
        """Return the registered target names, sorted."""
        return sorted(self._providers)

    def __contains__(self, target: object) -> bool:
        try:
            return target_name(target) in self._providers
        except TypeError:
            return False

    def __len__(self) -> int:
        return len(self._providers)


def create_provider(config: ProviderConfig) -> TokenProvider:
    """Instantiate the provider described by *config*.

    Supported types:

    - ``credential`` -- :class:`~tokenauth.providers.credential.CredentialSourceProvider`,
      requires ``source``.
    - ``command`` -- :class:`~tokenauth.providers.command.CommandTokenProvider`,
      requires ``command``.

    Raises:
        ConfigError: If the type is unknown or a required field is missing.
    """
    from tokenauth.providers.command import CommandTokenProvider
    from tokenauth.providers.credential import CredentialSourceProvider

    if config.type == "credential":
        if not config.source:
            raise ConfigError("Provider type 'credential' requires 'source'")
        return CredentialSourceProvider(
            config.source,
            token_type=config.token_type,
            expires_in=config.expires_in,
            refresh_margin=config.refresh_margin,
        )

    if config.type == "command":
        if not config.command:
            raise ConfigError("Provider type 'command' requires 'command'")
        return CommandTokenProvider(
            config.command,
            token_type=config.token_type,
            expires_in=config.expires_in,
            timeout=config.timeout,
            refresh_margin=config.refresh_margin,
        )

    raise ConfigError(
        f"Unknown provider type '{config.type}'. Available types: command, credential"
    )


def create_registry(config: GlobalConfig) -> ProviderRegistry:
    """Build a :class:`ProviderRegistry` with one provider per configured target.

    Args:
        config: The loaded configuration.

    Returns:
        A registry keyed by target name.

    Raises:
        ConfigError: If any target's provider configuration is invalid.
    """
    registry = ProviderRegistry()
    for name, target in config.targets.items():
        try:
            registry.register(name, create_provider(target.provider))
        except ConfigError as exc:
            raise ConfigError(f"Target '{name}': {exc}") from exc
    return registry
