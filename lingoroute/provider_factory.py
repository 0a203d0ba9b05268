"""Provider factory helpers for the fallback router.

Responsibilities:
- Resolve provider credentials once, at client build time.
- Build one `ProviderClient` (with its own limiter and stats) per configured provider.
- Keep routing independent from concrete client construction.
"""

from __future__ import annotations

from time import monotonic, sleep
from typing import Callable, Mapping

from .config import ProviderConfig, TranslationConfig
from .credentials import CredentialStore
from .providers.client import ProviderClient
from .telemetry.logger import RouterLogger


class ProviderFactory:
    """Factory for provider clients used by `FallbackRouter`.

    Credentials resolve in order: inline value, environment variable, and the
    credential store when one is given.
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        store: CredentialStore | None = None,
        logger: RouterLogger | None = None,
        clock: Callable[[], float] = monotonic,
        sleeper: Callable[[float], None] = sleep,
    ) -> None:
        """Initialize credential sources and shared timing hooks."""

        self._env = env
        self._store = store
        self._logger = logger or RouterLogger()
        self._clock = clock
        self._sleeper = sleeper

    def resolve_api_key(self, config: ProviderConfig) -> str | None:
        """Resolve the secret behind a provider's credential reference."""

        if config.credential is None:
            return None
        return config.credential.resolve(env=self._env, store=self._store)

    def create_client(self, config: ProviderConfig) -> ProviderClient:
        """Create a provider client for one provider configuration."""

        config.validate()
        return ProviderClient(
            config,
            api_key=self.resolve_api_key(config),
            logger=self._logger,
            clock=self._clock,
            sleeper=self._sleeper,
        )

    def create_clients(self, config: TranslationConfig) -> list[ProviderClient]:
        """Create clients for every configured provider, in tier order."""

        ordered = sorted(config.providers, key=lambda provider: provider.tier)
        return [self.create_client(provider) for provider in ordered]
