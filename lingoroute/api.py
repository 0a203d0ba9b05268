"""Caller-facing construction helpers.

Responsibilities:
- Build the process-wide cache and provider clients once from a `TranslationConfig`.
- Offer a one-call convenience wrapper for scripts.
"""

from __future__ import annotations

from time import monotonic, sleep
from typing import Callable, Mapping, Sequence

from .cache import ResultCache
from .config import TranslationConfig
from .credentials import CredentialStore
from .models.datatypes import TranslationOutcome, TranslationRequest
from .provider_factory import ProviderFactory
from .routing.router import FallbackRouter
from .telemetry.logger import RouterLogger


def build_router(
    config: TranslationConfig | None = None,
    env: Mapping[str, str] | None = None,
    store: CredentialStore | None = None,
    clock: Callable[[], float] = monotonic,
    sleeper: Callable[[float], None] = sleep,
) -> FallbackRouter:
    """Build a router whose cache and per-provider limiters are shared by all callers.

    Credentials are resolved here, once; `store` enables keyring lookups.
    """

    resolved = config or TranslationConfig()
    resolved.validate()
    logger = RouterLogger()
    factory = ProviderFactory(env=env, store=store, logger=logger, clock=clock, sleeper=sleeper)
    return FallbackRouter(
        providers=factory.create_clients(resolved),
        cache=ResultCache(
            capacity=resolved.cache_capacity,
            ttl_seconds=resolved.cache_ttl_seconds,
            clock=clock,
        ),
        fallback=resolved.fallback,
        max_text_chars=resolved.max_text_chars,
        max_workers=resolved.max_workers,
        logger=logger,
        clock=clock,
    )


def translate_texts(
    texts: Sequence[str],
    target_lang: str,
    source_lang: str | None = None,
    config: TranslationConfig | None = None,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
    store: CredentialStore | None = None,
) -> TranslationOutcome:
    """Translate texts with a short-lived router built from `config`."""

    resolved = config or TranslationConfig()
    request = TranslationRequest(
        texts=tuple(texts),
        source_lang=source_lang or resolved.source_lang,
        target_lang=target_lang,
    )
    with build_router(resolved, env=env, store=store) as router:
        return router.translate(request, timeout=timeout)
