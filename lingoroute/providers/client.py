"""Provider client driving one remote translation service.

Responsibilities:
- Split pending texts into provider-sized sub-batches.
- Admit every upstream call through the provider's rate limiter.
- Retry transient failures with backoff, then report per-text outcomes.

Key types:
- `ProviderClient`: one configured provider; the wire format is chosen by `ProviderKind`.
"""

from __future__ import annotations

from concurrent.futures import Executor
from time import monotonic, sleep
from typing import Callable

from ..cancellation import CancellationToken
from ..config import ProviderConfig
from ..errors import (
    AuthenticationError,
    CancelledError,
    LingorouteError,
    UnsupportedLanguagePair,
)
from ..models.datatypes import ProviderItemOutcome
from ..parsing import base_language, normalize_optional_string
from ..telemetry.logger import RouterLogger
from ..telemetry.stats import ProviderStats
from .http_client import ProviderHttpClient
from .rate_limiter import RateLimiter, create_rate_limiter
from .retry import RetryPolicy
from .wire import WireFormat, wire_format_for


class ProviderClient:
    """Translate sub-batches against one provider with admission control and retries."""

    def __init__(
        self,
        config: ProviderConfig,
        api_key: str | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        http: ProviderHttpClient | None = None,
        stats: ProviderStats | None = None,
        logger: RouterLogger | None = None,
        wire: WireFormat | None = None,
        clock: Callable[[], float] = monotonic,
        sleeper: Callable[[float], None] = sleep,
    ) -> None:
        """Initialize a client; the secret is kept private and never rendered."""

        self.config = config
        self._api_key = normalize_optional_string(api_key)
        self._clock = clock
        self._sleeper = sleeper
        self._wire = wire or wire_format_for(config.kind)
        self._rate_limiter = rate_limiter or create_rate_limiter(
            config.rate_limit_per_second, clock=clock, sleeper=sleeper
        )
        self._retry_policy = retry_policy or RetryPolicy(
            max_retries=config.max_retries,
            base_delay_seconds=config.retry_base_delay_seconds,
            max_delay_seconds=config.retry_max_delay_seconds,
        )
        self._http = http or ProviderHttpClient(config.provider_id)
        self.stats = stats or ProviderStats(
            config.provider_id, config.tier, config.cost_per_million_chars_usd
        )
        self._logger = logger or RouterLogger()

    def __repr__(self) -> str:
        return (
            f"ProviderClient(provider_id={self.provider_id!r}, kind={self.config.kind.value!r}, "
            f"tier={self.tier}, available={self.is_available})"
        )

    @property
    def provider_id(self) -> str:
        """Return the configured provider identifier."""

        return self.config.provider_id

    @property
    def tier(self) -> int:
        """Return the provider tier."""

        return self.config.tier

    @property
    def rate_limiter(self) -> RateLimiter:
        """Return the limiter shared by every call to this provider."""

        return self._rate_limiter

    @property
    def is_available(self) -> bool:
        """Return whether the provider is enabled and has a credential."""

        return self.config.enabled and self.validate_credentials()

    def validate_credentials(self) -> bool:
        """Return whether a non-empty credential was resolved for this provider."""

        return self._api_key is not None

    def supported_language_pairs(self) -> frozenset[tuple[str, str]] | None:
        """Return supported `(source, target)` base-language pairs, `None` for any pair."""

        languages = self._wire.supported_languages()
        if languages is None:
            return None
        return frozenset(
            (source, target) for source in languages for target in languages if source != target
        )

    def supports(self, source_lang: str, target_lang: str) -> bool:
        """Return whether this provider can translate between two language codes."""

        languages = self._wire.supported_languages()
        if languages is None:
            return True
        return base_language(source_lang) in languages and base_language(target_lang) in languages

    def chunk(self, texts: list[str]) -> list[list[str]]:
        """Split texts into sub-batches of at most `batch_size` (`0` = one batch)."""

        size = self.config.batch_size
        if size <= 0 or len(texts) <= size:
            return [list(texts)]
        return [list(texts[start : start + size]) for start in range(0, len(texts), size)]

    def translate(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
        cancel_token: CancellationToken | None = None,
        context_hint: str | None = None,
        executor: Executor | None = None,
    ) -> list[ProviderItemOutcome]:
        """Translate texts and return one outcome per input text, in input order.

        Raises:
            UnsupportedLanguagePair: provider cannot serve the pair (no network call).
            AuthenticationError: no credential was resolved (no network call).
        """

        if not texts:
            return []
        if not self.supports(source_lang, target_lang):
            raise UnsupportedLanguagePair(
                f"{self.provider_id} does not support {source_lang} -> {target_lang}.",
                provider_id=self.provider_id,
            )
        if self._api_key is None:
            raise AuthenticationError(
                f"{self.provider_id} has no API key configured.", provider_id=self.provider_id
            )

        chunks = self.chunk(list(texts))
        if executor is None or len(chunks) == 1:
            chunk_outcomes = [
                self._translate_chunk(chunk, source_lang, target_lang, cancel_token, context_hint)
                for chunk in chunks
            ]
        else:
            futures = [
                executor.submit(
                    self._translate_chunk,
                    chunk,
                    source_lang,
                    target_lang,
                    cancel_token,
                    context_hint,
                )
                for chunk in chunks
            ]
            chunk_outcomes = [future.result() for future in futures]

        outcomes = [outcome for chunk_result in chunk_outcomes for outcome in chunk_result]
        successes = sum(1 for outcome in outcomes if outcome.ok)
        self.stats.record_outcomes(successes=successes, failures=len(outcomes) - successes)
        return outcomes

    def _translate_chunk(
        self,
        chunk: list[str],
        source_lang: str,
        target_lang: str,
        cancel_token: CancellationToken | None,
        context_hint: str | None,
    ) -> list[ProviderItemOutcome]:
        """Run one sub-batch to completion and fan its result out per text."""

        started_at = self._clock()
        try:
            translations = self._call_with_retry(
                chunk, source_lang, target_lang, cancel_token, context_hint
            )
        except LingorouteError as exc:
            latency = self._clock() - started_at
            return [ProviderItemOutcome(error=exc, latency_seconds=latency) for _ in chunk]
        latency = self._clock() - started_at
        return [
            ProviderItemOutcome(text=translated, latency_seconds=latency)
            for translated in translations
        ]

    def _call_with_retry(
        self,
        chunk: list[str],
        source_lang: str,
        target_lang: str,
        cancel_token: CancellationToken | None,
        context_hint: str | None,
    ) -> list[str]:
        """Admit, send, and retry one sub-batch until success or a terminal failure."""

        attempt = 0
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                self._rate_limiter.acquire_blocking(1, cancel_token=cancel_token)
                return self._send(chunk, source_lang, target_lang, cancel_token, context_hint)
            except LingorouteError as exc:
                if not self._retry_policy.should_retry(exc, attempt):
                    raise
                delay = self._retry_policy.delay_for(exc, attempt)
                self.stats.record_retry()
                self._logger.retry_scheduled(
                    self.provider_id,
                    attempt=attempt + 1,
                    max_retries=self._retry_policy.max_retries,
                    delay_seconds=delay,
                    error_kind=exc.kind.value,
                )
                self._pause(delay, cancel_token)
                attempt += 1

    def _send(
        self,
        chunk: list[str],
        source_lang: str,
        target_lang: str,
        cancel_token: CancellationToken | None,
        context_hint: str | None,
    ) -> list[str]:
        """Perform one upstream call and parse its translations."""

        timeout = self.config.timeout_seconds
        if cancel_token is not None:
            remaining = cancel_token.remaining()
            if remaining is not None:
                if remaining <= 0.0:
                    raise CancelledError(
                        "Translation batch deadline passed before the request was sent.",
                        provider_id=self.provider_id,
                    )
                timeout = min(timeout, remaining)

        call = self._wire.build_call(
            chunk,
            source_lang,
            target_lang,
            api_key=self._api_key or "",
            config=self.config,
            context_hint=context_hint,
        )
        self.stats.record_upstream_call(sum(len(text) for text in chunk))
        body = self._http.post_json(
            call.url,
            payload=call.payload,
            headers=call.headers,
            params=call.params,
            timeout_seconds=timeout,
        )
        return self._wire.parse_translations(body, chunk, self.config)

    def _pause(self, delay: float, cancel_token: CancellationToken | None) -> None:
        """Back off before a retry, waking early when the batch is cancelled."""

        if cancel_token is None:
            if delay > 0.0:
                self._sleeper(delay)
            return
        if cancel_token.wait(delay):
            raise CancelledError(
                "Translation batch was cancelled during retry backoff.",
                provider_id=self.provider_id,
            )
