"""Tiered fallback routing across translation providers.

Responsibilities:
- Partition a batch into cache hits and misses, dispatching identical texts once.
- Try providers in preference/tier order until every text is translated.
- Record a per-text attempt log, write successes through to the cache, and emit events.

Key types:
- `FallbackRouter`: caller-facing orchestrator with `translate` and `stats`.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from time import monotonic
from typing import Callable, Iterable, Sequence

from ..cache import CacheKey, ResultCache
from ..cancellation import CancellationToken
from ..config import FallbackConfig
from ..errors import AllProvidersExhausted, ErrorKind, LingorouteError
from ..models.datatypes import (
    AttemptOutcome,
    AttemptRecord,
    Failed,
    ProviderItemOutcome,
    Translated,
    TranslationOutcome,
    TranslationRequest,
    TranslationResult,
)
from ..providers.client import ProviderClient
from ..telemetry.logger import RouterLogger
from ..telemetry.stats import RouterStats
from .preferences import LanguagePreferenceMatcher


CACHE_PROVIDER_ID = "cache"

_SKIP_DISABLED = "disabled"
_SKIP_MISSING_CREDENTIAL = "missing_credential"
_SKIP_UNSUPPORTED_PAIR = "unsupported_language_pair"

_SKIP_ERROR_KINDS = {
    _SKIP_DISABLED: None,
    _SKIP_MISSING_CREDENTIAL: ErrorKind.AUTHENTICATION,
    _SKIP_UNSUPPORTED_PAIR: ErrorKind.UNSUPPORTED_LANGUAGE_PAIR,
}


@dataclass(slots=True)
class _PendingText:
    """Routing state for one unique text of a batch."""

    key: CacheKey
    text: str
    indices: list[int]
    result: TranslationResult | None = None
    attempts: list[AttemptRecord] = field(default_factory=list)
    last_error: LingorouteError | None = None
    last_error_kind: ErrorKind | None = None


class FallbackRouter:
    """Translate batches through tiered providers with caching and fallback.

    The router owns a worker pool used to dispatch provider sub-batches
    concurrently; call `close()` (or use it as a context manager) to release it.
    """

    def __init__(
        self,
        providers: Sequence[ProviderClient],
        cache: ResultCache,
        fallback: FallbackConfig | None = None,
        matcher: LanguagePreferenceMatcher | None = None,
        max_text_chars: int = 5000,
        max_workers: int = 4,
        logger: RouterLogger | None = None,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        """Initialize the router with shared provider clients and cache."""

        ids = [provider.provider_id for provider in providers]
        if len(set(ids)) != len(ids):
            raise ValueError("Provider identifiers must be unique.")
        self._providers = tuple(providers)
        self._cache = cache
        self._fallback = fallback or FallbackConfig()
        self._matcher = matcher or LanguagePreferenceMatcher()
        self._max_text_chars = max_text_chars
        self._logger = logger or RouterLogger()
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="lingoroute"
        )

    def __enter__(self) -> FallbackRouter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def providers(self) -> tuple[ProviderClient, ...]:
        """Return configured provider clients."""

        return self._providers

    @property
    def cache(self) -> ResultCache:
        """Return the shared result cache."""

        return self._cache

    def close(self) -> None:
        """Shut down the sub-batch worker pool."""

        self._executor.shutdown(wait=True)

    def order_providers(self, target_lang: str) -> list[ProviderClient]:
        """Return providers in the order they would be tried for a target language."""

        return self._matcher.order_providers(target_lang, self._providers)

    def skip_reason(self, provider: ProviderClient, request: TranslationRequest) -> str | None:
        """Return why a provider cannot be attempted for a request, or `None`."""

        if not provider.config.enabled:
            return _SKIP_DISABLED
        if not provider.validate_credentials():
            return _SKIP_MISSING_CREDENTIAL
        if not provider.supports(request.source_lang, request.target_lang):
            return _SKIP_UNSUPPORTED_PAIR
        return None

    def translate(
        self, request: TranslationRequest, timeout: float | None = None
    ) -> TranslationOutcome:
        """Translate a batch, returning results in input order.

        Args:
            request: Texts and language pair to translate.
            timeout: Optional batch deadline in seconds; unresolved texts then fail
                with `ErrorKind.CANCELLED`.

        Raises:
            InvalidRequestError: the request is malformed.
            AllProvidersExhausted: no text was served from the cache and no provider
                can be attempted. With some cache hits, the misses fail individually.
        """

        started_at = self._clock()
        request = request.validate(self._max_text_chars)
        cancel_token = CancellationToken(timeout_seconds=timeout) if timeout is not None else None

        states, cache_hits = self._partition(request)
        misses = [state for state in states if state.result is None]
        if misses:
            self._dispatch(request, misses, cancel_token, served_from_cache=cache_hits > 0)

        results = self._assemble(request, states, cancel_token)
        outcome = TranslationOutcome(request=request, results=tuple(results))
        self._logger.request_complete(
            target_lang=request.target_lang,
            texts=len(request.texts),
            cache_hits=cache_hits,
            failed=len(outcome.failed_indices()),
            elapsed_seconds=self._clock() - started_at,
        )
        return outcome

    def stats(self) -> RouterStats:
        """Return cache stats and per-provider counters."""

        return RouterStats(
            cache=self._cache.stats(),
            providers=tuple(provider.stats.snapshot() for provider in self._providers),
        )

    def _partition(self, request: TranslationRequest) -> tuple[list[_PendingText], int]:
        """Group identical texts and resolve cache hits."""

        grouped: dict[CacheKey, _PendingText] = {}
        cache_hits = 0
        for index, text in enumerate(request.texts):
            key = self._cache.make_key(text, request.source_lang, request.target_lang)
            state = grouped.get(key)
            if state is not None:
                state.indices.append(index)
                continue
            state = _PendingText(key=key, text=text, indices=[index])
            cached = self._cache.get(key)
            if cached is not None:
                cache_hits += 1
                state.result = Translated(
                    text=cached,
                    provider_id=CACHE_PROVIDER_ID,
                    provider_tier=0,
                    cache_hit=True,
                )
            grouped[key] = state
        return list(grouped.values()), cache_hits

    def _dispatch(
        self,
        request: TranslationRequest,
        misses: list[_PendingText],
        cancel_token: CancellationToken | None,
        served_from_cache: bool = False,
    ) -> None:
        """Walk the ordered provider list until every miss is resolved."""

        ordered = self.order_providers(request.target_lang)
        skip_reasons = {
            provider.provider_id: self.skip_reason(provider, request) for provider in ordered
        }
        candidates = [provider for provider in ordered if skip_reasons[provider.provider_id] is None]
        if not candidates:
            for provider in ordered:
                self._record_skip(provider, skip_reasons[provider.provider_id] or "", misses)
            exhausted = AllProvidersExhausted(
                f"No provider can translate {request.source_lang} -> {request.target_lang}: "
                "every provider is disabled, unsupported, or missing credentials.",
                last_error_kind=self._exhausted_kind(skip_reasons.values()),
            )
            if not served_from_cache:
                raise exhausted
            for state in misses:
                state.last_error = exhausted
                state.last_error_kind = (
                    exhausted.last_error_kind or ErrorKind.ALL_PROVIDERS_EXHAUSTED
                )
            return
        first_candidate_id = candidates[0].provider_id

        for position, provider in enumerate(ordered):
            if self._fallback.stop_on_first_success:
                targets = [state for state in misses if state.result is None]
            else:
                targets = list(misses)
            if not targets:
                break
            if cancel_token is not None and cancel_token.is_cancelled():
                break

            reason = skip_reasons[provider.provider_id]
            if reason is not None:
                self._record_skip(provider, reason, targets)
                continue

            self._logger.provider_attempt(
                provider.provider_id, provider.tier, texts=len(targets), position=position
            )
            outcomes = self._call_provider(provider, request, targets, cancel_token)
            served = 0
            failed_kinds: list[str] = []
            for state, item in zip(targets, outcomes):
                if item.ok:
                    state.attempts.append(
                        AttemptRecord(
                            provider_id=provider.provider_id,
                            provider_tier=provider.tier,
                            outcome=AttemptOutcome.SUCCESS,
                            latency_seconds=item.latency_seconds,
                        )
                    )
                    if state.result is None:
                        state.result = Translated(
                            text=item.text or "",
                            provider_id=provider.provider_id,
                            provider_tier=provider.tier,
                            cache_hit=False,
                        )
                        self._cache.set(state.key, item.text or "")
                        served += 1
                    continue
                error_kind = item.error.kind if item.error is not None else ErrorKind.UNAVAILABLE
                state.attempts.append(
                    AttemptRecord(
                        provider_id=provider.provider_id,
                        provider_tier=provider.tier,
                        outcome=AttemptOutcome.FAILED,
                        latency_seconds=item.latency_seconds,
                        error_kind=error_kind,
                    )
                )
                if state.result is None:
                    state.last_error = item.error
                    state.last_error_kind = error_kind
                failed_kinds.append(error_kind.value)

            if served:
                self._logger.provider_succeeded(provider.provider_id, provider.tier, texts=served)
                if self._fallback.log_fallback_events and provider.provider_id != first_candidate_id:
                    self._logger.fallback_used(
                        provider.provider_id,
                        provider.tier,
                        texts=served,
                        failures=sum(
                            1
                            for state in targets
                            for record in state.attempts
                            if record.outcome is AttemptOutcome.FAILED
                        ),
                    )
            if failed_kinds:
                self._logger.provider_failed(
                    provider.provider_id,
                    provider.tier,
                    texts=len(failed_kinds),
                    error_kind=failed_kinds[-1],
                )

    def _call_provider(
        self,
        provider: ProviderClient,
        request: TranslationRequest,
        targets: list[_PendingText],
        cancel_token: CancellationToken | None,
    ) -> list[ProviderItemOutcome]:
        """Send pending texts to one provider; a client-level refusal fails them all."""

        texts = [state.text for state in targets]
        try:
            return provider.translate(
                texts,
                request.source_lang,
                request.target_lang,
                cancel_token=cancel_token,
                context_hint=request.context_hint,
                executor=self._executor,
            )
        except LingorouteError as exc:
            return [ProviderItemOutcome(error=exc) for _ in texts]

    def _record_skip(
        self, provider: ProviderClient, reason: str, targets: list[_PendingText]
    ) -> None:
        """Record a skipped provider, or a credential failure when skipping is disabled."""

        if reason == _SKIP_MISSING_CREDENTIAL and not self._fallback.skip_on_missing_key:
            for state in targets:
                state.attempts.append(
                    AttemptRecord(
                        provider_id=provider.provider_id,
                        provider_tier=provider.tier,
                        outcome=AttemptOutcome.FAILED,
                        error_kind=ErrorKind.AUTHENTICATION,
                    )
                )
                if state.result is None:
                    state.last_error_kind = ErrorKind.AUTHENTICATION
            provider.stats.record_outcomes(successes=0, failures=len(targets))
            self._logger.provider_failed(
                provider.provider_id,
                provider.tier,
                texts=len(targets),
                error_kind=ErrorKind.AUTHENTICATION.value,
            )
            return

        for state in targets:
            state.attempts.append(
                AttemptRecord(
                    provider_id=provider.provider_id,
                    provider_tier=provider.tier,
                    outcome=AttemptOutcome.SKIPPED,
                    error_kind=_SKIP_ERROR_KINDS.get(reason),
                )
            )
        provider.stats.record_skips(len(targets))
        self._logger.provider_skipped(provider.provider_id, provider.tier, reason=reason)

    @staticmethod
    def _exhausted_kind(reasons: Iterable[str | None]) -> ErrorKind | None:
        """Pick the most actionable error kind when no provider was usable."""

        present = set(reasons)
        if _SKIP_MISSING_CREDENTIAL in present:
            return ErrorKind.AUTHENTICATION
        if _SKIP_UNSUPPORTED_PAIR in present:
            return ErrorKind.UNSUPPORTED_LANGUAGE_PAIR
        return None

    @staticmethod
    def _assemble(
        request: TranslationRequest,
        states: list[_PendingText],
        cancel_token: CancellationToken | None,
    ) -> list[TranslationResult]:
        """Fan unique-text results back out to every input position."""

        cancelled = cancel_token is not None and cancel_token.is_cancelled()
        results: list[TranslationResult | None] = [None] * len(request.texts)
        for state in states:
            attempts = tuple(state.attempts)
            if isinstance(state.result, Translated):
                result: TranslationResult = replace(state.result, attempts=attempts)
            else:
                if cancelled and state.last_error_kind is not ErrorKind.CANCELLED:
                    kind = ErrorKind.CANCELLED
                    message = "Translation batch timed out before this text was translated."
                else:
                    kind = state.last_error_kind or ErrorKind.ALL_PROVIDERS_EXHAUSTED
                    message = (
                        state.last_error.message
                        if state.last_error is not None
                        else "Every provider failed for this text."
                    )
                result = Failed(error_kind=kind, message=message, attempts=attempts)
            first, *duplicates = state.indices
            results[first] = result
            for index in duplicates:
                results[index] = (
                    replace(result, cache_hit=True) if isinstance(result, Translated) else result
                )
        return [result for result in results if result is not None]
