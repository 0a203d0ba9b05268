"""Structured routing logs.

Responsibilities:
- Emit concise, deterministic one-line routing events through `loguru`.
- Keep credentials and source text out of every emitted line.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


def configure_logging(sink: TextIO | None = None, level: str = "INFO") -> None:
    """Route loguru output to one sink with plain message formatting (CLI use)."""

    _loguru_logger.remove()
    _loguru_logger.add(
        sink or sys.stderr, format="{message}", level=level.upper(), colorize=False
    )


class RouterLogger:
    """Emit deterministic routing events for fallback observability."""

    def _emit(self, level: str, event: str, **context: object) -> None:
        """Emit one structured routing log line."""

        line = f"[route] level={level} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def provider_skipped(self, provider_id: str, tier: int, reason: str) -> None:
        """Log a provider skipped without counting it as a failure."""

        self._emit("INFO", "provider_skipped", provider=provider_id, tier=tier, reason=reason)

    def provider_attempt(self, provider_id: str, tier: int, texts: int, position: int) -> None:
        """Log the start of a provider attempt for pending texts."""

        self._emit(
            "DEBUG",
            "provider_attempt",
            provider=provider_id,
            tier=tier,
            texts=texts,
            position=position,
        )

    def provider_succeeded(self, provider_id: str, tier: int, texts: int) -> None:
        """Log texts translated by a provider."""

        self._emit("INFO", "provider_succeeded", provider=provider_id, tier=tier, texts=texts)

    def provider_failed(self, provider_id: str, tier: int, texts: int, error_kind: str) -> None:
        """Log texts a provider could not translate, without payload details."""

        self._emit(
            "WARNING",
            "provider_failed",
            provider=provider_id,
            tier=tier,
            texts=texts,
            error_kind=error_kind,
        )

    def retry_scheduled(
        self, provider_id: str, attempt: int, max_retries: int, delay_seconds: float, error_kind: str
    ) -> None:
        """Log a backoff before retrying the same provider."""

        self._emit(
            "WARNING",
            "retry_scheduled",
            provider=provider_id,
            attempt=f"{attempt}/{max_retries}",
            delay=f"{delay_seconds:.3f}",
            error_kind=error_kind,
        )

    def fallback_used(self, provider_id: str, tier: int, texts: int, failures: int) -> None:
        """Warn when texts were served by a provider other than the first candidate."""

        self._emit(
            "WARNING",
            "fallback_used",
            provider=provider_id,
            tier=tier,
            texts=texts,
            prior_failures=failures,
        )

    def request_complete(
        self, target_lang: str, texts: int, cache_hits: int, failed: int, elapsed_seconds: float
    ) -> None:
        """Log one completed batch."""

        self._emit(
            "INFO",
            "request_complete",
            target=target_lang,
            texts=texts,
            cache_hits=cache_hits,
            failed=failed,
            elapsed=f"{elapsed_seconds:.3f}",
        )
