"""Error taxonomy shared by providers, the retry policy, and the fallback router.

Responsibilities:
- Name every failure the orchestration core can observe with a stable `ErrorKind`.
- Carry provider/status metadata without ever carrying credential material.
- Keep messages short and redacted so they are safe to log and display.

Key types:
- `LingorouteError`: base class for all domain failures.
- `ErrorKind`: string enum recorded on failed results and attempt logs.
"""

from __future__ import annotations

from enum import Enum
import re


_MAX_MESSAGE_CHARS = 180


class ErrorKind(str, Enum):
    """Stable failure categories surfaced in outcomes, logs, and stats."""

    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    UNSUPPORTED_LANGUAGE_PAIR = "unsupported_language_pair"
    MALFORMED_RESPONSE = "malformed_response"
    INVALID_REQUEST = "invalid_request"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"
    CANCELLED = "cancelled"


def redact_secrets(text: str) -> str:
    """Redact API-key-like tokens from provider or transport error text."""

    redacted = re.sub(r"\bsk-[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
    redacted = re.sub(
        r"(?i)\b(bearer|deepl-auth-key|key)\s+(?=[A-Za-z._:-]*\d)[A-Za-z0-9._:-]{8,}",
        lambda match: f"{match.group(1)} [redacted-token]",
        redacted,
    )
    redacted = re.sub(r"(?i)([?&]key=)[^&\s]+", r"\1[redacted]", redacted)
    return redacted


def short_message(text: str) -> str:
    """Normalize whitespace, redact secrets, and cap message length."""

    compact = " ".join(redact_secrets(text).split())
    if len(compact) <= _MAX_MESSAGE_CHARS:
        return compact
    return f"{compact[: _MAX_MESSAGE_CHARS - 3]}..."


class LingorouteError(RuntimeError):
    """Base error for translation orchestration failures."""

    kind: ErrorKind = ErrorKind.UNAVAILABLE

    def __init__(
        self,
        message: str,
        *,
        provider_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize error metadata with a redacted, length-capped message."""

        super().__init__(short_message(message))
        self.provider_id = provider_id
        self.status_code = status_code

    @property
    def message(self) -> str:
        """Return the sanitized error message."""

        return str(self)


class AuthenticationError(LingorouteError):
    """Provider rejected the credential (HTTP 401/403)."""

    kind = ErrorKind.AUTHENTICATION


class RateLimitExceeded(LingorouteError):
    """Provider or local limiter refused the call; carries a suggested wait."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        *,
        retry_after_seconds: float | None = None,
        provider_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize rate-limit metadata including optional `Retry-After` delay."""

        super().__init__(message, provider_id=provider_id, status_code=status_code)
        self.retry_after_seconds = retry_after_seconds


class ProviderUnavailable(LingorouteError):
    """Network failure, timeout, or 5xx response from a provider."""

    kind = ErrorKind.UNAVAILABLE


class UnsupportedLanguagePair(LingorouteError):
    """Provider cannot translate between the requested languages."""

    kind = ErrorKind.UNSUPPORTED_LANGUAGE_PAIR


class MalformedResponseError(LingorouteError):
    """Provider answered but the payload could not be used."""

    kind = ErrorKind.MALFORMED_RESPONSE


class InvalidRequestError(LingorouteError, ValueError):
    """Request rejected before dispatch, or by a provider with HTTP 400."""

    kind = ErrorKind.INVALID_REQUEST


class CancelledError(LingorouteError):
    """Batch deadline passed or the caller cancelled the batch."""

    kind = ErrorKind.CANCELLED


class AllProvidersExhausted(LingorouteError):
    """No provider could serve the request."""

    kind = ErrorKind.ALL_PROVIDERS_EXHAUSTED

    def __init__(self, message: str, *, last_error_kind: ErrorKind | None = None) -> None:
        """Initialize terminal error with the kind of the last observed failure."""

        super().__init__(message)
        self.last_error_kind = last_error_kind


class ConfigError(ValueError):
    """Raised when provider or router configuration is invalid."""


class CommandError(RuntimeError):
    """Raised when a CLI command fails at a specific step."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a step-scoped command error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
