"""Core datatypes exchanged between callers, providers, and the fallback router.

Responsibilities:
- Represent immutable request, result, and attempt-log records.
- Validate caller requests before any cache lookup or provider dispatch.

Key types:
- `TranslationRequest`, `Translated`, `Failed`, `TranslationOutcome`,
  `AttemptRecord`, and `ProviderItemOutcome`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from ..errors import ErrorKind, InvalidRequestError, LingorouteError
from ..parsing import normalize_language_code


class AttemptOutcome(str, Enum):
    """Result of one provider attempt for one text."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    """One entry in a per-text fallback attempt log.

    Attributes:
        provider_id: Provider that was attempted or skipped.
        provider_tier: Tier of that provider.
        outcome: Success, failure, or skip.
        latency_seconds: Wall time spent in the provider call (0 for skips).
        error_kind: Failure category for failed attempts, skip reason for skips.
    """

    provider_id: str
    provider_tier: int
    outcome: AttemptOutcome
    latency_seconds: float = 0.0
    error_kind: ErrorKind | None = None


FallbackAttemptLog = tuple[AttemptRecord, ...]


@dataclass(frozen=True, slots=True)
class TranslationRequest:
    """A batch of source texts to translate into one target language.

    Attributes:
        texts: Ordered source texts; duplicates are allowed.
        source_lang: ISO 639-1 source language code.
        target_lang: ISO 639-1 target language code.
        context_hint: Optional free-text hint forwarded to LLM-backed providers.
    """

    texts: tuple[str, ...]
    source_lang: str
    target_lang: str
    context_hint: str | None = None

    def __post_init__(self) -> None:
        """Store texts as a tuple so requests stay immutable."""

        if not isinstance(self.texts, tuple):
            object.__setattr__(self, "texts", tuple(self.texts))

    def validate(self, max_text_chars: int) -> TranslationRequest:
        """Return a normalized copy of the request or raise `InvalidRequestError`."""

        if not self.texts:
            raise InvalidRequestError("Translation request must contain at least one text.")
        for index, text in enumerate(self.texts):
            if not isinstance(text, str):
                raise InvalidRequestError(f"Text at index {index} is not a string.")
            if len(text) > max_text_chars:
                raise InvalidRequestError(
                    f"Text at index {index} has {len(text)} characters; "
                    f"the limit is {max_text_chars}."
                )

        source = normalize_language_code(self.source_lang)
        if source is None:
            raise InvalidRequestError(f"`{self.source_lang}` is not a valid source language code.")
        target = normalize_language_code(self.target_lang)
        if target is None:
            raise InvalidRequestError(f"`{self.target_lang}` is not a valid target language code.")
        if source == target:
            raise InvalidRequestError("Source and target languages must differ.")

        return TranslationRequest(
            texts=self.texts,
            source_lang=source,
            target_lang=target,
            context_hint=self.context_hint,
        )


@dataclass(frozen=True, slots=True)
class Translated:
    """Successful translation for one input text."""

    text: str
    provider_id: str
    provider_tier: int
    cache_hit: bool
    attempts: FallbackAttemptLog = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        """Return `True` for successful results."""

        return True


@dataclass(frozen=True, slots=True)
class Failed:
    """Terminal failure for one input text, carrying the last observed error kind."""

    error_kind: ErrorKind
    message: str = ""
    attempts: FallbackAttemptLog = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        """Return `False` for failed results."""

        return False


TranslationResult = Union[Translated, Failed]


@dataclass(frozen=True, slots=True)
class TranslationOutcome:
    """Results parallel to `request.texts`, in input order."""

    request: TranslationRequest
    results: tuple[TranslationResult, ...]

    @property
    def all_succeeded(self) -> bool:
        """Return whether every text was translated."""

        return all(result.ok for result in self.results)

    def translations(self) -> list[str | None]:
        """Return translated text per input position, `None` for failures."""

        return [
            result.text if isinstance(result, Translated) else None for result in self.results
        ]

    def failed_indices(self) -> list[int]:
        """Return input positions that failed."""

        return [index for index, result in enumerate(self.results) if not result.ok]


@dataclass(frozen=True, slots=True)
class ProviderItemOutcome:
    """Per-text provider result: a translation or the error that ended its sub-batch."""

    text: str | None = None
    error: LingorouteError | None = None
    latency_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        """Return whether the provider produced a translation."""

        return self.error is None and self.text is not None
