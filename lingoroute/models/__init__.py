"""Datatypes for the lingoroute domain."""

from .datatypes import (
    AttemptOutcome,
    AttemptRecord,
    Failed,
    FallbackAttemptLog,
    ProviderItemOutcome,
    Translated,
    TranslationOutcome,
    TranslationRequest,
    TranslationResult,
)

__all__ = [
    "AttemptOutcome",
    "AttemptRecord",
    "Failed",
    "FallbackAttemptLog",
    "ProviderItemOutcome",
    "Translated",
    "TranslationOutcome",
    "TranslationRequest",
    "TranslationResult",
]
