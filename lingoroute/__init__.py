"""Top-level package for lingoroute.

This package routes batches of application strings through tiered machine
translation providers with rate limiting, retries, caching, and fallback. The
main entry point is `FallbackRouter`, usually built with `build_router`.
"""

from .api import build_router, translate_texts
from .cache import ResultCache
from .config import ConfigLoader, FallbackConfig, ProviderConfig, ProviderKind, TranslationConfig
from .errors import AllProvidersExhausted, ErrorKind, InvalidRequestError, LingorouteError
from .models.datatypes import Failed, Translated, TranslationOutcome, TranslationRequest
from .routing import FallbackRouter, LanguagePreferenceMatcher

__all__ = [
    "AllProvidersExhausted",
    "ConfigLoader",
    "ErrorKind",
    "FallbackConfig",
    "FallbackRouter",
    "Failed",
    "InvalidRequestError",
    "LanguagePreferenceMatcher",
    "LingorouteError",
    "ProviderConfig",
    "ProviderKind",
    "ResultCache",
    "Translated",
    "TranslationConfig",
    "TranslationOutcome",
    "TranslationRequest",
    "__version__",
    "build_router",
    "translate_texts",
]

__version__ = "0.3.0"
