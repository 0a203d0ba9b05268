"""Provider ordering and tiered fallback routing."""

from .preferences import LanguagePreferenceMatcher
from .router import CACHE_PROVIDER_ID, FallbackRouter

__all__ = ["CACHE_PROVIDER_ID", "FallbackRouter", "LanguagePreferenceMatcher"]
