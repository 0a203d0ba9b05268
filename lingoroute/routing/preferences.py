"""Target-language provider ordering.

Responsibilities:
- Promote providers that declare a preference for the target language.
- Keep tier order within the promoted and non-promoted groups.
"""

from __future__ import annotations

from typing import Protocol, Sequence, TypeVar

from ..config import ProviderConfig
from ..parsing import base_language, normalize_language_code


class _ConfiguredProvider(Protocol):
    config: ProviderConfig


ProviderT = TypeVar("ProviderT", bound=_ConfiguredProvider)


class LanguagePreferenceMatcher:
    """Order providers for one target language."""

    @staticmethod
    def matches(config: ProviderConfig, target_lang: str) -> bool:
        """Return whether an enabled provider prefers the target language."""

        if not config.enabled:
            return False
        target = normalize_language_code(target_lang) or target_lang.strip().lower()
        target_base = base_language(target)
        return any(base_language(language) == target_base for language in config.preferred_languages)

    def order_providers(
        self, target_lang: str, providers: Sequence[ProviderT]
    ) -> list[ProviderT]:
        """Return providers with preferred ones first, each group in tier order.

        The sort is stable, so providers sharing a tier keep their given order.
        Disabled providers stay in the list and are never promoted.
        """

        return sorted(
            providers,
            key=lambda provider: (
                not self.matches(provider.config, target_lang),
                provider.config.tier,
            ),
        )
