"""Provider wire formats.

Every provider speaks JSON over HTTPS; they differ only in request/response
shape, auth placement, and language-code spelling. Each `ProviderKind` maps to
one `WireFormat` instance here, and `ProviderClient` drives all of them with
the same control flow.

All parsers also accept the generic shape
`{"translations": [{"translated_text": ..., "detected_source_language": ...}]}`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import re
from typing import Any, Mapping, Protocol

from ..config import ProviderConfig, ProviderKind
from ..errors import MalformedResponseError
from ..parsing import base_language


_DEEPL_LANGUAGES = frozenset(
    {
        "bg", "cs", "da", "de", "el", "en", "es", "et", "fi", "fr", "hu", "id", "it",
        "ja", "ko", "lt", "lv", "nb", "nl", "pl", "pt", "ro", "ru", "sk", "sl", "sv",
        "tr", "uk", "zh",
    }
)

_LANGUAGE_NAMES = {
    "ar": "Arabic",
    "cs": "Czech",
    "da": "Danish",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fi": "Finnish",
    "fr": "French",
    "hi": "Hindi",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "no": "Norwegian",
    "pl": "Polish",
    "pt": "Portuguese",
    "ru": "Russian",
    "sv": "Swedish",
    "th": "Thai",
    "vi": "Vietnamese",
    "zh": "Chinese",
}

_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
_CODE_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


@dataclass(frozen=True, slots=True)
class WireCall:
    """One fully-built HTTP call (credential-bearing; never logged)."""

    url: str
    payload: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict, repr=False)
    params: dict[str, str] = field(default_factory=dict, repr=False)


class WireFormat(Protocol):
    """Request builder and response parser for one provider kind."""

    kind: ProviderKind
    default_endpoint: str

    def supported_languages(self) -> frozenset[str] | None:
        """Return supported base language codes, or `None` for any language."""

    def build_call(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
        *,
        api_key: str,
        config: ProviderConfig,
        context_hint: str | None = None,
    ) -> WireCall:
        """Build the HTTP call for one sub-batch."""

    def parse_translations(
        self, body: Any, texts: list[str], config: ProviderConfig
    ) -> list[str]:
        """Extract one translation per input text, in input order."""


def _bcp47(code: str) -> str:
    """Return `xx` or `xx-YY` spelling for region-qualified codes."""

    language, _, region = code.partition("-")
    return f"{language}-{region.upper()}" if region else language


def _generic_translations(body: Any) -> list[str] | None:
    """Read the generic `translations[].translated_text` shape, if present."""

    if not isinstance(body, Mapping):
        return None
    items = body.get("translations")
    if not isinstance(items, list):
        return None
    texts: list[str] = []
    for item in items:
        if not isinstance(item, Mapping) or not isinstance(item.get("translated_text"), str):
            return None
        texts.append(item["translated_text"])
    return texts


def _require_count(provider_id: str, translations: list[str], texts: list[str]) -> list[str]:
    """Fail when the provider returned a different number of translations."""

    if len(translations) != len(texts):
        raise MalformedResponseError(
            f"{provider_id} returned {len(translations)} translation(s) "
            f"for {len(texts)} input text(s).",
            provider_id=provider_id,
        )
    return translations


def _collect(
    provider_id: str,
    items: object,
    text_key: str,
    texts: list[str],
) -> list[str]:
    """Read `items[].<text_key>` strings, failing on any malformed item."""

    if not isinstance(items, list):
        raise MalformedResponseError(
            f"{provider_id} response is missing a translation list.", provider_id=provider_id
        )
    collected: list[str] = []
    for item in items:
        value = item.get(text_key) if isinstance(item, Mapping) else None
        if not isinstance(value, str):
            raise MalformedResponseError(
                f"{provider_id} response item is missing `{text_key}`.",
                provider_id=provider_id,
            )
        collected.append(value)
    return _require_count(provider_id, collected, texts)


class SystranWire:
    """Systran Translate API (enterprise MT)."""

    kind = ProviderKind.SYSTRAN
    default_endpoint = "https://api-translate.systran.net/translation/text/translate"

    def supported_languages(self) -> frozenset[str] | None:
        """Return `None`: any language pair is accepted."""

        return None

    def build_call(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
        *,
        api_key: str,
        config: ProviderConfig,
        context_hint: str | None = None,
    ) -> WireCall:
        """Build a Systran call; the key goes in the `Authorization: Key` header."""

        payload: dict[str, Any] = {
            "input": list(texts),
            "source": base_language(source_lang),
            "target": base_language(target_lang),
        }
        if config.profile:
            payload["profile"] = config.profile
        return WireCall(
            url=config.endpoint or self.default_endpoint,
            payload=payload,
            headers={"Authorization": f"Key {api_key}"},
        )

    def parse_translations(
        self, body: Any, texts: list[str], config: ProviderConfig
    ) -> list[str]:
        """Read `outputs[].output`, or the generic shape."""

        generic = _generic_translations(body)
        if generic is not None:
            return _require_count(config.provider_id, generic, texts)
        outputs = body.get("outputs") if isinstance(body, Mapping) else None
        return _collect(config.provider_id, outputs, "output", texts)


class DeepLWire:
    """DeepL API (European-focused MT)."""

    kind = ProviderKind.DEEPL
    default_endpoint = "https://api-free.deepl.com/v2/translate"

    def supported_languages(self) -> frozenset[str] | None:
        """Return the base language codes DeepL translates between."""

        return _DEEPL_LANGUAGES

    @staticmethod
    def target_code(target_lang: str) -> str:
        """Return DeepL's target spelling (`en` -> `EN-US`, `pt` -> `PT-BR`)."""

        if "-" in target_lang:
            return target_lang.upper()
        return {"en": "EN-US", "pt": "PT-BR"}.get(target_lang, target_lang.upper())

    def build_call(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
        *,
        api_key: str,
        config: ProviderConfig,
        context_hint: str | None = None,
    ) -> WireCall:
        """Build a DeepL call with upper-case language codes and an optional context."""

        payload: dict[str, Any] = {
            "text": list(texts),
            "source_lang": base_language(source_lang).upper(),
            "target_lang": self.target_code(target_lang),
        }
        if context_hint:
            payload["context"] = context_hint
        return WireCall(
            url=config.endpoint or self.default_endpoint,
            payload=payload,
            headers={"Authorization": f"DeepL-Auth-Key {api_key}"},
        )

    def parse_translations(
        self, body: Any, texts: list[str], config: ProviderConfig
    ) -> list[str]:
        """Read `translations[].text`, or the generic shape."""

        generic = _generic_translations(body)
        if generic is not None:
            return _require_count(config.provider_id, generic, texts)
        items = body.get("translations") if isinstance(body, Mapping) else None
        return _collect(config.provider_id, items, "text", texts)


class GoogleWire:
    """Google Cloud Translation v2 (broad-coverage MT)."""

    kind = ProviderKind.GOOGLE
    default_endpoint = "https://translation.googleapis.com/language/translate/v2"

    def supported_languages(self) -> frozenset[str] | None:
        """Return `None`: any language pair is accepted."""

        return None

    def build_call(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
        *,
        api_key: str,
        config: ProviderConfig,
        context_hint: str | None = None,
    ) -> WireCall:
        """Build a Google v2 call; the key is passed as the `key` query parameter."""

        return WireCall(
            url=config.endpoint or self.default_endpoint,
            payload={
                "q": list(texts),
                "source": _bcp47(source_lang),
                "target": _bcp47(target_lang),
                "format": "text",
            },
            params={"key": api_key},
        )

    def parse_translations(
        self, body: Any, texts: list[str], config: ProviderConfig
    ) -> list[str]:
        """Read `data.translations[].translatedText`, or the generic shape."""

        generic = _generic_translations(body)
        if generic is not None:
            return _require_count(config.provider_id, generic, texts)
        data = body.get("data") if isinstance(body, Mapping) else None
        items = data.get("translations") if isinstance(data, Mapping) else None
        return _collect(config.provider_id, items, "translatedText", texts)


def extract_placeholders(text: str) -> list[str]:
    """Return sorted `{{name}}` placeholder names found in text."""

    return sorted(match.group(1) for match in _PLACEHOLDER_PATTERN.finditer(text))


class OpenAIWire:
    """OpenAI chat completions used as the LLM fallback tier."""

    kind = ProviderKind.OPENAI
    default_endpoint = "https://api.openai.com/v1/chat/completions"

    _SYSTEM_PROMPT = (
        "You are a professional translator specializing in UI/UX text. "
        "Return only valid JSON without any markdown formatting."
    )

    def supported_languages(self) -> frozenset[str] | None:
        """Return `None`: any language pair is accepted."""

        return None

    @staticmethod
    def language_name(code: str) -> str:
        """Return an English language name for prompts, falling back to the code."""

        return _LANGUAGE_NAMES.get(base_language(code), code)

    def build_call(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
        *,
        api_key: str,
        config: ProviderConfig,
        context_hint: str | None = None,
    ) -> WireCall:
        """Build a chat completion asking for a JSON array of translations."""

        lines = [
            f"Translate each string in the JSON array below from "
            f"{self.language_name(source_lang)} to {self.language_name(target_lang)}.",
            "Return ONLY a JSON array of translated strings with the same length and order.",
            "Preserve every placeholder such as {{count}} exactly; do not translate its name.",
        ]
        if context_hint:
            lines.append(f"Context: {context_hint}")
        lines.append("")
        lines.append(json.dumps(list(texts), ensure_ascii=False))
        return WireCall(
            url=config.endpoint or self.default_endpoint,
            payload={
                "model": config.model or "gpt-4.1-mini",
                "messages": [
                    {"role": "system", "content": self._SYSTEM_PROMPT},
                    {"role": "user", "content": "\n".join(lines)},
                ],
                "temperature": 0.3,
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def parse_translations(
        self, body: Any, texts: list[str], config: ProviderConfig
    ) -> list[str]:
        """Read the JSON array reply and reject changed `{{placeholder}}` tokens."""

        generic = _generic_translations(body)
        if generic is None:
            generic = self._parse_chat_content(body, config.provider_id)
        translations = _require_count(config.provider_id, generic, texts)
        for original, translated in zip(texts, translations):
            if extract_placeholders(original) != extract_placeholders(translated):
                raise MalformedResponseError(
                    f"{config.provider_id} changed placeholders in a translation.",
                    provider_id=config.provider_id,
                )
        return translations

    @staticmethod
    def _parse_chat_content(body: Any, provider_id: str) -> list[str]:
        """Read the JSON array returned in `choices[0].message.content`."""

        choices = body.get("choices") if isinstance(body, Mapping) else None
        if not isinstance(choices, list) or not choices:
            raise MalformedResponseError(
                f"{provider_id} response missing non-empty `choices` list.",
                provider_id=provider_id,
            )
        message = choices[0].get("message") if isinstance(choices[0], Mapping) else None
        content = message.get("content") if isinstance(message, Mapping) else None
        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError(
                f"{provider_id} response message content is empty.", provider_id=provider_id
            )
        cleaned = _CODE_FENCE_PATTERN.sub("", content.strip())
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise MalformedResponseError(
                f"{provider_id} message content is not a JSON array.", provider_id=provider_id
            ) from exc
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise MalformedResponseError(
                f"{provider_id} message content is not a JSON array of strings.",
                provider_id=provider_id,
            )
        return parsed


WIRE_FORMATS: dict[ProviderKind, WireFormat] = {
    ProviderKind.SYSTRAN: SystranWire(),
    ProviderKind.DEEPL: DeepLWire(),
    ProviderKind.GOOGLE: GoogleWire(),
    ProviderKind.OPENAI: OpenAIWire(),
}


def wire_format_for(kind: ProviderKind) -> WireFormat:
    """Return the wire format for a provider kind."""

    return WIRE_FORMATS[kind]
