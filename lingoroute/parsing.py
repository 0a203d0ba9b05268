"""Shared parsing helpers for configuration values and language codes."""

from __future__ import annotations

import re


_TRUE_BOOLEAN_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_BOOLEAN_TOKENS = frozenset({"0", "false", "no", "off"})
_LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}(-[a-z0-9]{2,4})?$")


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_permissive_boolean(value: object) -> bool | None:
    """Parse a permissive boolean token and return `None` for invalid values."""

    if isinstance(value, bool):
        return value

    normalized = normalize_optional_string(value)
    if normalized is None:
        return None

    token = normalized.lower()
    if token in _TRUE_BOOLEAN_TOKENS:
        return True
    if token in _FALSE_BOOLEAN_TOKENS:
        return False
    return None


def normalize_language_code(value: object) -> str | None:
    """Return a lower-case ISO 639-1 style code (`fi`, `pt-br`) or `None` when invalid.

    Underscores are accepted as region separators (`pt_BR`).
    """

    normalized = normalize_optional_string(value)
    if normalized is None:
        return None
    token = normalized.replace("_", "-").lower()
    if not _LANGUAGE_CODE_PATTERN.match(token):
        return None
    return token


def base_language(code: str) -> str:
    """Return the primary language subtag (`pt-br` -> `pt`)."""

    return code.split("-", 1)[0].lower()
