"""Integration-test fixtures for deterministic CLI and provider behavior."""

from __future__ import annotations

import pytest

from lingoroute import cli


class InMemoryCredentialStore:
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self) -> None:
        """Initialize an empty account mapping."""

        self.values: dict[str, str] = {}

    def is_available(self) -> bool:
        """Return availability flag expected by the CLI status command."""

        return True

    def get_api_key(self, account_name: str) -> str | None:
        """Return the stored API key for one account."""

        return self.values.get(account_name)

    def set_api_key(self, account_name: str, api_key: str) -> None:
        """Persist a normalized API key value."""

        self.values[account_name] = api_key.strip()

    def clear_api_key(self, account_name: str) -> bool:
        """Clear an API key and return whether one existed."""

        return self.values.pop(account_name, None) is not None


@pytest.fixture(autouse=True)
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Replace keyring access and scrub provider keys from the environment."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr(cli, "create_credential_store", lambda: store)
    for name in (
        "SYSTRAN_API_KEY",
        "DEEPL_API_KEY",
        "GOOGLE_API_KEY",
        "OPENAI_API_KEY",
        "LINGOROUTE_SKIP_ON_MISSING_KEY",
        "LINGOROUTE_STOP_ON_FIRST_SUCCESS",
        "LINGOROUTE_LOG_FALLBACK_EVENTS",
        "LINGOROUTE_DISABLED_PROVIDERS",
        "LINGOROUTE_CACHE_CAPACITY",
        "LINGOROUTE_CACHE_TTL_SECONDS",
        "LINGOROUTE_MAX_TEXT_CHARS",
        "LINGOROUTE_MAX_WORKERS",
        "LINGOROUTE_SOURCE_LANG",
    ):
        monkeypatch.delenv(name, raising=False)
    return store
