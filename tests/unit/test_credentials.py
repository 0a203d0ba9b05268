"""Unit tests for credential references and the keyring-backed store."""

from __future__ import annotations

from keyring.errors import KeyringError

from lingoroute.credentials import CredentialRef, KeyringCredentialStore


class FakeKeyringModule:
    """In-memory keyring stub for deterministic credential store tests."""

    def __init__(self) -> None:
        """Initialize fake storage dictionary."""

        self._storage: dict[tuple[str, str], str] = {}

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Return previously stored password if present."""

        return self._storage.get((service_name, account_name))

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        """Store password value for the service/account key."""

        self._storage[(service_name, account_name)] = value

    def delete_password(self, service_name: str, account_name: str) -> None:
        """Delete password value for the service/account key."""

        self._storage.pop((service_name, account_name), None)


class BrokenKeyringModule(FakeKeyringModule):
    """Keyring stub whose reads fail like a locked backend."""

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Raise a keyring backend error."""

        raise KeyringError("backend locked")


class InMemoryCredentialStore:
    """Dictionary-backed credential store."""

    def __init__(self, values: dict[str, str]) -> None:
        """Initialize stored values."""

        self.values = values

    def get_api_key(self, account_name: str) -> str | None:
        """Return a stored value."""

        return self.values.get(account_name)


def test_keyring_store_roundtrip_per_provider_account(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    """Keyring store should set/get/clear keys independently per provider account."""

    fake_keyring = FakeKeyringModule()
    store = KeyringCredentialStore()
    monkeypatch.setattr(store, "_load_keyring_module", lambda: fake_keyring)

    assert store.is_available() is True
    assert store.get_api_key("deepl_api_key") is None

    store.set_api_key("deepl_api_key", "  d-abc123  ")
    store.set_api_key("google_api_key", "g-xyz")
    assert store.get_api_key("deepl_api_key") == "d-abc123"
    assert fake_keyring._storage[("lingoroute", "google_api_key")] == "g-xyz"

    assert store.clear_api_key("deepl_api_key") is True
    assert store.get_api_key("deepl_api_key") is None
    assert store.clear_api_key("deepl_api_key") is False
    assert store.get_api_key("google_api_key") == "g-xyz"


def test_keyring_store_handles_missing_keyring_module() -> None:
    """Keyring store should degrade safely when no keyring module is usable."""

    store = KeyringCredentialStore()
    store._load_keyring_module = lambda: None  # type: ignore[method-assign]

    assert store.is_available() is False
    assert store.get_api_key("openai_api_key") is None
    assert store.clear_api_key("openai_api_key") is False


def test_keyring_read_errors_resolve_to_missing(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    """Backend errors during reads should behave like an absent key."""

    store = KeyringCredentialStore()
    monkeypatch.setattr(store, "_load_keyring_module", lambda: BrokenKeyringModule())

    assert store.get_api_key("systran_api_key") is None


def test_credential_ref_resolution_order() -> None:
    """Inline value beats environment, which beats the credential store."""

    store = InMemoryCredentialStore({"deepl_api_key": "from-keyring"})
    ref = CredentialRef(provider_id="deepl", env_var="DEEPL_API_KEY", keyring_account="deepl_api_key")

    assert ref.resolve(env={}, store=store) == "from-keyring"
    assert ref.resolve(env={}, store=None) is None
    assert ref.resolve(env={"DEEPL_API_KEY": " from-env "}, store=store) == "from-env"

    inline = CredentialRef(
        provider_id="deepl", env_var="DEEPL_API_KEY", value="from-config"
    )
    assert inline.resolve(env={"DEEPL_API_KEY": "from-env"}) == "from-config"


def test_credential_ref_repr_hides_secret() -> None:
    """The inline secret must not appear in `repr` or source descriptions."""

    ref = CredentialRef(provider_id="openai", env_var="OPENAI_API_KEY", value="sk-hidden-123456")

    assert "sk-hidden-123456" not in repr(ref)
    assert ref.describe_source() == "inline,env:OPENAI_API_KEY"
    assert CredentialRef(provider_id="x").describe_source() == "none"
