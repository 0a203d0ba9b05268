"""Credential references and secure storage helpers for provider API keys.

Responsibilities:
- Represent provider credentials as opaque references resolved at client build time.
- Persist provider API keys in an OS-backed secure credential store.
- Avoid logging or exposing secret values in diagnostics, reprs, or metadata.

Key types:
- `CredentialRef`: opaque handle naming where a provider secret comes from.
- `CredentialStore`: interface for provider credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Mapping

import keyring
from keyring.backends.fail import Keyring as _FailKeyring
from keyring.errors import KeyringError
from loguru import logger

from .parsing import normalize_optional_string


_DEFAULT_SERVICE_NAME = "lingoroute"


class CredentialStore:
    """Interface for secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_api_key(self, account_name: str) -> str | None:
        """Load the stored API key for one provider account, when available."""

        raise NotImplementedError

    def set_api_key(self, account_name: str, api_key: str) -> None:
        """Persist an API key for one provider account."""

        raise NotImplementedError

    def clear_api_key(self, account_name: str) -> bool:
        """Delete a stored API key and return whether one existed."""

        raise NotImplementedError


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package."""

    service_name: str = _DEFAULT_SERVICE_NAME

    def _load_keyring_module(self):
        """Return the `keyring` module; separated so tests can swap the backend."""

        return keyring

    def is_available(self) -> bool:
        """Return `True` when a usable (non-failing) keyring backend is configured."""

        keyring_module = self._load_keyring_module()
        if keyring_module is None:
            return False
        get_backend = getattr(keyring_module, "get_keyring", None)
        if get_backend is None:
            return True
        return not isinstance(get_backend(), _FailKeyring)

    def get_api_key(self, account_name: str) -> str | None:
        """Get a normalized API key from keyring, returning `None` when missing."""

        keyring_module = self._load_keyring_module()
        if keyring_module is None:
            return None
        try:
            value = keyring_module.get_password(self.service_name, account_name)
        except KeyringError as exc:
            logger.warning(
                "[credentials] level=WARNING event=keyring_read_failed account={} error_type={}",
                account_name,
                type(exc).__name__,
            )
            return None
        return normalize_optional_string(value)

    def set_api_key(self, account_name: str, api_key: str) -> None:
        """Persist a normalized API key in keyring or raise when unavailable."""

        keyring_module = self._load_keyring_module()
        if keyring_module is None:
            raise RuntimeError("Secure credential storage is unavailable.")

        normalized = normalize_optional_string(api_key)
        if normalized is None:
            raise ValueError("API key must be a non-empty string.")
        keyring_module.set_password(self.service_name, account_name, normalized)

    def clear_api_key(self, account_name: str) -> bool:
        """Remove the stored API key from keyring and report if one was present."""

        keyring_module = self._load_keyring_module()
        if keyring_module is None:
            return False

        existing = self.get_api_key(account_name)
        if existing is None:
            return False

        keyring_module.delete_password(self.service_name, account_name)
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()


@dataclass(frozen=True, slots=True)
class CredentialRef:
    """Opaque reference to a provider secret.

    The secret itself is only read by `resolve`; it never appears in `repr`,
    equality-insensitive metadata, or configuration dumps.

    Attributes:
        provider_id: Provider the credential belongs to.
        env_var: Environment variable consulted during resolution.
        keyring_account: Keyring account name consulted after the environment.
        value: Inline secret (config files, tests); takes precedence when set.
    """

    provider_id: str
    env_var: str | None = None
    keyring_account: str | None = None
    value: str | None = field(default=None, repr=False, compare=False)

    def resolve(
        self,
        env: Mapping[str, str] | None = None,
        store: CredentialStore | None = None,
    ) -> str | None:
        """Resolve the secret: inline value > environment > keyring store."""

        inline_value = normalize_optional_string(self.value)
        if inline_value is not None:
            return inline_value

        env_map: Mapping[str, str] = os.environ if env is None else env
        if self.env_var is not None:
            env_value = normalize_optional_string(env_map.get(self.env_var))
            if env_value is not None:
                return env_value

        if self.keyring_account is not None and store is not None:
            return store.get_api_key(self.keyring_account)
        return None

    def describe_source(self) -> str:
        """Describe where the secret would come from without revealing it."""

        sources: list[str] = []
        if normalize_optional_string(self.value) is not None:
            sources.append("inline")
        if self.env_var is not None:
            sources.append(f"env:{self.env_var}")
        if self.keyring_account is not None:
            sources.append(f"keyring:{self.keyring_account}")
        return ",".join(sources) if sources else "none"
