"""Configuration model and loaders for lingoroute.

Responsibilities:
- Define provider, fallback, and router settings as typed dataclasses.
- Provide the per-provider defaults for the four supported provider kinds.
- Provide loader entry points for YAML-, mapping-, and environment-based configuration.

Key types:
- `ProviderKind`: tag selecting a provider wire format.
- `ProviderConfig`: tier, limits, retry budget, and credential reference for one provider.
- `FallbackConfig`: global fallback switches.
- `TranslationConfig`: complete router configuration.
- `ConfigLoader`: static construction helpers for `TranslationConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .credentials import CredentialRef
from .errors import ConfigError
from .parsing import (
    normalize_language_code,
    normalize_optional_string,
    parse_permissive_boolean,
)


class ProviderKind(str, Enum):
    """Supported provider wire formats, listed in default tier order."""

    SYSTRAN = "systran"
    DEEPL = "deepl"
    GOOGLE = "google"
    OPENAI = "openai"


_DEFAULT_API_KEY_ENV = {
    ProviderKind.SYSTRAN: "SYSTRAN_API_KEY",
    ProviderKind.DEEPL: "DEEPL_API_KEY",
    ProviderKind.GOOGLE: "GOOGLE_API_KEY",
    ProviderKind.OPENAI: "OPENAI_API_KEY",
}

# tier, timeout, batch size, rate/s, USD per million characters
_KIND_DEFAULTS: dict[ProviderKind, tuple[int, float, int, float, float]] = {
    ProviderKind.SYSTRAN: (1, 45.0, 50, 100.0, 20.0),
    ProviderKind.DEEPL: (2, 30.0, 50, 10.0, 25.0),
    ProviderKind.GOOGLE: (3, 30.0, 100, 100.0, 20.0),
    ProviderKind.OPENAI: (4, 60.0, 15, 0.0, 30.0),
}

_DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Settings for one translation provider.

    Attributes:
        provider_id: Unique provider identifier used in logs, stats, and keyring.
        kind: Wire format used to talk to the provider.
        tier: Priority rank; lower tiers are tried first.
        enabled: Whether the provider takes part in routing.
        timeout_seconds: Per-request HTTP timeout.
        max_retries: Retries after the first attempt for retryable failures.
        batch_size: Maximum texts per upstream call (`0` = unlimited).
        rate_limit_per_second: Token refill rate (`0` = unlimited).
        preferred_languages: Target languages this provider is promoted for.
        credential: Opaque credential reference, or `None` when not configured.
        retry_base_delay_seconds: Backoff base delay.
        retry_max_delay_seconds: Backoff delay cap.
        cost_per_million_chars_usd: Cost profile for usage estimates.
        model: Model identifier for LLM-backed providers.
        endpoint: Override for the provider endpoint URL.
        profile: Optional provider-side translation profile.
    """

    provider_id: str
    kind: ProviderKind
    tier: int
    enabled: bool = True
    timeout_seconds: float = 30.0
    max_retries: int = 3
    batch_size: int = 50
    rate_limit_per_second: float = 10.0
    preferred_languages: frozenset[str] = field(default_factory=frozenset)
    credential: CredentialRef | None = None
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0
    cost_per_million_chars_usd: float = 0.0
    model: str | None = None
    endpoint: str | None = None
    profile: str | None = None

    @classmethod
    def defaults(cls, kind: ProviderKind | str, provider_id: str | None = None) -> ProviderConfig:
        """Return the default configuration for a provider kind."""

        resolved_kind = ProviderKind(kind)
        tier, timeout, batch_size, rate, cost = _KIND_DEFAULTS[resolved_kind]
        resolved_id = provider_id or resolved_kind.value
        return cls(
            provider_id=resolved_id,
            kind=resolved_kind,
            tier=tier,
            timeout_seconds=timeout,
            batch_size=batch_size,
            rate_limit_per_second=rate,
            credential=CredentialRef(
                provider_id=resolved_id,
                env_var=_DEFAULT_API_KEY_ENV[resolved_kind],
                keyring_account=f"{resolved_id}_api_key",
            ),
            cost_per_million_chars_usd=cost,
            model=_DEFAULT_OPENAI_MODEL if resolved_kind is ProviderKind.OPENAI else None,
        )

    def validate(self) -> None:
        """Validate provider settings before building a client."""

        if normalize_optional_string(self.provider_id) is None:
            raise ConfigError("Provider `provider_id` must be a non-empty string.")
        label = f"Provider `{self.provider_id}`"
        if self.tier < 0:
            raise ConfigError(f"{label} `priority` must be a non-negative integer.")
        if self.timeout_seconds <= 0:
            raise ConfigError(f"{label} `timeout` must be positive.")
        if self.max_retries < 0:
            raise ConfigError(f"{label} `max_retries` must be a non-negative integer.")
        if self.batch_size < 0:
            raise ConfigError(f"{label} `batch_size` must be a non-negative integer.")
        if self.rate_limit_per_second < 0:
            raise ConfigError(f"{label} `rate_limit_per_second` must be non-negative.")
        if self.retry_base_delay_seconds < 0 or self.retry_max_delay_seconds < 0:
            raise ConfigError(f"{label} retry delays must be non-negative.")
        for language in self.preferred_languages:
            if normalize_language_code(language) != language:
                raise ConfigError(
                    f"{label} `preferred_languages` contains invalid code `{language}`."
                )

    def as_metadata(self) -> dict[str, str]:
        """Return non-secret provider settings safe for logs and CLI output."""

        return {
            "provider": self.provider_id,
            "kind": self.kind.value,
            "tier": str(self.tier),
            "enabled": "true" if self.enabled else "false",
            "timeout_seconds": f"{self.timeout_seconds:g}",
            "max_retries": str(self.max_retries),
            "batch_size": str(self.batch_size),
            "rate_limit_per_second": f"{self.rate_limit_per_second:g}",
            "preferred_languages": ",".join(sorted(self.preferred_languages)),
            "credential_source": (
                self.credential.describe_source() if self.credential is not None else "none"
            ),
        }


@dataclass(frozen=True, slots=True)
class FallbackConfig:
    """Global fallback switches.

    Attributes:
        skip_on_missing_key: Skip credential-less providers instead of failing them.
        stop_on_first_success: Stop probing providers once a text is translated.
        log_fallback_events: Warn when a text was served by a non-first candidate.
    """

    skip_on_missing_key: bool = True
    stop_on_first_success: bool = True
    log_fallback_events: bool = True


def default_providers() -> tuple[ProviderConfig, ...]:
    """Return default configurations for all supported provider kinds."""

    return tuple(ProviderConfig.defaults(kind) for kind in ProviderKind)


@dataclass(frozen=True, slots=True)
class TranslationConfig:
    """Complete router configuration.

    Attributes:
        providers: Configured providers (any order; routing sorts by tier).
        fallback: Global fallback switches.
        cache_capacity: Maximum number of cached translations.
        cache_ttl_seconds: Cache entry lifetime (`None` = no expiry).
        max_text_chars: Maximum length of one source text.
        max_workers: Worker threads used for concurrent sub-batch dispatch.
        source_lang: Default source language code.
    """

    providers: tuple[ProviderConfig, ...] = field(default_factory=default_providers)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    cache_capacity: int = 1000
    cache_ttl_seconds: float | None = None
    max_text_chars: int = 5000
    max_workers: int = 4
    source_lang: str = "en"

    def validate(self) -> None:
        """Validate router configuration values."""

        seen: set[str] = set()
        for provider in self.providers:
            provider.validate()
            if provider.provider_id in seen:
                raise ConfigError(f"Duplicate provider id `{provider.provider_id}`.")
            seen.add(provider.provider_id)
        if self.cache_capacity <= 0:
            raise ConfigError("`cache_capacity` must be a positive integer.")
        if self.cache_ttl_seconds is not None and self.cache_ttl_seconds <= 0:
            raise ConfigError("`cache_ttl_seconds` must be positive when set.")
        if self.max_text_chars <= 0:
            raise ConfigError("`max_text_chars` must be a positive integer.")
        if self.max_workers <= 0:
            raise ConfigError("`max_workers` must be a positive integer.")
        if normalize_language_code(self.source_lang) is None:
            raise ConfigError(f"`source_lang` value `{self.source_lang}` is not a language code.")

    def provider(self, provider_id: str) -> ProviderConfig:
        """Return one provider configuration by identifier."""

        for provider in self.providers:
            if provider.provider_id == provider_id:
                return provider
        raise KeyError(provider_id)


class ConfigLoader:
    """Factory methods for creating `TranslationConfig` from external sources."""

    _SUPPORTED_KEYS = frozenset(
        {
            "providers",
            "fallback",
            "cache_capacity",
            "cache_ttl_seconds",
            "max_text_chars",
            "max_workers",
            "source_lang",
        }
    )
    _FALLBACK_KEYS = frozenset(
        {"skip_on_missing_key", "stop_on_first_success", "log_fallback_events"}
    )
    _PROVIDER_KEYS = frozenset(
        {
            "kind",
            "enabled",
            "priority",
            "timeout",
            "max_retries",
            "batch_size",
            "rate_limit_per_second",
            "preferred_languages",
            "api_key",
            "api_key_env",
            "keyring_account",
            "retry_base_delay",
            "retry_max_delay",
            "cost_per_million_chars_usd",
            "model",
            "endpoint",
            "profile",
        }
    )

    @staticmethod
    def from_yaml(path: Path) -> TranslationConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(path_text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML config `{path}` could not be parsed: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ConfigError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return ConfigLoader.from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_mapping(
        payload: Mapping[str, Any], source_label: str = "Config"
    ) -> TranslationConfig:
        """Build a validated config from a mapping payload."""

        ConfigLoader._reject_unknown_keys(payload, ConfigLoader._SUPPORTED_KEYS, source_label)

        fallback_payload = ConfigLoader._optional_mapping(payload, "fallback", source_label)
        ConfigLoader._reject_unknown_keys(
            fallback_payload, ConfigLoader._FALLBACK_KEYS, f"{source_label} `fallback`"
        )
        fallback = FallbackConfig(
            skip_on_missing_key=ConfigLoader._optional_boolean(
                fallback_payload, "skip_on_missing_key", source_label, default=True
            ),
            stop_on_first_success=ConfigLoader._optional_boolean(
                fallback_payload, "stop_on_first_success", source_label, default=True
            ),
            log_fallback_events=ConfigLoader._optional_boolean(
                fallback_payload, "log_fallback_events", source_label, default=True
            ),
        )

        providers_payload = ConfigLoader._optional_mapping(payload, "providers", source_label)
        providers = {provider.provider_id: provider for provider in default_providers()}
        for raw_id, raw_provider in providers_payload.items():
            provider_id = normalize_optional_string(raw_id)
            if provider_id is None:
                raise ConfigError(f"{source_label} `providers` contains a blank provider id.")
            if raw_provider is None:
                raw_provider = {}
            if not isinstance(raw_provider, Mapping):
                raise ConfigError(
                    f"{source_label} provider `{provider_id}` must be a mapping/object."
                )
            providers[provider_id] = ConfigLoader._build_provider(
                provider_id,
                raw_provider,
                base=providers.get(provider_id),
                source_label=f"{source_label} provider `{provider_id}`",
            )

        ttl = ConfigLoader._optional_positive_float(payload, "cache_ttl_seconds", source_label)
        source_lang = ConfigLoader._optional_language(payload, "source_lang", source_label)
        config = TranslationConfig(
            providers=tuple(providers.values()),
            fallback=fallback,
            cache_capacity=ConfigLoader._optional_positive_int(
                payload, "cache_capacity", source_label, default=1000
            ),
            cache_ttl_seconds=ttl,
            max_text_chars=ConfigLoader._optional_positive_int(
                payload, "max_text_chars", source_label, default=5000
            ),
            max_workers=ConfigLoader._optional_positive_int(
                payload, "max_workers", source_label, default=4
            ),
            source_lang=source_lang or "en",
        )
        config.validate()
        return config

    @staticmethod
    def from_env(
        env: Mapping[str, str] | None = None, base: TranslationConfig | None = None
    ) -> TranslationConfig:
        """Apply `LINGOROUTE_*` environment overrides on top of a base config."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        config = base if base is not None else TranslationConfig()
        label = "Environment"

        fallback = FallbackConfig(
            skip_on_missing_key=ConfigLoader._env_boolean(
                env_map, "LINGOROUTE_SKIP_ON_MISSING_KEY", config.fallback.skip_on_missing_key
            ),
            stop_on_first_success=ConfigLoader._env_boolean(
                env_map,
                "LINGOROUTE_STOP_ON_FIRST_SUCCESS",
                config.fallback.stop_on_first_success,
            ),
            log_fallback_events=ConfigLoader._env_boolean(
                env_map, "LINGOROUTE_LOG_FALLBACK_EVENTS", config.fallback.log_fallback_events
            ),
        )

        disabled_raw = normalize_optional_string(env_map.get("LINGOROUTE_DISABLED_PROVIDERS"))
        disabled = (
            {token.strip() for token in disabled_raw.split(",") if token.strip()}
            if disabled_raw is not None
            else set()
        )
        providers = tuple(
            replace(provider, enabled=False) if provider.provider_id in disabled else provider
            for provider in config.providers
        )

        env_payload: dict[str, Any] = {}
        for key, env_key in (
            ("cache_capacity", "LINGOROUTE_CACHE_CAPACITY"),
            ("cache_ttl_seconds", "LINGOROUTE_CACHE_TTL_SECONDS"),
            ("max_text_chars", "LINGOROUTE_MAX_TEXT_CHARS"),
            ("max_workers", "LINGOROUTE_MAX_WORKERS"),
            ("source_lang", "LINGOROUTE_SOURCE_LANG"),
        ):
            value = normalize_optional_string(env_map.get(env_key))
            if value is not None:
                env_payload[key] = value

        resolved = replace(
            config,
            providers=providers,
            fallback=fallback,
            cache_capacity=ConfigLoader._optional_positive_int(
                env_payload, "cache_capacity", label, default=config.cache_capacity
            ),
            cache_ttl_seconds=(
                ConfigLoader._optional_positive_float(env_payload, "cache_ttl_seconds", label)
                if "cache_ttl_seconds" in env_payload
                else config.cache_ttl_seconds
            ),
            max_text_chars=ConfigLoader._optional_positive_int(
                env_payload, "max_text_chars", label, default=config.max_text_chars
            ),
            max_workers=ConfigLoader._optional_positive_int(
                env_payload, "max_workers", label, default=config.max_workers
            ),
            source_lang=(
                ConfigLoader._optional_language(env_payload, "source_lang", label)
                or config.source_lang
            ),
        )
        resolved.validate()
        return resolved

    @staticmethod
    def _build_provider(
        provider_id: str,
        payload: Mapping[str, Any],
        base: ProviderConfig | None,
        source_label: str,
    ) -> ProviderConfig:
        """Overlay one provider payload on its defaults."""

        ConfigLoader._reject_unknown_keys(payload, ConfigLoader._PROVIDER_KEYS, source_label)

        kind_value = normalize_optional_string(payload.get("kind"))
        if base is None or kind_value is not None:
            if kind_value is None:
                raise ConfigError(
                    f"{source_label} is not a built-in provider and needs a `kind`."
                )
            try:
                kind = ProviderKind(kind_value.lower())
            except ValueError as exc:
                supported = ", ".join(item.value for item in ProviderKind)
                raise ConfigError(
                    f"{source_label} has unsupported `kind` `{kind_value}`; "
                    f"supported: {supported}."
                ) from exc
            base = ProviderConfig.defaults(kind, provider_id=provider_id)

        credential = base.credential
        inline_key = normalize_optional_string(payload.get("api_key"))
        env_var = normalize_optional_string(payload.get("api_key_env"))
        keyring_account = normalize_optional_string(payload.get("keyring_account"))
        if inline_key is not None or env_var is not None or keyring_account is not None:
            credential = CredentialRef(
                provider_id=provider_id,
                env_var=env_var or (credential.env_var if credential else None),
                keyring_account=keyring_account
                or (credential.keyring_account if credential else None),
                value=inline_key,
            )

        return replace(
            base,
            enabled=ConfigLoader._optional_boolean(
                payload, "enabled", source_label, default=base.enabled
            ),
            tier=ConfigLoader._optional_non_negative_int(
                payload, "priority", source_label, default=base.tier
            ),
            timeout_seconds=ConfigLoader._optional_positive_float(
                payload, "timeout", source_label
            )
            or base.timeout_seconds,
            max_retries=ConfigLoader._optional_non_negative_int(
                payload, "max_retries", source_label, default=base.max_retries
            ),
            batch_size=ConfigLoader._optional_non_negative_int(
                payload, "batch_size", source_label, default=base.batch_size
            ),
            rate_limit_per_second=ConfigLoader._optional_non_negative_float(
                payload, "rate_limit_per_second", source_label, default=base.rate_limit_per_second
            ),
            preferred_languages=ConfigLoader._optional_language_set(
                payload, "preferred_languages", source_label, default=base.preferred_languages
            ),
            credential=credential,
            retry_base_delay_seconds=ConfigLoader._optional_non_negative_float(
                payload, "retry_base_delay", source_label, default=base.retry_base_delay_seconds
            ),
            retry_max_delay_seconds=ConfigLoader._optional_non_negative_float(
                payload, "retry_max_delay", source_label, default=base.retry_max_delay_seconds
            ),
            cost_per_million_chars_usd=ConfigLoader._optional_non_negative_float(
                payload,
                "cost_per_million_chars_usd",
                source_label,
                default=base.cost_per_million_chars_usd,
            ),
            model=normalize_optional_string(payload.get("model")) or base.model,
            endpoint=normalize_optional_string(payload.get("endpoint")) or base.endpoint,
            profile=normalize_optional_string(payload.get("profile")) or base.profile,
        )

    @staticmethod
    def _reject_unknown_keys(
        payload: Mapping[str, Any], supported: frozenset[str], source_label: str
    ) -> None:
        """Fail clearly on keys outside the supported set."""

        unknown = sorted(str(key) for key in set(payload).difference(supported))
        if unknown:
            key_list = ", ".join(unknown)
            raise ConfigError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _optional_mapping(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> Mapping[str, Any]:
        """Read an optional nested mapping."""

        raw = payload.get(key)
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ConfigError(f"{source_label} field `{key}` must be a mapping/object.")
        return raw

    @staticmethod
    def _parse_number(
        payload: Mapping[str, Any], key: str, source_label: str, expected: str, cast: type
    ) -> Any:
        """Parse one numeric field or return `None` when missing/blank."""

        if key not in payload:
            return None
        raw_value = payload[key]
        if isinstance(raw_value, bool):
            raise ConfigError(f"{source_label} field `{key}` must be {expected}.")
        if isinstance(raw_value, (int, float)) and not isinstance(raw_value, bool):
            if cast is int and isinstance(raw_value, float) and not raw_value.is_integer():
                raise ConfigError(f"{source_label} field `{key}` must be {expected}.")
            return cast(raw_value)
        normalized = normalize_optional_string(raw_value)
        if normalized is None:
            return None
        try:
            return cast(normalized)
        except ValueError as exc:
            raise ConfigError(f"{source_label} field `{key}` must be {expected}.") from exc

    @staticmethod
    def _optional_positive_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a positive integer field."""

        parsed = ConfigLoader._parse_number(payload, key, source_label, "a positive integer", int)
        if parsed is None:
            return default
        if parsed <= 0:
            raise ConfigError(f"{source_label} field `{key}` must be a positive integer.")
        return parsed

    @staticmethod
    def _optional_non_negative_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a non-negative integer field."""

        parsed = ConfigLoader._parse_number(
            payload, key, source_label, "a non-negative integer", int
        )
        if parsed is None:
            return default
        if parsed < 0:
            raise ConfigError(f"{source_label} field `{key}` must be a non-negative integer.")
        return parsed

    @staticmethod
    def _optional_positive_float(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> float | None:
        """Read and validate an optional positive number field."""

        parsed = ConfigLoader._parse_number(payload, key, source_label, "a positive number", float)
        if parsed is None:
            return None
        if parsed <= 0:
            raise ConfigError(f"{source_label} field `{key}` must be a positive number.")
        return parsed

    @staticmethod
    def _optional_non_negative_float(
        payload: Mapping[str, Any], key: str, source_label: str, default: float
    ) -> float:
        """Read and validate a non-negative number field."""

        parsed = ConfigLoader._parse_number(
            payload, key, source_label, "a non-negative number", float
        )
        if parsed is None:
            return default
        if parsed < 0:
            raise ConfigError(f"{source_label} field `{key}` must be a non-negative number.")
        return parsed

    @staticmethod
    def _optional_boolean(
        payload: Mapping[str, Any], key: str, source_label: str, default: bool
    ) -> bool:
        """Read and validate a boolean field."""

        if key not in payload:
            return default
        parsed = parse_permissive_boolean(payload[key])
        if parsed is None:
            raise ConfigError(
                f"{source_label} field `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parsed

    @staticmethod
    def _optional_language(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> str | None:
        """Read an optional language code field."""

        if key not in payload or normalize_optional_string(payload[key]) is None:
            return None
        code = normalize_language_code(payload[key])
        if code is None:
            raise ConfigError(f"{source_label} field `{key}` must be a language code.")
        return code

    @staticmethod
    def _optional_language_set(
        payload: Mapping[str, Any],
        key: str,
        source_label: str,
        default: frozenset[str],
    ) -> frozenset[str]:
        """Read a list of language codes (or comma-separated string)."""

        if key not in payload or payload[key] is None:
            return default
        raw = payload[key]
        items = raw.split(",") if isinstance(raw, str) else raw
        if not isinstance(items, (list, tuple, set, frozenset)):
            raise ConfigError(f"{source_label} field `{key}` must be a list of language codes.")
        codes: set[str] = set()
        for item in items:
            if normalize_optional_string(item) is None:
                continue
            code = normalize_language_code(item)
            if code is None:
                raise ConfigError(
                    f"{source_label} field `{key}` contains invalid language code `{item}`."
                )
            codes.add(code)
        return frozenset(codes)

    @staticmethod
    def _env_boolean(env: Mapping[str, str], key: str, default: bool) -> bool:
        """Read an optional boolean environment variable."""

        value = normalize_optional_string(env.get(key))
        if value is None:
            return default
        parsed = parse_permissive_boolean(value)
        if parsed is None:
            raise ConfigError(
                f"Environment variable `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parsed
