"""Unit tests for configuration defaults and loaders."""

from __future__ import annotations

from pathlib import Path

import pytest

from lingoroute.config import (
    ConfigLoader,
    FallbackConfig,
    ProviderConfig,
    ProviderKind,
    TranslationConfig,
)
from lingoroute.errors import ConfigError


def test_provider_defaults_match_kind_profiles() -> None:
    """Each provider kind should carry its tier, timeout, batch, and rate defaults."""

    expected = {
        ProviderKind.SYSTRAN: (1, 45.0, 50, 100.0),
        ProviderKind.DEEPL: (2, 30.0, 50, 10.0),
        ProviderKind.GOOGLE: (3, 30.0, 100, 100.0),
        ProviderKind.OPENAI: (4, 60.0, 15, 0.0),
    }
    for kind, (tier, timeout, batch_size, rate) in expected.items():
        config = ProviderConfig.defaults(kind)
        assert (config.tier, config.timeout_seconds, config.batch_size) == (tier, timeout, batch_size)
        assert config.rate_limit_per_second == rate
        assert config.max_retries == 3
        assert config.credential is not None
        assert config.credential.keyring_account == f"{kind.value}_api_key"

    assert ProviderConfig.defaults("openai").model == "gpt-4.1-mini"
    assert ProviderConfig.defaults("deepl").credential.env_var == "DEEPL_API_KEY"  # type: ignore[union-attr]


def test_fallback_defaults_are_all_enabled() -> None:
    """Fallback switches should default to on."""

    assert FallbackConfig() == FallbackConfig(
        skip_on_missing_key=True, stop_on_first_success=True, log_fallback_events=True
    )


def test_yaml_config_overlays_defaults(tmp_path: Path) -> None:
    """YAML settings should override only the listed provider fields."""

    config_path = tmp_path / "lingoroute.yaml"
    config_path.write_text(
        "\n".join(
            [
                "source_lang: en",
                "cache_capacity: 50",
                "cache_ttl_seconds: 3600",
                "fallback:",
                "  stop_on_first_success: 'no'",
                "providers:",
                "  deepl:",
                "    preferred_languages: [FI, sv]",
                "    rate_limit_per_second: 5",
                "  openai:",
                "    enabled: false",
                "  deepl-pro:",
                "    kind: deepl",
                "    priority: 5",
                "    endpoint: https://api.deepl.com/v2/translate",
                "    api_key_env: DEEPL_PRO_KEY",
            ]
        ),
        encoding="utf-8",
    )

    config = ConfigLoader.from_yaml(config_path)

    assert config.cache_capacity == 50
    assert config.cache_ttl_seconds == 3600.0
    assert config.fallback.stop_on_first_success is False
    deepl = config.provider("deepl")
    assert deepl.preferred_languages == frozenset({"fi", "sv"})
    assert deepl.rate_limit_per_second == 5.0
    assert deepl.batch_size == 50
    assert config.provider("openai").enabled is False
    custom = config.provider("deepl-pro")
    assert custom.kind is ProviderKind.DEEPL
    assert custom.tier == 5
    assert custom.credential is not None
    assert custom.credential.env_var == "DEEPL_PRO_KEY"
    assert custom.credential.keyring_account == "deepl-pro_api_key"


def test_empty_yaml_yields_defaults(tmp_path: Path) -> None:
    """An empty YAML document should produce the default configuration."""

    config_path = tmp_path / "empty.yaml"
    config_path.write_text("", encoding="utf-8")

    config = ConfigLoader.from_yaml(config_path)

    assert [provider.provider_id for provider in config.providers] == [
        "systran",
        "deepl",
        "google",
        "openai",
    ]


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"cache_size": 10}, "unsupported key(s): cache_size"),
        ({"cache_capacity": "many"}, "`cache_capacity` must be a positive integer"),
        ({"cache_capacity": 0}, "`cache_capacity` must be a positive integer"),
        ({"fallback": {"skip_on_missing_key": "maybe"}}, "must be a boolean value"),
        ({"fallback": {"retry": True}}, "unsupported key(s): retry"),
        ({"providers": {"mystery": {}}}, "needs a `kind`"),
        ({"providers": {"x": {"kind": "babelfish"}}}, "unsupported `kind` `babelfish`"),
        ({"providers": {"deepl": {"timeout": -1}}}, "`timeout` must be a positive number"),
        ({"providers": {"deepl": {"preferred_languages": ["??"]}}}, "invalid language code"),
        ({"source_lang": "english"}, "`source_lang` must be a language code"),
    ],
)
def test_invalid_mapping_values_fail_with_actionable_messages(payload, message: str) -> None:
    """Invalid config values should raise `ConfigError` naming the offending field."""

    with pytest.raises(ConfigError) as exc_info:
        ConfigLoader.from_mapping(payload)

    assert message in str(exc_info.value)
    assert isinstance(exc_info.value, ValueError)


def test_environment_overrides_apply_on_top_of_base() -> None:
    """`LINGOROUTE_*` variables should override fallback switches and limits."""

    config = ConfigLoader.from_env(
        {
            "LINGOROUTE_SKIP_ON_MISSING_KEY": "false",
            "LINGOROUTE_DISABLED_PROVIDERS": "openai, google",
            "LINGOROUTE_CACHE_CAPACITY": "25",
            "LINGOROUTE_MAX_WORKERS": "2",
            "LINGOROUTE_SOURCE_LANG": "DE",
        },
        base=TranslationConfig(),
    )

    assert config.fallback.skip_on_missing_key is False
    assert config.fallback.stop_on_first_success is True
    assert config.provider("openai").enabled is False
    assert config.provider("google").enabled is False
    assert config.provider("systran").enabled is True
    assert config.cache_capacity == 25
    assert config.max_workers == 2
    assert config.source_lang == "de"


def test_environment_boolean_errors_name_the_variable() -> None:
    """Invalid environment booleans should name the variable."""

    with pytest.raises(ConfigError, match="LINGOROUTE_LOG_FALLBACK_EVENTS"):
        ConfigLoader.from_env({"LINGOROUTE_LOG_FALLBACK_EVENTS": "sometimes"})


def test_duplicate_provider_ids_are_rejected() -> None:
    """Two providers with the same identifier cannot be routed."""

    deepl = ProviderConfig.defaults(ProviderKind.DEEPL)

    with pytest.raises(ConfigError, match="Duplicate provider id"):
        TranslationConfig(providers=(deepl, deepl)).validate()


def test_provider_metadata_describes_credential_source_only() -> None:
    """Metadata should show where the key comes from, never the key."""

    config = ConfigLoader.from_mapping(
        {"providers": {"google": {"api_key": "AIza-inline-secret-1"}}}
    ).provider("google")

    metadata = config.as_metadata()

    assert metadata["credential_source"] == "inline,env:GOOGLE_API_KEY,keyring:google_api_key"
    assert "AIza-inline-secret-1" not in str(metadata)
    assert "AIza-inline-secret-1" not in repr(config)
