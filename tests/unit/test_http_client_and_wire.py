"""Unit tests for provider HTTP error mapping and wire formats."""

from __future__ import annotations

import json

import pytest
import requests

from lingoroute.config import ProviderConfig, ProviderKind
from lingoroute.errors import (
    AuthenticationError,
    InvalidRequestError,
    MalformedResponseError,
    ProviderUnavailable,
    RateLimitExceeded,
)
from lingoroute.providers import http_client
from lingoroute.providers.http_client import ProviderHttpClient
from lingoroute.providers.wire import (
    DeepLWire,
    GoogleWire,
    OpenAIWire,
    SystranWire,
    extract_placeholders,
    wire_format_for,
)


class _MockRequestsResponse:
    """Minimal requests response mock for HTTP transport patching."""

    def __init__(
        self,
        *,
        payload: bytes,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize response with raw payload bytes, status, and headers."""

        self.content = payload
        self.status_code = status_code
        self.headers = headers or {}

    def raise_for_status(self) -> None:
        """Raise HTTPError when the response status represents a failure."""

        if self.status_code >= 400:
            raise http_client.requests.HTTPError(f"HTTP {self.status_code}", response=self)


def _patch_post(monkeypatch: pytest.MonkeyPatch, response: object) -> list[dict[str, object]]:
    """Patch `requests.post` to return `response` (or raise it) and record calls."""

    calls: list[dict[str, object]] = []

    def _mock_post(url: str, **kwargs: object) -> object:
        """Record the call and return the canned response."""

        calls.append({"url": url, **kwargs})
        if isinstance(response, BaseException):
            raise response
        return response

    monkeypatch.setattr(http_client.requests, "post", _mock_post)
    return calls


@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [
        (400, InvalidRequestError),
        (401, AuthenticationError),
        (403, AuthenticationError),
        (408, ProviderUnavailable),
        (429, RateLimitExceeded),
        (456, InvalidRequestError),
        (500, ProviderUnavailable),
        (503, ProviderUnavailable),
    ],
)
def test_http_status_maps_to_error_taxonomy(
    monkeypatch: pytest.MonkeyPatch, status_code: int, error_type: type
) -> None:
    """Provider HTTP failures should map onto stable error classes."""

    _patch_post(
        monkeypatch,
        _MockRequestsResponse(
            payload=json.dumps({"error": {"message": "nope"}}).encode("utf-8"),
            status_code=status_code,
        ),
    )

    with pytest.raises(error_type) as exc_info:
        ProviderHttpClient("deepl").post_json("https://example.test", payload={}, timeout_seconds=1)

    assert exc_info.value.status_code == status_code
    assert exc_info.value.provider_id == "deepl"
    assert "nope" in str(exc_info.value)


def test_rate_limit_error_carries_retry_after(monkeypatch: pytest.MonkeyPatch) -> None:
    """A 429 should expose the provider's `Retry-After` guidance."""

    _patch_post(
        monkeypatch,
        _MockRequestsResponse(payload=b"", status_code=429, headers={"Retry-After": "12"}),
    )

    with pytest.raises(RateLimitExceeded) as exc_info:
        ProviderHttpClient("google").post_json("https://example.test", payload={}, timeout_seconds=1)

    assert exc_info.value.retry_after_seconds == 12.0


def test_transport_errors_hide_request_urls(monkeypatch: pytest.MonkeyPatch) -> None:
    """Connection errors should not echo URLs that may carry `key=` secrets."""

    _patch_post(
        monkeypatch,
        requests.ConnectionError("Max retries exceeded with url: /v2?key=AIzaSECRET123"),
    )

    with pytest.raises(ProviderUnavailable) as exc_info:
        ProviderHttpClient("google").post_json("https://example.test", payload={}, timeout_seconds=1)

    assert "AIzaSECRET123" not in str(exc_info.value)
    assert "ConnectionError" in str(exc_info.value)


def test_timeout_and_invalid_json_are_classified(monkeypatch: pytest.MonkeyPatch) -> None:
    """Timeouts are unavailability; unparsable bodies are malformed responses."""

    _patch_post(monkeypatch, requests.Timeout("read timed out"))
    with pytest.raises(ProviderUnavailable, match="timed out"):
        ProviderHttpClient("systran").post_json("https://example.test", payload={}, timeout_seconds=1)

    _patch_post(monkeypatch, _MockRequestsResponse(payload=b"<html>"))
    with pytest.raises(MalformedResponseError):
        ProviderHttpClient("systran").post_json("https://example.test", payload={}, timeout_seconds=1)


def test_error_messages_redact_echoed_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provider error bodies that echo a key should be redacted."""

    _patch_post(
        monkeypatch,
        _MockRequestsResponse(
            payload=json.dumps(
                {"error": {"message": "Incorrect API key provided: sk-abcdef1234567890"}}
            ).encode("utf-8"),
            status_code=401,
        ),
    )

    with pytest.raises(AuthenticationError) as exc_info:
        ProviderHttpClient("openai").post_json("https://example.test", payload={}, timeout_seconds=1)

    assert "sk-abcdef1234567890" not in str(exc_info.value)
    assert "[redacted-key]" in str(exc_info.value)


def test_systran_call_shape_and_parsing() -> None:
    """Systran should use `Key` auth, `input` body, and `outputs[].output` responses."""

    config = ProviderConfig.defaults(ProviderKind.SYSTRAN)
    wire = SystranWire()

    call = wire.build_call(["Hello"], "en", "fi", api_key="k-123", config=config)

    assert call.url == SystranWire.default_endpoint
    assert call.headers == {"Authorization": "Key k-123"}
    assert call.payload == {"input": ["Hello"], "source": "en", "target": "fi"}
    assert wire.parse_translations({"outputs": [{"output": "Hei"}]}, ["Hello"], config) == ["Hei"]


def test_deepl_uses_regional_target_codes_and_context() -> None:
    """DeepL needs upper-case codes with `EN-US`/`PT-BR` targets."""

    config = ProviderConfig.defaults(ProviderKind.DEEPL)
    wire = DeepLWire()

    call = wire.build_call(
        ["Hello"], "de", "pt", api_key="d-1", config=config, context_hint="button label"
    )

    assert call.headers == {"Authorization": "DeepL-Auth-Key d-1"}
    assert call.payload["source_lang"] == "DE"
    assert call.payload["target_lang"] == "PT-BR"
    assert call.payload["context"] == "button label"
    assert DeepLWire.target_code("en") == "EN-US"
    assert DeepLWire.target_code("pt-br") == "PT-BR"
    assert DeepLWire.target_code("fi") == "FI"
    body = {"translations": [{"detected_source_language": "DE", "text": "Olá"}]}
    assert wire.parse_translations(body, ["Hello"], config) == ["Olá"]


def test_google_sends_key_as_query_parameter_only() -> None:
    """Google should put the key in query params, never in headers or body."""

    config = ProviderConfig.defaults(ProviderKind.GOOGLE)
    wire = GoogleWire()

    call = wire.build_call(["a", "b"], "en", "pt-br", api_key="g-9", config=config)

    assert call.params == {"key": "g-9"}
    assert "g-9" not in json.dumps(call.payload)
    assert call.headers == {}
    assert call.payload == {"q": ["a", "b"], "source": "en", "target": "pt-BR", "format": "text"}
    assert "g-9" not in repr(call)
    body = {"data": {"translations": [{"translatedText": "A"}, {"translatedText": "B"}]}}
    assert wire.parse_translations(body, ["a", "b"], config) == ["A", "B"]


def test_generic_translation_shape_is_accepted_by_every_format() -> None:
    """Every wire format should accept `translations[].translated_text`."""

    body = {"translations": [{"translated_text": "Moi", "detected_source_language": "en"}]}
    for kind in ProviderKind:
        config = ProviderConfig.defaults(kind)
        assert wire_format_for(kind).parse_translations(body, ["Hi"], config) == ["Moi"]


def test_translation_count_mismatch_is_malformed() -> None:
    """Returning fewer translations than inputs should fail the sub-batch."""

    config = ProviderConfig.defaults(ProviderKind.SYSTRAN)

    with pytest.raises(MalformedResponseError):
        SystranWire().parse_translations({"outputs": [{"output": "x"}]}, ["a", "b"], config)


def test_openai_prompt_and_fenced_json_array_parsing() -> None:
    """OpenAI should request a JSON array and tolerate markdown fences in replies."""

    config = ProviderConfig.defaults(ProviderKind.OPENAI)
    wire = OpenAIWire()

    call = wire.build_call(["You have {{count}} items"], "en", "fi", api_key="sk-x", config=config)
    user_prompt = call.payload["messages"][1]["content"]

    assert call.headers == {"Authorization": "Bearer sk-x"}
    assert call.payload["model"] == "gpt-4.1-mini"
    assert "from English to Finnish" in user_prompt
    assert '["You have {{count}} items"]' in user_prompt

    body = {"choices": [{"message": {"content": '```json\n["Sinulla on {{count}} kohdetta"]\n```'}}]}
    assert wire.parse_translations(body, ["You have {{count}} items"], config) == [
        "Sinulla on {{count}} kohdetta"
    ]


def test_openai_placeholder_loss_fails_the_sub_batch() -> None:
    """A translation that drops a placeholder should be rejected."""

    config = ProviderConfig.defaults(ProviderKind.OPENAI)
    body = {"choices": [{"message": {"content": '["Sinulla on kohteita"]'}}]}

    with pytest.raises(MalformedResponseError, match="placeholders"):
        OpenAIWire().parse_translations(body, ["You have {{ count }} items"], config)
    assert extract_placeholders("{{ a }} and {{b}}") == ["a", "b"]
