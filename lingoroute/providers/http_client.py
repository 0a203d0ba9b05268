"""JSON-over-HTTPS transport shared by every provider wire format.

Responsibilities:
- Send provider JSON POST requests with `requests`.
- Map HTTP statuses and transport failures onto the lingoroute error taxonomy.
- Keep provider messages short and free of credential material.
"""

from __future__ import annotations

import json
import socket
from typing import Any, Mapping

import requests

from ..errors import (
    AuthenticationError,
    InvalidRequestError,
    LingorouteError,
    MalformedResponseError,
    ProviderUnavailable,
    RateLimitExceeded,
    short_message,
)
from .retry import parse_retry_after


_USER_AGENT = "lingoroute/0.3"


class ProviderHttpClient:
    """Minimal requests-based JSON client bound to one provider identifier."""

    def __init__(self, provider_id: str) -> None:
        """Initialize transport metadata for one provider."""

        self.provider_id = provider_id

    def post_json(
        self,
        url: str,
        *,
        payload: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        timeout_seconds: float,
    ) -> Any:
        """POST a JSON payload and return the decoded JSON response body."""

        request_headers = {"Content-Type": "application/json", "User-Agent": _USER_AGENT}
        request_headers.update(headers or {})
        try:
            response = requests.post(
                url,
                headers=request_headers,
                params=dict(params) if params else None,
                json=dict(payload),
                timeout=timeout_seconds,
            )
            response.raise_for_status()
            body = bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except (requests.Timeout, socket.timeout, TimeoutError) as exc:
            raise ProviderUnavailable(
                f"{self.provider_id} request timed out.", provider_id=self.provider_id
            ) from exc
        except requests.RequestException as exc:
            # requests puts the full URL (with any `key=` query secret) in the message
            raise ProviderUnavailable(
                f"{self.provider_id} transport error: {type(exc).__name__}",
                provider_id=self.provider_id,
            ) from exc

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedResponseError(
                f"{self.provider_id} returned invalid JSON payload.",
                provider_id=self.provider_id,
            ) from exc

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 payload string."""

        response = exc.response
        if response is None:
            return ""
        content = getattr(response, "content", b"") or b""
        return bytes(content).decode("utf-8", errors="replace").strip()

    @staticmethod
    def _extract_provider_message(body: str) -> str:
        """Extract a concise provider-facing message from an error body."""

        if not body:
            return ""
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return short_message(body)

        message: object = None
        if isinstance(payload, dict):
            error_payload = payload.get("error")
            if isinstance(error_payload, dict):
                message = error_payload.get("message")
            elif isinstance(error_payload, str):
                message = error_payload
            if message is None:
                message = payload.get("message")
        if not isinstance(message, str) or not message.strip():
            message = body
        return short_message(str(message))

    def _http_error_to_provider_error(self, exc: requests.HTTPError) -> LingorouteError:
        """Convert an HTTP error into the matching taxonomy error."""

        response = exc.response
        status_code = response.status_code if response is not None else 0
        provider_message = self._extract_provider_message(self._decode_error_body(exc))
        suffix = f": {provider_message}" if provider_message else "."
        common = {"provider_id": self.provider_id, "status_code": status_code}

        if status_code in {401, 403}:
            return AuthenticationError(
                f"{self.provider_id} authentication failed (HTTP {status_code}){suffix}", **common
            )
        if status_code == 429:
            headers = getattr(response, "headers", None) or {}
            return RateLimitExceeded(
                f"{self.provider_id} rate limit exceeded (HTTP 429){suffix}",
                retry_after_seconds=parse_retry_after(headers.get("Retry-After")),
                **common,
            )
        if status_code == 408 or status_code >= 500:
            return ProviderUnavailable(
                f"{self.provider_id} is unavailable (HTTP {status_code}){suffix}", **common
            )
        return InvalidRequestError(
            f"{self.provider_id} rejected the request (HTTP {status_code}){suffix}", **common
        )
