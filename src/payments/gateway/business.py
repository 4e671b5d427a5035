"""Base for clients of the bearer-token business API (SBP links, invoices)."""

from typing import Any
from urllib.parse import quote

import httpx

from payments.gateway.errors import GatewayConfigurationError
from payments.gateway.transport import ensure_ok, read_json, send


class BusinessApiClient:
    provider = "T-Bank"

    def __init__(self, client: httpx.Client, base_url: str, api_key: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key

    def _ensure_configured(self) -> None:
        if not self._api_key or not self._api_key.strip():
            raise GatewayConfigurationError("TBANK_API_KEY is not configured", status_code=503)

    def _headers(self, **extra: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}", **extra}

    def _post(self, path: str, body: dict[str, Any], action: str, timeout: float | None) -> dict[str, Any]:
        response = send(
            self._client,
            "POST",
            f"{self._base_url}{path}",
            provider=self.provider,
            json=body,
            headers=self._headers(**{"Content-Type": "application/json"}),
            timeout=timeout,
        )
        ensure_ok(response, provider=self.provider, action=action)
        return read_json(response, provider=self.provider)

    def _get(self, path: str, action: str, timeout: float | None) -> dict[str, Any]:
        response = send(
            self._client,
            "GET",
            f"{self._base_url}{path}",
            provider=self.provider,
            headers=self._headers(Accept="application/json"),
            timeout=timeout,
        )
        ensure_ok(response, provider=self.provider, action=action)
        return read_json(response, provider=self.provider)

    @staticmethod
    def _segment(value: str) -> str:
        return quote(value, safe="")
