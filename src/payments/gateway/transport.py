"""HTTP helpers shared by the T-Bank clients.

Every outbound call has a bounded timeout. Transport failures and unusable
responses are turned into ``GatewayError`` so callers deal with exactly one
upstream failure type.
"""

from typing import Any

import httpx
import structlog

from payments.gateway.errors import GatewayError

logger = structlog.get_logger(__name__)

_SNIPPET = 200


def send(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    provider: str,
    json: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float | None = None,
) -> httpx.Response:
    """Perform one request; ``timeout`` overrides the client default when given."""
    kwargs: dict[str, Any] = {"json": json, "headers": headers}
    if timeout is not None:
        kwargs["timeout"] = timeout

    try:
        return client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        logger.warning("Provider request timed out", provider=provider, url=url)
        raise GatewayError(f"{provider}: request timed out", status_code=504) from exc
    except httpx.HTTPError as exc:
        logger.warning("Provider request failed", provider=provider, url=url, error=str(exc))
        raise GatewayError(f"{provider}: request failed", status_code=502) from exc


def ensure_ok(response: httpx.Response, *, provider: str, action: str) -> None:
    """Raise ``GatewayError`` for non-2xx responses, keeping a snippet of the body."""
    if response.is_success:
        return
    text = response.text
    logger.warning(
        "Provider returned an error",
        provider=provider,
        action=action,
        status_code=response.status_code,
        body=text[:_SNIPPET],
    )
    raise GatewayError(
        f"{provider}: {action} failed ({response.status_code}). {text[:_SNIPPET]}".strip(),
        status_code=response.status_code,
    )


def read_json(response: httpx.Response, *, provider: str) -> dict[str, Any]:
    """Decode a JSON object body or raise ``GatewayError``."""
    try:
        data = response.json()
    except ValueError as exc:
        raise GatewayError(
            f"{provider}: invalid response ({response.status_code}). {response.text[:_SNIPPET]}".strip(),
            status_code=response.status_code,
        ) from exc
    if not isinstance(data, dict):
        raise GatewayError(f"{provider}: invalid response", status_code=response.status_code)
    return data
