"""Request and notification signing for the T-Bank acquiring API.

The provider signs notifications with the same algorithm merchants use to
sign requests:

1. take the top-level scalar fields, except ``Token``, dropping nulls;
2. add ``Password`` (the terminal secret);
3. sort the pairs by key;
4. concatenate the values with no separator;
5. SHA-256, hex-encoded.

Values are rendered the way the provider renders them: booleans as
``true``/``false``, integral numbers without a fractional part.
"""

import hashlib
import hmac
from collections.abc import Mapping
from typing import Any

TOKEN_FIELD = "Token"
PASSWORD_FIELD = "Password"


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_token(params: Mapping[str, Any], password: str) -> str:
    """Compute the request/notification token for ``params``."""
    pairs = [
        (key, _render(value))
        for key, value in params.items()
        if key != TOKEN_FIELD and value is not None and not isinstance(value, (dict, list, tuple))
    ]
    pairs.append((PASSWORD_FIELD, password))
    pairs.sort(key=lambda pair: pair[0])
    concatenated = "".join(value for _, value in pairs)
    return hashlib.sha256(concatenated.encode("utf-8")).hexdigest()


def verify_token(payload: Mapping[str, Any], password: str) -> bool:
    """Check the ``Token`` of an inbound notification. Fails closed."""
    token = payload.get(TOKEN_FIELD)
    if not isinstance(token, str) or not token or not password:
        return False
    expected = build_token(payload, password)
    return hmac.compare_digest(expected, token)
