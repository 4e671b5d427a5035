"""One-time SBP QR payment links.

Input is validated locally; malformed requests never reach the provider.
"""

import re
from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError

from payments.gateway.business import BusinessApiClient
from payments.gateway.errors import GatewayError
from payments.gateway.port import AttemptKind, PaymentAttempt, SbpLinkRequest, SbpLinkResult

logger = structlog.get_logger(__name__)

ONETIME_PATH = "/api/v1/b2b/qr/onetime"
QR_INFO_PATH = "/api/v1/b2b/qr"

VAT_VALUES = ("0", "5", "7", "10", "20", "22")
ACCOUNT_NUMBER_RE = re.compile(r"^(\d{20}|\d{22})$")
MAX_PURPOSE_LENGTH = 210
MAX_TTL_DAYS = 90


def _parse_due_date(raw: str | None) -> datetime:
    if not raw:
        return datetime.now(UTC)
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(UTC)


class SbpClient(BusinessApiClient):
    provider = "T-Bank SBP"

    def __init__(self, client, base_url, api_key, account_number="", vat="22", ttl_days=30) -> None:
        super().__init__(client, base_url, api_key)
        self._account_number = account_number
        self._vat = vat
        self._ttl_days = ttl_days

    def _validate(self, request: SbpLinkRequest) -> dict:
        account_number = request.account_number or self._account_number
        if not account_number or not ACCOUNT_NUMBER_RE.match(account_number):
            raise ValidationError({"account_number": ["Account number must be 20 or 22 digits"]})

        vat = request.vat or self._vat
        if vat not in VAT_VALUES:
            raise ValidationError({"vat": [f"VAT must be one of: {', '.join(VAT_VALUES)}"]})

        ttl = request.ttl_days if request.ttl_days is not None else self._ttl_days
        if not 1 <= ttl <= MAX_TTL_DAYS:
            raise ValidationError({"ttl_days": [f"TTL must be between 1 and {MAX_TTL_DAYS} days"]})

        if request.amount <= 0:
            raise ValidationError({"amount": ["Amount must be positive"]})
        if not request.purpose or not request.purpose.strip():
            raise ValidationError({"purpose": ["Purpose is required"]})
        if not request.redirect_url:
            raise ValidationError({"redirect_url": ["Redirect URL is required"]})

        return {
            "accountNumber": account_number,
            "sum": round(float(request.amount), 2),
            "purpose": request.purpose[:MAX_PURPOSE_LENGTH],
            "ttl": int(ttl),
            "vat": vat,
            "redirectUrl": request.redirect_url,
        }

    def create_onetime_link(self, request: SbpLinkRequest, timeout: float | None = None) -> SbpLinkResult:
        self._ensure_configured()
        body = self._validate(request)

        logger.info("Creating SBP link", amount=body["sum"], purpose=body["purpose"][:50])
        data = self._post(ONETIME_PATH, body, "create link", timeout)

        qr_id = data.get("qrId")
        payment_url = data.get("paymentUrl")
        if not qr_id or not payment_url:
            raise GatewayError(f"{self.provider}: no paymentUrl or qrId in response")

        image = data.get("image") or {}
        return SbpLinkResult(
            qr_id=str(qr_id),
            payment_url=str(payment_url),
            due_date=_parse_due_date(data.get("dueDate")),
            qr_image_base64=image.get("content") if isinstance(image, dict) else None,
        )

    def get_link_info(self, qr_id: str, timeout: float | None = None) -> PaymentAttempt:
        self._ensure_configured()
        if not qr_id or not qr_id.strip():
            raise ValidationError({"qr_id": ["qrId is required"]})

        data = self._get(f"{QR_INFO_PATH}/{self._segment(qr_id)}/info", "link info", timeout)
        return PaymentAttempt(
            kind=AttemptKind.SBP,
            external_id=str(data.get("qrId") or qr_id),
            raw_status=str(data.get("status") or "UNKNOWN"),
        )
