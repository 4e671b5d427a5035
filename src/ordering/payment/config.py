"""Payment flow settings, read from the environment.

``PUBLIC_BASE_URL`` is where the provider sends the customer back and posts
notifications; ``FRONTEND_BASE_URL`` is where payment-result redirects land.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentConfig:
    public_base_url: str = "http://localhost:8000"
    frontend_base_url: str = "http://localhost:3000"
    invoice_vat: str = "None"
    invoice_due_days: int = 5
    provider_timeout: float | None = None

    @classmethod
    def from_env(cls) -> "PaymentConfig":
        timeout = os.environ.get("PAYMENT_PROVIDER_TIMEOUT_SECONDS", "").strip()
        return cls(
            public_base_url=os.environ.get("PUBLIC_BASE_URL", cls.public_base_url).strip().rstrip("/"),
            frontend_base_url=os.environ.get("FRONTEND_BASE_URL", cls.frontend_base_url).strip().rstrip("/"),
            invoice_vat=os.environ.get("TBANK_INVOICE_VAT", cls.invoice_vat).strip(),
            invoice_due_days=int(os.environ.get("TBANK_INVOICE_DUE_DAYS", "").strip() or cls.invoice_due_days),
            provider_timeout=float(timeout) if timeout else None,
        )

    def success_url(self, order_id: str) -> str:
        return f"{self.public_base_url}/orders/{order_id}/payment-success"

    def fail_url(self, order_id: str) -> str:
        return f"{self.public_base_url}/orders/{order_id}/payment-fail"

    def notification_url(self) -> str:
        return f"{self.public_base_url}/payment/tbank-eacq/notification"

    def frontend_result_url(self, order_id: str, outcome: str) -> str:
        return f"{self.frontend_base_url}/orders/{order_id}/{outcome}"
