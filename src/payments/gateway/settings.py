"""Provider settings, read from the environment."""

import os
from dataclasses import dataclass

EACQ_BASE_PROD = "https://securepay.tinkoff.ru"
EACQ_BASE_TEST = "https://rest-api-test.tinkoff.ru"
BUSINESS_BASE_PROD = "https://business.tbank.ru/openapi"
BUSINESS_BASE_SANDBOX = "https://business.tbank.ru/openapi/sandbox"

DEFAULT_TIMEOUT_SECONDS = 15.0


def _flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() == "true"


def _int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else default


def _float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else default


@dataclass(frozen=True)
class TbankSettings:
    """Credentials and endpoints for card acquiring, SBP links and invoices."""

    terminal_key: str = ""
    password: str = ""
    eacq_base_url: str = EACQ_BASE_PROD
    api_key: str = ""
    business_base_url: str = BUSINESS_BASE_PROD
    sbp_account_number: str = ""
    sbp_vat: str = "22"
    sbp_link_ttl_days: int = 30
    invoice_account_number: str = ""
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "TbankSettings":
        return cls(
            terminal_key=os.environ.get("TBANK_EACQ_TERMINAL_KEY", "").strip(),
            password=os.environ.get("TBANK_EACQ_PASSWORD", "").strip(),
            eacq_base_url=EACQ_BASE_TEST if _flag("TBANK_EACQ_USE_TEST") else EACQ_BASE_PROD,
            api_key=os.environ.get("TBANK_API_KEY", "").strip(),
            business_base_url=BUSINESS_BASE_SANDBOX if _flag("TBANK_SBP_USE_SANDBOX") else BUSINESS_BASE_PROD,
            sbp_account_number=os.environ.get("TBANK_SBP_ACCOUNT_NUMBER", "").strip(),
            sbp_vat=os.environ.get("TBANK_SBP_VAT", "22").strip(),
            sbp_link_ttl_days=_int("TBANK_SBP_LINK_TTL_DAYS", 30),
            invoice_account_number=(
                os.environ.get("TBANK_INVOICE_ACCOUNT_NUMBER") or os.environ.get("TBANK_SBP_ACCOUNT_NUMBER", "")
            ).strip(),
            timeout=_float("TBANK_HTTP_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        )
