"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), kept separate from
internal Protean commands.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class LearnerSchema(BaseModel):
    last_name: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    email: str | None = None
    phone: str | None = None
    date_of_birth: str | None = None
    citizenship: str | None = None
    snils: str | None = None
    passport_series: str | None = None
    passport_number: str | None = None
    passport_issued_by: str | None = None
    passport_issued_at: str | None = None
    passport_department_code: str | None = None
    passport_registration_address: str | None = None
    residential_address: str | None = None
    education_qualification: str | None = None
    education_document_issued_at: str | None = None
    work_place_name: str | None = None
    position: str | None = None


class DraftLineSchema(BaseModel):
    program_id: str
    pricing_index: int | None = None
    sub_program_index: int | None = None
    hours: float = Field(ge=0)
    price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    line_amount: float = Field(ge=0)
    learners: list[LearnerSchema] = Field(default_factory=list)


class TrainingSchema(BaseModel):
    training_start_date: date | None = None
    training_end_date: date | None = None
    training_form: str | None = None
    training_language: str | None = None
    head_position: str | None = None
    head_full_name: str | None = None
    contact_person_name: str | None = None
    contact_person_position: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    user_id: str
    customer_type: str = "SELF"
    organization_id: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    lines: list[DraftLineSchema]
    total_amount: float = Field(ge=0)
    training: TrainingSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "customer_type": "SELF",
                    "contact_email": "learner@example.com",
                    "lines": [
                        {
                            "program_id": "prog-001",
                            "pricing_index": 0,
                            "hours": 72,
                            "price": 5000.0,
                            "quantity": 1,
                            "line_amount": 5000.0,
                            "learners": [{"last_name": "Иванов", "first_name": "Иван"}],
                        }
                    ],
                    "total_amount": 5000.0,
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: str


class UpdateDetailsRequest(BaseModel):
    contact_email: str | None = None
    contact_phone: str | None = None
    organization_id: str | None = None


class ProviderTimeoutRequest(BaseModel):
    timeout: float | None = Field(default=None, gt=0)


class IssueInvoiceRequest(BaseModel):
    payer_name: str
    payer_inn: str
    payer_kpp: str | None = None
    contact_phone: str | None = None
    comment: str | None = None
    timeout: float | None = Field(default=None, gt=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "payer_name": "ООО Ромашка",
                    "payer_inn": "7701234567",
                    "payer_kpp": "770101001",
                    "contact_phone": "+79991234567",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderCreatedResponse(BaseModel):
    order_id: str
    number: str


class StatusResponse(BaseModel):
    status: str = "ok"


class OrderLineResponse(BaseModel):
    program_id: str
    pricing_index: int | None = None
    sub_program_index: int | None = None
    program_title: str
    sub_program_title: str | None = None
    display_title: str
    hours: float
    price: float
    quantity: int
    line_amount: float
    learners: list[dict] = Field(default_factory=list)


class OrderResponse(BaseModel):
    order_id: str
    number: str
    user_id: str
    customer_type: str
    organization_id: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    status: str
    total_amount: float
    lines: list[OrderLineResponse]
    training: TrainingSchema
    payment_id: str | None = None
    invoice_id: str | None = None
    invoice_pdf_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    limit: int
    offset: int


class CardPaymentResponse(BaseModel):
    payment_id: str
    payment_url: str
    status: str


class SbpLinkResponse(BaseModel):
    qr_id: str
    payment_url: str
    due_date: str
    qr_image_base64: str | None = None


class SbpLinkStatusResponse(BaseModel):
    qr_id: str
    status: str


class InvoiceResponse(BaseModel):
    invoice_id: str
    pdf_url: str
    incoming_invoice_url: str | None = None
    cached: bool = False


class InvoiceStatusResponse(BaseModel):
    invoice_id: str
    status: str


class PaymentAttemptSchema(BaseModel):
    payment_id: str
    status: str


class PaymentSyncResponse(BaseModel):
    status: str
    updated: bool
    payments: list[PaymentAttemptSchema]


class NotificationResponse(BaseModel):
    notification_id: str
    kind: str
    status: str
    attempts: int
    recipient: str | None = None
    last_error: str | None = None
    sent_at: datetime | None = None
