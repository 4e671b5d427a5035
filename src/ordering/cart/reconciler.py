"""Re-validate a client-submitted order draft against the live cart.

The draft is what the client believes it is buying. Nothing in it is trusted:
every line must match an item in the user's cart (program, pricing tier,
sub-program, hours, price, quantity), every declared amount must equal what
the cart prices imply, and the totals must agree within ``MONEY_EPSILON``.
Values are never coerced; the first mismatch is reported with the line it
belongs to.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog
from protean.exceptions import ValidationError

from ordering.cart.port import CartSnapshot, EnrichedCartItem
from ordering.order.display_title import build_display_title
from ordering.utils.money import MONEY_EPSILON, amounts_match, round_money

logger = structlog.get_logger(__name__)

LEARNER_FIELDS = (
    "last_name",
    "first_name",
    "middle_name",
    "email",
    "phone",
    "date_of_birth",
    "citizenship",
    "snils",
    "passport_series",
    "passport_number",
    "passport_issued_by",
    "passport_issued_at",
    "passport_department_code",
    "passport_registration_address",
    "residential_address",
    "education_qualification",
    "education_document_issued_at",
    "work_place_name",
    "position",
)


@dataclass(frozen=True)
class DraftLine:
    program_id: str
    hours: float
    price: float
    quantity: int
    line_amount: float
    pricing_index: int | None = None
    sub_program_index: int | None = None
    learners: tuple[dict, ...] = field(default_factory=tuple)

    @property
    def key(self) -> tuple[str, int | None, int | None]:
        return (self.program_id, self.pricing_index, self.sub_program_index)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DraftLine":
        return cls(
            program_id=str(data.get("program_id") or ""),
            pricing_index=data.get("pricing_index"),
            sub_program_index=data.get("sub_program_index"),
            hours=float(data.get("hours") or 0),
            price=float(data.get("price") or 0),
            quantity=int(data.get("quantity") or 0),
            line_amount=float(data.get("line_amount") or 0),
            learners=tuple(data.get("learners") or ()),
        )


@dataclass(frozen=True)
class OrderDraft:
    lines: tuple[DraftLine, ...]
    total_amount: float


def _describe(line: DraftLine) -> str:
    parts = [f"program {line.program_id}"]
    if line.pricing_index is not None:
        parts.append(f"pricing index {line.pricing_index}")
    if line.sub_program_index is not None:
        parts.append(f"sub-program {line.sub_program_index}")
    return ", ".join(parts)


def _line_error(number: int, message: str) -> ValidationError:
    return ValidationError({"lines": [f"Line {number}: {message}"]})


def _normalize_learner(number: int, position: int, learner: Any) -> dict:
    if not isinstance(learner, dict):
        raise _line_error(number, f"learner {position} is malformed")

    normalized = {}
    for name in LEARNER_FIELDS:
        value = learner.get(name)
        if isinstance(value, str):
            value = value.strip()
        if value not in (None, ""):
            normalized[name] = value

    if not normalized.get("last_name") or not normalized.get("first_name"):
        raise _line_error(number, f"learner {position} must have a last and first name")
    return normalized


class CartReconciler:
    def __init__(self, epsilon: float = MONEY_EPSILON) -> None:
        self.epsilon = epsilon

    def _check_line(self, number: int, line: DraftLine, item: EnrichedCartItem) -> None:
        if line.quantity != item.quantity:
            raise _line_error(number, f"quantity {line.quantity} does not match cart quantity {item.quantity}")
        if not amounts_match(line.hours, item.hours, self.epsilon):
            raise _line_error(number, f"hours {line.hours:g} do not match current hours {item.hours:g}")
        if not amounts_match(line.price, item.price, self.epsilon):
            raise _line_error(number, f"price {line.price:.2f} does not match current price {item.price:.2f}")

        expected_amount = item.price * item.quantity
        if not amounts_match(line.line_amount, expected_amount, self.epsilon):
            raise _line_error(
                number,
                f"line amount {line.line_amount:.2f} does not match price × quantity ({expected_amount:.2f})",
            )
        if len(line.learners) != line.quantity:
            raise _line_error(number, f"learners count must equal quantity ({line.quantity})")

    def reconcile(self, draft: OrderDraft, cart: CartSnapshot) -> list[dict]:
        """Return frozen line snapshots for ``draft`` or raise ``ValidationError``."""
        if cart.is_empty:
            raise ValidationError({"cart": ["Cart is empty"]})
        if not draft.lines:
            raise ValidationError({"lines": ["Order must have at least one line"]})

        cart_by_key = {item.key: item for item in cart.items}
        seen: set[tuple] = set()
        snapshots = []
        computed_total = 0.0

        for number, line in enumerate(draft.lines, start=1):
            item = cart_by_key.get(line.key)
            if item is None:
                raise _line_error(number, f"cart does not contain {_describe(line)}")
            if line.key in seen:
                raise _line_error(number, f"{_describe(line)} appears more than once")
            seen.add(line.key)

            self._check_line(number, line, item)
            learners = [
                _normalize_learner(number, position, learner)
                for position, learner in enumerate(line.learners, start=1)
            ]

            line_amount = round_money(item.price * item.quantity)
            computed_total += line_amount
            snapshots.append(
                {
                    "program_id": item.program_id,
                    "pricing_index": item.pricing_index,
                    "sub_program_index": item.sub_program_index,
                    "program_title": item.program_title,
                    "sub_program_title": item.sub_program_title,
                    "display_title": build_display_title(
                        item.category_type, item.sub_program_title or item.program_title
                    ),
                    "hours": item.hours,
                    "price": round_money(item.price),
                    "quantity": item.quantity,
                    "line_amount": line_amount,
                    "learners": learners,
                }
            )

        computed_total = round_money(computed_total)
        if not amounts_match(computed_total, draft.total_amount, self.epsilon):
            raise ValidationError(
                {
                    "total_amount": [
                        f"Declared total {draft.total_amount:.2f} does not match line total {computed_total:.2f}"
                    ]
                }
            )
        if not amounts_match(computed_total, cart.total_amount, self.epsilon):
            raise ValidationError({"total_amount": ["Order total does not match cart total"]})

        logger.debug("Draft reconciled", lines=len(snapshots), total=computed_total)
        return snapshots
