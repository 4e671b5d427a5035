"""Read-side helpers for orders."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.order.order import Order

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def get_order(order_id: str, user_id: str | None = None) -> Order:
    """Load an order, optionally scoped to its purchaser.

    Another user's order is reported as not found.
    """
    order = current_domain.repository_for(Order).get(order_id)
    if user_id is not None and str(order.user_id) != str(user_id):
        raise ObjectNotFoundError(f"Order with id {order_id} does not exist")
    return order


def _page(criteria: dict, limit: int | None, offset: int | None) -> list[Order]:
    limit = min(max(1, int(limit if limit is not None else DEFAULT_LIMIT)), MAX_LIMIT)
    offset = max(0, int(offset or 0))

    repo = current_domain.repository_for(Order)
    query = repo._dao.query
    if criteria:
        query = query.filter(**criteria)
    return query.order_by("-created_at").offset(offset).limit(limit).all().items


def list_user_orders(
    user_id: str,
    status: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Order]:
    """A user's orders, newest first."""
    criteria = {"user_id": str(user_id)}
    if status and status.strip():
        criteria["status"] = status.strip()
    return _page(criteria, limit, offset)


def list_orders(
    status: str | None = None,
    user_id: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Order]:
    """All orders for back-office use, newest first, optionally filtered by status and purchaser."""
    criteria = {}
    if user_id and str(user_id).strip():
        criteria["user_id"] = str(user_id).strip()
    if status and status.strip():
        criteria["status"] = status.strip()
    return _page(criteria, limit, offset)
