"""Ordering bounded context: Orders, cart reconciliation and payment reconciliation.

Converts a validated cart into an immutable priced order, drives the order
through its payment lifecycle against the acquiring provider, and dispatches
the notifications that follow a confirmed payment.
"""

import structlog
from protean.domain import Domain

from ordering.utils.logging import configure_logging

configure_logging()

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
