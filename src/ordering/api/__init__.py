"""Ordering domain API package."""

from ordering.api.errors import register_gateway_error_handler
from ordering.api.routes import admin_router, order_router, webhook_router

__all__ = ["admin_router", "order_router", "webhook_router", "register_gateway_error_handler"]
