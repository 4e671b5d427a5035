"""Template registry: maps notification kinds to template classes.

Each template knows how to render subject and body from event context data.
"""

from notifications.templates.order_created import OrderCreatedTemplate
from notifications.templates.payment_received import PaymentReceivedTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    OrderCreatedTemplate.kind: OrderCreatedTemplate,
    PaymentReceivedTemplate.kind: PaymentReceivedTemplate,
}


def get_template(kind: str):
    """Look up a template class by notification kind."""
    template_cls = TEMPLATE_REGISTRY.get(kind)
    if template_cls is None:
        raise ValueError(f"No template registered for notification kind: {kind}")
    return template_cls
