"""RetryOrderNotification command + handler: redeliver a failed notification."""

from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.notification.delivery import deliver
from ordering.notification.notification import OrderNotification
from ordering.order.order import Order


@ordering.command(part_of="OrderNotification")
class RetryOrderNotification:
    """Request to retry a failed order notification."""

    notification_id: Identifier(required=True)


@ordering.command_handler(part_of=OrderNotification)
class RetryOrderNotificationHandler:
    @handle(RetryOrderNotification)
    def retry_notification(self, command: RetryOrderNotification):
        repo = current_domain.repository_for(OrderNotification)
        notification = repo.get(command.notification_id)
        notification.retry()

        order = current_domain.repository_for(Order).get(notification.order_id)
        deliver(notification, order)
        repo.add(notification)
        return notification.status


def list_order_notifications(order_id) -> list[OrderNotification]:
    repo = current_domain.repository_for(OrderNotification)
    return repo._dao.query.filter(order_id=str(order_id)).all().items
