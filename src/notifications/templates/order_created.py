"""Order created template: sent when an order is placed from the cart."""


class OrderCreatedTemplate:
    kind = "ORDER_CREATED"

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("number", "")
        amount = float(context.get("total_amount", 0.0))
        return {
            "subject": f"Заказ {number} оформлен",
            "body": (
                f"Ваш заказ {number} на сумму {amount:.2f} ₽ оформлен и ожидает оплаты.\n\n"
                "Оплатить заказ можно картой, по QR-коду СБП или по счёту для организаций."
            ),
        }
