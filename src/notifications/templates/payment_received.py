"""Payment received template: sent once an order is paid."""


class PaymentReceivedTemplate:
    kind = "PAYMENT_CONFIRMED"

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("number", "")
        amount = float(context.get("total_amount", 0.0))
        body = f"Оплата заказа {number} на сумму {amount:.2f} ₽ получена.\n\n"
        if context.get("document_ref"):
            body += "Заявка на обучение приложена к письму.\n\n"
        body += "Спасибо!"
        return {"subject": f"Оплата заказа {number} получена", "body": body}
