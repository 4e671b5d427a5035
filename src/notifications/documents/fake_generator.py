"""Fake document generator: records requests for testing."""

from notifications.documents.port import DocumentGenerationError, DocumentGenerationPort


class FakeDocumentGenerator(DocumentGenerationPort):
    def __init__(self):
        self.generated: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Document rendering failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Document rendering failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def generate_training_application(self, order_id: str, order_number: str, context: dict) -> str:
        if not self.should_succeed:
            raise DocumentGenerationError(self.failure_reason)

        reference = f"documents/orders/{order_id}/training-application.pdf"
        self.generated.append(
            {"order_id": order_id, "order_number": order_number, "context": context, "reference": reference}
        )
        return reference
