"""Document generation port: abstract interface for the rendering pipeline."""

from abc import ABC, abstractmethod


class DocumentGenerationError(Exception):
    """The rendering pipeline could not produce the document."""


class DocumentGenerationPort(ABC):
    @abstractmethod
    def generate_training_application(self, order_id: str, order_number: str, context: dict) -> str:
        """Render the training application for a paid order.

        Returns a reference (URL or storage key) to the generated document;
        raises ``DocumentGenerationError`` on failure.
        """
        ...
