"""Document generator factory.

Provides get_document_generator() / set_document_generator(). Defaults to
FakeDocumentGenerator.
"""

from notifications.documents.fake_generator import FakeDocumentGenerator
from notifications.documents.port import DocumentGenerationPort

_current_generator: DocumentGenerationPort | None = None


def get_document_generator() -> DocumentGenerationPort:
    global _current_generator
    if _current_generator is None:
        _current_generator = FakeDocumentGenerator()
    return _current_generator


def set_document_generator(generator: DocumentGenerationPort) -> None:
    global _current_generator
    _current_generator = generator


def reset_document_generator() -> None:
    global _current_generator
    _current_generator = None
