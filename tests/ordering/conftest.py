import json

import pytest
from notifications.channel import EMAIL, reset_channels, set_channel
from notifications.channel.fake_email import FakeEmailAdapter
from notifications.documents import reset_document_generator, set_document_generator
from notifications.documents.fake_generator import FakeDocumentGenerator
from ordering.cart import reset_cart, set_cart
from ordering.cart.fake_adapter import FakeCart
from ordering.cart.port import EnrichedCartItem
from ordering.order.numbering import reset_sequence_store
from payments.gateway import reset_gateway, set_gateway
from payments.gateway.fake_adapter import FakeGateway
from protean import current_domain
from protean.integrations.pytest import DomainFixture

PROGRAM = EnrichedCartItem(
    program_id="prog-001",
    program_title="Охрана труда",
    hours=72,
    price=5000.0,
    quantity=1,
    pricing_index=0,
    category_type="qualification_upgrade",
)


def _learner(position):
    return {"last_name": f"Иванов-{position}", "first_name": "Иван", "email": f"learner{position}@example.com"}


def _draft_line(item, **overrides):
    line = {
        "program_id": item.program_id,
        "pricing_index": item.pricing_index,
        "sub_program_index": item.sub_program_index,
        "hours": item.hours,
        "price": item.price,
        "quantity": item.quantity,
        "line_amount": item.line_amount,
        "learners": [_learner(position) for position in range(1, item.quantity + 1)],
    }
    line.update(overrides)
    return line


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _adapters():
    """Every test starts with fresh in-memory collaborators and counter."""
    reset_cart()
    reset_gateway()
    reset_channels()
    reset_document_generator()
    reset_sequence_store()
    yield
    reset_cart()
    reset_gateway()
    reset_channels()
    reset_document_generator()
    reset_sequence_store()


@pytest.fixture()
def cart():
    fake = FakeCart()
    set_cart(fake)
    return fake


@pytest.fixture()
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def email():
    fake = FakeEmailAdapter()
    set_channel(EMAIL, fake)
    return fake


@pytest.fixture()
def documents():
    fake = FakeDocumentGenerator()
    set_document_generator(fake)
    return fake


@pytest.fixture()
def program():
    return PROGRAM


@pytest.fixture()
def draft_line():
    return _draft_line


@pytest.fixture()
def place_order(cart):
    """Put ``items`` in the user's cart and create an order from a matching draft."""
    from ordering.order.creation import CreateOrderFromCart

    def _place(user_id="user-001", items=None, **overrides):
        items = items or [PROGRAM]
        for item in items:
            cart.add_item(user_id, item)

        fields = {
            "user_id": user_id,
            "contact_email": "learner@example.com",
            "lines": json.dumps([_draft_line(item) for item in items]),
            "total_amount": round(sum(item.line_amount for item in items), 2),
        }
        fields.update(overrides)
        return current_domain.process(CreateOrderFromCart(**fields), asynchronous=False)

    return _place
