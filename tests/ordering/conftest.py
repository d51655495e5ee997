from datetime import date, timedelta

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

SUPPLIER_ID = "sup-001"
BUYER_ID = "buyer-001"

ADDRESS = {
    "street": "Carrer de Mallorca 120",
    "city": "Barcelona",
    "postal_code": "08036",
    "country": "ES",
}
CONTACT = {
    "name": "Restaurante Sol",
    "email": "compras@sol.example.com",
    "phone": "+34 600 000 000",
}


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    from ordering.alerts import reset_alerts
    from ordering.catalog import reset_catalog
    from ordering.mail import reset_mailer
    from ordering.network import reset_network
    from ordering.utils.locks import order_locks, supplier_locks

    with ordering_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_catalog()
    reset_network()
    reset_mailer()
    reset_alerts()
    order_locks.clear()
    supplier_locks.clear()


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalog():
    """A catalogue with one supplier and three products.

    Terms: minimum order 50.00, delivery 8.00, free delivery from 150.00,
    urgent +5.00, express +15.00.
    """
    from ordering.catalog import set_catalog
    from ordering.catalog.memory import InMemoryCatalog
    from ordering.catalog.port import ProductInfo
    from ordering.pricing.calculator import DeliveryTerms
    from ordering.pricing.money import Money

    catalog = InMemoryCatalog()
    catalog.set_delivery_terms(
        SUPPLIER_ID,
        DeliveryTerms(
            minimum_order=5000,
            base_delivery_fee=800,
            free_delivery_threshold=15000,
            lead_time_days=1,
        ),
    )
    catalog.register_product(
        ProductInfo(
            product_id="prod-flour",
            supplier_id=SUPPLIER_ID,
            name="Flour 25kg",
            unit_price=Money(amount=2500, currency="EUR"),
            stock=100,
            weight_grams=25_000,
        )
    )
    catalog.register_product(
        ProductInfo(
            product_id="prod-oil",
            supplier_id=SUPPLIER_ID,
            name="Olive oil 5L",
            unit_price=Money(amount=3000, currency="EUR"),
            stock=10,
            minimum_quantity=2,
            weight_grams=5_000,
        )
    )
    catalog.register_product(
        ProductInfo(
            product_id="prod-salt",
            supplier_id=SUPPLIER_ID,
            name="Sea salt 1kg",
            unit_price=Money(amount=250, currency="EUR"),
            stock=3,
            weight_grams=1_000,
        )
    )
    set_catalog(catalog)
    return catalog


@pytest.fixture()
def network():
    from ordering.network import set_network
    from ordering.network.fake_adapter import FakeDeliveryNetwork

    network = FakeDeliveryNetwork()
    set_network(network)
    return network


@pytest.fixture()
def mailer():
    from ordering.mail import get_mailer

    return get_mailer()


@pytest.fixture()
def alerts():
    from ordering.alerts import get_alerts

    return get_alerts()


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------
@pytest.fixture()
def delivery_date():
    return date.today() + timedelta(days=2)


@pytest.fixture()
def fill_cart(catalog):
    """Put ``{product_id: quantity}`` into the buyer's cart and return the cart id."""
    from ordering.cart.items import AddToCart

    def _fill(items, buyer_id=BUYER_ID):
        cart_id = None
        for product_id, quantity in items.items():
            cart_id = current_domain.process(
                AddToCart(
                    buyer_id=buyer_id,
                    supplier_id=SUPPLIER_ID,
                    product_id=product_id,
                    quantity=quantity,
                ),
                asynchronous=False,
            )
        return cart_id

    return _fill


@pytest.fixture()
def place_order(fill_cart, delivery_date, network):
    """Fill a cart and check it out. Returns the order id."""
    from ordering.checkout.checkout import checkout

    def _place(items=None, urgency="normal", buyer_id=BUYER_ID, payment_method="card"):
        cart_id = fill_cart(items or {"prod-flour": 4}, buyer_id=buyer_id)
        return checkout(
            cart_id=cart_id,
            buyer_id=buyer_id,
            delivery_date=delivery_date,
            delivery_slot="09:00-10:00",
            delivery_address=ADDRESS,
            customer_contact=CONTACT,
            urgency=urgency,
            payment_method=payment_method,
        )

    return _place


_PATH = ["confirmed", "preparing", "ready_for_pickup", "in_transit", "delivered"]
_ROLE_FOR = {
    "confirmed": "supplier",
    "preparing": "supplier",
    "ready_for_pickup": "supplier",
    "in_transit": "system",
    "delivered": "system",
}


@pytest.fixture()
def advance_order():
    """Walk an order along the happy path until it reaches ``status``."""
    from ordering.order.lifecycle import transition_order

    def _advance(order_id, status):
        for step in _PATH:
            transition_order(order_id, step, _ROLE_FOR[step])
            if step == status:
                return

    return _advance
