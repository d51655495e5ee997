"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes.
Events are persisted to the event store and used for:
- Rebuilding aggregate state via @apply (event sourcing)
- Updating the supplier order board projection
- Triggering lifecycle hooks (courier dispatch, stock release)
- Notifying buyers and suppliers (OrderPlaced, OrderStatusChanged)
"""

from protean.fields import Boolean, Date, DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A buyer checked out a cart; items and pricing are frozen from here on."""

    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    cart_id = Identifier()
    items = Text(required=True)  # JSON: list of line dicts
    subtotal = Integer(required=True)
    delivery_fee = Integer(required=True)
    urgency_surcharge = Integer(required=True)
    total = Integer(required=True)
    currency = String(max_length=3, required=True)
    urgency = String(required=True)
    delivery_date = Date(required=True)
    delivery_slot = String(required=True)
    special_instructions = String(max_length=500)
    delivery_address = Text(required=True)  # JSON: address dict
    customer_contact = Text(required=True)  # JSON: contact dict
    payment_method = String(max_length=50)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along its lifecycle.

    ``hook`` names the side effect owed for entering ``to_status`` and
    ``hook_key`` identifies that firing, so it can be recognised on replay.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    acting_role = String(required=True)
    reason_code = String(max_length=50)
    refund_eligible = Boolean(default=False)
    hook = String(max_length=50)
    hook_key = String(max_length=255)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentStatusRecorded:
    """The payment provider reported a new payment status for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    payment_status = String(required=True)
    payment_method = String(max_length=50)
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class DispatchPendingFlagged:
    """The courier request could not be placed yet; retries are scheduled."""

    __version__ = 1

    order_id = Identifier(required=True)
    attempts = Integer(required=True)
    next_attempt_at = DateTime()
    last_error = String(max_length=500)
    flagged_at = DateTime(required=True)


@ordering.event(part_of="Order")
class DispatchAttached:
    """A courier accepted the pickup; the tracking reference is recorded."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_id = String(required=True, max_length=255)
    courier = String(max_length=100)
    requested_at = DateTime()
    manual = Boolean(default=False)
    attached_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ManualDispatchRequired:
    """Automatic dispatch gave up; the supplier has to book a courier by hand."""

    __version__ = 1

    order_id = Identifier(required=True)
    attempts = Integer(required=True)
    last_error = String(max_length=500)
    flagged_at = DateTime(required=True)


@ordering.event(part_of="Order")
class InvoiceAttached:
    """An invoice was generated for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    invoice_id = Identifier(required=True)
    invoice_number = String(required=True, max_length=50)
    attached_at = DateTime(required=True)
