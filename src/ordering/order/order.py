"""Order aggregate (Event Sourced) — the core of the ordering domain.

The Order aggregate uses event sourcing: all state changes are captured as
domain events, and the current state is rebuilt by replaying events via
@apply decorators. Items and pricing are frozen by OrderPlaced and never
change afterwards; only lifecycle, payment, dispatch and invoice references
move.

State Machine:
    PENDING → CONFIRMED → PREPARING → READY_FOR_PICKUP → IN_TRANSIT → DELIVERED
    CANCELLED (from PENDING, CONFIRMED, PREPARING, READY_FOR_PICKUP)

Edges are guarded twice: by the transition table and by the acting role.
Requesting the state the order is already in is a successful no-op.
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import apply
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    Date,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.checkout.schedule import TimeSlot
from ordering.domain import ordering
from ordering.exceptions import ConcurrentModification, InvalidTransition, Unauthorized
from ordering.order.events import (
    DispatchAttached,
    DispatchPendingFlagged,
    InvoiceAttached,
    ManualDispatchRequired,
    OrderPlaced,
    OrderStatusChanged,
    PaymentStatusRecorded,
)
from ordering.pricing.calculator import Urgency
from ordering.pricing.money import Money


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ActingRole(Enum):
    BUYER = "buyer"
    SUPPLIER = "supplier"
    SYSTEM = "system"


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CancellationReason(Enum):
    BUYER_REQUEST = "buyer_request"
    OUT_OF_STOCK = "out_of_stock"
    SUPPLIER_UNAVAILABLE = "supplier_unavailable"
    PAYMENT_FAILED = "payment_failed"
    DELIVERY_NOT_POSSIBLE = "delivery_not_possible"
    DUPLICATE_ORDER = "duplicate_order"
    OTHER = "other"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED},
    OrderStatus.READY_FOR_PICKUP: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Who may move an order into each target state
_ALLOWED_ROLES = {
    OrderStatus.CONFIRMED: {ActingRole.SUPPLIER},
    OrderStatus.PREPARING: {ActingRole.SUPPLIER},
    OrderStatus.READY_FOR_PICKUP: {ActingRole.SUPPLIER},
    OrderStatus.IN_TRANSIT: {ActingRole.SYSTEM},
    OrderStatus.DELIVERED: {ActingRole.SYSTEM},
    OrderStatus.CANCELLED: {ActingRole.BUYER, ActingRole.SUPPLIER},
}

HOOK_REQUEST_DISPATCH = "request_dispatch"
HOOK_RELEASE_RESERVATION = "release_reservation"
HOOK_SETTLE_RESERVATION = "settle_reservation"

# Side effect owed on entering a state
_ENTRY_HOOKS = {
    OrderStatus.READY_FOR_PICKUP: HOOK_REQUEST_DISPATCH,
    OrderStatus.DELIVERED: HOOK_SETTLE_RESERVATION,
    OrderStatus.CANCELLED: HOOK_RELEASE_RESERVATION,
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING, PaymentStatus.COMPLETED},
    PaymentStatus.COMPLETED: set(),
}


def allowed_targets(status) -> set:
    return set(_VALID_TRANSITIONS[OrderStatus(status)])


def allowed_roles(target) -> set:
    return set(_ALLOWED_ROLES.get(OrderStatus(target), set()))


def hook_key_for(order_id, from_status, to_status) -> str:
    """Ledger key of the hook fired by one transition, e.g. ``<id>:preparing:ready_for_pickup``."""
    return f"{order_id}:{from_status}:{to_status}"


# ---------------------------------------------------------------------------
# References to records owned by other components
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class DispatchRef:
    tracking_id: str
    courier: str | None
    requested_at: datetime | None


@dataclass(frozen=True)
class InvoiceRef:
    invoice_id: str
    invoice_number: str


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class DeliveryAddress:
    """Where the courier drops the order off, captured at checkout."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    notes = String(max_length=255)


@ordering.value_object(part_of="Order")
class CustomerContact:
    name = String(required=True, max_length=255)
    email = String(required=True, max_length=255)
    phone = String(max_length=50)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Price breakdown frozen at checkout, in minor units of ``currency``."""

    subtotal = Integer(required=True, min_value=0)
    delivery_fee = Integer(default=0, min_value=0)
    urgency_surcharge = Integer(default=0, min_value=0)
    total = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="EUR")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=1)
    weight_grams = Integer(default=0, min_value=0)

    def line_total(self) -> int:
        return self.unit_price * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@ordering.aggregate(is_event_sourced=True)
class Order:
    buyer_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    cart_id = Identifier()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderLine)
    pricing = ValueObject(OrderPricing)
    urgency = String(choices=Urgency, default=Urgency.NORMAL.value)
    delivery_date = Date()
    delivery_slot = String(choices=TimeSlot)
    special_instructions = String(max_length=500)
    delivery_address = ValueObject(DeliveryAddress)
    customer_contact = ValueObject(CustomerContact)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(max_length=50)
    invoice_id = Identifier()
    invoice_number = String(max_length=50)
    dispatch_tracking_id = String(max_length=255)
    dispatch_courier = String(max_length=100)
    dispatch_requested_at = DateTime()
    dispatch_pending = Boolean(default=False)
    dispatch_attempts = Integer(default=0)
    manual_dispatch_required = Boolean(default=False)
    cancellation_reason = String(max_length=50)
    cancelled_by = String(max_length=20)
    refund_eligible = Boolean(default=False)
    fired_hooks = Text()  # JSON list of hook keys
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        buyer_id,
        supplier_id,
        items,
        pricing,
        urgency,
        delivery_date,
        delivery_slot,
        delivery_address,
        customer_contact,
        cart_id=None,
        special_instructions=None,
        payment_method=None,
    ):
        """Create a pending order from a priced cart snapshot.

        Args:
            items: LineItems from ``Cart.snapshot()``.
            pricing: The PriceBreakdown computed for those items.
            delivery_address: Dict with street, city, postal_code, country, notes.
            customer_contact: Dict with name, email, phone.
        """
        now = datetime.now(UTC)

        # Pre-generate line IDs for deterministic replay
        lines = [
            {
                "id": str(uuid4()),
                "product_id": str(item.product_id),
                "name": item.name,
                "unit_price": item.unit_price.amount,
                "quantity": item.quantity,
                "weight_grams": item.weight_grams,
            }
            for item in items
        ]

        order = cls._create_new()
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                buyer_id=str(buyer_id),
                supplier_id=str(supplier_id),
                cart_id=str(cart_id) if cart_id else None,
                items=json.dumps(lines),
                subtotal=pricing.subtotal.amount,
                delivery_fee=pricing.delivery_fee.amount,
                urgency_surcharge=pricing.urgency_surcharge.amount,
                total=pricing.total.amount,
                currency=pricing.currency,
                urgency=Urgency(urgency).value,
                delivery_date=delivery_date,
                delivery_slot=TimeSlot(delivery_slot).value,
                special_instructions=special_instructions,
                delivery_address=json.dumps(delivery_address),
                customer_contact=json.dumps(customer_contact),
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def total(self) -> Money:
        return Money(amount=self.pricing.total, currency=self.pricing.currency)

    def total_weight_grams(self) -> int:
        return sum((item.weight_grams or 0) * item.quantity for item in self.items)

    def hook_keys(self) -> list[str]:
        return json.loads(self.fired_hooks) if self.fired_hooks else []

    def dispatch(self) -> DispatchRef | None:
        if not self.dispatch_tracking_id:
            return None
        return DispatchRef(
            tracking_id=self.dispatch_tracking_id,
            courier=self.dispatch_courier,
            requested_at=self.dispatch_requested_at,
        )

    def invoice(self) -> InvoiceRef | None:
        if not self.invoice_id:
            return None
        return InvoiceRef(invoice_id=str(self.invoice_id), invoice_number=self.invoice_number)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition(self, target, acting_role, reason_code=None, expected_revision=None) -> bool:
        """Move the order to ``target`` on behalf of ``acting_role``.

        Returns False when the order is already in ``target`` (nothing is
        recorded and no hook fires), True when the transition was recorded.

        Raises:
            InvalidTransition: ``target`` is not reachable from the current state.
            Unauthorized: the role may not take this edge.
            ConcurrentModification: ``expected_revision`` is stale.
            ValidationError: a cancellation without a valid reason code.
        """
        current = OrderStatus(self.status)
        target = OrderStatus(target)
        role = ActingRole(acting_role)

        if current == target:
            return False

        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)

        if role not in _ALLOWED_ROLES[target]:
            raise Unauthorized(role.value, current.value, target.value)

        if expected_revision is not None and expected_revision != self.revision:
            raise ConcurrentModification(self.id, expected_revision, self.revision)

        if target == OrderStatus.CANCELLED:
            if not reason_code:
                raise ValidationError({"reason_code": ["A reason code is required to cancel an order"]})
            try:
                reason_code = CancellationReason(reason_code).value
            except ValueError:
                raise ValidationError({"reason_code": [f"Unknown cancellation reason: {reason_code}"]})
        else:
            reason_code = None

        hook = _ENTRY_HOOKS.get(target)
        hook_key = hook_key_for(self.id, current.value, target.value) if hook else None
        if hook_key in self.hook_keys():
            hook = hook_key = None

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                supplier_id=str(self.supplier_id),
                buyer_id=str(self.buyer_id),
                from_status=current.value,
                to_status=target.value,
                acting_role=role.value,
                reason_code=reason_code,
                refund_eligible=(
                    target == OrderStatus.CANCELLED and self.payment_status == PaymentStatus.COMPLETED.value
                ),
                hook=hook,
                hook_key=hook_key,
                changed_at=datetime.now(UTC),
            )
        )
        return True

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self, payment_status, payment_method=None) -> bool:
        current = PaymentStatus(self.payment_status)
        target = PaymentStatus(payment_status)
        if current == target:
            return False
        if target not in _PAYMENT_TRANSITIONS[current]:
            raise ValidationError(
                {"payment_status": [f"Cannot change payment status from {current.value} to {target.value}"]}
            )

        self.raise_(
            PaymentStatusRecorded(
                order_id=str(self.id),
                previous_status=current.value,
                payment_status=target.value,
                payment_method=payment_method or self.payment_method,
                recorded_at=datetime.now(UTC),
            )
        )
        return True

    # -------------------------------------------------------------------
    # Dispatch reference
    # -------------------------------------------------------------------
    def _assert_dispatchable(self):
        if OrderStatus(self.status) not in (OrderStatus.READY_FOR_PICKUP, OrderStatus.IN_TRANSIT):
            raise ValidationError({"status": [f"Order in {self.status} state has no courier to track"]})

    def flag_dispatch_pending(self, attempts, next_attempt_at=None, last_error=None):
        if self.dispatch_tracking_id:
            return
        self._assert_dispatchable()
        self.raise_(
            DispatchPendingFlagged(
                order_id=str(self.id),
                attempts=attempts,
                next_attempt_at=next_attempt_at,
                last_error=last_error,
                flagged_at=datetime.now(UTC),
            )
        )

    def attach_dispatch(self, tracking_id, courier=None, requested_at=None, manual=False):
        """Record the courier's tracking reference. It is set once and never replaced."""
        if self.dispatch_tracking_id:
            if self.dispatch_tracking_id == tracking_id:
                return
            raise ValidationError(
                {"dispatch": [f"Order already has dispatch {self.dispatch_tracking_id}; cannot attach {tracking_id}"]}
            )
        self._assert_dispatchable()
        self.raise_(
            DispatchAttached(
                order_id=str(self.id),
                tracking_id=tracking_id,
                courier=courier,
                requested_at=requested_at,
                manual=manual,
                attached_at=datetime.now(UTC),
            )
        )

    def require_manual_dispatch(self, attempts, last_error=None):
        if self.manual_dispatch_required or self.dispatch_tracking_id:
            return
        self._assert_dispatchable()
        self.raise_(
            ManualDispatchRequired(
                order_id=str(self.id),
                attempts=attempts,
                last_error=last_error,
                flagged_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Invoice reference
    # -------------------------------------------------------------------
    def attach_invoice(self, invoice_id, invoice_number):
        if self.invoice_id:
            if str(self.invoice_id) == str(invoice_id):
                return
            raise ValidationError({"invoice": [f"Order already has invoice {self.invoice_number}"]})
        self.raise_(
            InvoiceAttached(
                order_id=str(self.id),
                invoice_id=str(invoice_id),
                invoice_number=invoice_number,
                attached_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_order_placed(self, event: OrderPlaced):
        self.id = event.order_id
        self.buyer_id = event.buyer_id
        self.supplier_id = event.supplier_id
        self.cart_id = event.cart_id
        self.status = OrderStatus.PENDING.value
        self.payment_status = PaymentStatus.PENDING.value
        self.payment_method = event.payment_method
        self.urgency = event.urgency
        self.delivery_date = event.delivery_date
        self.delivery_slot = event.delivery_slot
        self.special_instructions = event.special_instructions
        self.fired_hooks = json.dumps([])
        self.created_at = event.placed_at
        self.updated_at = event.placed_at
        self.revision = 1

        # Reconstruct lines from JSON (includes IDs for deterministic replay)
        lines = json.loads(event.items) if isinstance(event.items, str) else []
        self.items = [OrderLine(**line) for line in lines]

        address = json.loads(event.delivery_address) if isinstance(event.delivery_address, str) else {}
        if address:
            self.delivery_address = DeliveryAddress(**address)

        contact = json.loads(event.customer_contact) if isinstance(event.customer_contact, str) else {}
        if contact:
            self.customer_contact = CustomerContact(**contact)

        self.pricing = OrderPricing(
            subtotal=event.subtotal,
            delivery_fee=event.delivery_fee,
            urgency_surcharge=event.urgency_surcharge,
            total=event.total,
            currency=event.currency,
        )

    @apply
    def _on_status_changed(self, event: OrderStatusChanged):
        self.status = event.to_status
        self.updated_at = event.changed_at
        self.revision = (self.revision or 0) + 1

        if event.hook_key:
            self.fired_hooks = json.dumps(self.hook_keys() + [event.hook_key])

        if event.to_status == OrderStatus.CANCELLED.value:
            self.cancellation_reason = event.reason_code
            self.cancelled_by = event.acting_role
            self.refund_eligible = bool(event.refund_eligible)
            self.dispatch_pending = False
        elif event.to_status in (OrderStatus.IN_TRANSIT.value, OrderStatus.DELIVERED.value):
            # The courier has the goods, so nothing is left to book
            self.dispatch_pending = False

    @apply
    def _on_payment_status_recorded(self, event: PaymentStatusRecorded):
        self.payment_status = event.payment_status
        if event.payment_method:
            self.payment_method = event.payment_method
        self.updated_at = event.recorded_at
        self.revision = (self.revision or 0) + 1

        # A payment that completes after cancellation still has to go back
        if self.status == OrderStatus.CANCELLED.value and event.payment_status == PaymentStatus.COMPLETED.value:
            self.refund_eligible = True

    @apply
    def _on_dispatch_pending_flagged(self, event: DispatchPendingFlagged):
        self.dispatch_pending = True
        self.dispatch_attempts = event.attempts
        self.updated_at = event.flagged_at
        self.revision = (self.revision or 0) + 1

    @apply
    def _on_dispatch_attached(self, event: DispatchAttached):
        self.dispatch_tracking_id = event.tracking_id
        self.dispatch_courier = event.courier
        self.dispatch_requested_at = event.requested_at or event.attached_at
        self.dispatch_pending = False
        self.manual_dispatch_required = False
        self.updated_at = event.attached_at
        self.revision = (self.revision or 0) + 1

    @apply
    def _on_manual_dispatch_required(self, event: ManualDispatchRequired):
        self.manual_dispatch_required = True
        self.dispatch_pending = False
        self.dispatch_attempts = event.attempts
        self.updated_at = event.flagged_at
        self.revision = (self.revision or 0) + 1

    @apply
    def _on_invoice_attached(self, event: InvoiceAttached):
        self.invoice_id = event.invoice_id
        self.invoice_number = event.invoice_number
        self.updated_at = event.attached_at
        self.revision = (self.revision or 0) + 1
