"""Supplier order board — one row per order, kept current from Order events.

Suppliers and the storefront read this instead of polling the event-sourced
Order.
"""

from protean.core.projector import on
from protean.fields import Boolean, Date, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.events import (
    DispatchAttached,
    DispatchPendingFlagged,
    InvoiceAttached,
    ManualDispatchRequired,
    OrderPlaced,
    OrderStatusChanged,
    PaymentStatusRecorded,
)
from ordering.order.order import Order


@ordering.projection
class SupplierOrderBoard:
    order_id = Identifier(identifier=True, required=True)
    supplier_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    status = String(required=True)
    total = Integer(default=0)
    currency = String(default="EUR")
    urgency = String()
    delivery_date = Date()
    delivery_slot = String()
    payment_status = String(default="pending")
    dispatch_pending = Boolean(default=False)
    manual_dispatch_required = Boolean(default=False)
    tracking_id = String()
    invoice_number = String()
    placed_at = DateTime()
    updated_at = DateTime()


@ordering.projector(projector_for=SupplierOrderBoard, aggregates=[Order])
class SupplierOrderBoardProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        current_domain.repository_for(SupplierOrderBoard).add(
            SupplierOrderBoard(
                order_id=event.order_id,
                supplier_id=event.supplier_id,
                buyer_id=event.buyer_id,
                status="pending",
                total=event.total,
                currency=event.currency,
                urgency=event.urgency,
                delivery_date=event.delivery_date,
                delivery_slot=event.delivery_slot,
                payment_status="pending",
                placed_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    def _update(self, order_id, updated_at, **changes):
        repo = current_domain.repository_for(SupplierOrderBoard)
        row = repo.get(order_id)
        for field_name, value in changes.items():
            setattr(row, field_name, value)
        row.updated_at = updated_at
        repo.add(row)

    @on(OrderStatusChanged)
    def on_status_changed(self, event):
        changes = {"status": event.to_status}
        if event.to_status in ("cancelled", "in_transit", "delivered"):
            changes["dispatch_pending"] = False
        self._update(event.order_id, event.changed_at, **changes)

    @on(PaymentStatusRecorded)
    def on_payment_status_recorded(self, event):
        self._update(event.order_id, event.recorded_at, payment_status=event.payment_status)

    @on(DispatchPendingFlagged)
    def on_dispatch_pending(self, event):
        self._update(event.order_id, event.flagged_at, dispatch_pending=True)

    @on(DispatchAttached)
    def on_dispatch_attached(self, event):
        self._update(
            event.order_id,
            event.attached_at,
            tracking_id=event.tracking_id,
            dispatch_pending=False,
            manual_dispatch_required=False,
        )

    @on(ManualDispatchRequired)
    def on_manual_dispatch_required(self, event):
        self._update(event.order_id, event.flagged_at, dispatch_pending=False, manual_dispatch_required=True)

    @on(InvoiceAttached)
    def on_invoice_attached(self, event):
        self._update(event.order_id, event.attached_at, invoice_number=event.invoice_number)


def board_for_supplier(supplier_id, status=None) -> list:
    """Rows for a supplier's board, newest first, optionally filtered by status."""
    filters = {"supplier_id": str(supplier_id)}
    if status:
        filters["status"] = status
    rows = current_domain.repository_for(SupplierOrderBoard)._dao.query.filter(**filters).all().items
    return sorted(rows, key=lambda row: row.placed_at, reverse=True)
