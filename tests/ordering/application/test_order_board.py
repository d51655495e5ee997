from ordering.invoice.generation import ensure_invoice
from ordering.order.lifecycle import transition_order
from ordering.order.payment import record_payment
from ordering.projections.order_board import SupplierOrderBoard, board_for_supplier
from protean import current_domain


def _row(order_id):
    return current_domain.repository_for(SupplierOrderBoard).get(order_id)


class TestSupplierOrderBoard:
    def test_row_created_on_placement(self, place_order, delivery_date):
        order_id = place_order({"prod-flour": 4}, urgency="urgent")

        row = _row(order_id)
        assert row.supplier_id == "sup-001"
        assert row.buyer_id == "buyer-001"
        assert row.status == "pending"
        assert row.total == 11300
        assert row.urgency == "urgent"
        assert row.delivery_date == delivery_date
        assert row.payment_status == "pending"

    def test_row_follows_order(self, place_order, advance_order):
        order_id = place_order()
        record_payment(order_id, "completed")
        advance_order(order_id, "ready_for_pickup")
        ensure_invoice(order_id)

        row = _row(order_id)
        assert row.status == "ready_for_pickup"
        assert row.payment_status == "completed"
        assert row.tracking_id.startswith("TRK-")
        assert row.dispatch_pending is False
        assert row.invoice_number.endswith("-00001")

    def test_dispatch_flags(self, place_order, advance_order, network):
        order_id = place_order()
        network.fail_next(1)
        advance_order(order_id, "ready_for_pickup")
        assert _row(order_id).dispatch_pending is True

        transition_order(order_id, "cancelled", "supplier", reason_code="supplier_unavailable")
        row = _row(order_id)
        assert row.status == "cancelled"
        assert row.dispatch_pending is False

    def test_filter_by_status(self, place_order):
        first = place_order()
        second = place_order()
        transition_order(second, "confirmed", "supplier")

        assert {row.order_id for row in board_for_supplier("sup-001")} == {first, second}
        assert [row.order_id for row in board_for_supplier("sup-001", status="confirmed")] == [second]
        assert board_for_supplier("sup-002") == []
