"""Tests for the Invoice aggregate, invoice numbering and document rendering."""

from datetime import UTC, date, datetime

from ordering.invoice.events import InvoiceEmailFailed, InvoiceEmailSent, InvoiceGenerated
from ordering.invoice.invoice import Invoice, InvoiceSequence, format_invoice_number
from ordering.invoice.rendering import artifact_filename, render_invoice
from ordering.order.order import Order
from ordering.pricing.calculator import DeliveryTerms, LineItem, Urgency, compute_pricing
from ordering.pricing.money import Money


def _paid_order():
    items = [
        LineItem(product_id="prod-001", name="Flour 25kg", unit_price=Money(amount=2500), quantity=4),
        LineItem(product_id="prod-002", name="Olive oil 5L", unit_price=Money(amount=3000), quantity=2),
    ]
    pricing = compute_pricing(
        items,
        DeliveryTerms(minimum_order=5000, base_delivery_fee=800, free_delivery_threshold=20000),
        Urgency.URGENT,
    )
    order = Order.place(
        buyer_id="buyer-001",
        supplier_id="sup-001",
        items=items,
        pricing=pricing,
        urgency="urgent",
        delivery_date=date(2026, 3, 3),
        delivery_slot="09:00-10:00",
        delivery_address={"street": "Carrer de Mallorca 120", "city": "Barcelona", "postal_code": "08036", "country": "ES"},
        customer_contact={"name": "Restaurante Sol", "email": "compras@sol.example.com"},
        payment_method="card",
    )
    order.record_payment("completed", "card")
    return order


class TestInvoiceNumbering:
    def test_format(self):
        assert format_invoice_number(2026, 1) == "INV-2026-00001"
        assert format_invoice_number(2026, 123) == "INV-2026-00123"

    def test_sequence_allocates_consecutive_numbers(self):
        sequence = InvoiceSequence(supplier_id="sup-001", last_number=0)
        assert [sequence.allocate() for _ in range(3)] == [1, 2, 3]
        assert sequence.last_number == 3


class TestInvoiceGeneration:
    def test_snapshot_of_order(self):
        order = _paid_order()
        invoice = Invoice.generate(order, 7)

        assert invoice.invoice_number == format_invoice_number(datetime.now(UTC).year, 7)
        assert invoice.order_id == str(order.id)
        assert invoice.subtotal == 16000
        assert invoice.delivery_fee == 800
        assert invoice.urgency_surcharge == 500
        assert invoice.total == 17300
        assert len(invoice.lines) == 2
        assert sum(line.line_total for line in invoice.lines) == invoice.subtotal
        assert invoice.billing_contact()["email"] == "compras@sol.example.com"
        assert invoice.delivery_address()["city"] == "Barcelona"
        assert isinstance(invoice._events[-1], InvoiceGenerated)

    def test_email_tracking(self):
        invoice = Invoice.generate(_paid_order(), 1)
        assert invoice.email_sent is False

        invoice.record_email_sent("a@example.com", "mail-1")
        invoice.record_email_sent("b@example.com", "mail-2")

        assert invoice.email_sent is True
        assert invoice.email_send_count == 2
        assert invoice.last_recipient == "b@example.com"
        assert isinstance(invoice._events[-1], InvoiceEmailSent)
        assert invoice._events[-1].send_count == 2

    def test_email_failure_keeps_sent_flag(self):
        invoice = Invoice.generate(_paid_order(), 1)
        invoice.record_email_failure("a@example.com", "Mail server timed out", 3)

        assert invoice.email_sent is False
        assert invoice.email_failure_count == 1
        assert invoice.last_email_error == "Mail server timed out"
        assert isinstance(invoice._events[-1], InvoiceEmailFailed)


class TestInvoiceRendering:
    def test_document_lists_lines_and_totals(self):
        invoice = Invoice.generate(_paid_order(), 1)
        document = render_invoice(invoice).decode("utf-8")

        assert document.startswith(f"INVOICE {invoice.invoice_number}")
        assert "Flour 25kg" in document
        assert "100.00 EUR" in document
        assert "Urgency surcharge (urgent)" in document
        assert "173.00 EUR" in document
        assert "Restaurante Sol" in document

    def test_rendering_is_stable(self):
        invoice = Invoice.generate(_paid_order(), 1)
        assert render_invoice(invoice) == render_invoice(invoice)

    def test_filename(self):
        invoice = Invoice.generate(_paid_order(), 4)
        assert artifact_filename(invoice) == f"{invoice.invoice_number}.txt"
