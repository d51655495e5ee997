"""Invoice aggregate (CQRS) — the billing document for a paid order.

An invoice snapshots the order's frozen lines and pricing when it is
generated, so the document renders the same way every time it is
downloaded. Numbers come from a per-supplier InvoiceSequence and are never
reused.

E-mail delivery is tracked on the invoice: ``email_sent`` flips to True on
the first confirmed send and stays True; ``email_send_count`` counts every
confirmed send, re-sends included.
"""

import json
from datetime import UTC, datetime

from protean.fields import Boolean, Date, DateTime, HasMany, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.invoice.events import InvoiceEmailFailed, InvoiceEmailSent, InvoiceGenerated
from ordering.pricing.money import Money


def format_invoice_number(year: int, sequence: int) -> str:
    return f"INV-{year}-{sequence:05d}"


@ordering.aggregate
class InvoiceSequence:
    """Last invoice number handed out for one supplier."""

    supplier_id = Identifier(identifier=True, required=True)
    last_number = Integer(default=0, min_value=0)
    updated_at = DateTime()

    def allocate(self) -> int:
        self.last_number = (self.last_number or 0) + 1
        self.updated_at = datetime.now(UTC)
        return self.last_number


@ordering.entity(part_of="Invoice")
class InvoiceLine:
    product_id = Identifier(required=True)
    description = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    line_total = Integer(required=True, min_value=0)


@ordering.aggregate
class Invoice:
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    invoice_number = String(required=True, max_length=50)
    sequence = Integer(required=True, min_value=1)
    lines = HasMany(InvoiceLine)
    subtotal = Integer(default=0, min_value=0)
    delivery_fee = Integer(default=0, min_value=0)
    urgency_surcharge = Integer(default=0, min_value=0)
    total = Integer(default=0, min_value=0)
    currency = String(max_length=3, default="EUR")
    urgency = String(max_length=20)
    delivery_date = Date()
    delivery_slot = String(max_length=20)
    bill_to = Text()  # JSON: buyer contact at checkout
    deliver_to = Text()  # JSON: delivery address at checkout
    payment_method = String(max_length=50)
    generated_at = DateTime()
    email_sent = Boolean(default=False)
    email_send_count = Integer(default=0, min_value=0)
    last_sent_at = DateTime()
    last_recipient = String(max_length=255)
    email_failure_count = Integer(default=0, min_value=0)
    last_email_error = String(max_length=500)

    @classmethod
    def generate(cls, order, sequence: int):
        """Create the invoice for ``order`` with the next number of its supplier."""
        now = datetime.now(UTC)
        invoice_number = format_invoice_number(now.year, sequence)

        invoice = cls(
            order_id=str(order.id),
            supplier_id=str(order.supplier_id),
            buyer_id=str(order.buyer_id),
            invoice_number=invoice_number,
            sequence=sequence,
            subtotal=order.pricing.subtotal,
            delivery_fee=order.pricing.delivery_fee,
            urgency_surcharge=order.pricing.urgency_surcharge,
            total=order.pricing.total,
            currency=order.pricing.currency,
            urgency=order.urgency,
            delivery_date=order.delivery_date,
            delivery_slot=order.delivery_slot,
            bill_to=json.dumps(order.customer_contact.to_dict() if order.customer_contact else {}),
            deliver_to=json.dumps(order.delivery_address.to_dict() if order.delivery_address else {}),
            payment_method=order.payment_method,
            generated_at=now,
        )
        for item in order.items:
            invoice.add_lines(
                InvoiceLine(
                    product_id=str(item.product_id),
                    description=item.name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total(),
                )
            )

        invoice.raise_(
            InvoiceGenerated(
                invoice_id=str(invoice.id),
                order_id=str(order.id),
                supplier_id=str(order.supplier_id),
                buyer_id=str(order.buyer_id),
                invoice_number=invoice_number,
                total=invoice.total,
                currency=invoice.currency,
                generated_at=now,
            )
        )
        return invoice

    def money(self, amount: int) -> Money:
        return Money(amount=amount, currency=self.currency)

    def billing_contact(self) -> dict:
        return json.loads(self.bill_to) if self.bill_to else {}

    def delivery_address(self) -> dict:
        return json.loads(self.deliver_to) if self.deliver_to else {}

    def record_email_sent(self, recipient, message_id=None):
        now = datetime.now(UTC)
        self.email_sent = True
        self.email_send_count = (self.email_send_count or 0) + 1
        self.last_sent_at = now
        self.last_recipient = recipient

        self.raise_(
            InvoiceEmailSent(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                invoice_number=self.invoice_number,
                recipient=recipient,
                message_id=message_id,
                send_count=self.email_send_count,
                sent_at=now,
            )
        )

    def record_email_failure(self, recipient, error, attempts):
        now = datetime.now(UTC)
        self.email_failure_count = (self.email_failure_count or 0) + 1
        self.last_email_error = str(error)[:500]

        self.raise_(
            InvoiceEmailFailed(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                recipient=recipient,
                attempts=attempts,
                error=self.last_email_error,
                failed_at=now,
            )
        )
