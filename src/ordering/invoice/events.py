"""Domain events for the Invoice aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Invoice")
class InvoiceGenerated:
    """An invoice was generated for an order whose payment completed."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    invoice_number = String(required=True, max_length=50)
    total = Integer(required=True)
    currency = String(max_length=3, required=True)
    generated_at = DateTime(required=True)


@ordering.event(part_of="Invoice")
class InvoiceEmailSent:
    """The invoice document was delivered to the buyer's mailbox."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    invoice_number = String(required=True, max_length=50)
    recipient = String(required=True, max_length=255)
    message_id = String(max_length=255)
    send_count = Integer(required=True)
    sent_at = DateTime(required=True)


@ordering.event(part_of="Invoice")
class InvoiceEmailFailed:
    """Every attempt to e-mail the invoice failed."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    recipient = String(required=True, max_length=255)
    attempts = Integer(required=True)
    error = String(max_length=500)
    failed_at = DateTime(required=True)
