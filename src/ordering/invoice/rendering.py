"""Invoice document rendering.

The document is rebuilt from the invoice's stored snapshot on every request;
nothing rendered is cached or persisted.
"""

from protean.utils.globals import current_domain

from ordering.invoice.invoice import Invoice

_WIDTH = 72


def _amount(invoice, amount):
    return invoice.money(amount).format()


def render_invoice(invoice) -> bytes:
    contact = invoice.billing_contact()
    address = invoice.delivery_address()

    lines = [
        f"INVOICE {invoice.invoice_number}",
        "=" * _WIDTH,
        f"Issued:    {invoice.generated_at.date().isoformat() if invoice.generated_at else ''}",
        f"Order:     {invoice.order_id}",
        f"Supplier:  {invoice.supplier_id}",
        "",
        "Bill to:",
        f"  {contact.get('name', '')}",
        f"  {contact.get('email', '')}",
        "",
        "Deliver to:",
        f"  {address.get('street', '')}",
        f"  {address.get('postal_code', '')} {address.get('city', '')}",
        f"  {address.get('country', '')}",
        f"  {invoice.delivery_date.isoformat() if invoice.delivery_date else ''} {invoice.delivery_slot or ''}",
        "",
        f"{'Item':<34}{'Qty':>6}{'Unit':>16}{'Total':>16}",
        "-" * _WIDTH,
    ]
    for line in invoice.lines:
        lines.append(
            f"{line.description[:33]:<34}{line.quantity:>6}"
            f"{_amount(invoice, line.unit_price):>16}{_amount(invoice, line.line_total):>16}"
        )

    lines += [
        "-" * _WIDTH,
        f"{'Subtotal':<56}{_amount(invoice, invoice.subtotal):>16}",
        f"{'Delivery':<56}{_amount(invoice, invoice.delivery_fee):>16}",
    ]
    if invoice.urgency_surcharge:
        label = f"Urgency surcharge ({invoice.urgency})"
        lines.append(f"{label:<56}{_amount(invoice, invoice.urgency_surcharge):>16}")
    lines += [
        "=" * _WIDTH,
        f"{'TOTAL':<56}{_amount(invoice, invoice.total):>16}",
    ]
    if invoice.payment_method:
        lines.append(f"Paid by {invoice.payment_method}")

    return ("\n".join(lines) + "\n").encode("utf-8")


def download_artifact(invoice_id) -> bytes:
    invoice = current_domain.repository_for(Invoice).get(invoice_id)
    return render_invoice(invoice)


def artifact_filename(invoice) -> str:
    return f"{invoice.invoice_number}.txt"
