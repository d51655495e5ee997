"""Invoice generation — command and handler.

EnsureInvoice is idempotent per order: the first call allocates the next
supplier-scoped number and snapshots the order; later calls return the same
invoice. Generation is serialized per supplier by ``ensure_invoice()`` so
two orders of one supplier never draw the same number.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.exceptions import PaymentNotCompleted
from ordering.invoice.invoice import Invoice, InvoiceSequence
from ordering.order.order import Order, PaymentStatus
from ordering.utils.locks import supplier_locks

logger = structlog.get_logger(__name__)


def find_invoice_for_order(order_id):
    """Return the order's invoice, or None."""
    repo = current_domain.repository_for(Invoice)
    invoices = repo._dao.query.filter(order_id=str(order_id)).all().items
    return invoices[0] if invoices else None


@ordering.command(part_of="Invoice")
class EnsureInvoice:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Invoice)
class GenerateInvoiceHandler:
    @handle(EnsureInvoice)
    def ensure_invoice(self, command):
        existing = find_invoice_for_order(command.order_id)
        if existing is not None:
            return str(existing.id)

        order = current_domain.repository_for(Order).get(command.order_id)
        if order.payment_status != PaymentStatus.COMPLETED.value:
            raise PaymentNotCompleted(order.id, order.payment_status)

        sequence_repo = current_domain.repository_for(InvoiceSequence)
        try:
            sequence = sequence_repo.get(str(order.supplier_id))
        except ObjectNotFoundError:
            sequence = InvoiceSequence(supplier_id=str(order.supplier_id), last_number=0)

        invoice = Invoice.generate(order, sequence.allocate())
        sequence_repo.add(sequence)
        current_domain.repository_for(Invoice).add(invoice)

        logger.info(
            "Invoice generated",
            order_id=str(order.id),
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
        )
        return str(invoice.id)


def ensure_invoice(order_id) -> str:
    """Return the order's invoice id, generating the invoice on first use."""
    order = current_domain.repository_for(Order).get(order_id)
    with supplier_locks.hold(order.supplier_id):
        return current_domain.process(EnsureInvoice(order_id=order_id), asynchronous=False)
