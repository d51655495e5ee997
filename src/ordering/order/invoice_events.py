"""Order reacts to Invoice events — records the invoice reference on the order."""

from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.invoice.events import InvoiceGenerated
from ordering.invoice.invoice import Invoice
from ordering.order.invoicing import AttachInvoice
from ordering.utils.locks import process_for_order


@ordering.event_handler(part_of=Invoice)
class InvoiceOrderEventHandler:
    @handle(InvoiceGenerated)
    def on_invoice_generated(self, event: InvoiceGenerated) -> None:
        process_for_order(
            event.order_id,
            AttachInvoice(
                order_id=event.order_id,
                invoice_id=event.invoice_id,
                invoice_number=event.invoice_number,
            ),
        )
