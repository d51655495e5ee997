"""Invoice reference on the order — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class AttachInvoice:
    order_id = Identifier(required=True)
    invoice_id = Identifier(required=True)
    invoice_number = String(required=True, max_length=50)


@ordering.command_handler(part_of=Order)
class AttachInvoiceHandler:
    @handle(AttachInvoice)
    def attach_invoice(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_invoice(command.invoice_id, command.invoice_number)
        repo.add(order)
