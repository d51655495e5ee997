"""Payment status recording — command and handler.

The payment itself is taken elsewhere. Ordering only records what the
payment provider reported, because invoicing and refunds depend on it.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, PaymentStatus
from ordering.utils.locks import process_for_order


@ordering.command(part_of="Order")
class RecordPayment:
    order_id = Identifier(required=True)
    payment_status = String(required=True, choices=PaymentStatus)
    payment_method = String(max_length=50)


@ordering.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.record_payment(command.payment_status, command.payment_method):
            repo.add(order)


def record_payment(order_id, payment_status, payment_method=None):
    process_for_order(
        order_id,
        RecordPayment(
            order_id=order_id,
            payment_status=payment_status.value if isinstance(payment_status, PaymentStatus) else payment_status,
            payment_method=payment_method,
        ),
    )
