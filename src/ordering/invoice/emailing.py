"""Invoice e-mail delivery — command and handler.

Sends the rendered invoice as an attachment. Mail failures are retried
immediately up to INVOICE_EMAIL_MAX_ATTEMPTS times; after that the failure
is recorded on the invoice, an operational alert is raised, and the command
returns False instead of raising. Re-sending a delivered invoice is allowed
and counted.
"""

import os

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.alerts import INVOICE_EMAIL_FAILED, get_alerts
from ordering.domain import ordering
from ordering.exceptions import MailDeliveryFailed
from ordering.invoice.invoice import Invoice
from ordering.invoice.rendering import artifact_filename, render_invoice
from ordering.mail import get_mailer

logger = structlog.get_logger(__name__)


def max_email_attempts() -> int:
    return int(os.environ.get("INVOICE_EMAIL_MAX_ATTEMPTS", 3))


@ordering.command(part_of="Invoice")
class SendInvoiceEmail:
    invoice_id = Identifier(required=True)
    recipient = String(max_length=255)  # Defaults to the buyer contact on the invoice


@ordering.command_handler(part_of=Invoice)
class SendInvoiceEmailHandler:
    @handle(SendInvoiceEmail)
    def send_invoice_email(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)

        recipient = command.recipient or invoice.billing_contact().get("email")
        if not recipient:
            raise ValidationError({"recipient": ["No recipient given and the invoice has no billing e-mail"]})

        document = render_invoice(invoice)
        subject = f"Invoice {invoice.invoice_number}"
        body = (
            f"Please find attached invoice {invoice.invoice_number} "
            f"for order {invoice.order_id}, total {invoice.money(invoice.total).format()}."
        )
        attachments = [(artifact_filename(invoice), document, "text/plain")]

        mailer = get_mailer()
        attempts = max_email_attempts()
        error = None
        for attempt in range(1, attempts + 1):
            try:
                result = mailer.send(to=recipient, subject=subject, body=body, attachments=attachments)
            except MailDeliveryFailed as exc:
                result = {"status": "failed", "error": str(exc)}

            if result.get("status") == "sent":
                invoice.record_email_sent(recipient, result.get("message_id"))
                repo.add(invoice)
                logger.info(
                    "Invoice e-mailed",
                    invoice_id=str(invoice.id),
                    invoice_number=invoice.invoice_number,
                    attempt=attempt,
                    send_count=invoice.email_send_count,
                )
                return True

            error = result.get("error", "Unknown mail error")
            logger.warning(
                "Invoice e-mail attempt failed",
                invoice_id=str(invoice.id),
                attempt=attempt,
                max_attempts=attempts,
                error=error,
            )

        invoice.record_email_failure(recipient, error, attempts)
        repo.add(invoice)
        get_alerts().raise_alert(
            INVOICE_EMAIL_FAILED,
            f"Invoice {invoice.invoice_number} could not be e-mailed after {attempts} attempts",
            invoice_id=str(invoice.id),
            order_id=str(invoice.order_id),
            error=error,
        )
        return False
