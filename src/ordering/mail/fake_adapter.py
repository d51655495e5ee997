"""Fake mail adapter — records sent messages for testing."""

from uuid import uuid4

from ordering.mail.port import MailPort


class FakeMailAdapter(MailPort):
    """Mail adapter that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Mail delivery failed"
        self._failures_pending = 0

    def configure(self, should_succeed: bool = True, failure_reason: str = "Mail delivery failed"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def fail_next(self, count: int, failure_reason: str = "Mail server timed out"):
        self._failures_pending = count
        self.failure_reason = failure_reason

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: list[tuple[str, bytes, str]] | None = None,
    ) -> dict:
        if self._failures_pending > 0:
            self._failures_pending -= 1
            return {"message_id": None, "status": "failed", "error": self.failure_reason}
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"mail-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
                "attachments": list(attachments or []),
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Clear sent emails (useful between tests)."""
        self.sent_emails.clear()
        self.should_succeed = True
        self.failure_reason = "Mail delivery failed"
        self._failures_pending = 0
