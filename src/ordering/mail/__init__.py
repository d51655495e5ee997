"""Mail adapter factory.

Uses FakeMailAdapter by default; MAIL_ADAPTER selects a real provider once
one is wired in.
"""

import os

from ordering.mail.port import MailPort

_current_mailer: MailPort | None = None


def get_mailer() -> MailPort:
    """Return the configured mail adapter (singleton)."""
    global _current_mailer
    if _current_mailer is None:
        adapter = os.environ.get("MAIL_ADAPTER", "fake")
        if adapter == "fake":
            from ordering.mail.fake_adapter import FakeMailAdapter

            _current_mailer = FakeMailAdapter()
        else:
            raise ValueError(f"Unknown mail adapter: {adapter}")
    return _current_mailer


def reset_mailer() -> None:
    """Reset the mail singleton (useful for testing)."""
    global _current_mailer
    _current_mailer = None
