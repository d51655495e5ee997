"""Mail port — abstract interface for sending documents by e-mail."""

from abc import ABC, abstractmethod


class MailPort(ABC):
    """Abstract interface for mail adapters."""

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: list[tuple[str, bytes, str]] | None = None,
    ) -> dict:
        """Send a message. ``attachments`` are (filename, content, mime type) triples.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
