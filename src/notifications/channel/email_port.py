"""Email transport port — abstract interface for e-mail delivery."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class TransportError(Exception):
    """A transport could not hand the message to its provider."""


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class EmailPort(ABC):
    """Abstract interface for e-mail transports."""

    name = "email"

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: list[EmailAttachment] | None = None,
    ) -> dict:
        """Send an HTML e-mail message.

        Returns:
            dict with keys: message_id, status ("sent")

        Raises:
            TransportError: when the provider rejects or cannot be reached.
        """
        ...
