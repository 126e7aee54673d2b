"""Fake email transport — records sent emails for testing."""

import threading
import time
from uuid import uuid4

from notifications.channel.email_port import EmailAttachment, EmailPort, TransportError


class FakeEmailAdapter(EmailPort):
    """Email transport that records messages in memory for test assertions."""

    def __init__(self, name: str = "fake"):
        self.name = name
        self.sent_emails: list[dict] = []
        self.call_count = 0
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.delay_seconds = 0.0
        self._lock = threading.Lock()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        delay_seconds: float = 0.0,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: list[EmailAttachment] | None = None,
    ) -> dict:
        with self._lock:
            self.call_count += 1

        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if not self.should_succeed:
            raise TransportError(self.failure_reason)

        message_id = f"{self.name}-{uuid4().hex[:12]}"
        record = {
            "message_id": message_id,
            "to": to,
            "subject": subject,
            "html": html,
            "attachments": list(attachments or []),
        }
        with self._lock:
            self.sent_emails.append(record)

        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Clear sent emails (useful between tests)."""
        with self._lock:
            self.sent_emails.clear()
            self.call_count = 0
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self.delay_seconds = 0.0
