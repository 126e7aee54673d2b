"""SMTP email transport built on the standard library's smtplib."""

import os
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

import structlog

from notifications.channel.email_port import EmailAttachment, EmailPort, TransportError

logger = structlog.get_logger(__name__)

DEFAULT_SENDER = "orders@storefront.example"


class SmtpEmailAdapter(EmailPort):
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        sender: str = DEFAULT_SENDER,
        use_tls: bool = True,
        timeout: float = 30.0,
        name: str = "smtp",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout
        self.name = name

    @classmethod
    def from_env(cls, suffix: str = "", name: str = "primary"):
        """Build a transport from ``SMTP_HOST{suffix}``, ``SMTP_PORT{suffix}``, ...

        Returns ``None`` when the host variable is not set.
        """
        host = os.environ.get(f"SMTP_HOST{suffix}")
        if not host:
            return None
        return cls(
            host=host,
            port=int(os.environ.get(f"SMTP_PORT{suffix}", "587")),
            username=os.environ.get(f"SMTP_USER{suffix}"),
            password=os.environ.get(f"SMTP_PASS{suffix}"),
            sender=os.environ.get("SMTP_FROM", DEFAULT_SENDER),
            use_tls=os.environ.get(f"SMTP_TLS{suffix}", "true").lower() != "false",
            timeout=float(os.environ.get("SMTP_TIMEOUT", "30")),
            name=name,
        )

    def build_message(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: list[EmailAttachment] | None = None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=self.sender.rsplit("@", 1)[-1])
        message.set_content("This message requires an HTML-capable e-mail client.")
        message.add_alternative(html, subtype="html")

        for attachment in attachments or []:
            maintype, _, subtype = attachment.content_type.partition("/")
            message.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return message

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: list[EmailAttachment] | None = None,
    ) -> dict:
        message = self.build_message(to, subject, html, attachments)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(f"SMTP delivery via {self.host}:{self.port} failed: {exc}") from exc

        logger.debug("SMTP message accepted", transport=self.name, to=to)
        return {"message_id": message["Message-ID"], "status": "sent"}
