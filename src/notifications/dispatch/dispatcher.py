"""Notification dispatcher — runs one delivery attempt of a job.

Per attempt:
    1. Open or reopen the job's DeliveryStatusRecord (pending, attempts).
    2. Render the PDF invoice through the cache; failure only drops the
       attachment.
    3. Send through the primary transport unless the circuit breaker is
       open; on failure, or when open, send the HTML fallback through the
       backup transport if one is configured.
    4. Success: reset the breaker, mark the record sent.
    5. Failure: mark the record failed; on the final attempt push the job to
       the dead-letter sink and mark the record dead-lettered.

The dispatcher never schedules retries. It raises ``DeliveryFailed`` and
the queue decides, from ``retryable``, whether to run another attempt.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass

import structlog

from notifications.channel import get_backup_transport, get_primary_transport
from notifications.channel.email_port import EmailAttachment, TransportError
from notifications.delivery.tracker import DeliveryStatusTracker
from notifications.dispatch import get_circuit_breaker, get_dead_letter_sink
from notifications.dispatch.circuit_breaker import CircuitOpenError
from notifications.dispatch.errors import DeliveryFailed
from notifications.invoice.renderer import InvoiceRenderer, InvoiceRenderError
from notifications.templates import get_template

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 5
DEFAULT_SEND_TIMEOUT = float(os.environ.get("NOTIFICATION_SEND_TIMEOUT", "30"))
DEFAULT_RENDER_TIMEOUT = float(os.environ.get("INVOICE_RENDER_TIMEOUT", "30"))

# Shared by every dispatcher; a timed-out call keeps its thread until it returns
_io_pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="notification-io")


@dataclass(frozen=True)
class DeliveryResult:
    job_id: str
    provider: str  # "primary" or "backup"
    message_id: str | None
    attempts: int
    invoice_attached: bool


def _call_with_timeout(timeout, fn, *args):
    future = _io_pool.submit(fn, *args)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        raise TimeoutError(f"timed out after {timeout:g}s") from None


class NotificationDispatcher:
    def __init__(
        self,
        primary=None,
        backup=None,
        breaker=None,
        dead_letter_sink=None,
        renderer=None,
        tracker=None,
        max_attempts=MAX_ATTEMPTS,
        send_timeout=DEFAULT_SEND_TIMEOUT,
        render_timeout=DEFAULT_RENDER_TIMEOUT,
    ):
        self._primary = primary
        self._backup = backup
        self._breaker = breaker
        self._dead_letter_sink = dead_letter_sink
        self.renderer = renderer or InvoiceRenderer()
        self.tracker = tracker or DeliveryStatusTracker()
        self.max_attempts = max_attempts
        self.send_timeout = send_timeout
        self.render_timeout = render_timeout

    # Collaborators resolve through the registries unless injected
    @property
    def primary(self):
        return self._primary or get_primary_transport()

    @property
    def backup(self):
        return self._backup or get_backup_transport()

    @property
    def breaker(self):
        return self._breaker or get_circuit_breaker()

    @property
    def dead_letter_sink(self):
        return self._dead_letter_sink or get_dead_letter_sink()

    def process(self, job) -> DeliveryResult:
        attempt = job.attempts_made + 1
        log = logger.bind(order_id=job.order_id, job_id=job.job_id, attempt=attempt)

        self._track("record_attempt", job, log)
        template = get_template(job.job_type)
        invoice = self._render_invoice(job, log)

        try:
            provider, receipt = self._deliver(job, template, invoice, log)
        except (TransportError, CircuitOpenError, ValueError) as exc:
            # ValueError: the transport registry is misconfigured
            raise self._failure(job, str(exc), log) from exc

        self.breaker.record_success()
        message_id = receipt.get("message_id")
        self._track("mark_sent", job, log, provider, message_id)
        log.info("Order confirmation sent", provider=provider, message_id=message_id)
        return DeliveryResult(
            job_id=job.job_id,
            provider=provider,
            message_id=message_id,
            attempts=attempt,
            invoice_attached=invoice is not None,
        )

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _render_invoice(self, job, log):
        try:
            return _call_with_timeout(self.render_timeout, self.renderer.render, job.order_snapshot)
        except (InvoiceRenderError, TimeoutError) as exc:
            log.warning("Invoice PDF unavailable, sending without attachment", error=str(exc))
            return None

    def _deliver(self, job, template, invoice, log):
        primary_error = None
        if self.breaker.allow_request():
            content = template.render(job.order_snapshot, has_invoice=invoice is not None)
            attachments = None
            if invoice is not None:
                attachments = [EmailAttachment(filename=f"invoice-{job.order_id}.pdf", content=invoice)]
            try:
                return "primary", self._send(self.primary, job.customer_email, content, attachments)
            except TransportError as exc:
                self.breaker.record_failure()
                log.warning("Primary transport failed", error=str(exc))
                primary_error = exc
        else:
            primary_error = CircuitOpenError("Primary transport skipped: circuit breaker is open")
            log.warning("Circuit breaker open, skipping primary transport")

        backup = self.backup
        if backup is None:
            raise primary_error

        fallback = template.render_fallback(job.order_snapshot)
        try:
            return "backup", self._send(backup, job.customer_email, fallback, None)
        except TransportError as exc:
            raise TransportError(f"{primary_error}; backup transport failed: {exc}") from exc

    def _send(self, transport, to, content, attachments):
        try:
            return _call_with_timeout(
                self.send_timeout,
                transport.send,
                to,
                content["subject"],
                content["html"],
                attachments,
            )
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"{getattr(transport, 'name', 'transport')} failed: {exc}") from exc

    def _failure(self, job, error, log):
        """Record a failed attempt and build the error to raise."""
        attempt = job.attempts_made + 1
        self._track("mark_failed", job, log, error)

        if attempt < self.max_attempts:
            log.warning("Order confirmation attempt failed, will retry", error=error)
            return DeliveryFailed(error, job.job_id, attempts=attempt, retryable=True)

        if self._track("mark_dead_lettered", job, log, error) is not False:
            self.dead_letter_sink.add(job.dead_letter_entry(final_error=error, total_attempts=attempt))
            log.error("Order confirmation dead-lettered", error=error, total_attempts=attempt)
        return DeliveryFailed(error, job.job_id, attempts=attempt, retryable=False)

    def _track(self, method, job, log, *args):
        # Status tracking must not block delivery; the logs carry the state
        try:
            return getattr(self.tracker, method)(job, *args)
        except Exception as exc:
            log.warning("Delivery status update failed", step=method, error=str(exc))
            return None
