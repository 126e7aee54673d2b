"""Domain events for the DeliveryStatusRecord aggregate."""

from notifications.domain import notifications
from protean.fields import DateTime, Identifier, Integer, String, Text


@notifications.event(part_of="DeliveryStatusRecord")
class DeliverySent:
    """A confirmation e-mail was accepted by a transport."""

    __version__ = 1

    record_id = Identifier(required=True)
    order_id = Identifier(required=True)
    job_id = String(required=True)
    provider = String(required=True)
    message_id = String()
    attempts = Integer(required=True)
    sent_at = DateTime(required=True)


@notifications.event(part_of="DeliveryStatusRecord")
class DeliveryAttemptFailed:
    """Every configured transport failed for one attempt."""

    __version__ = 1

    record_id = Identifier(required=True)
    order_id = Identifier(required=True)
    job_id = String(required=True)
    error = Text(required=True)
    attempts = Integer(required=True)
    failed_at = DateTime(required=True)


@notifications.event(part_of="DeliveryStatusRecord")
class DeliveryDeadLettered:
    """Retries were exhausted and the job was handed to the dead-letter sink."""

    __version__ = 1

    record_id = Identifier(required=True)
    order_id = Identifier(required=True)
    job_id = String(required=True)
    final_error = Text(required=True)
    total_attempts = Integer(required=True)
    dead_lettered_at = DateTime(required=True)
