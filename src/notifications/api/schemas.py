"""Pydantic response models for the Notifications API.

API schemas are separate from the domain aggregates (anti-corruption pattern).
"""

from pydantic import BaseModel


class DeliveryStatusResponse(BaseModel):
    id: str
    order_id: str
    job_id: str
    job_type: str | None = None
    status: str
    provider: str | None = None
    message_id: str | None = None
    error: str | None = None
    attempts: int
    last_attempt: str | None = None
    dead_lettered: bool = False


class DeliveryListResponse(BaseModel):
    order_id: str
    deliveries: list[DeliveryStatusResponse]


class DeadLetterListResponse(BaseModel):
    count: int
    entries: list[dict]


class RecoveryResponse(BaseModel):
    recovered_job_ids: list[str]


class QueueStatsResponse(BaseModel):
    pending: int
    in_flight: int
    workers: int
    capacity: int
    dead_lettered: int
    circuit_state: str
    circuit_failures: int
