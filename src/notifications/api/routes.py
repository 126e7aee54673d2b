"""FastAPI routes for the Notifications domain.

Read-only views over delivery status, the live queue and the dead-letter
sink, plus the recovery trigger for operators.
"""

from fastapi import APIRouter, HTTPException
from protean.utils.globals import current_domain

from notifications.api.schemas import (
    DeadLetterListResponse,
    DeliveryListResponse,
    DeliveryStatusResponse,
    QueueStatsResponse,
    RecoveryResponse,
)
from notifications.delivery.status import DeliveryStatusRecord
from notifications.dispatch import get_circuit_breaker, get_dead_letter_sink, get_notification_queue
from notifications.dispatch.recovery import recover_unfinished_jobs

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/orders/{order_id}/deliveries", response_model=DeliveryListResponse)
async def list_order_deliveries(order_id: str) -> DeliveryListResponse:
    repo = current_domain.repository_for(DeliveryStatusRecord)
    records = repo.find_by_order_id(order_id)
    return DeliveryListResponse(
        order_id=order_id,
        deliveries=[DeliveryStatusResponse(**record.to_dict()) for record in records],
    )


@router.get("/dead-letters", response_model=DeadLetterListResponse)
async def list_dead_letters() -> DeadLetterListResponse:
    entries = get_dead_letter_sink().list_entries()
    return DeadLetterListResponse(count=len(entries), entries=entries)


@router.post("/recover", response_model=RecoveryResponse)
async def recover_jobs() -> RecoveryResponse:
    return RecoveryResponse(recovered_job_ids=recover_unfinished_jobs())


@router.get("/jobs/{job_id}", response_model=DeliveryStatusResponse)
async def get_job_status(job_id: str) -> DeliveryStatusResponse:
    record = current_domain.repository_for(DeliveryStatusRecord).find_by_job_id(job_id)
    if record is None:
        raise HTTPException(status_code=404, detail={"error": "JobNotFound", "message": "Job not found"})
    return DeliveryStatusResponse(**record.to_dict())


@router.get("/queue/stats", response_model=QueueStatsResponse)
async def queue_stats() -> QueueStatsResponse:
    breaker = get_circuit_breaker()
    return QueueStatsResponse(
        **get_notification_queue().stats(),
        dead_lettered=len(get_dead_letter_sink().list_entries()),
        circuit_state=breaker.state.value,
        circuit_failures=breaker.failure_count,
    )
