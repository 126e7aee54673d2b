"""Integration tests for the Notifications API via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain

from notifications.api.routes import router
from notifications.delivery.status import DeliveryStatusRecord
from notifications.dispatch import get_circuit_breaker, get_dead_letter_sink
from notifications.dispatch.job import NotificationJob


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


def _record(job, attempts=1):
    record = DeliveryStatusRecord.open(
        order_id=job.order_id,
        job_id=job.job_id,
        job_type=job.job_type,
        attempt_number=attempts,
        job_payload=job.to_payload(),
    )
    current_domain.repository_for(DeliveryStatusRecord).add(record)
    return record


def _job(order_id="order-api-1"):
    return NotificationJob.order_confirmation(order_id, "jane@example.com", {"id": order_id, "line_items": []})


class TestDeliveries:
    def test_lists_records_for_order(self, client):
        job = _job()
        _record(job)

        response = client.get("/notifications/orders/order-api-1/deliveries")

        assert response.status_code == 200
        body = response.json()
        assert body["order_id"] == "order-api-1"
        assert [d["job_id"] for d in body["deliveries"]] == [job.job_id]
        assert body["deliveries"][0]["status"] == "pending"

    def test_empty_for_unknown_order(self, client):
        response = client.get("/notifications/orders/nope/deliveries")
        assert response.json()["deliveries"] == []


class TestDeadLetters:
    def test_lists_entries(self, client):
        get_dead_letter_sink().add(_job().dead_letter_entry(final_error="down", total_attempts=5))

        response = client.get("/notifications/dead-letters")

        assert response.status_code == 200
        assert response.json()["count"] == 1
        assert response.json()["entries"][0]["final_error"] == "down"


class TestRecover:
    def test_requeues_unfinished(self, client, notification_pipeline):
        job = _job("order-api-2")
        _record(job, attempts=2)

        response = client.post("/notifications/recover")

        assert response.status_code == 200
        assert response.json()["recovered_job_ids"] == [job.job_id]
        assert notification_pipeline.jobs[0].attempts_made == 1


class TestJobStatus:
    def test_returns_record_for_job(self, client):
        job = _job("order-api-3")
        _record(job, attempts=2)

        response = client.get(f"/notifications/jobs/{job.job_id}")

        assert response.status_code == 200
        assert response.json()["order_id"] == "order-api-3"
        assert response.json()["attempts"] == 2

    def test_unknown_job_is_404(self, client):
        response = client.get("/notifications/jobs/nope")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "JobNotFound"


class TestQueueStats:
    def test_reports_queue_breaker_and_dead_letters(self, client, notification_pipeline):
        notification_pipeline.enqueue(_job("order-api-4"))
        get_dead_letter_sink().add(_job().dead_letter_entry(final_error="down", total_attempts=5))
        get_circuit_breaker().record_failure()

        body = client.get("/notifications/queue/stats").json()

        assert body["pending"] == 1
        assert body["in_flight"] == 1
        assert body["dead_lettered"] == 1
        assert body["circuit_state"] == "closed"
        assert body["circuit_failures"] == 1
