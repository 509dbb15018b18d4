"""Tests for the printing API."""

from unittest.mock import patch

from autolabel.db.models import PrintJobStatus
from autolabel.printing.quota import QuotaDecision

WAIT = 5


class TestPrintersEndpoint:
    """Tests for GET /api/print/printers."""

    def test_list(self, client):
        response = client.get("/api/print/printers")

        assert response.status_code == 200
        assert response.json() == [
            {"name": "Label Printer", "is_default": True, "status": "ready"},
            {"name": "Office", "is_default": False, "status": "ready"},
        ]


class TestJobsEndpoints:
    """Tests for creating and reading print jobs."""

    def test_start_job(self, client, manager, make_label):
        label = make_label()

        response = client.post("/api/print/jobs", json={"label_ids": [label.id], "printer_name": "Office"})

        assert response.status_code == 201
        data = response.json()
        assert data["printer_name"] == "Office"
        assert data["total_count"] == 1
        assert data["items"][0]["label_id"] == label.id
        assert manager.wait(data["id"], WAIT).status == PrintJobStatus.COMPLETED

    def test_get_job(self, client, manager, make_label):
        label = make_label()
        job = manager.wait(manager.start_job([label.id]).id, WAIT)

        response = client.get(f"/api/print/jobs/{job.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["printed_count"] == 1
        assert data["items"][0]["status"] == "printed"

    def test_list_jobs(self, client, manager, make_label):
        label = make_label()
        job = manager.add_to_queue([label.id])

        response = client.get("/api/print/jobs")

        assert [item["id"] for item in response.json()] == [job.id]

    def test_empty_label_list(self, client):
        response = client.post("/api/print/jobs", json={"label_ids": []})

        assert response.status_code == 422

    def test_unknown_label(self, client):
        response = client.post("/api/print/jobs", json={"label_ids": ["nonexistent"]})

        assert response.status_code == 404

    def test_unknown_printer(self, client, make_label):
        label = make_label()

        response = client.post("/api/print/jobs", json={"label_ids": [label.id], "printer_name": "Ghost"})

        assert response.status_code == 400
        assert "Ghost" in response.json()["detail"]

    def test_missing_file(self, client, make_label, tmp_path):
        label = make_label(path=tmp_path / "gone.png")

        response = client.post("/api/print/jobs", json={"label_ids": [label.id]})

        assert response.status_code == 400

    def test_quota_denied(self, client, fake_quota, make_label):
        """Should answer 402 with the gate's reason."""
        fake_quota.decision = QuotaDecision(allowed=False, reason="Monthly limit reached")
        label = make_label()

        response = client.post("/api/print/jobs", json={"label_ids": [label.id]})

        assert response.status_code == 402
        assert response.json()["detail"] == "Monthly limit reached"

    def test_job_not_found(self, client):
        response = client.get("/api/print/jobs/nonexistent")

        assert response.status_code == 404


class TestQueueEndpoints:
    """Tests for queued jobs, retry and delete."""

    def test_queue_then_start(self, client, manager, make_label):
        label = make_label()

        queued = client.post("/api/print/queue", json={"label_ids": [label.id]})
        assert queued.status_code == 201
        assert queued.json()["status"] == "pending"

        job_id = queued.json()["id"]
        started = client.post(f"/api/print/jobs/{job_id}/start")

        assert started.status_code == 200
        assert manager.wait(job_id, WAIT).status == PrintJobStatus.COMPLETED

    def test_start_finished_job_conflicts(self, client, manager, make_label):
        label = make_label()
        job = manager.wait(manager.start_job([label.id]).id, WAIT)

        response = client.post(f"/api/print/jobs/{job.id}/start")

        assert response.status_code == 409

    def test_retry(self, client, manager, fake_printer, make_label):
        label = make_label()
        fake_printer.fail_on_calls = {1}
        job = manager.wait(manager.start_job([label.id]).id, WAIT)
        assert job.status == PrintJobStatus.FAILED

        response = client.post(f"/api/print/jobs/{job.id}/retry")

        assert response.status_code == 200
        assert manager.wait(job.id, WAIT).status == PrintJobStatus.COMPLETED

    def test_retry_queued_conflicts(self, client, manager, make_label):
        job = manager.add_to_queue([make_label().id])

        response = client.post(f"/api/print/jobs/{job.id}/retry")

        assert response.status_code == 409

    def test_delete(self, client, manager, make_label):
        job = manager.add_to_queue([make_label().id])

        response = client.delete(f"/api/print/jobs/{job.id}")

        assert response.status_code == 204
        assert manager.status(job.id) is None

    def test_delete_not_found(self, client):
        response = client.delete("/api/print/jobs/nonexistent")

        assert response.status_code == 404


class TestStartup:
    """Tests for the application lifespan."""

    def test_interrupted_jobs_recovered(self, manager):
        """Should fail jobs left printing by a previous run before serving."""
        from fastapi.testclient import TestClient

        from autolabel.main import app

        with (
            patch("autolabel.main.init_db") as init_db,
            patch("autolabel.main.get_print_manager", return_value=manager),
            patch.object(manager, "recover_interrupted", return_value=0) as recover,
        ):
            with TestClient(app):
                pass

        init_db.assert_called_once()
        recover.assert_called_once_with()
