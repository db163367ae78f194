"""
Background job endpoints: queue a drain of pending submissions and poll it.
"""
from __future__ import annotations

from flask import Blueprint, jsonify

from app.tasks import celery_app
from app.tasks.sync_task import drain_pending_submissions

jobs_bp = Blueprint("jobs", __name__)


@jobs_bp.post("/sync")
def enqueue_sync_job():
    """
    Queue a drain of the offline submission queue on a Celery worker.

    Returns:
        { "ok": true, "data": { "job_id": "...", "status": "queued" } }
    """
    task = drain_pending_submissions.apply_async()
    return jsonify({"ok": True, "data": {"job_id": task.id, "status": "queued"}}), 202


@jobs_bp.get("/<job_id>")
def get_job_status(job_id: str):
    """
    Status of a queued job: PENDING, STARTED, SUCCESS, FAILURE or REVOKED,
    with the drain result once it succeeded.
    """
    task = celery_app.AsyncResult(job_id)
    data = {"job_id": job_id, "status": task.state}

    if task.state == "PENDING":
        data["message"] = "Job is queued or unknown"
    elif task.state == "SUCCESS":
        data["result"] = task.result
    elif task.state == "FAILURE":
        data["error"] = str(task.info) if task.info else "Unknown error"
    elif task.state == "REVOKED":
        data["message"] = "Job was cancelled"

    return jsonify({"ok": True, "data": data})


@jobs_bp.delete("/<job_id>")
def cancel_job(job_id: str):
    celery_app.control.revoke(job_id)
    return jsonify({"ok": True, "data": {"job_id": job_id, "status": "revoked"}})
