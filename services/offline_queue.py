"""
Durable queue of submissions that have not been confirmed as delivered.

Rows live in ``pending_submissions`` and are deleted only after the sender
reports success. ``drain`` delivers every row that existed when it started,
commits each outcome on its own, and never runs twice at once in a process.
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, NamedTuple, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import PendingSubmissionRow, SubmissionDeliveryLog
from services.orientation_state import ValidationError
from services.submissions import Payload, parse_payload
from utils import epoch_ms, iso_utc_now, random_suffix

log = logging.getLogger("offline_queue")

_DRAIN_LOCK = threading.Lock()


@dataclass(frozen=True)
class PendingSubmission:
    id: str
    kind: str
    payload: Payload
    createdAt: str
    attempts: int = 0
    lastAttemptAt: str = ""
    lastError: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "payload": self.payload.to_dict(),
            "createdAt": self.createdAt,
            "attempts": self.attempts,
            "lastAttemptAt": self.lastAttemptAt,
            "lastError": self.lastError,
        }


class DeliveryResult(NamedTuple):
    ok: bool
    statusCode: int | None = None
    error: str = ""


Sender = Callable[[PendingSubmission], Union[bool, DeliveryResult]]


@dataclass
class DrainResult:
    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "delivered": list(self.delivered),
            "failed": list(self.failed),
            "deliveredCount": len(self.delivered),
            "failedCount": len(self.failed),
            "skipped": self.skipped,
        }


def new_submission_id(kind: str) -> str:
    return f"{kind}_{epoch_ms()}_{random_suffix()}"


def _row_to_pending(row: PendingSubmissionRow) -> PendingSubmission:
    payload = parse_payload(row.kind, json.loads(row.payloadJson or "{}"))
    return PendingSubmission(
        id=str(row.id),
        kind=str(row.kind),
        payload=payload,
        createdAt=str(row.createdAt or ""),
        attempts=int(row.attempts or 0),
        lastAttemptAt=str(row.lastAttemptAt or ""),
        lastError=str(row.lastError or ""),
    )


def _as_result(outcome: Union[bool, DeliveryResult, None]) -> DeliveryResult:
    if isinstance(outcome, DeliveryResult):
        return outcome
    return DeliveryResult(ok=bool(outcome), error="" if outcome else "sender reported failure")


class OfflineQueue:
    def __init__(self, db: Session):
        self.db = db

    def enqueue(self, kind: str, payload: Any) -> str:
        parsed = parse_payload(kind, payload)
        sid = new_submission_id(parsed.kind)
        self.db.add(
            PendingSubmissionRow(
                id=sid,
                kind=parsed.kind,
                payloadJson=json.dumps(parsed.to_dict(), separators=(",", ":")),
                createdAt=iso_utc_now(),
                attempts=0,
                lastAttemptAt="",
                lastError="",
            )
        )
        self.db.flush()
        log.info("queued id=%s kind=%s", sid, parsed.kind)
        return sid

    def list_pending(self) -> list[PendingSubmission]:
        rows = self.db.execute(select(PendingSubmissionRow).order_by(PendingSubmissionRow.createdAt.asc())).scalars().all()
        items = []
        for row in rows:
            try:
                items.append(_row_to_pending(row))
            except (ValueError, ValidationError) as e:
                log.warning("id=%s unreadable pending submission left in place: %s", row.id, e)
        return items

    def get(self, submission_id: str) -> PendingSubmission | None:
        row = self.db.get(PendingSubmissionRow, str(submission_id or ""))
        return _row_to_pending(row) if row is not None else None

    def remove(self, submission_id: str) -> None:
        row = self.db.get(PendingSubmissionRow, str(submission_id or ""))
        if row is None:
            return
        self.db.delete(row)
        self.db.flush()

    def count(self) -> int:
        return int(self.db.execute(select(func.count(PendingSubmissionRow.id))).scalar() or 0)

    def drain(self, sender: Sender) -> DrainResult:
        if not _DRAIN_LOCK.acquire(blocking=False):
            log.info("drain already running, skipped")
            return DrainResult(skipped=True)
        try:
            return self._drain_locked(sender)
        finally:
            _DRAIN_LOCK.release()

    def attempt(self, item: PendingSubmission, sender: Sender) -> DeliveryResult:
        """Try one delivery and record its outcome. Does not commit."""
        try:
            outcome = _as_result(sender(item))
        except Exception as e:
            log.exception("id=%s sender raised", item.id)
            outcome = DeliveryResult(ok=False, error=f"{type(e).__name__}: {e}")

        now = iso_utc_now()
        self.db.add(
            SubmissionDeliveryLog(
                submissionId=item.id,
                kind=item.kind,
                result="SUCCESS" if outcome.ok else "FAILED",
                statusCode=outcome.statusCode,
                error=str(outcome.error or "")[:500],
                at=now,
            )
        )
        if outcome.ok:
            self.remove(item.id)
        else:
            row = self.db.get(PendingSubmissionRow, item.id)
            if row is not None:
                row.attempts = int(row.attempts or 0) + 1
                row.lastAttemptAt = now
                row.lastError = str(outcome.error or "")[:500]
            self.db.flush()
        return outcome

    def _drain_locked(self, sender: Sender) -> DrainResult:
        result = DrainResult()
        # Rows enqueued after this point wait for the next drain.
        snapshot = self.list_pending()
        for item in snapshot:
            outcome = self.attempt(item, sender)
            (result.delivered if outcome.ok else result.failed).append(item.id)
            self.db.commit()

        if snapshot:
            log.info("drain delivered=%s failed=%s", len(result.delivered), len(result.failed))
        return result
