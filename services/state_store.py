"""
Durable slot for the orientation state of one device.

The snapshot is kept as JSON in ``orientation_state`` together with a version
counter. Saves are compare-and-swap on that counter, so a snapshot computed
from an older read can never overwrite a newer one.
"""
from __future__ import annotations

import json
import logging

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import OrientationStateRow
from services.orientation_state import OrientationState, default_state
from utils import ApiError, iso_utc_now

STORAGE_KEY = "safety-orientation-state"

log = logging.getLogger("orientation")


class StaleStateError(ApiError):
    def __init__(self, slot: str):
        super().__init__("CONFLICT", "Orientation progress changed in another tab, reload and try again", http_status=409)
        self.slot = slot


def slot_key(device_id: str) -> str:
    device_id = str(device_id or "").strip()
    if not device_id:
        raise ApiError("BAD_REQUEST", "Missing device id")
    return f"{STORAGE_KEY}:{device_id}"


class OrientationStateStore:
    def __init__(self, db: Session, device_id: str):
        self.db = db
        self.slot = slot_key(device_id)
        self._version = 0

    @property
    def version(self) -> int:
        """Version of the snapshot last read or written through this store."""
        return self._version

    def load(self) -> OrientationState:
        row = self.db.execute(
            select(OrientationStateRow.stateJson, OrientationStateRow.version).where(OrientationStateRow.slot == self.slot)
        ).first()
        if row is None:
            self._version = 0
            return default_state()

        self._version = int(row.version or 0)
        raw = str(row.stateJson or "").strip()
        if not raw:
            return default_state()
        try:
            return OrientationState.from_dict(json.loads(raw))
        except (ValueError, TypeError) as e:
            log.warning("slot=%s stored orientation state unreadable, using defaults: %s", self.slot, e)
            return default_state()

    def save(self, state: OrientationState) -> int:
        now = iso_utc_now()
        blob = json.dumps(state.to_dict(), separators=(",", ":"))
        expected = self._version

        if expected == 0:
            exists = self.db.execute(
                select(OrientationStateRow.version).where(OrientationStateRow.slot == self.slot)
            ).first()
            if exists is not None:
                raise StaleStateError(self.slot)
            try:
                self.db.execute(
                    insert(OrientationStateRow).values(slot=self.slot, stateJson=blob, version=1, createdAt=now, updatedAt=now)
                )
                self.db.flush()
            except IntegrityError:
                raise StaleStateError(self.slot)
            self._version = 1
            return self._version

        res = self.db.execute(
            update(OrientationStateRow)
            .where(OrientationStateRow.slot == self.slot)
            .where(OrientationStateRow.version == expected)
            .values(stateJson=blob, version=expected + 1, updatedAt=now)
        )
        if res.rowcount != 1:
            raise StaleStateError(self.slot)
        self._version = expected + 1
        return self._version

    def clear(self) -> None:
        self.db.execute(delete(OrientationStateRow).where(OrientationStateRow.slot == self.slot))
        self.db.flush()
        self._version = 0
