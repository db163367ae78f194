"""
Owner of one device's OrientationState.

Routes and actions build an OrientationSession per request instead of
reaching for shared module state. Every change goes through ``apply``: the
transition computes a whole new state, the store persists it, and only then
is the in-memory copy swapped and subscribers told.
"""
from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from services import orientation_state as sm
from services.orientation_state import OrientationState, Step, WorkerInfo
from services.state_store import OrientationStateStore

log = logging.getLogger("orientation")

Subscriber = Callable[[OrientationState, OrientationState], None]


class OrientationSession:
    def __init__(self, store: OrientationStateStore, state: OrientationState | None = None):
        self.store = store
        self._state = state if state is not None else store.load()
        self._subscribers: list[Subscriber] = []

    @classmethod
    def open(cls, db: Session, device_id: str) -> "OrientationSession":
        return cls(OrientationStateStore(db, device_id))

    @property
    def state(self) -> OrientationState:
        return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback(old, new)``; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _notify(self, old: OrientationState, new: OrientationState) -> None:
        for callback in list(self._subscribers):
            callback(old, new)

    def apply(self, transition: Callable[..., OrientationState], *args: Any) -> OrientationState:
        old = self._state
        new = transition(old, *args)
        if new == old:
            return old
        self.store.save(new)
        self._state = new
        log.debug("slot=%s %s -> step=%s", self.store.slot, getattr(transition, "__name__", "transition"), new.currentStep.value)
        self._notify(old, new)
        return new

    def record_worker_info(self, info: WorkerInfo | dict[str, Any]) -> OrientationState:
        return self.apply(sm.record_worker_info, info)

    def begin_session(self) -> OrientationState:
        return self.apply(sm.begin_session)

    def record_video_progress(self, percent: float) -> OrientationState:
        return self.apply(sm.record_video_progress, percent)

    def complete_video(self) -> OrientationState:
        return self.apply(sm.complete_video)

    def start_quiz_attempt(self) -> OrientationState:
        return self.apply(sm.start_quiz_attempt)

    def record_quiz_pass(self) -> OrientationState:
        return self.apply(sm.record_quiz_pass)

    def sign_acknowledgment(self, signature: str) -> OrientationState:
        return self.apply(sm.sign_acknowledgment, signature)

    def set_step(self, step: Step | str) -> OrientationState:
        return self.apply(sm.set_step, step)

    def reset(self) -> OrientationState:
        old = self._state
        self.store.clear()
        self._state = sm.reset()
        log.info("slot=%s orientation reset", self.store.slot)
        self._notify(old, self._state)
        return self._state
