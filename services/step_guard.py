"""
Entry guard for the orientation screens.

guard_step() is a read-only predicate run before a step renders. It never
mutates state; when a prerequisite is missing it names the step to send the
worker back to, always the earliest missing one.
"""
from __future__ import annotations

from typing import Callable

from services.orientation_state import STEP_LABELS, STEP_ORDER, OrientationState, Step

# Prerequisite that must hold before each step can be entered, paired with
# the step that satisfies it. Checked in order, so the earliest gap wins.
_PREREQUISITES: tuple[tuple[Step, Callable[[OrientationState], bool]], ...] = (
    (Step.INFO, lambda s: s.workerInfo is not None),
    (Step.VIDEO, lambda s: s.videoCompleted),
    (Step.QUIZ, lambda s: s.quizPassed),
    (Step.ACKNOWLEDGMENT, lambda s: s.acknowledgmentSigned),
)


def guard_step(target: Step | str, state: OrientationState) -> Step | None:
    """Return the step to redirect to, or None when ``target`` may be entered."""
    target = Step(target)
    needed = STEP_ORDER.index(target)
    for owner, satisfied in _PREREQUISITES[:needed]:
        if not satisfied(state):
            return owner
    return None


def can_enter(target: Step | str, state: OrientationState) -> bool:
    return guard_step(target, state) is None


def has_in_progress(state: OrientationState) -> bool:
    return bool(state.sessionId) and state.currentStep != Step.COMPLETE


def resume_step(state: OrientationState) -> Step:
    """Where "Continue Orientation" should land for this state."""
    return guard_step(state.currentStep, state) or state.currentStep


def progress_indicator(state: OrientationState) -> list[dict]:
    current = STEP_ORDER.index(state.currentStep)
    return [
        {
            "id": step.value,
            "label": STEP_LABELS[step],
            "number": idx + 1,
            "completed": idx < current,
            "current": idx == current,
        }
        for idx, step in enumerate(STEP_ORDER)
    ]
