"""
Orientation progress state machine.

Every transition is a pure function: it takes the current OrientationState and
returns a whole new one. Nothing here touches storage; persisting the result
is the job of OrientationSession (services/orientation_session.py).

Step order:
    info -> video -> quiz -> acknowledgment -> complete
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Mapping

from utils import ApiError, epoch_ms, random_suffix


class Step(str, Enum):
    INFO = "info"
    VIDEO = "video"
    QUIZ = "quiz"
    ACKNOWLEDGMENT = "acknowledgment"
    COMPLETE = "complete"


STEP_ORDER: tuple[Step, ...] = (Step.INFO, Step.VIDEO, Step.QUIZ, Step.ACKNOWLEDGMENT, Step.COMPLETE)

STEP_LABELS = {
    Step.INFO: "Your Info",
    Step.VIDEO: "Video",
    Step.QUIZ: "Quiz",
    Step.ACKNOWLEDGMENT: "Sign Off",
    Step.COMPLETE: "Complete",
}


class WorkerStatus(str, Enum):
    """Why the worker has to take the orientation."""

    NEW_TO_POSITION = "NEW_TO_POSITION"
    RETURNING_HAZARDS_CHANGED = "RETURNING_HAZARDS_CHANGED"
    UNDER_25_RETURNING = "UNDER_25_RETURNING"
    AFFECTED_BY_HAZARD_CHANGES = "AFFECTED_BY_HAZARD_CHANGES"
    ANNUAL_REVIEW = "ANNUAL_REVIEW"


WORKER_STATUS_LABELS = {
    WorkerStatus.NEW_TO_POSITION: "New to this position",
    WorkerStatus.RETURNING_HAZARDS_CHANGED: "Returning worker (hazards have changed)",
    WorkerStatus.UNDER_25_RETURNING: "Under 25 years old, returning after 6+ months",
    WorkerStatus.AFFECTED_BY_HAZARD_CHANGES: "Affected by changes to hazards",
    WorkerStatus.ANNUAL_REVIEW: "Annual review",
}


class ValidationError(ApiError):
    def __init__(self, fields: dict[str, str], message: str = "Please correct the highlighted fields"):
        super().__init__("VALIDATION_ERROR", message, http_status=400, fields=fields)


class TransitionError(ApiError):
    """A transition was called without its precondition (contract violation)."""

    def __init__(self, message: str):
        super().__init__("PRECONDITION_FAILED", message, http_status=409)


# (field name, message when missing), in form order.
_REQUIRED_INFO_FIELDS = (
    ("fullName", "Full name is required"),
    ("hireDate", "Hire date is required"),
    ("supervisorName", "Supervisor name is required"),
    ("siteId", "Site is required"),
    ("statusType", "Please select your status"),
    ("emergencyContactName", "Emergency contact name is required"),
    ("emergencyContactPhone", "Emergency contact phone is required"),
    ("emergencyContactRelationship", "Relationship is required"),
)


@dataclass(frozen=True)
class WorkerInfo:
    fullName: str
    hireDate: str
    supervisorName: str
    siteId: str
    statusType: WorkerStatus
    emergencyContactName: str
    emergencyContactPhone: str
    emergencyContactRelationship: str

    def to_dict(self) -> dict[str, str]:
        out = asdict(self)
        out["statusType"] = self.statusType.value
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkerInfo":
        """Build from a mapping, raising ValidationError listing every bad field."""
        if not isinstance(data, Mapping):
            raise ValidationError({"workerInfo": "Worker information is required"})

        errors: dict[str, str] = {}
        values: dict[str, Any] = {}
        for name, message in _REQUIRED_INFO_FIELDS:
            raw = data.get(name)
            value = raw.strip() if isinstance(raw, str) else ""
            if not value:
                errors[name] = message
                continue
            values[name] = value

        if "statusType" in values:
            try:
                values["statusType"] = WorkerStatus(values["statusType"])
            except ValueError:
                errors["statusType"] = "Unknown orientation status"

        if errors:
            raise ValidationError(errors)
        return cls(**values)


@dataclass(frozen=True)
class OrientationState:
    sessionId: str | None = None
    workerInfo: WorkerInfo | None = None
    videoProgress: float = 0.0
    videoCompleted: bool = False
    quizPassed: bool = False
    quizAttempts: int = 0
    acknowledgmentSigned: bool = False
    signatureData: str | None = None
    currentStep: Step = field(default=Step.INFO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.sessionId,
            "workerInfo": self.workerInfo.to_dict() if self.workerInfo else None,
            "videoProgress": self.videoProgress,
            "videoCompleted": self.videoCompleted,
            "quizPassed": self.quizPassed,
            "quizAttempts": self.quizAttempts,
            "acknowledgmentSigned": self.acknowledgmentSigned,
            "signatureData": self.signatureData,
            "currentStep": self.currentStep.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrientationState":
        """Strict parse of a stored snapshot. Raises ValueError on anything off."""
        if not isinstance(data, Mapping):
            raise ValueError("state must be an object")

        session_id = data.get("sessionId")
        if session_id is not None and not isinstance(session_id, str):
            raise ValueError("sessionId must be a string")

        info_raw = data.get("workerInfo")
        try:
            info = WorkerInfo.from_dict(info_raw) if info_raw is not None else None
        except ValidationError as e:
            raise ValueError(f"workerInfo invalid: {sorted(e.fields)}") from e

        progress = data.get("videoProgress", 0)
        if isinstance(progress, bool) or not isinstance(progress, (int, float)):
            raise ValueError("videoProgress must be a number")
        if not 0 <= float(progress) <= 100:
            raise ValueError("videoProgress out of range")

        attempts = data.get("quizAttempts", 0)
        if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 0:
            raise ValueError("quizAttempts must be a non-negative integer")

        flags = {}
        for name in ("videoCompleted", "quizPassed", "acknowledgmentSigned"):
            value = data.get(name, False)
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be a boolean")
            flags[name] = value

        signature = data.get("signatureData")
        if signature is not None and not isinstance(signature, str):
            raise ValueError("signatureData must be a string")

        state = cls(
            sessionId=session_id,
            workerInfo=info,
            videoProgress=float(progress),
            quizAttempts=attempts,
            signatureData=signature,
            currentStep=Step(data.get("currentStep", Step.INFO.value)),
            **flags,
        )
        broken = invariant_violations(state)
        if broken:
            raise ValueError("; ".join(broken))
        return state


def default_state() -> OrientationState:
    return OrientationState()


def step_index(step: Step) -> int:
    return STEP_ORDER.index(Step(step))


def invariant_violations(state: OrientationState) -> list[str]:
    problems = []
    if state.quizPassed and not state.videoCompleted:
        problems.append("quizPassed without videoCompleted")
    if state.acknowledgmentSigned and not state.quizPassed:
        problems.append("acknowledgmentSigned without quizPassed")
    if (state.signatureData is not None) != state.acknowledgmentSigned:
        problems.append("signatureData must be set exactly when acknowledgmentSigned")
    return problems


def _advance(current: Step, target: Step) -> Step:
    return target if step_index(target) > step_index(current) else current


def new_session_id() -> str:
    return f"session_{epoch_ms()}_{random_suffix()}"


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def record_worker_info(state: OrientationState, info: WorkerInfo | Mapping[str, Any]) -> OrientationState:
    if not isinstance(info, WorkerInfo):
        info = WorkerInfo.from_dict(info)
    return replace(state, workerInfo=info)


def begin_session(state: OrientationState) -> OrientationState:
    return replace(state, sessionId=new_session_id())


def record_video_progress(state: OrientationState, percent: float) -> OrientationState:
    try:
        value = float(percent)
    except (TypeError, ValueError):
        raise ApiError("BAD_REQUEST", "Video progress must be a number")
    if value != value:  # NaN
        raise ApiError("BAD_REQUEST", "Video progress must be a number")
    if state.videoCompleted:
        # Completion locks progress at 100.
        return state
    return replace(state, videoProgress=min(100.0, max(0.0, value)))


def complete_video(state: OrientationState) -> OrientationState:
    return replace(
        state,
        videoCompleted=True,
        videoProgress=100.0,
        currentStep=_advance(state.currentStep, Step.QUIZ),
    )


def start_quiz_attempt(state: OrientationState) -> OrientationState:
    return replace(state, quizAttempts=state.quizAttempts + 1)


def record_quiz_pass(state: OrientationState) -> OrientationState:
    if not state.videoCompleted:
        raise TransitionError("The orientation video must be completed before passing the quiz")
    return replace(
        state,
        quizPassed=True,
        currentStep=_advance(state.currentStep, Step.ACKNOWLEDGMENT),
    )


def sign_acknowledgment(state: OrientationState, signature: str) -> OrientationState:
    if not state.quizPassed:
        raise TransitionError("The quiz must be passed before signing the acknowledgment")
    if not isinstance(signature, str) or not signature.strip():
        raise TransitionError("A signature is required to sign the acknowledgment")
    return replace(
        state,
        acknowledgmentSigned=True,
        signatureData=signature,
        currentStep=_advance(state.currentStep, Step.COMPLETE),
    )


def set_step(state: OrientationState, step: Step | str) -> OrientationState:
    try:
        target = Step(step)
    except ValueError:
        raise ApiError("BAD_REQUEST", f"Unknown step: {step}")
    return replace(state, currentStep=target)


def reset() -> OrientationState:
    return default_state()
