"""
Submission payloads carried by the offline queue.

Each kind has its own schema. Payloads are checked on enqueue and again when
read back from the table, so a malformed row never reaches the sender.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from services.orientation_state import ValidationError, WorkerInfo

KIND_ORIENTATION = "orientation"
KIND_QUIZ = "quiz"
KINDS = (KIND_ORIENTATION, KIND_QUIZ)


def _req_str(data: Mapping[str, Any], name: str, errors: dict[str, str]) -> str:
    value = data.get(name)
    if not isinstance(value, str) or not value.strip():
        errors[name] = f"{name} is required"
        return ""
    return value


def _req_int(data: Mapping[str, Any], name: str, errors: dict[str, str], minimum: int | None = None) -> int:
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        errors[name] = f"{name} must be an integer"
        return 0
    if minimum is not None and value < minimum:
        errors[name] = f"{name} must be at least {minimum}"
    return value


@dataclass(frozen=True)
class OrientationSubmission:
    sessionId: str
    workerInfo: WorkerInfo
    quizAttempts: int
    signatureData: str
    completedAt: str

    kind = KIND_ORIENTATION

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.sessionId,
            "workerInfo": self.workerInfo.to_dict(),
            "quizAttempts": self.quizAttempts,
            "signatureData": self.signatureData,
            "completedAt": self.completedAt,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrientationSubmission":
        errors: dict[str, str] = {}
        session_id = _req_str(data, "sessionId", errors)
        attempts = _req_int(data, "quizAttempts", errors, minimum=1)
        signature = _req_str(data, "signatureData", errors)
        completed_at = _req_str(data, "completedAt", errors)
        info = None
        try:
            info = WorkerInfo.from_dict(data.get("workerInfo"))
        except ValidationError as e:
            errors.update({f"workerInfo.{k}": v for k, v in e.fields.items()})
        if errors or info is None:
            raise ValidationError(errors, message="Invalid orientation submission")
        return cls(session_id, info, attempts, signature, completed_at)


@dataclass(frozen=True)
class QuizSubmission:
    sessionId: str
    attemptNo: int
    score: int
    total: int
    passed: bool
    submittedAt: str

    kind = KIND_QUIZ

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.sessionId,
            "attemptNo": self.attemptNo,
            "score": self.score,
            "total": self.total,
            "passed": self.passed,
            "submittedAt": self.submittedAt,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QuizSubmission":
        errors: dict[str, str] = {}
        session_id = _req_str(data, "sessionId", errors)
        attempt_no = _req_int(data, "attemptNo", errors, minimum=1)
        score = _req_int(data, "score", errors, minimum=0)
        total = _req_int(data, "total", errors, minimum=1)
        passed = data.get("passed")
        if not isinstance(passed, bool):
            errors["passed"] = "passed must be a boolean"
        submitted_at = _req_str(data, "submittedAt", errors)
        if errors:
            raise ValidationError(errors, message="Invalid quiz submission")
        return cls(session_id, attempt_no, score, total, passed, submitted_at)


Payload = Union[OrientationSubmission, QuizSubmission]

_PARSERS = {KIND_ORIENTATION: OrientationSubmission, KIND_QUIZ: QuizSubmission}


def parse_payload(kind: str, data: Any) -> Payload:
    parser = _PARSERS.get(str(kind or "").strip().lower())
    if parser is None:
        raise ValidationError({"kind": f"Unknown submission kind: {kind}"}, message="Invalid submission")
    if isinstance(data, parser):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError({"payload": "Payload must be an object"}, message="Invalid submission")
    return parser.from_dict(data)
