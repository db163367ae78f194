from __future__ import annotations

from actions.helpers import append_log, open_session, require_session_id
from actions.orientation_flow import get_completion_row, invalidate_dashboard
from actions.sync import queue_submission
from services.orientation_state import Step
from services.step_guard import guard_step
from services.submissions import KIND_ORIENTATION
from utils import ApiError, ClientContext, iso_utc_now

SAFETY_TOPICS = (
    "Safety Policy (Management & Employee commitments)",
    "Assignment of Responsibility",
    "Hazard Assessment Policy (Annual/Project/FLHA)",
    "Safe Work Practices and Job Procedures",
    "Safety Rules and Disciplinary Policy",
    "PPE Policy (Mandatory & Situational)",
    "Maintenance and Training Policy",
    "Inspection Policy",
    "Incident Investigation Policy",
    "Emergency Rescue Plan & Numbers",
    "Drug/Alcohol Policy",
    "Harassment Code of Practice",
    "Violence in the Workplace Policy",
    "Lock Out Policy",
    "Fall Protection",
    "Respiratory Protection",
    "Confined Space Entry",
    "Hot Work Procedures",
    "Working Alone Policy",
    "Right to Know about hazards",
    "Right to Refuse unsafe work",
    "Right to Participate in safety decisions",
)

ACK_STATEMENT = (
    "I acknowledge that I have received, read, and understood the safety orientation "
    "covering the topics listed above, and I agree to follow all safety policies and procedures."
)


def ack_topics_get(data, ctx: ClientContext | None, db, cfg):
    return {"topics": list(SAFETY_TOPICS), "statement": ACK_STATEMENT}


def ack_sign(data, ctx: ClientContext | None, db, cfg):
    session = open_session(db, ctx)
    state = session.state

    redirect = guard_step(Step.ACKNOWLEDGMENT, state)
    if redirect is not None:
        raise ApiError("PRECONDITION_FAILED", f"Complete the {redirect.value} step before signing", http_status=409)
    session_id = require_session_id(state)
    if state.acknowledgmentSigned:
        raise ApiError("CONFLICT", "The acknowledgment has already been signed", http_status=409)

    if (data or {}).get("acknowledged") is not True:
        raise ApiError(
            "VALIDATION_ERROR",
            "Please confirm the acknowledgment",
            fields={"acknowledged": "You must confirm that you have read and understood the safety topics"},
        )

    signature = (data or {}).get("signatureData")
    if not isinstance(signature, str) or not signature.strip():
        raise ApiError("VALIDATION_ERROR", "Please sign before continuing", fields={"signatureData": "Signature is required"})
    max_bytes = int(getattr(cfg, "MAX_SIGNATURE_BYTES", 512 * 1024) or 0)
    if max_bytes and len(signature.encode("utf-8")) > max_bytes:
        raise ApiError("VALIDATION_ERROR", "Signature is too large", fields={"signatureData": f"Signature exceeds {max_bytes} bytes"})

    state = session.sign_acknowledgment(signature)
    now = iso_utc_now()

    completion = get_completion_row(db, session_id)
    if completion is not None:
        completion.status = "completed"
        completion.completedAt = now
        completion.quizAttempts = state.quizAttempts
    invalidate_dashboard()

    submission = queue_submission(
        db,
        cfg,
        KIND_ORIENTATION,
        {
            "sessionId": session_id,
            "workerInfo": state.workerInfo.to_dict(),
            "quizAttempts": state.quizAttempts,
            "signatureData": signature,
            "completedAt": now,
        },
    )

    append_log(
        db,
        action="ACK_SIGN",
        ctx=ctx,
        sessionId=session_id,
        remarks="Acknowledgment signed, orientation complete",
        meta={"submissionId": submission["submissionId"], "delivered": submission["delivered"]},
        at=now,
    )
    return {"currentStep": state.currentStep.value, "completedAt": now, "submission": submission}
