from __future__ import annotations

from typing import Any

from actions.helpers import append_log, open_session
from cache_layer import cache_invalidate_prefix
from models import OrientationCompletion
from services.orientation_state import STEP_LABELS, WORKER_STATUS_LABELS, OrientationState, Step, WorkerInfo
from services.step_guard import guard_step, has_in_progress, progress_indicator, resume_step
from utils import ApiError, ClientContext, iso_utc_now

NEXT_STEPS = (
    "Complete your onboarding paperwork in SiteDocs",
    "Report to your supervisor for job site assignment",
    "Collect your required PPE",
    "Begin work safely!",
)


def _parse_step(value: Any) -> Step:
    try:
        return Step(str(value or "").strip().lower())
    except ValueError:
        raise ApiError("BAD_REQUEST", f"Unknown step: {value}")


def status_options() -> list[dict[str, str]]:
    return [{"value": k.value, "label": v} for k, v in WORKER_STATUS_LABELS.items()]


def state_payload(state: OrientationState) -> dict[str, Any]:
    return {
        "state": state.to_dict(),
        "hasInProgress": has_in_progress(state),
        "resumeStep": resume_step(state).value,
        "progress": progress_indicator(state),
    }


def get_completion_row(db, session_id: str | None) -> OrientationCompletion | None:
    if not session_id:
        return None
    return db.get(OrientationCompletion, session_id)


def invalidate_dashboard() -> None:
    cache_invalidate_prefix("ADMIN_COMPLETIONS")


def orientation_state_get(data, ctx: ClientContext | None, db, cfg):
    session = open_session(db, ctx)
    out = state_payload(session.state)
    out["version"] = session.store.version
    return out


def home_get(data, ctx: ClientContext | None, db, cfg):
    state = open_session(db, ctx).state
    info = state.workerInfo
    return {
        "hasInProgress": has_in_progress(state),
        "resumeStep": resume_step(state).value,
        "resumePath": f"/orientation/{resume_step(state).value}",
        "currentStep": state.currentStep.value,
        "workerName": info.fullName if info else "",
        "steps": [{"id": s.value, "label": label} for s, label in STEP_LABELS.items()],
    }


def orientation_step_enter(data, ctx: ClientContext | None, db, cfg):
    target = _parse_step((data or {}).get("step"))
    state = open_session(db, ctx).state
    redirect = guard_step(target, state)
    return {
        "step": target.value,
        "allowed": redirect is None,
        "redirect": redirect.value if redirect else None,
        "progress": progress_indicator(state),
    }


def orientation_step_set(data, ctx: ClientContext | None, db, cfg):
    target = _parse_step((data or {}).get("step"))
    session = open_session(db, ctx)
    before = session.state.currentStep
    state = session.set_step(target)
    append_log(
        db,
        action="STEP_SET",
        ctx=ctx,
        sessionId=state.sessionId or "",
        remarks=f"{before.value} -> {target.value}",
    )
    return state_payload(state)


def orientation_info_submit(data, ctx: ClientContext | None, db, cfg):
    raw = (data or {}).get("workerInfo", data)
    if not isinstance(raw, dict):
        raise ApiError("BAD_REQUEST", "workerInfo must be an object")

    session = open_session(db, ctx)
    if session.state.sessionId:
        raise ApiError("PRECONDITION_FAILED", "An orientation is already in progress on this device, start over to enter new details", http_status=409)

    form = dict(raw)
    if not str(form.get("siteId") or "").strip():
        form["siteId"] = "default"
    info = WorkerInfo.from_dict(form)

    session.record_worker_info(info)
    session.begin_session()
    state = session.set_step(Step.VIDEO)

    now = iso_utc_now()
    db.add(
        OrientationCompletion(
            sessionId=state.sessionId,
            deviceId=ctx.deviceId,
            workerName=info.fullName,
            hireDate=info.hireDate,
            supervisor=info.supervisorName,
            site=info.siteId,
            statusType=info.statusType.value,
            quizAttempts=0,
            status="in_progress",
            startedAt=now,
            completedAt="",
        )
    )
    append_log(
        db,
        action="INFO_SUBMIT",
        ctx=ctx,
        sessionId=state.sessionId,
        remarks=f"Orientation started for {info.fullName}",
        meta={"statusType": info.statusType.value, "siteId": info.siteId},
        at=now,
    )
    invalidate_dashboard()
    return state_payload(state)


def orientation_reset(data, ctx: ClientContext | None, db, cfg):
    session = open_session(db, ctx)
    old_session_id = session.state.sessionId or ""
    state = session.reset()
    append_log(db, action="RESET", ctx=ctx, sessionId=old_session_id, remarks="Orientation reset")
    return state_payload(state)


def completion_summary_get(data, ctx: ClientContext | None, db, cfg):
    state = open_session(db, ctx).state
    redirect = guard_step(Step.COMPLETE, state)
    if redirect is not None:
        return {"allowed": False, "redirect": redirect.value}

    info = state.workerInfo
    row = get_completion_row(db, state.sessionId)
    return {
        "allowed": True,
        "redirect": None,
        "summary": {
            "sessionId": state.sessionId,
            "name": info.fullName,
            "hireDate": info.hireDate,
            "supervisor": info.supervisorName,
            "site": info.siteId,
            "quizAttempts": state.quizAttempts,
            "completedAt": (row.completedAt if row is not None else "") or "",
        },
        "nextSteps": list(NEXT_STEPS),
    }

