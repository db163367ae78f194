from __future__ import annotations

import logging

from flask import Blueprint, current_app, redirect, request

from actions.acknowledgment import ack_topics_get
from actions.orientation_flow import completion_summary_get, state_payload, status_options
from actions.orientation_quiz import quiz_intro
from actions.orientation_video import issue_video_token
from app.routes.api import client_context, handle_action
from db import SessionLocal
from services.orientation_session import OrientationSession
from services.orientation_state import Step
from services.step_guard import guard_step
from utils import ApiError, err, ok

orientation_bp = Blueprint("orientation", __name__)

log = logging.getLogger("orientation")


def _body() -> dict:
    return request.get_json(silent=True) or {}


# ---------------------------------------------------------------------------
# Home and step screens
# ---------------------------------------------------------------------------

@orientation_bp.get("/")
def home():
    return handle_action("HOME_GET", {})


def _step_data(step: Step, db, ctx, cfg, state) -> dict:
    if step == Step.INFO:
        return {"statusOptions": status_options()}
    if step == Step.VIDEO:
        return {"video": issue_video_token(db, ctx, cfg, state.sessionId, state.videoCompleted)}
    if step == Step.QUIZ:
        return {"quiz": dict(quiz_intro(), quizAttempts=state.quizAttempts, quizPassed=state.quizPassed)}
    if step == Step.ACKNOWLEDGMENT:
        return ack_topics_get({}, ctx, db, cfg)
    return completion_summary_get({}, ctx, db, cfg)


@orientation_bp.get("/orientation/<step>")
def step_screen(step: str):
    try:
        target = Step(str(step or "").lower())
    except ValueError:
        return err("NOT_FOUND", f"Unknown orientation step: {step}", http_status=404)

    cfg = current_app.config["CFG"]
    ctx = client_context(cfg)
    db = SessionLocal()
    try:
        session = OrientationSession.open(db, ctx.deviceId)
        state = session.state
        missing = guard_step(target, state)
        if missing is not None:
            log.info("device=%s step=%s redirected to %s", ctx.deviceId, target.value, missing.value)
            return redirect(f"/orientation/{missing.value}", code=302)

        out = state_payload(state)
        out["step"] = target.value
        out.update(_step_data(target, db, ctx, cfg, state))
        db.commit()
        return ok(out)
    except ApiError as e:
        db.rollback()
        return err(e.code, e.message, http_status=e.http_status, fields=e.fields or None)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ---------------------------------------------------------------------------
# REST wrappers over the action API
# ---------------------------------------------------------------------------

@orientation_bp.get("/api/v1/orientation/state")
def rest_state_get():
    return handle_action("ORIENTATION_STATE_GET", {})


@orientation_bp.post("/api/v1/orientation/steps/<step>/enter")
def rest_step_enter(step: str):
    return handle_action("ORIENTATION_STEP_ENTER", {"step": step})


@orientation_bp.put("/api/v1/orientation/step")
def rest_step_set():
    return handle_action("ORIENTATION_STEP_SET", {"step": _body().get("step")})


@orientation_bp.post("/api/v1/orientation/info")
def rest_info_submit():
    body = _body()
    return handle_action("ORIENTATION_INFO_SUBMIT", {"workerInfo": body.get("workerInfo", body)})


@orientation_bp.post("/api/v1/orientation/reset")
def rest_reset():
    return handle_action("ORIENTATION_RESET", {})


@orientation_bp.post("/api/v1/orientation/video/token")
def rest_video_token():
    return handle_action("VIDEO_TOKEN_GET", {})


@orientation_bp.post("/api/v1/orientation/video/heartbeat")
def rest_video_heartbeat():
    body = _body()
    return handle_action(
        "VIDEO_HEARTBEAT",
        {"videoToken": body.get("videoToken") or "", "currentTime": body.get("currentTime"), "duration": body.get("duration")},
    )


@orientation_bp.post("/api/v1/orientation/video/complete")
def rest_video_complete():
    body = _body()
    return handle_action("VIDEO_COMPLETE", {"videoToken": body.get("videoToken") or ""})


@orientation_bp.post("/api/v1/orientation/quiz/start")
def rest_quiz_start():
    return handle_action("QUIZ_START", {})


@orientation_bp.post("/api/v1/orientation/quiz/answer")
def rest_quiz_answer():
    body = _body()
    return handle_action(
        "QUIZ_ANSWER",
        {"attemptNo": body.get("attemptNo"), "questionId": body.get("questionId"), "answer": body.get("answer")},
    )


@orientation_bp.post("/api/v1/orientation/quiz/submit")
def rest_quiz_submit():
    body = _body()
    return handle_action("QUIZ_SUBMIT", {"attemptNo": body.get("attemptNo"), "answers": body.get("answers")})


@orientation_bp.get("/api/v1/orientation/acknowledgment/topics")
def rest_ack_topics():
    return handle_action("ACK_TOPICS_GET", {})


@orientation_bp.post("/api/v1/orientation/acknowledgment/sign")
def rest_ack_sign():
    body = _body()
    return handle_action("ACK_SIGN", {"acknowledged": body.get("acknowledged"), "signatureData": body.get("signatureData")})


@orientation_bp.get("/api/v1/orientation/summary")
def rest_summary():
    return handle_action("COMPLETION_SUMMARY_GET", {})
