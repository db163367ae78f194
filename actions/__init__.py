from __future__ import annotations

from typing import Any, Callable

from actions.acknowledgment import ack_sign, ack_topics_get
from actions.admin_dashboard import admin_completions_list
from actions.orientation_flow import (
    completion_summary_get,
    home_get,
    orientation_info_submit,
    orientation_reset,
    orientation_state_get,
    orientation_step_enter,
    orientation_step_set,
)
from actions.orientation_quiz import quiz_answer, quiz_start, quiz_submit
from actions.orientation_video import video_complete, video_heartbeat, video_token_get
from actions.sync import sync_drain, sync_pending_list
from utils import ApiError, ClientContext

Handler = Callable[[Any, ClientContext, Any, Any], Any]

ACTIONS: dict[str, Handler] = {
    "HOME_GET": home_get,
    "ORIENTATION_STATE_GET": orientation_state_get,
    "ORIENTATION_STEP_ENTER": orientation_step_enter,
    "ORIENTATION_STEP_SET": orientation_step_set,
    "ORIENTATION_INFO_SUBMIT": orientation_info_submit,
    "ORIENTATION_RESET": orientation_reset,
    "VIDEO_TOKEN_GET": video_token_get,
    "VIDEO_HEARTBEAT": video_heartbeat,
    "VIDEO_COMPLETE": video_complete,
    "QUIZ_START": quiz_start,
    "QUIZ_ANSWER": quiz_answer,
    "QUIZ_SUBMIT": quiz_submit,
    "ACK_TOPICS_GET": ack_topics_get,
    "ACK_SIGN": ack_sign,
    "COMPLETION_SUMMARY_GET": completion_summary_get,
    "SYNC_PENDING_LIST": sync_pending_list,
    "SYNC_DRAIN": sync_drain,
    "ADMIN_COMPLETIONS_LIST": admin_completions_list,
}


def dispatch(action: str, data: Any, ctx: ClientContext | None, db, cfg) -> Any:
    action_u = str(action or "").upper().strip()
    handler = ACTIONS.get(action_u)
    if handler is None:
        raise ApiError("BAD_REQUEST", f"Unknown action: {action_u}")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ApiError("BAD_REQUEST", "data must be an object")
    return handler(data, ctx, db, cfg)
