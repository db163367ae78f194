from __future__ import annotations

import json
from typing import Any

from sqlalchemy import select

from actions.helpers import append_log, open_session, require_session_id
from actions.orientation_flow import get_completion_row, invalidate_dashboard
from actions.sync import queue_submission
from models import QuizAttemptRow
from services.orientation_state import Step
from services.quiz_bank import DEFAULT_QUIZ_QUESTIONS, QuizQuestion, grade_answers, is_correct, question_by_id, shuffle_questions
from services.step_guard import guard_step
from services.submissions import KIND_QUIZ
from utils import ApiError, ClientContext, iso_utc_now, safe_json_string


def quiz_intro() -> dict[str, Any]:
    total = len(DEFAULT_QUIZ_QUESTIONS)
    return {
        "title": "Celebration of Knowledge",
        "questionCount": total,
        "passRule": f"You must answer all {total} questions correctly (100%) to pass.",
        "retryNote": "You can retry the quiz as many times as needed. Questions will be shuffled on each attempt.",
    }


def _require_quiz_step(state) -> str:
    redirect = guard_step(Step.QUIZ, state)
    if redirect is not None:
        raise ApiError("PRECONDITION_FAILED", f"Complete the {redirect.value} step before the quiz", http_status=409)
    return require_session_id(state)


def _load_order(row: QuizAttemptRow) -> list[QuizQuestion]:
    ids = json.loads(row.questionOrderJson or "[]")
    questions = [question_by_id(i) for i in ids]
    return [q for q in questions if q is not None]


def _load_answers(row: QuizAttemptRow) -> dict[str, bool]:
    raw = json.loads(row.answersJson or "{}")
    return {str(k): v for k, v in raw.items()} if isinstance(raw, dict) else {}


def _current_attempt(db, session_id: str, attempt_no: int) -> QuizAttemptRow:
    row = db.execute(
        select(QuizAttemptRow).where(QuizAttemptRow.sessionId == session_id).where(QuizAttemptRow.attemptNo == attempt_no)
    ).scalar_one_or_none()
    if row is None:
        raise ApiError("NOT_FOUND", "Quiz attempt not found, start the quiz first", http_status=404)
    if str(row.passFail or "") != "IN_PROGRESS":
        raise ApiError("CONFLICT", "This quiz attempt is already finished, start a new attempt", http_status=409)
    return row


def _attempt_no(data, state) -> int:
    raw = (data or {}).get("attemptNo")
    if raw in (None, ""):
        return int(state.quizAttempts)
    try:
        attempt_no = int(raw)
    except (TypeError, ValueError):
        raise ApiError("BAD_REQUEST", "attemptNo must be an integer")
    if attempt_no != state.quizAttempts:
        raise ApiError("CONFLICT", "Only the latest quiz attempt can be answered", http_status=409)
    return attempt_no


def _finish_attempt(db, ctx, cfg, session, row: QuizAttemptRow, answers: dict[str, Any]) -> dict[str, Any]:
    questions = _load_order(row)
    graded = grade_answers(questions, answers)
    now = iso_utc_now()

    row.answersJson = safe_json_string(answers, "{}")
    row.score = graded["score"]
    row.total = graded["total"]
    row.passFail = "PASS" if graded["passed"] else "FAIL"
    row.submittedAt = now

    if graded["passed"]:
        session.record_quiz_pass()

    state = session.state
    completion = get_completion_row(db, state.sessionId)
    if completion is not None:
        completion.quizAttempts = state.quizAttempts
        invalidate_dashboard()

    submission = queue_submission(
        db,
        cfg,
        KIND_QUIZ,
        {
            "sessionId": state.sessionId,
            "attemptNo": int(row.attemptNo),
            "score": graded["score"],
            "total": graded["total"],
            "passed": graded["passed"],
            "submittedAt": now,
        },
    )

    append_log(
        db,
        action="QUIZ_SUBMIT",
        ctx=ctx,
        sessionId=state.sessionId,
        remarks=f"Attempt {row.attemptNo}: {graded['score']}/{graded['total']} {row.passFail}",
        meta={"attemptNo": int(row.attemptNo), "score": graded["score"], "total": graded["total"]},
        at=now,
    )

    return {
        "finished": True,
        "attemptNo": int(row.attemptNo),
        "score": graded["score"],
        "total": graded["total"],
        "passed": graded["passed"],
        "results": graded["results"],
        "quizAttempts": state.quizAttempts,
        "currentStep": state.currentStep.value,
        "submission": submission,
    }


def quiz_start(data, ctx: ClientContext | None, db, cfg):
    session = open_session(db, ctx)
    session_id = _require_quiz_step(session.state)
    if session.state.quizPassed:
        return {"alreadyPassed": True, "quizAttempts": session.state.quizAttempts, "nextStep": Step.ACKNOWLEDGMENT.value}

    state = session.start_quiz_attempt()
    questions = shuffle_questions(DEFAULT_QUIZ_QUESTIONS)
    now = iso_utc_now()
    db.add(
        QuizAttemptRow(
            sessionId=session_id,
            attemptNo=state.quizAttempts,
            questionOrderJson=json.dumps([q.id for q in questions]),
            answersJson="{}",
            score=0,
            total=len(questions),
            passFail="IN_PROGRESS",
            startedAt=now,
            submittedAt="",
        )
    )

    completion = get_completion_row(db, session_id)
    if completion is not None:
        completion.quizAttempts = state.quizAttempts
        invalidate_dashboard()

    append_log(db, action="QUIZ_START", ctx=ctx, sessionId=session_id, remarks=f"Attempt {state.quizAttempts} started", at=now)
    return {
        "alreadyPassed": False,
        "attemptNo": state.quizAttempts,
        "total": len(questions),
        "questionIndex": 0,
        "questions": [q.public_dict() for q in questions],
    }


def quiz_answer(data, ctx: ClientContext | None, db, cfg):
    session = open_session(db, ctx)
    session_id = _require_quiz_step(session.state)
    attempt_no = _attempt_no(data, session.state)
    row = _current_attempt(db, session_id, attempt_no)

    answer = (data or {}).get("answer")
    if not isinstance(answer, bool):
        raise ApiError("BAD_REQUEST", "answer must be true or false")

    order = _load_order(row)
    answers = _load_answers(row)
    index = len(answers)
    expected = order[index]
    given_id = (data or {}).get("questionId")
    if given_id is not None and question_by_id(given_id) is not expected:
        raise ApiError("CONFLICT", f"Expected an answer for question {expected.id}", http_status=409)

    answers[str(expected.id)] = answer
    feedback = {
        "questionId": expected.id,
        "correct": is_correct(expected, answer),
        "correctAnswer": expected.correctAnswer,
        "explanation": expected.explanation,
    }

    if len(answers) < len(order):
        row.answersJson = safe_json_string(answers, "{}")
        nxt = order[len(answers)]
        return {
            "finished": False,
            "feedback": feedback,
            "questionIndex": len(answers),
            "total": len(order),
            "nextQuestion": nxt.public_dict(),
        }

    out = _finish_attempt(db, ctx, cfg, session, row, answers)
    out["feedback"] = feedback
    return out


def quiz_submit(data, ctx: ClientContext | None, db, cfg):
    session = open_session(db, ctx)
    session_id = _require_quiz_step(session.state)
    attempt_no = _attempt_no(data, session.state)
    row = _current_attempt(db, session_id, attempt_no)

    answers_in = (data or {}).get("answers")
    if not isinstance(answers_in, dict):
        raise ApiError("BAD_REQUEST", "answers must be an object of questionId -> true/false")
    allowed = {str(q.id) for q in _load_order(row)}
    answers = {str(k): v for k, v in answers_in.items() if str(k) in allowed}
    return _finish_attempt(db, ctx, cfg, session, row, answers)
