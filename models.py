from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, Integer, String, Text, UniqueConstraint

from db import Base


class OrientationStateRow(Base):
    """Durable slot holding one serialized OrientationState snapshot."""

    __tablename__ = "orientation_state"

    slot = Column(String, primary_key=True)
    stateJson = Column(Text, nullable=False, default="")
    version = Column(Integer, nullable=False, default=0)
    createdAt = Column(Text, nullable=False, default="")
    updatedAt = Column(Text, nullable=False, default="")


class PendingSubmissionRow(Base):
    __tablename__ = "pending_submissions"

    id = Column(String, primary_key=True)  # <kind>_<epoch-ms>_<random>
    kind = Column(String, nullable=False, index=True)  # orientation|quiz
    payloadJson = Column(Text, nullable=False, default="{}")
    createdAt = Column(Text, nullable=False, default="", index=True)
    attempts = Column(Integer, nullable=False, default=0)
    lastAttemptAt = Column(Text, nullable=False, default="")
    lastError = Column(Text, nullable=False, default="")


class SubmissionDeliveryLog(Base):
    __tablename__ = "submission_delivery_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    submissionId = Column(String, nullable=False, default="", index=True)
    kind = Column(String, nullable=False, default="")
    result = Column(String, nullable=False, default="", index=True)  # SUCCESS|FAILED
    statusCode = Column(Integer, nullable=True)
    error = Column(Text, nullable=False, default="")
    at = Column(Text, nullable=False, default="", index=True)


class QuizAttemptRow(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (UniqueConstraint("sessionId", "attemptNo", name="uq_quiz_attempts_session_attempt"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    sessionId = Column(String, nullable=False, default="", index=True)
    attemptNo = Column(Integer, nullable=False, default=1)
    questionOrderJson = Column(Text, nullable=False, default="[]")  # question ids, shuffled
    answersJson = Column(Text, nullable=False, default="{}")  # {questionId: bool}
    score = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False, default=0)
    passFail = Column(String, nullable=False, default="IN_PROGRESS", index=True)  # IN_PROGRESS|PASS|FAIL
    startedAt = Column(Text, nullable=False, default="")
    submittedAt = Column(Text, nullable=False, default="")


class VideoWatch(Base):
    __tablename__ = "video_watch"

    sessionId = Column(String, primary_key=True)
    maxTime = Column(Float, nullable=False, default=0.0)
    duration = Column(Float, nullable=False, default=0.0)
    lastHeartbeatTs = Column(Float, nullable=True)  # epoch seconds
    completed = Column(Boolean, nullable=False, default=False)
    completedAt = Column(Text, nullable=False, default="")


class OrientationCompletion(Base):
    __tablename__ = "orientation_completions"

    sessionId = Column(String, primary_key=True)
    deviceId = Column(String, nullable=False, default="", index=True)
    workerName = Column(Text, nullable=False, default="")
    hireDate = Column(String, nullable=False, default="")
    supervisor = Column(Text, nullable=False, default="")
    site = Column(Text, nullable=False, default="")
    statusType = Column(String, nullable=False, default="")
    quizAttempts = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, default="in_progress", index=True)  # in_progress|completed
    startedAt = Column(Text, nullable=False, default="", index=True)
    completedAt = Column(Text, nullable=False, default="")


class OrientationLog(Base):
    __tablename__ = "orientation_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Text, nullable=False, default="", index=True)
    sessionId = Column(String, nullable=False, default="", index=True)
    deviceId = Column(String, nullable=False, default="", index=True)
    action = Column(String, nullable=False, default="", index=True)
    remarks = Column(Text, nullable=False, default="")
    correlationId = Column(String, nullable=False, default="")
    metaJson = Column(Text, nullable=False, default="")
