import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attempt_engine.db.base_class import Base
from attempt_engine.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


_ACTIVE_STATUS_PREDICATE = "status in ('in_progress', 'suspended')"


class Attempt(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'attempts'
    __table_args__ = (
        UniqueConstraint('subject_id', 'learner_id', 'attempt_number', name='uq_attempts_subject_learner_number'),
        CheckConstraint(
            "status in ('in_progress', 'suspended', 'submitted', 'graded', "
            "'completed', 'passed', 'failed', 'abandoned')",
            name='attempt_status_values',
        ),
        CheckConstraint("kind in ('assessment', 'content')", name='attempt_kind_values'),
        CheckConstraint('attempt_number >= 1', name='attempt_number_positive'),
        CheckConstraint(
            'progress_percent is null or (progress_percent >= 0 and progress_percent <= 100)',
            name='attempt_progress_percent_range',
        ),
        Index(
            'uq_attempts_active_subject_learner',
            'subject_id',
            'learner_id',
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_PREDICATE),
            sqlite_where=text(_ACTIVE_STATUS_PREDICATE),
        ),
    )

    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('subjects.id', ondelete='RESTRICT'), nullable=False, index=True
    )
    learner_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    learner_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    kind: Mapped[str] = mapped_column(String(30), nullable=False, default='assessment')
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default='in_progress', index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_activity_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_limit_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Content sessions: server time banked by earlier sessions and the start of the current one.
    accumulated_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_since: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    raw_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    percentage_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    grading_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_manual_grading: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    scorm_version: Mapped[str | None] = mapped_column(String(10), nullable=True)
    progress_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    suspend_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    launch_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    lesson_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    completion_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    success_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    score_raw: Mapped[float | None] = mapped_column(Float, nullable=True)
    score_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    score_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    score_scaled: Mapped[float | None] = mapped_column(Float, nullable=True)
    session_time_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    entry: Mapped[str | None] = mapped_column(String(30), nullable=True)
    exit_mode: Mapped[str | None] = mapped_column(String(30), nullable=True)
    cmi_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    questions: Mapped[list['QuestionAttempt']] = relationship(
        back_populates='attempt',
        cascade='all, delete-orphan',
        order_by='QuestionAttempt.position',
        lazy='selectin',
    )

    __mapper_args__ = {'version_id_col': version}


class QuestionAttempt(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'attempt_questions'
    __table_args__ = (
        UniqueConstraint('attempt_id', 'position', name='uq_attempt_questions_position'),
        CheckConstraint(
            'points_earned is null or (points_earned >= 0 and points_earned <= points_possible)',
            name='attempt_question_points_range',
        ),
    )

    attempt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('attempts.id', ondelete='CASCADE'), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    response: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    is_correct: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    points_possible: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    points_earned: Mapped[float | None] = mapped_column(Float, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    graded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    graded_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    attempt: Mapped['Attempt'] = relationship(back_populates='questions')
