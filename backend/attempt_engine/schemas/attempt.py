from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from attempt_engine.models.attempt import Attempt, QuestionAttempt
from attempt_engine.schemas.common import BaseSchema, PaginationMeta


class ResponseIn(BaseModel):
    question_id: str = Field(min_length=1, max_length=64)
    response: Any = None


class SaveProgressIn(BaseModel):
    responses: list[ResponseIn] = Field(default_factory=list)


class GradeQuestionIn(BaseModel):
    score: float = Field(ge=0)
    feedback: str | None = Field(default=None, max_length=5000)


class QuestionAttemptOut(BaseModel):
    id: UUID
    question_id: str
    position: int
    question_text: str
    question_type: str
    options: list[str] = Field(default_factory=list)
    matching_items: list[str] = Field(default_factory=list)
    matching_choices: list[str] = Field(default_factory=list)
    points_possible: float
    response: Any = None
    is_correct: bool | None = None
    points_earned: float | None = None
    feedback: str | None = None
    graded_at: datetime | None = None

    correct_answer: str | None = None
    correct_answers: list[str] | None = None
    matching_pairs: dict[str, str] | None = None
    explanation: str | None = None

    @classmethod
    def from_question(cls, question: QuestionAttempt, *, reveal: bool) -> 'QuestionAttemptOut':
        snapshot = question.snapshot or {}
        pairs = snapshot.get('matching_pairs') or {}
        out = cls(
            id=question.id,
            question_id=question.question_id,
            position=question.position,
            question_text=snapshot.get('question_text', ''),
            question_type=snapshot.get('question_type', ''),
            options=snapshot.get('options') or [],
            matching_items=list(pairs),
            matching_choices=sorted({str(value) for value in pairs.values()}),
            points_possible=question.points_possible,
            response=question.response,
            is_correct=question.is_correct,
            points_earned=question.points_earned,
            feedback=question.feedback,
            graded_at=question.graded_at,
        )
        if reveal:
            out.correct_answer = snapshot.get('correct_answer')
            out.correct_answers = snapshot.get('correct_answers') or []
            out.matching_pairs = pairs or None
            out.explanation = snapshot.get('explanation')
        return out


class AttemptSummaryOut(BaseSchema):
    id: UUID
    subject_id: UUID
    learner_id: UUID
    kind: str
    attempt_number: int
    status: str
    started_at: datetime
    last_activity_at: datetime
    submitted_at: datetime | None
    time_spent_seconds: int
    time_limit_seconds: int | None
    raw_score: float | None
    max_score: float | None
    percentage_score: float | None
    passed: bool | None
    grading_complete: bool
    requires_manual_grading: bool


class AttemptOut(AttemptSummaryOut):
    questions: list[QuestionAttemptOut] = Field(default_factory=list)

    @classmethod
    def from_attempt(cls, attempt: Attempt, *, reveal: bool = False) -> 'AttemptOut':
        summary = AttemptSummaryOut.model_validate(attempt)
        return cls(
            **summary.model_dump(),
            questions=[QuestionAttemptOut.from_question(question, reveal=reveal) for question in attempt.questions],
        )


class AttemptResultsOut(AttemptOut):
    correct_answers_visible: bool = False


class AttemptListResponse(BaseModel):
    items: list[AttemptSummaryOut]
    meta: PaginationMeta


class CurrentAttemptResponse(BaseModel):
    attempt: AttemptOut | None
