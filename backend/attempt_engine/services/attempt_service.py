import logging
import math
from datetime import datetime
from typing import Any, NamedTuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from attempt_engine.core import clock
from attempt_engine.core.config import settings
from attempt_engine.core.errors import (
    ConflictError,
    InsufficientQuestionsError,
    InvalidStateError,
    LimitExceededError,
    NotFoundError,
    TimeLimitExceededError,
    ValidationError,
)
from attempt_engine.models.attempt import Attempt, QuestionAttempt
from attempt_engine.models.constants import ACTIVE_ATTEMPT_STATUS_VALUES, TERMINAL_ATTEMPT_STATUS_VALUES
from attempt_engine.models.question_bank import Question
from attempt_engine.modules.grading import grade, is_passing, select_questions, should_show_correct_answers, summarize
from attempt_engine.schemas.subject import SubjectConfig
from attempt_engine.services.question_bank_service import load_question_pool
from attempt_engine.services.subject_service import get_subject_config


logger = logging.getLogger(__name__)

ACTIVE_CONFLICT_MESSAGE = 'An attempt is already in progress for this subject'
STALE_CONFLICT_MESSAGE = 'Attempt was modified by another request; retry the operation'


class AttemptResults(NamedTuple):
    attempt: Attempt
    show_correct_answers: bool


def get_attempt(
    db: Session,
    attempt_id: UUID,
    *,
    learner_id: UUID | None = None,
    kind: str | None = None,
) -> Attempt:
    attempt = db.get(Attempt, attempt_id)
    # Another learner's attempt is reported as missing.
    if not attempt or (learner_id is not None and attempt.learner_id != learner_id):
        raise NotFoundError('Attempt not found')
    if kind is not None and attempt.kind != kind:
        raise NotFoundError('Attempt not found')
    return attempt


def find_active_attempt(db: Session, *, subject_id: UUID, learner_id: UUID) -> Attempt | None:
    return db.scalar(
        select(Attempt).where(
            Attempt.subject_id == subject_id,
            Attempt.learner_id == learner_id,
            Attempt.status.in_(ACTIVE_ATTEMPT_STATUS_VALUES),
        )
    )


def count_previous_attempts(db: Session, *, subject_id: UUID, learner_id: UUID) -> int:
    return int(
        db.scalar(
            select(func.count())
            .select_from(Attempt)
            .where(
                Attempt.subject_id == subject_id,
                Attempt.learner_id == learner_id,
                Attempt.status.in_(TERMINAL_ATTEMPT_STATUS_VALUES),
            )
        )
        or 0
    )


def next_attempt_number(db: Session, *, subject: SubjectConfig, learner_id: UUID) -> int:
    """Return the number for a new attempt, rejecting the start when it is not allowed."""
    if find_active_attempt(db, subject_id=subject.id, learner_id=learner_id) is not None:
        logger.warning('Rejected start on subject %s: learner %s has an active attempt', subject.id, learner_id)
        raise ConflictError(ACTIVE_CONFLICT_MESSAGE)

    previous = count_previous_attempts(db, subject_id=subject.id, learner_id=learner_id)
    if subject.max_attempts is not None and previous >= subject.max_attempts:
        logger.warning(
            'Rejected start on subject %s: learner %s used %s of %s attempts',
            subject.id,
            learner_id,
            previous,
            subject.max_attempts,
        )
        raise LimitExceededError(f'Maximum number of attempts ({subject.max_attempts}) reached')
    return previous + 1


def flush_attempt(db: Session, *, conflict_message: str = STALE_CONFLICT_MESSAGE) -> None:
    """Flush pending changes, turning lost races into ``ConflictError``."""
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.warning('Attempt write rejected by a uniqueness constraint: %s', exc.orig)
        raise ConflictError(conflict_message) from exc
    except StaleDataError as exc:
        db.rollback()
        logger.warning('Attempt write lost an optimistic version check')
        raise ConflictError(STALE_CONFLICT_MESSAGE) from exc


def require_status(attempt: Attempt, allowed: tuple[str, ...] | list[str], *, action: str) -> None:
    if attempt.status not in allowed:
        logger.warning('Rejected %s on attempt %s in status %s', action, attempt.id, attempt.status)
        raise InvalidStateError(f'Cannot {action} an attempt that is {attempt.status}')


def current_time_spent(attempt: Attempt, now: datetime) -> int:
    if attempt.kind == 'content':
        running = clock.seconds_between(attempt.active_since, now) if attempt.status == 'in_progress' else 0
        return int(attempt.accumulated_seconds or 0) + running
    return clock.seconds_between(attempt.started_at, now)


def enforce_time_limit(attempt: Attempt, now: datetime) -> None:
    if attempt.time_limit_seconds is None:
        return
    elapsed = current_time_spent(attempt, now)
    if elapsed > attempt.time_limit_seconds:
        logger.warning(
            'Rejected write on attempt %s: %ss elapsed exceeds the %ss limit',
            attempt.id,
            elapsed,
            attempt.time_limit_seconds,
        )
        raise TimeLimitExceededError(f'Time limit of {attempt.time_limit_seconds} seconds exceeded')


def resolve_passing_score(subject: SubjectConfig) -> float:
    if subject.passing_score is not None:
        return subject.passing_score
    return settings.DEFAULT_PASSING_SCORE


def snapshot_question(question: Question) -> dict[str, Any]:
    return {
        'question_text': question.question_text,
        'question_type': question.question_type,
        'options': list(question.options or []),
        'correct_answer': question.correct_answer,
        'correct_answers': list(question.correct_answers or []),
        'matching_pairs': dict(question.matching_pairs or {}),
        'explanation': question.explanation,
        'difficulty': question.difficulty,
        'tags': list(question.tags or []),
    }


def start_attempt(
    db: Session,
    *,
    subject_id: UUID,
    learner_id: UUID,
    learner_name: str | None = None,
) -> Attempt:
    subject = get_subject_config(db, subject_id, kind='assessment')
    attempt_number = next_attempt_number(db, subject=subject, learner_id=learner_id)

    pool = load_question_pool(db, subject.bank_ids)
    selected = select_questions(pool, subject.selection)
    if not selected:
        raise InsufficientQuestionsError(requested=subject.question_count or 1, available=0)

    now = clock.utcnow()
    attempt = Attempt(
        subject_id=subject.id,
        learner_id=learner_id,
        learner_name=learner_name,
        kind='assessment',
        attempt_number=attempt_number,
        status='in_progress',
        started_at=now,
        last_activity_at=now,
        time_spent_seconds=0,
        time_limit_seconds=subject.time_limit_seconds,
        accumulated_seconds=0,
        grading_complete=False,
        requires_manual_grading=False,
        cmi_data={},
    )
    for position, question in enumerate(selected):
        attempt.questions.append(
            QuestionAttempt(
                question_id=str(question.id),
                position=position,
                snapshot=snapshot_question(question),
                points_possible=float(question.points),
            )
        )
    db.add(attempt)
    flush_attempt(db, conflict_message=ACTIVE_CONFLICT_MESSAGE)

    logger.info(
        'Started attempt %s (#%s) on subject %s for learner %s with %s questions',
        attempt.id,
        attempt_number,
        subject.id,
        learner_id,
        len(selected),
    )
    return attempt


def validate_response(question: QuestionAttempt, response: Any) -> None:
    if response is None:
        return
    question_type = (question.snapshot or {}).get('question_type')
    if question_type == 'matching':
        if not isinstance(response, dict) or not all(
            isinstance(key, str) and isinstance(value, str) for key, value in response.items()
        ):
            raise ValidationError(f'Response to question {question.question_id} must map items to strings')
        return
    if not isinstance(response, (str, int, float, bool)):
        raise ValidationError(f'Response to question {question.question_id} must be a single value')


def save_progress(
    db: Session,
    *,
    attempt_id: UUID,
    learner_id: UUID,
    responses: list[tuple[str, Any]],
) -> Attempt:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id, kind='assessment')
    require_status(attempt, ('in_progress',), action='save progress on')

    now = clock.utcnow()
    enforce_time_limit(attempt, now)

    by_question_id = {question.question_id: question for question in attempt.questions}
    updates = []
    for question_id, response in responses:
        question = by_question_id.get(question_id)
        if question is None:
            logger.debug('Ignoring response for question %s not in attempt %s', question_id, attempt.id)
            continue
        validate_response(question, response)
        updates.append((question, response))

    for question, response in updates:
        question.response = response
    attempt.time_spent_seconds = current_time_spent(attempt, now)
    attempt.last_activity_at = now
    flush_attempt(db)
    return attempt


def auto_grade_question(attempt: Attempt, question: QuestionAttempt, now: datetime) -> bool:
    try:
        result = grade(question.snapshot or {}, question.response, question.points_possible)
    except Exception:
        logger.exception(
            'Auto-grader failed for question %s (position %s) of attempt %s; leaving it for manual grading',
            question.question_id,
            question.position,
            attempt.id,
        )
        return False

    if not result.graded:
        return False
    question.is_correct = result.is_correct
    question.points_earned = result.points_earned
    question.graded_at = now
    question.graded_by = None
    return True


def apply_scores(attempt: Attempt, *, passing_score: float) -> None:
    """Store the aggregate score, finalizing the attempt once every question is graded."""
    summary = summarize(attempt.questions)
    attempt.raw_score = summary.raw_score
    attempt.max_score = summary.max_score
    if summary.all_graded:
        attempt.percentage_score = summary.percentage_score
        attempt.passed = is_passing(summary.percentage_score, passing_score)
        attempt.grading_complete = True
        attempt.status = 'graded'
    else:
        attempt.percentage_score = None
        attempt.passed = None
        attempt.grading_complete = False
        attempt.requires_manual_grading = True
        attempt.status = 'submitted'


def submit_attempt(db: Session, *, attempt_id: UUID, learner_id: UUID) -> Attempt:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id, kind='assessment')
    require_status(attempt, ('in_progress',), action='submit')
    subject = get_subject_config(db, attempt.subject_id, active_only=False)

    now = clock.utcnow()
    for question in attempt.questions:
        auto_grade_question(attempt, question, now)

    apply_scores(attempt, passing_score=resolve_passing_score(subject))
    attempt.time_spent_seconds = current_time_spent(attempt, now)
    attempt.submitted_at = now
    attempt.last_activity_at = now
    flush_attempt(db)

    logger.info(
        'Submitted attempt %s: status=%s raw=%s/%s manual_grading=%s',
        attempt.id,
        attempt.status,
        attempt.raw_score,
        attempt.max_score,
        attempt.requires_manual_grading,
    )
    return attempt


def grade_question(
    db: Session,
    *,
    attempt_id: UUID,
    question_index: int,
    score: float,
    feedback: str | None,
    grader_id: UUID,
) -> Attempt:
    attempt = get_attempt(db, attempt_id, kind='assessment')
    require_status(attempt, ('submitted', 'graded'), action='grade')

    questions = attempt.questions
    if question_index < 0 or question_index >= len(questions):
        raise ValidationError(f'Question index {question_index} is out of range (0-{len(questions) - 1})')
    question = questions[question_index]
    if not math.isfinite(score) or not 0 <= score <= question.points_possible:
        raise ValidationError(f'Score must be between 0 and {question.points_possible}')

    subject = get_subject_config(db, attempt.subject_id, active_only=False)
    now = clock.utcnow()
    question.points_earned = float(score)
    question.is_correct = float(score) == question.points_possible
    question.feedback = feedback
    question.graded_at = now
    question.graded_by = grader_id

    apply_scores(attempt, passing_score=resolve_passing_score(subject))
    flush_attempt(db)

    logger.info(
        'Graded question %s of attempt %s: %s/%s by %s (attempt status=%s)',
        question_index,
        attempt.id,
        score,
        question.points_possible,
        grader_id,
        attempt.status,
    )
    return attempt


def abandon_attempt(db: Session, *, attempt_id: UUID, learner_id: UUID) -> Attempt:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id)
    require_status(attempt, ACTIVE_ATTEMPT_STATUS_VALUES, action='abandon')

    now = clock.utcnow()
    attempt.time_spent_seconds = current_time_spent(attempt, now)
    if attempt.kind == 'content':
        attempt.accumulated_seconds = attempt.time_spent_seconds
        attempt.active_since = None
    attempt.status = 'abandoned'
    attempt.last_activity_at = now
    flush_attempt(db)

    logger.info('Abandoned attempt %s (#%s)', attempt.id, attempt.attempt_number)
    return attempt


def list_attempts(
    db: Session,
    *,
    subject_id: UUID,
    learner_id: UUID | None = None,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Attempt], int]:
    get_subject_config(db, subject_id, active_only=False)
    page = max(page, 1)
    page_size = min(max(page_size, 1), settings.MAX_PAGE_SIZE)

    base = select(Attempt).where(Attempt.subject_id == subject_id)
    if learner_id is not None:
        base = base.where(Attempt.learner_id == learner_id)
    if status:
        base = base.where(Attempt.status == status)

    total = int(db.scalar(select(func.count()).select_from(base.subquery())) or 0)
    rows = db.scalars(
        base.order_by(Attempt.attempt_number.desc(), Attempt.started_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).all()
    return list(rows), total


def get_results(
    db: Session,
    *,
    attempt_id: UUID,
    learner_id: UUID | None,
    staff_view: bool = False,
) -> AttemptResults:
    attempt = get_attempt(db, attempt_id, learner_id=None if staff_view else learner_id, kind='assessment')
    if staff_view:
        return AttemptResults(attempt=attempt, show_correct_answers=True)

    subject = get_subject_config(db, attempt.subject_id, active_only=False)
    show = should_show_correct_answers(
        subject.feedback_setting,
        status=attempt.status,
        attempt_number=attempt.attempt_number,
        max_attempts=subject.max_attempts,
    )
    return AttemptResults(attempt=attempt, show_correct_answers=show)


def get_current_attempt(db: Session, *, subject_id: UUID, learner_id: UUID) -> Attempt | None:
    get_subject_config(db, subject_id, active_only=False)
    return find_active_attempt(db, subject_id=subject_id, learner_id=learner_id)
