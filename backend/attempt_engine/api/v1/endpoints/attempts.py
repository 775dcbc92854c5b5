from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from attempt_engine.api.deps import CurrentLearner, get_current_learner, require_roles
from attempt_engine.db.session import get_db
from attempt_engine.models.constants import ATTEMPT_STATUS_VALUES
from attempt_engine.schemas.attempt import (
    AttemptListResponse,
    AttemptOut,
    AttemptResultsOut,
    AttemptSummaryOut,
    CurrentAttemptResponse,
    GradeQuestionIn,
    SaveProgressIn,
)
from attempt_engine.schemas.common import PaginationMeta
from attempt_engine.services import attempt_service


router = APIRouter(tags=['attempts'])


def _results_out(results: attempt_service.AttemptResults) -> AttemptResultsOut:
    out = AttemptResultsOut.from_attempt(results.attempt, reveal=results.show_correct_answers)
    out.correct_answers_visible = results.show_correct_answers
    return out


@router.post('/assessments/{subject_id}/attempts', response_model=AttemptOut, status_code=status.HTTP_201_CREATED)
def start_attempt(
    subject_id: UUID,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> AttemptOut:
    attempt = attempt_service.start_attempt(
        db,
        subject_id=subject_id,
        learner_id=current.id,
        learner_name=current.name,
    )
    db.commit()
    return AttemptOut.from_attempt(attempt)


@router.get('/assessments/{subject_id}/attempts', response_model=AttemptListResponse)
def list_attempts(
    subject_id: UUID,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    status_filter: str | None = Query(default=None, alias='status'),
    learner_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> AttemptListResponse:
    if status_filter is not None and status_filter not in ATTEMPT_STATUS_VALUES:
        status_filter = None
    # Learners only ever see their own attempts.
    if not current.is_grader:
        learner_id = current.id

    attempts, total = attempt_service.list_attempts(
        db,
        subject_id=subject_id,
        learner_id=learner_id,
        status=status_filter,
        page=page,
        page_size=page_size,
    )
    return AttemptListResponse(
        items=[AttemptSummaryOut.model_validate(attempt) for attempt in attempts],
        meta=PaginationMeta(page=page, page_size=page_size, total=total),
    )


@router.get('/assessments/{subject_id}/attempts/current', response_model=CurrentAttemptResponse)
def current_attempt(
    subject_id: UUID,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> CurrentAttemptResponse:
    attempt = attempt_service.get_current_attempt(db, subject_id=subject_id, learner_id=current.id)
    return CurrentAttemptResponse(attempt=AttemptOut.from_attempt(attempt) if attempt else None)


@router.put('/attempts/{attempt_id}/responses', response_model=AttemptOut)
def save_progress(
    attempt_id: UUID,
    payload: SaveProgressIn,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> AttemptOut:
    attempt = attempt_service.save_progress(
        db,
        attempt_id=attempt_id,
        learner_id=current.id,
        responses=[(item.question_id, item.response) for item in payload.responses],
    )
    db.commit()
    return AttemptOut.from_attempt(attempt)


@router.post('/attempts/{attempt_id}/submit', response_model=AttemptResultsOut)
def submit_attempt(
    attempt_id: UUID,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> AttemptResultsOut:
    attempt_service.submit_attempt(db, attempt_id=attempt_id, learner_id=current.id)
    db.commit()
    results = attempt_service.get_results(db, attempt_id=attempt_id, learner_id=current.id)
    return _results_out(results)


@router.post('/attempts/{attempt_id}/abandon', response_model=AttemptSummaryOut)
def abandon_attempt(
    attempt_id: UUID,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> AttemptSummaryOut:
    attempt = attempt_service.abandon_attempt(db, attempt_id=attempt_id, learner_id=current.id)
    db.commit()
    return AttemptSummaryOut.model_validate(attempt)


@router.post('/attempts/{attempt_id}/questions/{question_index}/grade', response_model=AttemptResultsOut)
def grade_question(
    attempt_id: UUID,
    question_index: int,
    payload: GradeQuestionIn,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(require_roles('instructor', 'admin')),
) -> AttemptResultsOut:
    attempt_service.grade_question(
        db,
        attempt_id=attempt_id,
        question_index=question_index,
        score=payload.score,
        feedback=payload.feedback,
        grader_id=current.id,
    )
    db.commit()
    results = attempt_service.get_results(db, attempt_id=attempt_id, learner_id=None, staff_view=True)
    return _results_out(results)


@router.get('/attempts/{attempt_id}/results', response_model=AttemptResultsOut)
def get_results(
    attempt_id: UUID,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> AttemptResultsOut:
    results = attempt_service.get_results(
        db,
        attempt_id=attempt_id,
        learner_id=current.id,
        staff_view=current.is_grader,
    )
    return _results_out(results)
