from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from attempt_engine.api.deps import CurrentLearner, get_current_learner
from attempt_engine.db.session import get_db
from attempt_engine.modules.scorm import to_cmi
from attempt_engine.schemas.content_attempt import (
    CmiDataOut,
    CmiUpdateIn,
    CmiUpdateOut,
    ContentAttemptOut,
    ContentCompleteIn,
    ContentProgressUpdate,
    ResumeOut,
    SuspendIn,
)
from attempt_engine.services import content_attempt_service


router = APIRouter(tags=['content-attempts'])


@router.post('/content/{subject_id}/attempts', response_model=ContentAttemptOut, status_code=status.HTTP_201_CREATED)
def start_content_attempt(
    subject_id: UUID,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> ContentAttemptOut:
    attempt = content_attempt_service.start_content_attempt(
        db,
        subject_id=subject_id,
        learner_id=current.id,
        learner_name=current.name,
    )
    db.commit()
    return ContentAttemptOut.model_validate(attempt)


@router.patch('/content-attempts/{attempt_id}', response_model=ContentAttemptOut)
def update_progress(
    attempt_id: UUID,
    payload: ContentProgressUpdate,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> ContentAttemptOut:
    attempt = content_attempt_service.update_content_progress(
        db,
        attempt_id=attempt_id,
        learner_id=current.id,
        **payload.model_dump(exclude_unset=True),
    )
    db.commit()
    return ContentAttemptOut.model_validate(attempt)


@router.post('/content-attempts/{attempt_id}/complete', response_model=ContentAttemptOut)
def complete_attempt(
    attempt_id: UUID,
    payload: ContentCompleteIn,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> ContentAttemptOut:
    attempt = content_attempt_service.complete_content_attempt(
        db,
        attempt_id=attempt_id,
        learner_id=current.id,
        passed=payload.passed,
        score=payload.score,
    )
    db.commit()
    return ContentAttemptOut.model_validate(attempt)


@router.post('/content-attempts/{attempt_id}/suspend', response_model=ContentAttemptOut)
def suspend_attempt(
    attempt_id: UUID,
    payload: SuspendIn,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> ContentAttemptOut:
    attempt = content_attempt_service.suspend_attempt(
        db,
        attempt_id=attempt_id,
        learner_id=current.id,
        suspend_data=payload.suspend_data,
        location=payload.location,
    )
    db.commit()
    return ContentAttemptOut.model_validate(attempt)


@router.post('/content-attempts/{attempt_id}/resume', response_model=ResumeOut)
def resume_attempt(
    attempt_id: UUID,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> ResumeOut:
    attempt = content_attempt_service.resume_attempt(db, attempt_id=attempt_id, learner_id=current.id)
    db.commit()
    return ResumeOut(
        attempt=ContentAttemptOut.model_validate(attempt),
        suspend_data=attempt.suspend_data,
        location=attempt.location,
        cmi=to_cmi(attempt) if attempt.scorm_version else {},
    )


@router.get('/content-attempts/{attempt_id}/cmi', response_model=CmiDataOut)
def get_cmi_data(
    attempt_id: UUID,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> CmiDataOut:
    attempt, values = content_attempt_service.get_cmi_data(db, attempt_id=attempt_id, learner_id=current.id)
    return CmiDataOut(attempt_id=attempt.id, scorm_version=attempt.scorm_version, values=values)


@router.put('/content-attempts/{attempt_id}/cmi', response_model=CmiUpdateOut)
def update_cmi_data(
    attempt_id: UUID,
    payload: CmiUpdateIn,
    db: Session = Depends(get_db),
    current: CurrentLearner = Depends(get_current_learner),
) -> CmiUpdateOut:
    attempt, updated = content_attempt_service.update_cmi_data(
        db,
        attempt_id=attempt_id,
        learner_id=current.id,
        values=payload.values,
    )
    db.commit()
    return CmiUpdateOut(
        attempt_id=attempt.id,
        scorm_version=attempt.scorm_version,
        values=to_cmi(attempt),
        updated=updated,
    )
