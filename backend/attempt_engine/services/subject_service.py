from uuid import UUID

from sqlalchemy.orm import Session

from attempt_engine.core.errors import NotFoundError
from attempt_engine.models.subject import Subject
from attempt_engine.schemas.subject import SubjectConfig


def get_subject(db: Session, subject_id: UUID, *, kind: str | None = None, active_only: bool = True) -> Subject:
    subject = db.get(Subject, subject_id)
    if not subject or (active_only and not subject.is_active):
        raise NotFoundError('Subject not found')
    if kind is not None and subject.kind != kind:
        raise NotFoundError(f'Subject is not configured for {kind} attempts')
    return subject


def get_subject_config(
    db: Session,
    subject_id: UUID,
    *,
    kind: str | None = None,
    active_only: bool = True,
) -> SubjectConfig:
    return SubjectConfig.model_validate(get_subject(db, subject_id, kind=kind, active_only=active_only))
