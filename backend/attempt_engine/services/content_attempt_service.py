import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from attempt_engine.core import clock
from attempt_engine.core.config import settings
from attempt_engine.core.errors import ConflictError, InvalidStateError, ValidationError
from attempt_engine.models.attempt import Attempt
from attempt_engine.models.constants import (
    ACTIVE_ATTEMPT_STATUS_VALUES,
    CONTENT_COMPLETION_STATUS_VALUES,
    SCORM_VERSION_VALUES,
)
from attempt_engine.modules.grading import is_passing, validate_scorm_score
from attempt_engine.modules.scorm import apply_cmi_values, to_cmi, validate_suspend_data
from attempt_engine.services.attempt_service import (
    ACTIVE_CONFLICT_MESSAGE,
    current_time_spent,
    enforce_time_limit,
    flush_attempt,
    get_attempt,
    next_attempt_number,
    require_status,
    resolve_passing_score,
)
from attempt_engine.services.subject_service import get_subject_config


logger = logging.getLogger(__name__)


def _touch(attempt: Attempt, now: datetime) -> None:
    attempt.time_spent_seconds = current_time_spent(attempt, now)
    attempt.last_activity_at = now


def _bank_session_time(attempt: Attempt, now: datetime) -> None:
    _touch(attempt, now)
    attempt.accumulated_seconds = attempt.time_spent_seconds
    attempt.active_since = None


def _check_suspend_data(attempt: Attempt, suspend_data: str) -> str:
    return validate_suspend_data(
        suspend_data,
        attempt.scorm_version or '2004',
        limit_12=settings.SCORM_12_SUSPEND_DATA_LIMIT,
        limit_2004=settings.SCORM_2004_SUSPEND_DATA_LIMIT,
    )


def _require_scorm(attempt: Attempt) -> str:
    if attempt.scorm_version not in SCORM_VERSION_VALUES:
        raise ValidationError('Attempt has no SCORM data model')
    return attempt.scorm_version


def _reports_finish(attempt: Attempt, updated: list[str]) -> bool:
    if 'cmi.core.lesson_status' in updated and attempt.lesson_status in ('completed', 'passed', 'failed'):
        return True
    if 'cmi.completion_status' in updated and attempt.completion_status == 'completed':
        return True
    return 'cmi.success_status' in updated and attempt.success_status in ('passed', 'failed')


def start_content_attempt(
    db: Session,
    *,
    subject_id: UUID,
    learner_id: UUID,
    learner_name: str | None = None,
) -> Attempt:
    subject = get_subject_config(db, subject_id, kind='content')
    attempt_number = next_attempt_number(db, subject=subject, learner_id=learner_id)

    now = clock.utcnow()
    attempt = Attempt(
        subject_id=subject.id,
        learner_id=learner_id,
        learner_name=learner_name,
        kind='content',
        attempt_number=attempt_number,
        status='in_progress',
        started_at=now,
        last_activity_at=now,
        time_spent_seconds=0,
        time_limit_seconds=subject.time_limit_seconds,
        accumulated_seconds=0,
        active_since=now,
        grading_complete=False,
        requires_manual_grading=False,
        scorm_version=subject.scorm_version,
        launch_data=subject.launch_data,
        progress_percent=0.0,
        entry='ab-initio',
        completion_status='incomplete',
        cmi_data={},
    )
    if subject.scorm_version == '1.2':
        attempt.lesson_status = 'incomplete'
    else:
        attempt.success_status = 'unknown'
    db.add(attempt)
    flush_attempt(db, conflict_message=ACTIVE_CONFLICT_MESSAGE)

    logger.info(
        'Started content attempt %s (#%s) on subject %s for learner %s (SCORM %s)',
        attempt.id,
        attempt_number,
        subject.id,
        learner_id,
        subject.scorm_version or 'n/a',
    )
    return attempt


def update_content_progress(
    db: Session,
    *,
    attempt_id: UUID,
    learner_id: UUID,
    progress_percent: float | None = None,
    score_raw: float | None = None,
    score_min: float | None = None,
    score_max: float | None = None,
    score_scaled: float | None = None,
    location: str | None = None,
    suspend_data: str | None = None,
) -> Attempt:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id, kind='content')
    require_status(attempt, ('in_progress',), action='update progress on')
    now = clock.utcnow()
    enforce_time_limit(attempt, now)

    if progress_percent is not None and not 0 <= progress_percent <= 100:
        raise ValidationError('progress_percent must be between 0 and 100')
    scores = {
        'score_raw': attempt.score_raw if score_raw is None else score_raw,
        'score_min': attempt.score_min if score_min is None else score_min,
        'score_max': attempt.score_max if score_max is None else score_max,
        'score_scaled': attempt.score_scaled if score_scaled is None else score_scaled,
    }
    validate_scorm_score(**scores)
    if suspend_data is not None:
        _check_suspend_data(attempt, suspend_data)

    if progress_percent is not None:
        attempt.progress_percent = progress_percent
    for attr, value in scores.items():
        setattr(attempt, attr, value)
    if location is not None:
        attempt.location = location
    if suspend_data is not None:
        attempt.suspend_data = suspend_data

    _touch(attempt, now)
    flush_attempt(db)
    return attempt


def _resolve_verdict(
    attempt: Attempt,
    *,
    passed: bool | None,
    score: float | None,
    passing_score: float,
) -> bool | None:
    if passed is not None:
        return passed
    if score is not None:
        return is_passing(score, passing_score)
    for reported in (attempt.success_status, attempt.lesson_status):
        if reported in ('passed', 'failed'):
            return reported == 'passed'
    return None


def complete_content_attempt(
    db: Session,
    *,
    attempt_id: UUID,
    learner_id: UUID,
    passed: bool | None = None,
    score: float | None = None,
) -> Attempt:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id, kind='content')
    if attempt.status in CONTENT_COMPLETION_STATUS_VALUES:
        logger.warning('Rejected completion of attempt %s: already %s', attempt.id, attempt.status)
        raise ConflictError('Attempt already completed')
    require_status(attempt, ACTIVE_ATTEMPT_STATUS_VALUES, action='complete')

    subject = get_subject_config(db, attempt.subject_id, active_only=False)
    verdict = _resolve_verdict(attempt, passed=passed, score=score, passing_score=resolve_passing_score(subject))

    _finish(attempt, verdict=verdict, score=score, now=clock.utcnow())
    flush_attempt(db)

    logger.info('Completed content attempt %s as %s', attempt.id, attempt.status)
    return attempt


def _finish(attempt: Attempt, *, verdict: bool | None, score: float | None, now: datetime) -> None:
    _bank_session_time(attempt, now)
    if verdict is None:
        attempt.status = 'completed'
    else:
        attempt.status = 'passed' if verdict else 'failed'
        attempt.success_status = attempt.status
    attempt.passed = verdict
    if score is not None:
        attempt.percentage_score = score
    attempt.completion_status = 'completed'
    if attempt.scorm_version == '1.2':
        attempt.lesson_status = attempt.status
    attempt.progress_percent = 100.0
    attempt.completed_at = now


def suspend_attempt(
    db: Session,
    *,
    attempt_id: UUID,
    learner_id: UUID,
    suspend_data: str | None = None,
    location: str | None = None,
) -> Attempt:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id, kind='content')
    if attempt.status == 'suspended':
        logger.warning('Rejected suspend of attempt %s: already suspended', attempt.id)
        raise InvalidStateError('Attempt is already suspended')
    require_status(attempt, ('in_progress',), action='suspend')
    now = clock.utcnow()
    enforce_time_limit(attempt, now)

    if suspend_data is not None:
        attempt.suspend_data = _check_suspend_data(attempt, suspend_data)
    if location is not None:
        attempt.location = location

    _bank_session_time(attempt, now)
    attempt.status = 'suspended'
    attempt.exit_mode = 'suspend'
    flush_attempt(db)

    logger.info('Suspended attempt %s after %ss', attempt.id, attempt.time_spent_seconds)
    return attempt


def resume_attempt(db: Session, *, attempt_id: UUID, learner_id: UUID) -> Attempt:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id, kind='content')
    require_status(attempt, ('suspended',), action='resume')

    now = clock.utcnow()
    enforce_time_limit(attempt, now)
    attempt.status = 'in_progress'
    attempt.active_since = now
    attempt.entry = 'resume'
    attempt.exit_mode = None
    attempt.last_activity_at = now
    flush_attempt(db)

    logger.info('Resumed attempt %s', attempt.id)
    return attempt


def get_cmi_data(db: Session, *, attempt_id: UUID, learner_id: UUID) -> tuple[Attempt, dict[str, str]]:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id, kind='content')
    _require_scorm(attempt)
    return attempt, to_cmi(attempt)


def update_cmi_data(
    db: Session,
    *,
    attempt_id: UUID,
    learner_id: UUID,
    values: dict[str, Any],
) -> tuple[Attempt, list[str]]:
    attempt = get_attempt(db, attempt_id, learner_id=learner_id, kind='content')
    scorm_version = _require_scorm(attempt)
    require_status(attempt, ('in_progress',), action='write CMI data on')
    now = clock.utcnow()
    enforce_time_limit(attempt, now)

    updated = apply_cmi_values(
        attempt,
        values,
        suspend_data_limit_12=settings.SCORM_12_SUSPEND_DATA_LIMIT,
        suspend_data_limit_2004=settings.SCORM_2004_SUSPEND_DATA_LIMIT,
    )
    finished = _reports_finish(attempt, updated)
    if finished:
        # The player ended the attempt through its status elements.
        subject = get_subject_config(db, attempt.subject_id, active_only=False)
        verdict = _resolve_verdict(attempt, passed=None, score=None, passing_score=resolve_passing_score(subject))
        _finish(attempt, verdict=verdict, score=None, now=now)
    else:
        _touch(attempt, now)
    flush_attempt(db)

    logger.info('Wrote %s CMI elements on attempt %s (SCORM %s)', len(updated), attempt.id, scorm_version)
    if finished:
        logger.info('Content attempt %s finished by the player as %s', attempt.id, attempt.status)
    return attempt, updated
