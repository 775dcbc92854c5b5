from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from attempt_engine.schemas.common import BaseSchema


class ContentAttemptOut(BaseSchema):
    id: UUID
    subject_id: UUID
    learner_id: UUID
    attempt_number: int
    status: str
    scorm_version: str | None
    progress_percent: float | None
    location: str | None
    lesson_status: str | None
    completion_status: str | None
    success_status: str | None
    score_raw: float | None
    score_min: float | None
    score_max: float | None
    score_scaled: float | None
    passed: bool | None
    entry: str | None
    exit_mode: str | None
    time_spent_seconds: int
    session_time_seconds: float | None
    started_at: datetime
    last_activity_at: datetime
    completed_at: datetime | None


class ContentProgressUpdate(BaseModel):
    progress_percent: float | None = Field(default=None, ge=0, le=100)
    score_raw: float | None = None
    score_min: float | None = None
    score_max: float | None = None
    score_scaled: float | None = None
    location: str | None = Field(default=None, max_length=1000)
    suspend_data: str | None = None


class ContentCompleteIn(BaseModel):
    passed: bool | None = None
    score: float | None = Field(default=None, ge=0, le=100)


class SuspendIn(BaseModel):
    suspend_data: str | None = None
    location: str | None = Field(default=None, max_length=1000)


class ResumeOut(BaseModel):
    attempt: ContentAttemptOut
    suspend_data: str | None
    location: str | None
    cmi: dict[str, str]


class CmiDataOut(BaseModel):
    attempt_id: UUID
    scorm_version: str
    values: dict[str, str]


class CmiUpdateIn(BaseModel):
    values: dict[str, Any] = Field(min_length=1)


class CmiUpdateOut(CmiDataOut):
    updated: list[str]
