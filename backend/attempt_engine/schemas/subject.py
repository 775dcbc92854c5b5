from uuid import UUID

from pydantic import ConfigDict, Field

from attempt_engine.modules.grading.selection import SelectionConfig
from attempt_engine.schemas.common import BaseSchema


class SubjectConfig(BaseSchema):
    """Immutable view of a subject's attempt settings, passed explicitly to the engine."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)

    id: UUID
    kind: str
    title: str
    is_active: bool = True
    max_attempts: int | None = Field(default=None, ge=1)
    time_limit_seconds: int | None = Field(default=None, ge=1)
    passing_score: float | None = Field(default=None, ge=0, le=100)
    feedback_setting: str = 'after_submit'

    bank_ids: list[str] = Field(default_factory=list)
    question_count: int | None = Field(default=None, ge=1)
    selection_mode: str = 'sequential'
    filter_tags: list[str] = Field(default_factory=list)
    filter_difficulties: list[str] = Field(default_factory=list)
    selection_seed: int | None = None
    weighting_strategy: str = 'difficulty'

    scorm_version: str | None = None
    launch_data: str | None = None

    @property
    def selection(self) -> SelectionConfig:
        return SelectionConfig(
            bank_ids=self.bank_ids,
            question_count=self.question_count,
            selection_mode=self.selection_mode,
            filter_tags=self.filter_tags,
            filter_difficulties=self.filter_difficulties,
            seed=self.selection_seed,
            weighting_strategy=self.weighting_strategy,
        )
