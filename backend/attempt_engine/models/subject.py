from sqlalchemy import Boolean, CheckConstraint, Float, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from attempt_engine.db.base_class import Base
from attempt_engine.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Subject(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Gradeable unit configuration: a formal assessment or a SCORM content item."""

    __tablename__ = 'subjects'
    __table_args__ = (
        CheckConstraint("kind in ('assessment', 'content')", name='subject_kind_values'),
        CheckConstraint(
            "feedback_setting in ('never', 'after_submit', 'after_all_attempts')",
            name='subject_feedback_setting_values',
        ),
        CheckConstraint(
            "selection_mode in ('sequential', 'random', 'weighted')",
            name='subject_selection_mode_values',
        ),
        CheckConstraint("scorm_version is null or scorm_version in ('1.2', '2004')", name='subject_scorm_version_values'),
        CheckConstraint('max_attempts is null or max_attempts >= 1', name='subject_max_attempts_positive'),
    )

    kind: Mapped[str] = mapped_column(String(30), nullable=False, default='assessment', index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    max_attempts: Mapped[int | None] = mapped_column(Integer, nullable=True)
    time_limit_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    passing_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    feedback_setting: Mapped[str] = mapped_column(String(30), nullable=False, default='after_submit')

    bank_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    question_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    selection_mode: Mapped[str] = mapped_column(String(30), nullable=False, default='sequential')
    filter_tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    filter_difficulties: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    selection_seed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weighting_strategy: Mapped[str] = mapped_column(String(50), nullable=False, default='difficulty')

    scorm_version: Mapped[str | None] = mapped_column(String(10), nullable=True)
    launch_data: Mapped[str | None] = mapped_column(Text, nullable=True)
