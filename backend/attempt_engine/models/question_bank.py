from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from attempt_engine.db.base_class import Base
from attempt_engine.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Question(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'questions'
    __table_args__ = (
        CheckConstraint('points >= 1', name='question_points_positive'),
        CheckConstraint(
            "difficulty is null or difficulty in ('easy', 'medium', 'hard')",
            name='question_difficulty_values',
        ),
    )

    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    # Not constrained: unrecognized types are kept and routed to manual grading.
    question_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    correct_answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    correct_answers: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    matching_pairs: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    difficulty: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)


class QuestionBank(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'question_banks'

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    question_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
