from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from attempt_engine.core.errors import ValidationError


class ScoredQuestion(Protocol):
    points_possible: float
    points_earned: float | None


@dataclass(frozen=True)
class ScoreSummary:
    raw_score: float
    max_score: float
    percentage_score: float
    graded_count: int
    question_count: int

    @property
    def all_graded(self) -> bool:
        return self.graded_count == self.question_count


def round2(value: float | Decimal) -> float:
    return float(Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def percentage(raw_score: float, max_score: float) -> float:
    if max_score <= 0:
        return 0.0
    return round2(Decimal(str(raw_score)) / Decimal(str(max_score)) * 100)


def summarize(questions: Iterable[ScoredQuestion]) -> ScoreSummary:
    raw = Decimal('0')
    total = Decimal('0')
    graded = 0
    count = 0
    for question in questions:
        count += 1
        total += Decimal(str(question.points_possible))
        if question.points_earned is not None:
            raw += Decimal(str(question.points_earned))
            graded += 1
    return ScoreSummary(
        raw_score=float(raw),
        max_score=float(total),
        percentage_score=percentage(float(raw), float(total)),
        graded_count=graded,
        question_count=count,
    )


def is_passing(percentage_score: float, passing_score: float) -> bool:
    return percentage_score >= passing_score


def validate_scorm_score(
    *,
    score_raw: float | None,
    score_min: float | None,
    score_max: float | None,
    score_scaled: float | None,
) -> None:
    """Reject SCORM score combinations outside the CMI ranges; values are never clamped."""
    if score_scaled is not None and not -1 <= score_scaled <= 1:
        raise ValidationError(f'score.scaled must be between -1 and 1, got {score_scaled}')
    if score_min is not None and score_max is not None and score_min > score_max:
        raise ValidationError(f'score.min ({score_min}) cannot exceed score.max ({score_max})')
    if score_raw is not None and score_min is not None and score_max is not None:
        if not score_min <= score_raw <= score_max:
            raise ValidationError(f'score.raw ({score_raw}) must be within [{score_min}, {score_max}]')
