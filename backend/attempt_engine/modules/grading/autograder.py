"""
Per-type auto-grading of frozen question snapshots.

Each grader is a pure function ``(snapshot, response, points_possible) -> GradeResult``
registered in ``GRADERS`` under the question type it handles. Types without a
grader (essay, anything unrecognized) are left for a human.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


@dataclass(frozen=True)
class GradeResult:
    graded: bool
    is_correct: bool
    points_earned: float


NOT_GRADED = GradeResult(graded=False, is_correct=False, points_earned=0.0)

Grader = Callable[[Mapping[str, Any], Any, float], GradeResult]

GRADERS: dict[str, Grader] = {}


def register_grader(*question_types: str) -> Callable[[Grader], Grader]:
    def decorator(func: Grader) -> Grader:
        for question_type in question_types:
            GRADERS[question_type] = func
        return func

    return decorator


def is_blank_response(response: Any) -> bool:
    if response is None:
        return True
    if isinstance(response, str):
        return response.strip() == ''
    if isinstance(response, (dict, list)):
        return len(response) == 0
    return False


def _all_or_nothing(is_correct: bool, points_possible: float) -> GradeResult:
    return GradeResult(graded=True, is_correct=is_correct, points_earned=float(points_possible) if is_correct else 0.0)


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


@register_grader('multiple-choice', 'true-false')
def grade_single_answer(snapshot: Mapping[str, Any], response: Any, points_possible: float) -> GradeResult:
    correct_answer = snapshot.get('correct_answer')
    if correct_answer is None:
        return NOT_GRADED
    is_correct = _text(response).casefold() == _text(correct_answer).casefold()
    return _all_or_nothing(is_correct, points_possible)


@register_grader('short-answer', 'fill-blank')
def grade_text_answer(snapshot: Mapping[str, Any], response: Any, points_possible: float) -> GradeResult:
    accepted = [snapshot.get('correct_answer'), *(snapshot.get('correct_answers') or [])]
    accepted = {_text(answer).strip().casefold() for answer in accepted if answer is not None}
    if not accepted:
        return NOT_GRADED
    is_correct = _text(response).strip().casefold() in accepted
    return _all_or_nothing(is_correct, points_possible)


@register_grader('matching')
def grade_matching(snapshot: Mapping[str, Any], response: Any, points_possible: float) -> GradeResult:
    correct_pairs = snapshot.get('matching_pairs') or {}
    if not isinstance(correct_pairs, Mapping) or not correct_pairs:
        return NOT_GRADED
    answered = response if isinstance(response, Mapping) else {}

    correct_count = sum(1 for key, value in correct_pairs.items() if answered.get(key) == value)
    total_pairs = len(correct_pairs)
    earned = (Decimal(str(points_possible)) * correct_count / total_pairs).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return GradeResult(
        graded=True,
        is_correct=correct_count == total_pairs,
        points_earned=float(min(earned, Decimal(str(points_possible)))),
    )


def grade(snapshot: Mapping[str, Any], response: Any, points_possible: float) -> GradeResult:
    grader = GRADERS.get(snapshot.get('question_type') or '')
    if grader is None:
        return NOT_GRADED
    if is_blank_response(response):
        return GradeResult(graded=True, is_correct=False, points_earned=0.0)
    return grader(snapshot, response, points_possible)


def is_auto_gradable(question_type: str | None) -> bool:
    return (question_type or '') in GRADERS
