from dataclasses import dataclass

import pytest

from attempt_engine.core.errors import ValidationError
from attempt_engine.modules.grading.scoring import is_passing, percentage, round2, summarize, validate_scorm_score


@dataclass
class _Question:
    points_possible: float
    points_earned: float | None


def test_summarize_counts_only_graded_questions() -> None:
    summary = summarize([_Question(10, 10), _Question(10, 0), _Question(5, None)])

    assert summary.raw_score == 10.0
    assert summary.max_score == 25.0
    assert summary.graded_count == 2
    assert not summary.all_graded


def test_summarize_fully_graded() -> None:
    summary = summarize([_Question(10, 10), _Question(10, 0), _Question(5, 4)])

    assert summary.all_graded
    assert summary.raw_score == 14.0
    assert summary.percentage_score == 56.0


def test_percentage_guards_zero_total() -> None:
    assert percentage(0, 0) == 0.0
    assert summarize([]).percentage_score == 0.0


def test_percentage_rounds_to_two_places_half_up() -> None:
    assert percentage(1, 3) == 33.33
    assert percentage(2, 3) == 66.67
    assert round2(0.125) == 0.13


def test_passing_threshold_is_inclusive() -> None:
    assert is_passing(70.0, 70.0)
    assert not is_passing(69.99, 70.0)


def test_scorm_score_accepts_values_in_range() -> None:
    validate_scorm_score(score_raw=50, score_min=0, score_max=100, score_scaled=0.5)
    validate_scorm_score(score_raw=None, score_min=None, score_max=None, score_scaled=-1)


@pytest.mark.parametrize(
    'scores',
    [
        {'score_raw': None, 'score_min': None, 'score_max': None, 'score_scaled': 1.5},
        {'score_raw': None, 'score_min': 10, 'score_max': 5, 'score_scaled': None},
        {'score_raw': 120, 'score_min': 0, 'score_max': 100, 'score_scaled': None},
    ],
)
def test_scorm_score_rejects_out_of_range_values(scores) -> None:
    with pytest.raises(ValidationError):
        validate_scorm_score(**scores)
