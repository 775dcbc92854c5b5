"""
CMI data model mapping for SCORM 1.2 and SCORM 2004 content attempts.

Element names match the SCORM run-time data models so players can address
them directly. Elements without a column on the attempt are kept in its
whitelisted ``cmi_data`` map.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from attempt_engine.core.errors import ReadOnlyFieldError, UnknownCmiFieldError, ValidationError
from attempt_engine.modules.grading.scoring import validate_scorm_score
from attempt_engine.modules.scorm.durations import (
    format_iso_duration,
    format_timespan,
    parse_iso_duration,
    parse_timespan,
)


logger = logging.getLogger(__name__)


class CmiAttempt(Protocol):
    learner_id: Any
    learner_name: str | None
    scorm_version: str | None
    location: str | None
    suspend_data: str | None
    launch_data: str | None
    lesson_status: str | None
    completion_status: str | None
    success_status: str | None
    score_raw: float | None
    score_min: float | None
    score_max: float | None
    score_scaled: float | None
    progress_percent: float | None
    session_time_seconds: float | None
    time_spent_seconds: int
    entry: str | None
    exit_mode: str | None
    cmi_data: dict[str, Any]


@dataclass(frozen=True)
class CmiElement:
    name: str
    kind: str  # text | vocab | number | duration | constant
    attr: str | None = None
    writable: bool = True
    vocabulary: frozenset[str] = frozenset()
    max_length: int | None = None
    default: str = ''
    bounds: tuple[float, float] | None = None
    reader: Callable[[CmiAttempt], Any] | None = field(default=None, compare=False)


LESSON_STATUS_12 = frozenset({'passed', 'completed', 'failed', 'incomplete', 'browsed', 'not attempted'})
EXIT_12 = frozenset({'', 'time-out', 'suspend', 'logout'})
COMPLETION_STATUS_2004 = frozenset({'completed', 'incomplete', 'not attempted', 'unknown'})
SUCCESS_STATUS_2004 = frozenset({'passed', 'failed', 'unknown'})
EXIT_2004 = frozenset({'', 'time-out', 'suspend', 'logout', 'normal'})


def _learner_id(attempt: CmiAttempt) -> str:
    return str(attempt.learner_id)


def _learner_name(attempt: CmiAttempt) -> str:
    return attempt.learner_name or ''


def _total_time(attempt: CmiAttempt) -> float:
    return float(attempt.time_spent_seconds or 0)


def _progress_measure(attempt: CmiAttempt) -> float | None:
    if attempt.progress_percent is None:
        return None
    return round(attempt.progress_percent / 100, 4)


SCORM_12_ELEMENTS: dict[str, CmiElement] = {
    element.name: element
    for element in (
        CmiElement('cmi.core.student_id', 'text', writable=False, reader=_learner_id),
        CmiElement('cmi.core.student_name', 'text', writable=False, reader=_learner_name),
        CmiElement('cmi.core.lesson_location', 'text', attr='location', max_length=255),
        CmiElement('cmi.core.credit', 'constant', writable=False, default='credit'),
        CmiElement(
            'cmi.core.lesson_status',
            'vocab',
            attr='lesson_status',
            vocabulary=LESSON_STATUS_12,
            default='not attempted',
        ),
        CmiElement('cmi.core.entry', 'text', attr='entry', writable=False),
        CmiElement('cmi.core.score.raw', 'number', attr='score_raw'),
        CmiElement('cmi.core.score.min', 'number', attr='score_min'),
        CmiElement('cmi.core.score.max', 'number', attr='score_max'),
        CmiElement('cmi.core.total_time', 'duration', writable=False, reader=_total_time),
        CmiElement('cmi.core.lesson_mode', 'constant', writable=False, default='normal'),
        CmiElement('cmi.core.exit', 'vocab', attr='exit_mode', vocabulary=EXIT_12),
        CmiElement('cmi.core.session_time', 'duration', attr='session_time_seconds'),
        CmiElement('cmi.suspend_data', 'text', attr='suspend_data'),
        CmiElement('cmi.launch_data', 'text', attr='launch_data', writable=False),
        CmiElement('cmi.comments', 'text', max_length=4096),
        CmiElement('cmi.comments_from_lms', 'text', writable=False),
    )
}

SCORM_2004_ELEMENTS: dict[str, CmiElement] = {
    element.name: element
    for element in (
        CmiElement('cmi.learner_id', 'text', writable=False, reader=_learner_id),
        CmiElement('cmi.learner_name', 'text', writable=False, reader=_learner_name),
        CmiElement('cmi.location', 'text', attr='location', max_length=1000),
        CmiElement('cmi.credit', 'constant', writable=False, default='credit'),
        CmiElement(
            'cmi.completion_status',
            'vocab',
            attr='completion_status',
            vocabulary=COMPLETION_STATUS_2004,
            default='unknown',
        ),
        CmiElement(
            'cmi.success_status',
            'vocab',
            attr='success_status',
            vocabulary=SUCCESS_STATUS_2004,
            default='unknown',
        ),
        CmiElement('cmi.entry', 'text', attr='entry', writable=False),
        CmiElement('cmi.score.raw', 'number', attr='score_raw'),
        CmiElement('cmi.score.min', 'number', attr='score_min'),
        CmiElement('cmi.score.max', 'number', attr='score_max'),
        CmiElement('cmi.score.scaled', 'number', attr='score_scaled', bounds=(-1.0, 1.0)),
        CmiElement('cmi.progress_measure', 'number', bounds=(0.0, 1.0), reader=_progress_measure),
        CmiElement('cmi.total_time', 'duration', writable=False, reader=_total_time),
        CmiElement('cmi.mode', 'constant', writable=False, default='normal'),
        CmiElement('cmi.exit', 'vocab', attr='exit_mode', vocabulary=EXIT_2004),
        CmiElement('cmi.session_time', 'duration', attr='session_time_seconds'),
        CmiElement('cmi.suspend_data', 'text', attr='suspend_data'),
        CmiElement('cmi.launch_data', 'text', attr='launch_data', writable=False),
        CmiElement('cmi.comments_from_lms', 'text', writable=False),
    )
}

ELEMENTS_BY_VERSION = {'1.2': SCORM_12_ELEMENTS, '2004': SCORM_2004_ELEMENTS}


def elements_for(scorm_version: str | None) -> dict[str, CmiElement]:
    try:
        return ELEMENTS_BY_VERSION[scorm_version or '']
    except KeyError as exc:
        raise ValidationError(f'Unsupported SCORM version: {scorm_version}') from exc


def format_duration(scorm_version: str, seconds: float) -> str:
    return format_timespan(seconds) if scorm_version == '1.2' else format_iso_duration(seconds)


def parse_duration(scorm_version: str, value: str) -> float:
    return parse_timespan(value) if scorm_version == '1.2' else parse_iso_duration(value)


def _format_number(value: float | None) -> str:
    if value is None:
        return ''
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _raw_value(attempt: CmiAttempt, element: CmiElement) -> Any:
    if element.reader is not None:
        return element.reader(attempt)
    if element.attr is not None:
        return getattr(attempt, element.attr)
    if element.kind == 'constant':
        return element.default
    return (attempt.cmi_data or {}).get(element.name)


def read_value(attempt: CmiAttempt, element: CmiElement) -> str:
    value = _raw_value(attempt, element)
    if element.kind == 'duration':
        return format_duration(attempt.scorm_version or '2004', float(value or 0))
    if element.kind == 'number':
        return _format_number(value)
    if value is None or value == '':
        return element.default
    return str(value)


def to_cmi(attempt: CmiAttempt) -> dict[str, str]:
    """Render the attempt as the CMI element map of its SCORM version."""
    elements = elements_for(attempt.scorm_version)
    return {name: read_value(attempt, element) for name, element in elements.items()}


def suspend_data_limit(scorm_version: str, *, limit_12: int, limit_2004: int | None) -> int | None:
    return limit_12 if scorm_version == '1.2' else limit_2004


def validate_suspend_data(value: str, scorm_version: str, *, limit_12: int, limit_2004: int | None) -> str:
    limit = suspend_data_limit(scorm_version, limit_12=limit_12, limit_2004=limit_2004)
    if limit is not None and len(value) > limit:
        raise ValidationError(f'suspend_data exceeds {limit} characters for SCORM {scorm_version}')
    return value


def _parse_number(element: CmiElement, value: Any) -> float | None:
    if value is None or (isinstance(value, str) and value.strip() == ''):
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{element.name} must be a number')
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f'{element.name} must be a number') from exc
    if not math.isfinite(number):
        raise ValidationError(f'{element.name} must be a finite number')
    if element.bounds is not None and not element.bounds[0] <= number <= element.bounds[1]:
        raise ValidationError(f'{element.name} must be between {element.bounds[0]} and {element.bounds[1]}')
    return number


def _parse_value(element: CmiElement, value: Any, scorm_version: str, limits: Mapping[str, int | None]) -> Any:
    if element.kind == 'number':
        return _parse_number(element, value)

    if not isinstance(value, str):
        raise ValidationError(f'{element.name} must be a string')

    if element.kind == 'vocab':
        normalized = value.strip().lower()
        if normalized not in element.vocabulary:
            raise ValidationError(f'Invalid value for {element.name}: {value!r}')
        return normalized
    if element.kind == 'duration':
        try:
            return parse_duration(scorm_version, value)
        except ValueError as exc:
            raise ValidationError(f'Invalid value for {element.name}: {value!r}') from exc
    if element.name == 'cmi.suspend_data':
        return validate_suspend_data(
            value,
            scorm_version,
            limit_12=limits['1.2'],
            limit_2004=limits['2004'],
        )
    if element.max_length is not None and len(value) > element.max_length:
        raise ValidationError(f'{element.name} exceeds {element.max_length} characters')
    return value


def apply_cmi_values(
    attempt: CmiAttempt,
    values: Mapping[str, Any],
    *,
    suspend_data_limit_12: int,
    suspend_data_limit_2004: int | None,
) -> list[str]:
    """
    Validate and write a batch of CMI values onto the attempt.

    The batch is all-or-nothing: every value is validated (including the
    combined score ranges) before anything is written. Returns the element
    names written, in request order.
    """
    scorm_version = attempt.scorm_version or ''
    elements = elements_for(scorm_version)
    limits = {'1.2': suspend_data_limit_12, '2004': suspend_data_limit_2004}

    parsed: list[tuple[CmiElement, Any]] = []
    for name, value in values.items():
        element = elements.get(name)
        if element is None:
            logger.warning('Rejected unknown CMI element %s for SCORM %s', name, scorm_version)
            raise UnknownCmiFieldError(name)
        if not element.writable:
            raise ReadOnlyFieldError(name)
        parsed.append((element, _parse_value(element, value, scorm_version, limits)))

    scores = {
        'score_raw': attempt.score_raw,
        'score_min': attempt.score_min,
        'score_max': attempt.score_max,
        'score_scaled': attempt.score_scaled,
    }
    for element, value in parsed:
        if element.attr in scores:
            scores[element.attr] = value
    validate_scorm_score(**scores)

    extra = dict(attempt.cmi_data or {})
    for element, value in parsed:
        if element.name == 'cmi.progress_measure':
            attempt.progress_percent = None if value is None else round(value * 100, 2)
        elif element.attr is not None:
            setattr(attempt, element.attr, value)
        else:
            extra[element.name] = value
    # Reassign so the JSON column is flagged dirty.
    attempt.cmi_data = extra

    return [element.name for element, _ in parsed]
