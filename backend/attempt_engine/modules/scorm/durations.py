"""SCORM time formats: CMITimespan (1.2) and ISO-8601 durations (2004)."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal

_TIMESPAN_RE = re.compile(r'^(?P<h>\d{2,4}):(?P<m>[0-5]\d):(?P<s>[0-5]\d)(?P<frac>\.\d{1,2})?$')
_ISO_DURATION_RE = re.compile(
    r'^P(?!$)'
    r'(?:(?P<years>\d+)Y)?'
    r'(?:(?P<months>\d+)M)?'
    r'(?:(?P<days>\d+)D)?'
    r'(?:T(?=\d)(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d{1,2})?)S)?)?$'
)

# SCORM 2004 RTE approximations for calendar units.
_SECONDS_PER_YEAR = 365 * 24 * 3600
_SECONDS_PER_MONTH = 30 * 24 * 3600
_SECONDS_PER_DAY = 24 * 3600


def _split(total_seconds: float) -> tuple[int, int, Decimal]:
    total = Decimal(str(max(total_seconds, 0))).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    hours = int(total // 3600)
    minutes = int((total % 3600) // 60)
    seconds = total % 60
    return hours, minutes, seconds


def format_timespan(total_seconds: float) -> str:
    hours, minutes, seconds = _split(total_seconds)
    hours = min(hours, 9999)
    whole = int(seconds)
    text = f'{hours:02d}:{minutes:02d}:{whole:02d}'
    if seconds != whole:
        text += f'.{int((seconds - whole) * 100):02d}'
    return text


def parse_timespan(value: str) -> float:
    match = _TIMESPAN_RE.match(value.strip())
    if not match:
        raise ValueError(f'Invalid CMITimespan: {value!r}')
    seconds = int(match['h']) * 3600 + int(match['m']) * 60 + int(match['s'])
    if match['frac']:
        seconds += float(match['frac'])
    return float(seconds)


def format_iso_duration(total_seconds: float) -> str:
    hours, minutes, seconds = _split(total_seconds)
    seconds_text = str(int(seconds)) if seconds == int(seconds) else f'{seconds.normalize()}'
    return f'PT{hours}H{minutes}M{seconds_text}S'


def parse_iso_duration(value: str) -> float:
    match = _ISO_DURATION_RE.match(value.strip())
    if not match:
        raise ValueError(f'Invalid ISO-8601 duration: {value!r}')
    parts = {key: float(raw) if raw else 0.0 for key, raw in match.groupdict().items()}
    return (
        parts['years'] * _SECONDS_PER_YEAR
        + parts['months'] * _SECONDS_PER_MONTH
        + parts['days'] * _SECONDS_PER_DAY
        + parts['hours'] * 3600
        + parts['minutes'] * 60
        + parts['seconds']
    )
