import pytest

from attempt_engine.modules.scorm.durations import (
    format_iso_duration,
    format_timespan,
    parse_iso_duration,
    parse_timespan,
)


@pytest.mark.parametrize(
    ('seconds', 'expected'),
    [(0, '00:00:00'), (3723.5, '01:02:03.50'), (45296, '12:34:56'), (360000, '100:00:00')],
)
def test_format_timespan(seconds, expected) -> None:
    assert format_timespan(seconds) == expected


def test_parse_timespan() -> None:
    assert parse_timespan('0001:02:03.5') == 3723.5
    assert parse_timespan('00:10:00') == 600.0


@pytest.mark.parametrize('value', ['1:2:3', '00:60:00', '00:00:61', 'PT1H', ''])
def test_parse_timespan_rejects_malformed_values(value) -> None:
    with pytest.raises(ValueError):
        parse_timespan(value)


def test_format_iso_duration() -> None:
    assert format_iso_duration(0) == 'PT0H0M0S'
    assert format_iso_duration(3723.5) == 'PT1H2M3.5S'
    assert format_iso_duration(90061) == 'PT25H1M1S'


@pytest.mark.parametrize(
    ('value', 'expected'),
    [('PT1H30M', 5400.0), ('P1DT2H', 93600.0), ('PT0.25S', 0.25), ('PT0H0M0S', 0.0), ('P1M', 2592000.0)],
)
def test_parse_iso_duration(value, expected) -> None:
    assert parse_iso_duration(value) == expected


@pytest.mark.parametrize('value', ['P', 'PT', 'P1DT', '1H', '00:10:00', 'PT1.234S'])
def test_parse_iso_duration_rejects_malformed_values(value) -> None:
    with pytest.raises(ValueError):
        parse_iso_duration(value)
