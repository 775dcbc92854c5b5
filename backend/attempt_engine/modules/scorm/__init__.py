from attempt_engine.modules.scorm.cmi import (
    SCORM_12_ELEMENTS,
    SCORM_2004_ELEMENTS,
    apply_cmi_values,
    elements_for,
    to_cmi,
    validate_suspend_data,
)
from attempt_engine.modules.scorm.durations import (
    format_iso_duration,
    format_timespan,
    parse_iso_duration,
    parse_timespan,
)

__all__ = [
    'SCORM_12_ELEMENTS',
    'SCORM_2004_ELEMENTS',
    'apply_cmi_values',
    'elements_for',
    'format_iso_duration',
    'format_timespan',
    'parse_iso_duration',
    'parse_timespan',
    'to_cmi',
    'validate_suspend_data',
]
