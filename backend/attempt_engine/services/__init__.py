from attempt_engine.services import (
    attempt_service,
    content_attempt_service,
    question_bank_service,
    subject_service,
)

__all__ = [
    'attempt_service',
    'content_attempt_service',
    'question_bank_service',
    'subject_service',
]
