"""
Domain errors raised by the attempt engine services.

Every error is recoverable by the caller; the API layer renders them as 4xx
responses using ``status_code``.
"""


class AttemptEngineError(Exception):
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFoundError(AttemptEngineError):
    status_code = 404


class ConflictError(AttemptEngineError):
    status_code = 409


class InvalidStateError(AttemptEngineError):
    status_code = 409


class LimitExceededError(AttemptEngineError):
    status_code = 409


class TimeLimitExceededError(AttemptEngineError):
    status_code = 409


class ValidationError(AttemptEngineError):
    status_code = 422


class ReadOnlyFieldError(ValidationError):
    def __init__(self, field: str) -> None:
        super().__init__(f'Cannot update read-only CMI field: {field}')
        self.field = field


class UnknownCmiFieldError(ValidationError):
    def __init__(self, field: str) -> None:
        super().__init__(f'Unknown CMI field: {field}')
        self.field = field


class InsufficientQuestionsError(AttemptEngineError):
    status_code = 422

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(f'Question pool has {available} eligible questions, {requested} requested')
        self.requested = requested
        self.available = available
