from attempt_engine.schemas.attempt import (
    AttemptListResponse,
    AttemptOut,
    AttemptResultsOut,
    AttemptSummaryOut,
    CurrentAttemptResponse,
    GradeQuestionIn,
    QuestionAttemptOut,
    ResponseIn,
    SaveProgressIn,
)
from attempt_engine.schemas.content_attempt import (
    CmiDataOut,
    CmiUpdateIn,
    CmiUpdateOut,
    ContentAttemptOut,
    ContentCompleteIn,
    ContentProgressUpdate,
    ResumeOut,
    SuspendIn,
)
from attempt_engine.schemas.subject import SubjectConfig

__all__ = [
    'AttemptListResponse',
    'AttemptOut',
    'AttemptResultsOut',
    'AttemptSummaryOut',
    'CmiDataOut',
    'CmiUpdateIn',
    'CmiUpdateOut',
    'ContentAttemptOut',
    'ContentCompleteIn',
    'ContentProgressUpdate',
    'CurrentAttemptResponse',
    'GradeQuestionIn',
    'QuestionAttemptOut',
    'ResponseIn',
    'ResumeOut',
    'SaveProgressIn',
    'SubjectConfig',
    'SuspendIn',
]
