from attempt_engine.models.attempt import Attempt, QuestionAttempt
from attempt_engine.models.question_bank import Question, QuestionBank
from attempt_engine.models.subject import Subject

__all__ = [
    'Attempt',
    'Question',
    'QuestionAttempt',
    'QuestionBank',
    'Subject',
]
