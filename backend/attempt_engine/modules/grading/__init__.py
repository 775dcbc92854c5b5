from attempt_engine.modules.grading.autograder import GRADERS, GradeResult, grade, is_auto_gradable
from attempt_engine.modules.grading.feedback import should_show_correct_answers
from attempt_engine.modules.grading.scoring import ScoreSummary, is_passing, summarize, validate_scorm_score
from attempt_engine.modules.grading.selection import SelectionConfig, select_questions

__all__ = [
    'GRADERS',
    'GradeResult',
    'ScoreSummary',
    'SelectionConfig',
    'grade',
    'is_auto_gradable',
    'is_passing',
    'select_questions',
    'should_show_correct_answers',
    'summarize',
    'validate_scorm_score',
]
