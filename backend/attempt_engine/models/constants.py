ROLE_VALUES = [
    'admin',
    'instructor',
    'learner',
]
GRADER_ROLE_VALUES = ['admin', 'instructor']

SUBJECT_KIND_VALUES = ['assessment', 'content']
QUESTION_TYPE_VALUES = [
    'multiple-choice',
    'true-false',
    'short-answer',
    'fill-blank',
    'matching',
    'essay',
]
DIFFICULTY_VALUES = ['easy', 'medium', 'hard']
SELECTION_MODE_VALUES = ['sequential', 'random', 'weighted']
FEEDBACK_SETTING_VALUES = ['never', 'after_submit', 'after_all_attempts']
SCORM_VERSION_VALUES = ['1.2', '2004']

ATTEMPT_STATUS_VALUES = [
    'in_progress',
    'suspended',
    'submitted',
    'graded',
    'completed',
    'passed',
    'failed',
    'abandoned',
]
ACTIVE_ATTEMPT_STATUS_VALUES = ['in_progress', 'suspended']
TERMINAL_ATTEMPT_STATUS_VALUES = ['submitted', 'graded', 'completed', 'passed', 'failed', 'abandoned']
CONTENT_COMPLETION_STATUS_VALUES = ['completed', 'passed', 'failed']
