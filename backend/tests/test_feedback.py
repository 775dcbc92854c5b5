from attempt_engine.modules.grading.feedback import should_show_correct_answers


def test_never_hides_answers() -> None:
    assert not should_show_correct_answers('never', status='graded', attempt_number=3, max_attempts=3)


def test_after_submit_shows_once_submitted() -> None:
    assert not should_show_correct_answers('after_submit', status='in_progress', attempt_number=1, max_attempts=None)
    assert should_show_correct_answers('after_submit', status='submitted', attempt_number=1, max_attempts=None)
    assert should_show_correct_answers('after_submit', status='graded', attempt_number=1, max_attempts=None)


def test_after_all_attempts_waits_for_the_last_graded_attempt() -> None:
    assert not should_show_correct_answers('after_all_attempts', status='graded', attempt_number=1, max_attempts=2)
    assert not should_show_correct_answers('after_all_attempts', status='submitted', attempt_number=2, max_attempts=2)
    assert should_show_correct_answers('after_all_attempts', status='graded', attempt_number=2, max_attempts=2)


def test_after_all_attempts_without_limit_never_shows() -> None:
    assert not should_show_correct_answers('after_all_attempts', status='graded', attempt_number=9, max_attempts=None)
