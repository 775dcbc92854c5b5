import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from attempt_engine.core.errors import (
    ConflictError,
    InsufficientQuestionsError,
    InvalidStateError,
    LimitExceededError,
    NotFoundError,
    TimeLimitExceededError,
    ValidationError,
)
from attempt_engine.models.attempt import Attempt
from attempt_engine.modules.grading.autograder import GRADERS
from attempt_engine.services import attempt_service
from tests.conftest import (
    INSTRUCTOR_ID,
    LEARNER_ID,
    OTHER_LEARNER_ID,
    FakeClock,
    make_assessment,
    make_question,
)


def _mixed_quiz(db: Session, **fields):
    questions = [
        make_question(db, points=10, correct_answer='B', options=['A', 'B', 'C']),
        make_question(db, points=10, correct_answer='B', options=['A', 'B', 'C']),
        make_question(db, question_type='essay', points=5),
    ]
    return make_assessment(db, questions, **fields), questions


def _auto_quiz(db: Session, **fields):
    questions = [
        make_question(db, points=2, correct_answer='A'),
        make_question(db, question_type='short-answer', points=3, correct_answer='Paris'),
    ]
    return make_assessment(db, questions, **fields), questions


def _start(db: Session, subject, learner_id=LEARNER_ID) -> Attempt:
    attempt = attempt_service.start_attempt(db, subject_id=subject.id, learner_id=learner_id, learner_name='Jane')
    db.commit()
    return attempt


def _answer(db: Session, attempt: Attempt, *responses, learner_id=LEARNER_ID) -> Attempt:
    pairs = [(question.question_id, response) for question, response in zip(attempt.questions, responses)]
    attempt = attempt_service.save_progress(db, attempt_id=attempt.id, learner_id=learner_id, responses=pairs)
    db.commit()
    return attempt


def _submit(db: Session, attempt: Attempt, learner_id=LEARNER_ID) -> Attempt:
    attempt = attempt_service.submit_attempt(db, attempt_id=attempt.id, learner_id=learner_id)
    db.commit()
    return attempt


def test_start_attempt_freezes_question_snapshots(db_session: Session) -> None:
    subject, questions = _mixed_quiz(db_session, time_limit_seconds=900)

    attempt = _start(db_session, subject)

    assert attempt.status == 'in_progress'
    assert attempt.attempt_number == 1
    assert attempt.time_limit_seconds == 900
    assert attempt.started_at == attempt.last_activity_at
    assert [question.position for question in attempt.questions] == [0, 1, 2]
    assert [question.question_id for question in attempt.questions] == [str(question.id) for question in questions]
    assert attempt.questions[0].snapshot['correct_answer'] == 'B'
    assert attempt.questions[0].points_possible == 10.0

    questions[0].correct_answer = 'C'
    db_session.commit()
    db_session.refresh(attempt.questions[0])
    assert attempt.questions[0].snapshot['correct_answer'] == 'B'


def test_second_start_while_in_progress_conflicts(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session)
    _start(db_session, subject)

    with pytest.raises(ConflictError):
        attempt_service.start_attempt(db_session, subject_id=subject.id, learner_id=LEARNER_ID)

    other = _start(db_session, subject, learner_id=OTHER_LEARNER_ID)
    assert other.attempt_number == 1


def test_concurrent_start_is_rejected_by_the_active_attempt_index(
    db_session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    subject, _ = _auto_quiz(db_session)
    _start(db_session, subject)
    monkeypatch.setattr(attempt_service, 'find_active_attempt', lambda db, **kwargs: None)

    with pytest.raises(ConflictError):
        attempt_service.start_attempt(db_session, subject_id=subject.id, learner_id=LEARNER_ID)

    assert db_session.query(Attempt).count() == 1


def test_attempt_numbers_are_sequential_across_terminal_attempts(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session)

    numbers = []
    first = _start(db_session, subject)
    numbers.append(first.attempt_number)
    attempt_service.abandon_attempt(db_session, attempt_id=first.id, learner_id=LEARNER_ID)
    db_session.commit()

    for _ in range(2):
        attempt = _start(db_session, subject)
        numbers.append(attempt.attempt_number)
        _submit(db_session, attempt)

    assert numbers == [1, 2, 3]


def test_max_attempts_is_enforced(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session, max_attempts=1)
    _submit(db_session, _start(db_session, subject))

    with pytest.raises(LimitExceededError):
        attempt_service.start_attempt(db_session, subject_id=subject.id, learner_id=LEARNER_ID)


def test_start_rejects_unknown_or_inactive_subject(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session, is_active=False)

    with pytest.raises(NotFoundError):
        attempt_service.start_attempt(db_session, subject_id=subject.id, learner_id=LEARNER_ID)


def test_start_fails_when_pool_is_too_small(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session, question_count=5)

    with pytest.raises(InsufficientQuestionsError):
        attempt_service.start_attempt(db_session, subject_id=subject.id, learner_id=LEARNER_ID)
    assert db_session.query(Attempt).count() == 0


def test_start_rejects_unregistered_weighting_strategy(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session, selection_mode='weighted', weighting_strategy='by-cost')

    with pytest.raises(ValidationError):
        attempt_service.start_attempt(db_session, subject_id=subject.id, learner_id=LEARNER_ID)
    assert db_session.query(Attempt).count() == 0


def test_mixed_attempt_waits_for_manual_grading(db_session: Session) -> None:
    subject, _ = _mixed_quiz(db_session)
    attempt = _start(db_session, subject)
    _answer(db_session, attempt, 'B', 'A', 'my answer')

    attempt = _submit(db_session, attempt)

    assert attempt.status == 'submitted'
    assert attempt.requires_manual_grading
    assert not attempt.grading_complete
    assert attempt.raw_score == 10.0
    assert attempt.percentage_score is None
    assert attempt.passed is None
    assert attempt.submitted_at is not None
    assert [question.is_correct for question in attempt.questions] == [True, False, None]

    attempt = attempt_service.grade_question(
        db_session,
        attempt_id=attempt.id,
        question_index=2,
        score=4,
        feedback='Good reasoning',
        grader_id=INSTRUCTOR_ID,
    )
    db_session.commit()

    assert attempt.status == 'graded'
    assert attempt.grading_complete
    assert attempt.requires_manual_grading
    assert attempt.raw_score == 14.0
    assert attempt.max_score == 25.0
    assert attempt.percentage_score == 56.0
    assert attempt.passed is False
    essay = attempt.questions[2]
    assert essay.points_earned == 4.0
    assert essay.is_correct is False
    assert essay.graded_by == INSTRUCTOR_ID
    assert essay.feedback == 'Good reasoning'


def test_fully_auto_gradable_attempt_is_graded_on_submit(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session, passing_score=60)
    attempt = _start(db_session, subject)
    _answer(db_session, attempt, 'a', ' paris ')

    attempt = _submit(db_session, attempt)

    assert attempt.status == 'graded'
    assert attempt.grading_complete
    assert not attempt.requires_manual_grading
    assert attempt.raw_score == sum(question.points_earned for question in attempt.questions) == 5.0
    assert attempt.percentage_score == 100.0
    assert attempt.passed is True
    assert all(question.points_earned <= question.points_possible for question in attempt.questions)


def test_default_passing_score_applies_without_subject_threshold(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session)
    attempt = _start(db_session, subject)
    _answer(db_session, attempt, 'A', 'Rome')

    attempt = _submit(db_session, attempt)

    assert attempt.percentage_score == 40.0
    assert attempt.passed is False


def test_unanswered_questions_score_zero(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session)

    attempt = _submit(db_session, _start(db_session, subject))

    assert attempt.status == 'graded'
    assert attempt.raw_score == 0.0


def test_save_progress_merges_responses(db_session: Session) -> None:
    subject, _ = _mixed_quiz(db_session)
    attempt = _start(db_session, subject)

    _answer(db_session, attempt, 'A')
    attempt = attempt_service.save_progress(
        db_session,
        attempt_id=attempt.id,
        learner_id=LEARNER_ID,
        responses=[(attempt.questions[1].question_id, 'C'), ('not-in-attempt', 'X')],
    )
    db_session.commit()
    attempt = _answer(db_session, attempt, 'B')
    attempt = _answer(db_session, attempt, 'B')

    assert [question.response for question in attempt.questions] == ['B', 'C', None]


def test_save_progress_validates_response_shape(db_session: Session) -> None:
    questions = [
        make_question(db_session, question_type='matching', points=2, matching_pairs={'H2O': 'water'}),
        make_question(db_session, correct_answer='A'),
    ]
    subject = make_assessment(db_session, questions)
    attempt = _start(db_session, subject)

    with pytest.raises(ValidationError):
        _answer(db_session, attempt, 'water')
    with pytest.raises(ValidationError):
        _answer(db_session, attempt, {'H2O': 'water'}, ['A', 'B'])

    attempt = _answer(db_session, attempt, {'H2O': 'water'}, 'A')
    assert attempt.questions[0].response == {'H2O': 'water'}


def test_time_spent_is_computed_on_the_server(db_session: Session, fake_clock: FakeClock) -> None:
    subject, _ = _auto_quiz(db_session)
    attempt = _start(db_session, subject)

    fake_clock.advance(42)
    attempt = _answer(db_session, attempt, 'A')

    assert attempt.time_spent_seconds == 42


def test_time_limit_blocks_late_autosave_but_not_submit(db_session: Session, fake_clock: FakeClock) -> None:
    subject, _ = _auto_quiz(db_session, time_limit_seconds=60)
    attempt = _start(db_session, subject)

    fake_clock.advance(30)
    _answer(db_session, attempt, 'A', 'Paris')

    fake_clock.advance(31)
    with pytest.raises(TimeLimitExceededError):
        _answer(db_session, attempt, 'B', 'Rome')

    attempt = _submit(db_session, attempt)
    assert attempt.status == 'graded'
    assert attempt.raw_score == 5.0
    assert attempt.time_spent_seconds == 61


def test_operations_require_the_right_state(db_session: Session) -> None:
    subject, _ = _mixed_quiz(db_session)
    attempt = _start(db_session, subject)

    with pytest.raises(InvalidStateError):
        attempt_service.grade_question(
            db_session, attempt_id=attempt.id, question_index=2, score=1, feedback=None, grader_id=INSTRUCTOR_ID
        )

    _submit(db_session, attempt)

    with pytest.raises(InvalidStateError):
        _answer(db_session, attempt, 'B')
    with pytest.raises(InvalidStateError):
        _submit(db_session, attempt)
    with pytest.raises(InvalidStateError):
        attempt_service.abandon_attempt(db_session, attempt_id=attempt.id, learner_id=LEARNER_ID)


def test_grade_question_validates_index_and_score(db_session: Session) -> None:
    subject, _ = _mixed_quiz(db_session)
    attempt = _submit(db_session, _start(db_session, subject))

    with pytest.raises(ValidationError):
        attempt_service.grade_question(
            db_session, attempt_id=attempt.id, question_index=3, score=1, feedback=None, grader_id=INSTRUCTOR_ID
        )
    with pytest.raises(ValidationError):
        attempt_service.grade_question(
            db_session, attempt_id=attempt.id, question_index=2, score=6, feedback=None, grader_id=INSTRUCTOR_ID
        )
    with pytest.raises(ValidationError):
        attempt_service.grade_question(
            db_session, attempt_id=attempt.id, question_index=-1, score=1, feedback=None, grader_id=INSTRUCTOR_ID
        )
    for score in (float('nan'), float('inf')):
        with pytest.raises(ValidationError):
            attempt_service.grade_question(
                db_session, attempt_id=attempt.id, question_index=2, score=score, feedback=None, grader_id=INSTRUCTOR_ID
            )
    assert attempt.status == 'submitted'
    assert attempt.questions[2].points_earned is None


def test_graded_attempt_can_be_regraded(db_session: Session) -> None:
    subject, _ = _mixed_quiz(db_session)
    attempt = _start(db_session, subject)
    _answer(db_session, attempt, 'B', 'B', 'essay')
    _submit(db_session, attempt)
    attempt_service.grade_question(
        db_session, attempt_id=attempt.id, question_index=2, score=5, feedback=None, grader_id=INSTRUCTOR_ID
    )
    db_session.commit()

    attempt = attempt_service.grade_question(
        db_session, attempt_id=attempt.id, question_index=2, score=1, feedback='Too short', grader_id=INSTRUCTOR_ID
    )
    db_session.commit()

    assert attempt.status == 'graded'
    assert attempt.raw_score == 21.0
    assert attempt.percentage_score == 84.0
    assert attempt.passed is True


def test_grader_failure_leaves_question_for_manual_grading(
    db_session: Session, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_grader(snapshot, response, points_possible):
        raise RuntimeError('grader exploded')

    monkeypatch.setitem(GRADERS, 'multiple-choice', broken_grader)
    subject, _ = _auto_quiz(db_session)
    attempt = _start(db_session, subject)
    _answer(db_session, attempt, 'A', 'Paris')

    attempt = _submit(db_session, attempt)

    assert attempt.status == 'submitted'
    assert attempt.requires_manual_grading
    assert attempt.questions[0].graded_at is None
    assert attempt.questions[1].points_earned == 3.0
    assert attempt.raw_score == 3.0


def test_stale_write_is_reported_as_conflict(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session)
    attempt = _start(db_session, subject)
    table = Attempt.__table__
    db_session.execute(update(table).where(table.c.id == attempt.id).values(version=attempt.version + 5))

    with pytest.raises(ConflictError):
        _answer(db_session, attempt, 'A')


def test_results_belong_to_the_learner(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session)
    attempt = _submit(db_session, _start(db_session, subject))

    with pytest.raises(NotFoundError):
        attempt_service.get_results(db_session, attempt_id=attempt.id, learner_id=OTHER_LEARNER_ID)

    results = attempt_service.get_results(db_session, attempt_id=attempt.id, learner_id=LEARNER_ID)
    assert results.attempt.id == attempt.id
    assert results.show_correct_answers

    staff = attempt_service.get_results(db_session, attempt_id=attempt.id, learner_id=None, staff_view=True)
    assert staff.show_correct_answers


def test_after_all_attempts_feedback_unlocks_on_the_last_attempt(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session, max_attempts=2, feedback_setting='after_all_attempts')

    first = _submit(db_session, _start(db_session, subject))
    assert not attempt_service.get_results(db_session, attempt_id=first.id, learner_id=LEARNER_ID).show_correct_answers

    second = _submit(db_session, _start(db_session, subject))
    assert attempt_service.get_results(db_session, attempt_id=second.id, learner_id=LEARNER_ID).show_correct_answers


def test_never_feedback_hides_answers(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session, feedback_setting='never')
    attempt = _submit(db_session, _start(db_session, subject))

    assert not attempt_service.get_results(db_session, attempt_id=attempt.id, learner_id=LEARNER_ID).show_correct_answers


def test_list_and_current_attempts(db_session: Session) -> None:
    subject, _ = _auto_quiz(db_session)
    for _ in range(2):
        _submit(db_session, _start(db_session, subject))
    current = _start(db_session, subject)
    _start(db_session, subject, learner_id=OTHER_LEARNER_ID)

    attempts, total = attempt_service.list_attempts(db_session, subject_id=subject.id, learner_id=LEARNER_ID)
    assert total == 3
    assert [attempt.attempt_number for attempt in attempts] == [3, 2, 1]

    page, total = attempt_service.list_attempts(
        db_session, subject_id=subject.id, learner_id=LEARNER_ID, page=2, page_size=2
    )
    assert total == 3
    assert [attempt.attempt_number for attempt in page] == [1]

    graded, total = attempt_service.list_attempts(db_session, subject_id=subject.id, status='graded')
    assert total == 2

    everyone, total = attempt_service.list_attempts(db_session, subject_id=subject.id, page_size=1000)
    assert total == 4
    assert len(everyone) == 4

    found = attempt_service.get_current_attempt(db_session, subject_id=subject.id, learner_id=LEARNER_ID)
    assert found.id == current.id
    _submit(db_session, current)
    assert attempt_service.get_current_attempt(db_session, subject_id=subject.id, learner_id=LEARNER_ID) is None
