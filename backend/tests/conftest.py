import os
import uuid
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.getenv('TEST_DATABASE_URL', 'sqlite://')

os.environ.setdefault('DATABASE_URL', TEST_DATABASE_URL)
os.environ.setdefault('JWT_SECRET_KEY', 'test-access-secret-32-chars-min-0001')
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('CORS_ORIGINS', 'http://localhost:3001')

from attempt_engine.core import clock
from attempt_engine.core.security import create_access_token
from attempt_engine.db.base import Base
from attempt_engine.db.session import get_db
from attempt_engine.main import app
from attempt_engine.models.question_bank import Question, QuestionBank
from attempt_engine.models.subject import Subject


if TEST_DATABASE_URL.startswith('sqlite'):
    engine = create_engine(TEST_DATABASE_URL, connect_args={'check_same_thread': False}, poolclass=StaticPool)
else:
    engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

LEARNER_ID = uuid.UUID('00000000-0000-0000-0000-00000000a001')
OTHER_LEARNER_ID = uuid.UUID('00000000-0000-0000-0000-00000000a002')
INSTRUCTOR_ID = uuid.UUID('00000000-0000-0000-0000-00000000b001')


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    yield

    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def _override_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _override_db

    with TestClient(app) as api_client:
        yield api_client

    app.dependency_overrides.clear()


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    fake = FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))
    monkeypatch.setattr(clock, 'utcnow', fake)
    return fake


def make_question(
    db: Session,
    *,
    question_type: str = 'multiple-choice',
    points: int = 1,
    correct_answer: str | None = None,
    **fields: Any,
) -> Question:
    question = Question(
        question_text=fields.pop('question_text', f'{question_type} question'),
        question_type=question_type,
        points=points,
        correct_answer=correct_answer,
        options=fields.pop('options', []),
        correct_answers=fields.pop('correct_answers', []),
        matching_pairs=fields.pop('matching_pairs', {}),
        tags=fields.pop('tags', []),
        **fields,
    )
    db.add(question)
    db.flush()
    return question


def make_bank(db: Session, questions: list[Question], *, name: str = 'Default bank') -> QuestionBank:
    bank = QuestionBank(name=name, question_ids=[str(question.id) for question in questions], is_active=True)
    db.add(bank)
    db.flush()
    return bank


def make_assessment(db: Session, questions: list[Question] | None = None, **fields: Any) -> Subject:
    bank_ids = fields.pop('bank_ids', None)
    if bank_ids is None:
        bank_ids = [str(make_bank(db, questions).id)] if questions else []
    subject = Subject(
        kind='assessment',
        title=fields.pop('title', 'Safety quiz'),
        bank_ids=bank_ids,
        filter_tags=fields.pop('filter_tags', []),
        filter_difficulties=fields.pop('filter_difficulties', []),
        **fields,
    )
    db.add(subject)
    db.commit()
    return subject


def make_content(db: Session, *, scorm_version: str | None = '1.2', **fields: Any) -> Subject:
    subject = Subject(
        kind='content',
        title=fields.pop('title', 'Forklift module'),
        scorm_version=scorm_version,
        bank_ids=[],
        filter_tags=[],
        filter_difficulties=[],
        **fields,
    )
    db.add(subject)
    db.commit()
    return subject


def auth_headers(user_id: uuid.UUID, *, roles: tuple[str, ...] = ('learner',), name: str = 'Test Learner') -> dict[str, str]:
    token = create_access_token(str(user_id), name=name, roles=list(roles))
    return {'Authorization': f'Bearer {token}'}
