from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from attempt_engine.models.question_bank import Question, QuestionBank


def _parse_ids(raw_ids: list[str]) -> list[UUID]:
    parsed = []
    for raw in raw_ids:
        try:
            parsed.append(UUID(str(raw)))
        except ValueError:
            continue
    return parsed


def load_question_pool(db: Session, bank_ids: list[str]) -> list[Question]:
    """
    Active questions of the given banks in pool order.

    Pool order is the configured bank order, then question order inside each
    bank. A question listed twice keeps its first position. Inactive banks,
    inactive questions and dangling ids are skipped.
    """
    parsed_bank_ids = _parse_ids(bank_ids)
    if not parsed_bank_ids:
        return []

    banks = {
        bank.id: bank
        for bank in db.scalars(
            select(QuestionBank).where(QuestionBank.id.in_(parsed_bank_ids), QuestionBank.is_active.is_(True))
        )
    }

    ordered_ids: list[UUID] = []
    seen: set[UUID] = set()
    for bank_id in parsed_bank_ids:
        bank = banks.get(bank_id)
        if bank is None:
            continue
        for question_id in _parse_ids(bank.question_ids or []):
            if question_id in seen:
                continue
            seen.add(question_id)
            ordered_ids.append(question_id)

    if not ordered_ids:
        return []

    questions = {
        question.id: question
        for question in db.scalars(
            select(Question).where(Question.id.in_(ordered_ids), Question.is_active.is_(True))
        )
    }
    return [questions[question_id] for question_id in ordered_ids if question_id in questions]
