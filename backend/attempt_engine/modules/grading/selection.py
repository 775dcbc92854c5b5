"""
Question selection for new assessment attempts.

The pool arrives already ordered (bank order, then question order inside each
bank). Filters are applied first, then the configured ordering, then the pool
is cut to ``question_count``.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from typing import Literal, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from attempt_engine.core.errors import InsufficientQuestionsError, ValidationError


class PoolQuestion(Protocol):
    tags: list[str]
    difficulty: str | None


Q = TypeVar('Q', bound=PoolQuestion)

WeightingStrategy = Callable[[PoolQuestion], float]

WEIGHTING_STRATEGIES: dict[str, WeightingStrategy] = {}


class SelectionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    bank_ids: list[str] = Field(default_factory=list)
    question_count: int | None = Field(default=None, ge=1)
    selection_mode: Literal['sequential', 'random', 'weighted'] = 'sequential'
    filter_tags: list[str] = Field(default_factory=list)
    filter_difficulties: list[str] = Field(default_factory=list)
    seed: int | None = None
    weighting_strategy: str = 'difficulty'


def register_weighting_strategy(name: str) -> Callable[[WeightingStrategy], WeightingStrategy]:
    def decorator(func: WeightingStrategy) -> WeightingStrategy:
        WEIGHTING_STRATEGIES[name] = func
        return func

    return decorator


DIFFICULTY_WEIGHTS = {'easy': 1.0, 'medium': 2.0, 'hard': 3.0}


@register_weighting_strategy('difficulty')
def difficulty_weight(question: PoolQuestion) -> float:
    return DIFFICULTY_WEIGHTS.get(question.difficulty or '', DIFFICULTY_WEIGHTS['medium'])


@register_weighting_strategy('uniform')
def uniform_weight(question: PoolQuestion) -> float:
    return 1.0


def apply_filters(pool: Sequence[Q], config: SelectionConfig) -> list[Q]:
    tags = set(config.filter_tags)
    difficulties = set(config.filter_difficulties)
    selected = []
    for question in pool:
        if tags and not tags.intersection(question.tags or []):
            continue
        if difficulties and question.difficulty not in difficulties:
            continue
        selected.append(question)
    return selected


def fisher_yates(items: Sequence[Q], rng: random.Random) -> list[Q]:
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def weighted_order(items: Sequence[Q], rng: random.Random, strategy: WeightingStrategy) -> list[Q]:
    """Order by weighted sampling without replacement (Efraimidis-Spirakis keys)."""
    keyed = []
    for question in items:
        weight = strategy(question)
        if not weight > 0:
            raise ValidationError(f'Weighting strategy returned non-positive weight {weight}')
        keyed.append((rng.random() ** (1.0 / weight), question))
    keyed.sort(key=lambda item: item[0], reverse=True)
    return [question for _, question in keyed]


def select_questions(pool: Sequence[Q], config: SelectionConfig) -> list[Q]:
    eligible = apply_filters(pool, config)
    count = config.question_count if config.question_count is not None else len(eligible)
    if len(eligible) < count:
        raise InsufficientQuestionsError(requested=count, available=len(eligible))

    rng = random.Random(config.seed)
    if config.selection_mode == 'random':
        ordered = fisher_yates(eligible, rng)
    elif config.selection_mode == 'weighted':
        strategy = WEIGHTING_STRATEGIES.get(config.weighting_strategy)
        if strategy is None:
            raise ValidationError(f'Unknown weighting strategy: {config.weighting_strategy}')
        ordered = weighted_order(eligible, rng, strategy)
    else:
        ordered = list(eligible)
    return ordered[:count]
