"""
Candidate Pool Policy.

Builds the pool of questions eligible for the next pick by applying an
ordered cascade of filters, stopping at the first stage that yields anything:

1. matched:        right year, target difficulty, not yet seen
2. unseen_in_year: right year, not yet seen (difficulty relaxed)
3. in_year:        right year (history relaxed, the learner starts over)
4. any:            every question in the topic (year relaxed)

The last stage accepts everything, so a topic with at least one question
always produces a non-empty pool. Stages are data rather than nested
conditionals so callers can test or swap the policy independently.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from src.core.errors import NotFoundError
from src.core.models import Question


@dataclass(frozen=True)
class SelectionContext:
    """Learner-specific inputs to the cascade."""

    year_group: int
    target_difficulty: int
    history: frozenset[int] = frozenset()

    def is_unseen(self, question: Question) -> bool:
        return question.id not in self.history


@dataclass(frozen=True)
class CandidateStage:
    """One named step of the cascade."""

    name: str
    predicate: Callable[[Question, SelectionContext], bool]

    def filter(self, questions: Iterable[Question], context: SelectionContext) -> list[Question]:
        return [q for q in questions if self.predicate(q, context)]


DEFAULT_CASCADE: tuple[CandidateStage, ...] = (
    CandidateStage(
        "matched",
        lambda q, ctx: (
            q.covers_year(ctx.year_group)
            and q.difficulty == ctx.target_difficulty
            and ctx.is_unseen(q)
        ),
    ),
    CandidateStage(
        "unseen_in_year",
        lambda q, ctx: q.covers_year(ctx.year_group) and ctx.is_unseen(q),
    ),
    CandidateStage(
        "in_year",
        lambda q, ctx: q.covers_year(ctx.year_group),
    ),
    CandidateStage(
        "any",
        lambda q, ctx: True,
    ),
)


def build_candidate_pool(
    questions: Sequence[Question],
    context: SelectionContext,
    cascade: Sequence[CandidateStage] = DEFAULT_CASCADE,
) -> tuple[str, list[Question]]:
    """
    Run the cascade and return the first non-empty pool.

    Args:
        questions: All questions for the topic
        context: Year group, target difficulty and seen question ids
        cascade: Ordered stages to try

    Returns:
        Tuple of (stage name, candidate questions)

    Raises:
        NotFoundError: If there are no questions, or a custom cascade
            without a catch-all stage filters everything out
    """
    if not questions:
        raise NotFoundError("No questions found")

    for stage in cascade:
        pool = stage.filter(questions, context)
        if pool:
            return stage.name, pool

    raise NotFoundError("No candidate questions matched any selection stage")
