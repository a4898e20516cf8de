"""
Collaborator contracts consumed by the practice engine.

The engine never reaches into a database handle or request session directly;
it is handed objects satisfying these protocols. ``src.adaptive.memory_store``
and ``src.db.stores`` provide the two implementations.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from typing import Protocol

from src.core.mastery import Mastery
from src.core.models import LearningEvent, Question, Stage, Topic, User

MasteryUpdate = Callable[[Mastery | None], Mastery]


class QuestionCatalog(Protocol):
    """Read-only question and topic lookup."""

    def get_questions_by_topic(self, topic_id: int) -> Sequence[Question]:
        """Return every question for a topic (possibly empty)."""
        ...

    def get_question(self, question_id: int) -> Question:
        """Return a question or raise NotFoundError."""
        ...

    def get_topics(self, stage: Stage | None = None) -> list[Topic]:
        ...


class MasteryStore(Protocol):
    """Per (user, topic) mastery scores."""

    def get_mastery(self, user_id: int, topic_id: int) -> Mastery | None:
        ...

    def upsert_mastery(self, user_id: int, topic_id: int, update_fn: MasteryUpdate) -> Mastery:
        """
        Apply ``update_fn`` to the current record (None if absent) and store the result.

        Must be atomic per key: concurrent callers never lose an update.
        """
        ...


class EventLog(Protocol):
    def append(self, event: LearningEvent) -> None:
        """Persist an event. Failures raise; records are never dropped silently."""
        ...


class UserDirectory(Protocol):
    def get_user(self, user_id: int) -> User:
        """Return a user or raise NotFoundError."""
        ...

    def increment_coins(self, user_id: int, amount: int) -> int:
        """Add coins and return the new balance."""
        ...


UnitOfWork = Callable[[], AbstractContextManager]
