"""
In-Memory Practice Store.

Implements every collaborator the practice engine needs (catalog, mastery
store, event log, user directory) over plain dicts guarded by one re-entrant
lock. Used by the engine tests and for embedding the engine without a database.
"""
from __future__ import annotations

import copy
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace

from src.core.errors import NotFoundError
from src.core.interfaces import MasteryUpdate
from src.core.mastery import Mastery
from src.core.models import LearningEvent, Question, Stage, Topic, User


class InMemoryPracticeStore:
    """Thread-safe in-memory implementation of the engine collaborators."""

    def __init__(self):
        self._lock = threading.RLock()
        self._topics: dict[int, Topic] = {}
        self._questions: dict[int, Question] = {}
        self._users: dict[int, User] = {}
        self._mastery: dict[tuple[int, int], Mastery] = {}
        self._events: list[LearningEvent] = []

    # ========================================
    # Seeding helpers
    # ========================================

    def add_topic(self, topic: Topic) -> Topic:
        with self._lock:
            self._topics[topic.id] = topic
        return topic

    def add_question(self, question: Question) -> Question:
        with self._lock:
            self._questions[question.id] = question
        return question

    def add_user(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user
        return user

    @property
    def events(self) -> list[LearningEvent]:
        """Snapshot of the event log."""
        with self._lock:
            return list(self._events)

    # ========================================
    # QuestionCatalog
    # ========================================

    def get_questions_by_topic(self, topic_id: int) -> Sequence[Question]:
        with self._lock:
            return [q for q in self._questions.values() if q.topic_id == topic_id]

    def get_question(self, question_id: int) -> Question:
        with self._lock:
            question = self._questions.get(question_id)
        if question is None:
            raise NotFoundError("Question not found")
        return question

    def get_topics(self, stage: Stage | None = None) -> list[Topic]:
        with self._lock:
            topics = list(self._topics.values())
        if stage is not None:
            topics = [t for t in topics if t.stage == stage]
        return sorted(topics, key=lambda t: t.id)

    # ========================================
    # MasteryStore
    # ========================================

    def get_mastery(self, user_id: int, topic_id: int) -> Mastery | None:
        with self._lock:
            return self._mastery.get((user_id, topic_id))

    def upsert_mastery(self, user_id: int, topic_id: int, update_fn: MasteryUpdate) -> Mastery:
        with self._lock:
            updated = update_fn(self._mastery.get((user_id, topic_id)))
            self._mastery[(user_id, topic_id)] = updated
            return updated

    def list_mastery(self, user_id: int) -> list[Mastery]:
        with self._lock:
            return [m for (uid, _), m in self._mastery.items() if uid == user_id]

    # ========================================
    # EventLog
    # ========================================

    def append(self, event: LearningEvent) -> None:
        with self._lock:
            self._events.append(event)

    # ========================================
    # UserDirectory
    # ========================================

    def get_user(self, user_id: int) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def increment_coins(self, user_id: int, amount: int) -> int:
        with self._lock:
            user = self.get_user(user_id)
            updated = replace(user, coins=user.coins + amount)
            self._users[user_id] = updated
            return updated.coins

    # ========================================
    # Unit of work
    # ========================================

    @contextmanager
    def transaction(self) -> Iterator[InMemoryPracticeStore]:
        """
        Hold the store lock for a block and undo its writes if it raises.

        Topics and questions are reference data and are not snapshotted.
        """
        with self._lock:
            users = copy.copy(self._users)
            mastery = copy.copy(self._mastery)
            event_count = len(self._events)
            try:
                yield self
            except BaseException:
                self._users = users
                self._mastery = mastery
                del self._events[event_count:]
                raise
