"""
SQLAlchemy-backed practice store.

Implements the engine collaborators (catalog, mastery store, event log, user
directory) on a single Session, plus a unit of work that commits or rolls
back the session.

Mastery updates are a compare-and-swap loop: read the current row, compute
the new one in Python, then ``UPDATE ... WHERE questions_answered = <seen>``.
If another writer got there first no row matches and the loop re-reads.
First answers insert with ON CONFLICT DO NOTHING so two racing inserts
resolve the same way.
"""
from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import get_settings
from src.core.errors import MasteryConflictError, NotFoundError
from src.core.interfaces import MasteryUpdate
from src.core.mastery import Mastery
from src.core.models import LearningEvent, Question, Stage, Topic, User
from src.db.models import (
    CurriculumTopic,
    LearningEventRecord,
    TopicMastery,
    TopicQuestion,
    UserAccount,
)


class SqlPracticeStore:
    """Engine collaborators over one SQLAlchemy session."""

    def __init__(self, session: Session, max_retries: int | None = None):
        self.session = session
        if max_retries is None:
            max_retries = get_settings().mastery_upsert_retries
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.max_retries = max_retries

    # ========================================
    # QuestionCatalog
    # ========================================

    def get_questions_by_topic(self, topic_id: int) -> Sequence[Question]:
        rows = self.session.scalars(
            select(TopicQuestion)
            .where(TopicQuestion.topic_id == topic_id)
            .order_by(TopicQuestion.id)
        ).all()
        return [row.to_domain() for row in rows]

    def get_question(self, question_id: int) -> Question:
        row = self.session.get(TopicQuestion, question_id)
        if row is None:
            raise NotFoundError("Question not found")
        return row.to_domain()

    def get_topics(self, stage: Stage | None = None) -> list[Topic]:
        query = select(CurriculumTopic).order_by(CurriculumTopic.id)
        if stage is not None:
            query = query.where(CurriculumTopic.stage == stage.value)
        return [row.to_domain() for row in self.session.scalars(query).all()]

    # ========================================
    # MasteryStore
    # ========================================

    def get_mastery(self, user_id: int, topic_id: int) -> Mastery | None:
        # Column select rather than entity load so a stale identity map
        # can never feed the compare-and-swap.
        row = self.session.execute(
            select(
                TopicMastery.score,
                TopicMastery.questions_answered,
                TopicMastery.last_practiced,
            ).where(TopicMastery.user_id == user_id, TopicMastery.topic_id == topic_id)
        ).one_or_none()
        if row is None:
            return None
        return Mastery(
            user_id=user_id,
            topic_id=topic_id,
            score=row.score,
            questions_answered=row.questions_answered,
            last_practiced=row.last_practiced,
        )

    def list_mastery(self, user_id: int) -> list[Mastery]:
        rows = self.session.scalars(
            select(TopicMastery)
            .where(TopicMastery.user_id == user_id)
            .order_by(TopicMastery.topic_id)
        ).all()
        return [row.to_domain() for row in rows]

    def upsert_mastery(self, user_id: int, topic_id: int, update_fn: MasteryUpdate) -> Mastery:
        for attempt in range(1, self.max_retries + 1):
            prior = self.get_mastery(user_id, topic_id)
            updated = update_fn(prior)

            if prior is None:
                stored = self._insert_if_absent(updated)
            else:
                result = self.session.execute(
                    update(TopicMastery)
                    .where(
                        TopicMastery.user_id == user_id,
                        TopicMastery.topic_id == topic_id,
                        TopicMastery.questions_answered == prior.questions_answered,
                    )
                    .values(
                        score=updated.score,
                        questions_answered=updated.questions_answered,
                        last_practiced=updated.last_practiced,
                    )
                )
                stored = result.rowcount == 1

            if stored:
                return updated
            logger.warning(
                f"Mastery for user {user_id} topic {topic_id} changed concurrently "
                f"(attempt {attempt}/{self.max_retries}); retrying"
            )

        raise MasteryConflictError(
            f"Could not update mastery for user {user_id} topic {topic_id} "
            f"after {self.max_retries} attempts"
        )

    def _insert_if_absent(self, mastery: Mastery) -> bool:
        """Insert a first mastery row; False if another writer created it first."""
        values = {
            "user_id": mastery.user_id,
            "topic_id": mastery.topic_id,
            "score": mastery.score,
            "questions_answered": mastery.questions_answered,
            "last_practiced": mastery.last_practiced,
        }
        dialect = self.session.get_bind().dialect.name
        if dialect in ("sqlite", "postgresql"):
            dialect_insert = sqlite_insert if dialect == "sqlite" else pg_insert
            stmt = (
                dialect_insert(TopicMastery.__table__)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["user_id", "topic_id"])
            )
            return self.session.execute(stmt).rowcount == 1

        try:
            with self.session.begin_nested():
                self.session.execute(insert(TopicMastery.__table__).values(**values))
        except IntegrityError:
            return False
        return True

    # ========================================
    # EventLog
    # ========================================

    def append(self, event: LearningEvent) -> None:
        self.session.add(
            LearningEventRecord(
                user_id=event.user_id,
                question_id=event.question_id,
                is_correct=event.is_correct,
                time_taken=event.time_taken,
                timestamp=event.timestamp,
            )
        )
        # Flush now so a rejected row fails the answer instead of the commit
        self.session.flush()

    def count_events(self, user_id: int) -> int:
        return self.session.scalar(
            select(func.count(LearningEventRecord.id)).where(LearningEventRecord.user_id == user_id)
        )

    # ========================================
    # UserDirectory
    # ========================================

    def get_user(self, user_id: int) -> User:
        row = self.session.get(UserAccount, user_id)
        if row is None:
            raise NotFoundError(f"User {user_id} not found")
        return row.to_domain()

    def increment_coins(self, user_id: int, amount: int) -> int:
        result = self.session.execute(
            update(UserAccount)
            .where(UserAccount.id == user_id)
            .values(coins=UserAccount.coins + amount)
        )
        if result.rowcount != 1:
            raise NotFoundError(f"User {user_id} not found")
        return self.session.scalar(select(UserAccount.coins).where(UserAccount.id == user_id))

    # ========================================
    # Unit of work
    # ========================================

    @contextmanager
    def transaction(self) -> Iterator[SqlPracticeStore]:
        """Commit the session when the block succeeds, roll it back otherwise."""
        try:
            yield self
            self.session.commit()
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            self.session.rollback()
            raise
