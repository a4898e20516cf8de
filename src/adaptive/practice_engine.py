"""
Adaptive Practice Engine.

Chooses the next question for a learner and grades their answers:

- select_next_question: mastery -> target difficulty -> cascade -> random pick
- record_answer: exact-match grading, event log, coin reward, mastery update

The engine is stateless between calls. Everything it knows about a learner
comes from the injected collaborators, and the caller supplies the ids of
questions already seen this session on every selection.
"""
from __future__ import annotations

import random
from collections.abc import Callable, Iterable
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial
from typing import Any

from loguru import logger

from config import Settings, get_settings
from src.adaptive.candidate_policy import (
    DEFAULT_CASCADE,
    CandidateStage,
    SelectionContext,
    build_candidate_pool,
)
from src.core.errors import InvalidInputError
from src.core.interfaces import (
    EventLog,
    MasteryStore,
    QuestionCatalog,
    UnitOfWork,
    UserDirectory,
)
from src.core.mastery import apply_answer, target_difficulty
from src.core.models import LearningEvent, Question, Stage, Topic

PRAISE = "Great job!"
ENCOURAGEMENT = "Keep trying!"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone-less database columns."""
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass(frozen=True)
class QuestionSelection:
    """The question picked for a learner and how it was chosen."""

    question: Question
    target_difficulty: int
    stage: str
    pool_size: int

    def to_dict(self) -> dict[str, Any]:
        return self.question.to_dict()


@dataclass(frozen=True)
class AnswerResult:
    """Outcome of grading one answer."""

    correct: bool
    correct_answer: str
    coins_earned: int
    new_mastery: float
    feedback: str
    questions_answered: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "correct": self.correct,
            "correctAnswer": self.correct_answer,
            "coinsEarned": self.coins_earned,
            "newMastery": self.new_mastery,
            "feedback": self.feedback,
        }


@dataclass(frozen=True)
class TopicProgress:
    """A topic together with one learner's mastery of it."""

    topic: Topic
    mastery: float
    questions_answered: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {**self.topic.to_dict(), "mastery": self.mastery}


class PracticeEngine:
    """
    Adaptive question selection and answer recording.

    All collaborators are injected; see ``src.core.interfaces`` for the
    contracts. ``unit_of_work`` wraps the side effects of one answer so they
    persist together or not at all.
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        mastery_store: MasteryStore,
        event_log: EventLog,
        users: UserDirectory,
        unit_of_work: UnitOfWork | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        settings: Settings | None = None,
        cascade: tuple[CandidateStage, ...] = DEFAULT_CASCADE,
    ):
        settings = settings or get_settings()
        self.catalog = catalog
        self.mastery_store = mastery_store
        self.event_log = event_log
        self.users = users
        self._unit_of_work = unit_of_work or nullcontext
        self._rng = rng or random.Random()
        self._clock = clock or utcnow
        self._cascade = cascade
        self.coin_reward = settings.coin_reward
        self.ema_weight = settings.mastery_ema_weight
        self.default_year_group = settings.default_year_group

    # ========================================
    # Selection
    # ========================================

    def select_next_question(
        self,
        user_id: int,
        topic_id: int,
        answered_history: Iterable[int] = (),
    ) -> QuestionSelection:
        """
        Pick the next question for a learner in a topic.

        Args:
            user_id: Learner id (must resolve in the user directory)
            topic_id: Topic to practice
            answered_history: Question ids already seen this session

        Returns:
            QuestionSelection with the full question, including its answer

        Raises:
            NotFoundError: Unknown user, or the topic has no questions
        """
        user = self.users.get_user(user_id)
        year_group = user.year_group if user.year_group is not None else self.default_year_group

        mastery = self.mastery_store.get_mastery(user_id, topic_id)
        score = mastery.score if mastery else 0.0
        difficulty = target_difficulty(score)

        questions = self.catalog.get_questions_by_topic(topic_id)
        context = SelectionContext(
            year_group=year_group,
            target_difficulty=difficulty,
            history=frozenset(answered_history),
        )
        stage, pool = build_candidate_pool(questions, context, self._cascade)
        question = self._rng.choice(pool)

        logger.debug(
            f"User {user_id} topic {topic_id}: mastery={score:.3f} target={difficulty} "
            f"year={year_group} stage={stage} pool={len(pool)} -> question {question.id}"
        )
        return QuestionSelection(
            question=question,
            target_difficulty=difficulty,
            stage=stage,
            pool_size=len(pool),
        )

    # ========================================
    # Answering
    # ========================================

    def record_answer(
        self,
        user_id: int,
        question_id: int,
        submitted_answer: str,
        time_taken_seconds: int,
    ) -> AnswerResult:
        """
        Grade an answer and apply its side effects.

        The answer must match the stored correct answer exactly (case and
        whitespace included). The event append, coin reward and mastery
        update run inside one unit of work.

        Raises:
            NotFoundError: Unknown user or question
            InvalidInputError: Non-string answer or negative time taken
        """
        if not isinstance(submitted_answer, str):
            raise InvalidInputError("answer must be a string", field="answer")
        if time_taken_seconds < 0:
            raise InvalidInputError("timeTaken must not be negative", field="timeTaken")

        # Resolve both before any write
        self.users.get_user(user_id)
        question = self.catalog.get_question(question_id)
        is_correct = submitted_answer == question.correct_answer
        now = self._clock()
        coins = self.coin_reward if is_correct else 0

        update = partial(
            apply_answer,
            user_id=user_id,
            topic_id=question.topic_id,
            is_correct=is_correct,
            now=now,
            weight=self.ema_weight,
        )

        with self._unit_of_work():
            self.event_log.append(
                LearningEvent(
                    user_id=user_id,
                    question_id=question.id,
                    is_correct=is_correct,
                    time_taken=time_taken_seconds,
                    timestamp=now,
                )
            )
            if coins:
                self.users.increment_coins(user_id, coins)
            mastery = self.mastery_store.upsert_mastery(user_id, question.topic_id, update)

        logger.info(
            f"User {user_id} answered question {question.id} "
            f"{'correctly' if is_correct else 'incorrectly'}; "
            f"mastery now {mastery.score:.3f} after {mastery.questions_answered} answers"
        )

        if is_correct:
            feedback = PRAISE
        else:
            feedback = question.explanation or ENCOURAGEMENT

        return AnswerResult(
            correct=is_correct,
            correct_answer=question.correct_answer,
            coins_earned=coins,
            new_mastery=mastery.score,
            feedback=feedback,
            questions_answered=mastery.questions_answered,
        )

    # ========================================
    # Overview
    # ========================================

    def topic_overview(
        self,
        user_id: int,
        stage: Stage | None = None,
        subject_id: int | None = None,
    ) -> list[TopicProgress]:
        """List topics with the learner's mastery attached (0 if never practiced)."""
        topics = self.catalog.get_topics(stage)
        if subject_id is not None:
            topics = [t for t in topics if t.subject_id == subject_id]

        progress = []
        for topic in topics:
            mastery = self.mastery_store.get_mastery(user_id, topic.id)
            progress.append(
                TopicProgress(
                    topic=topic,
                    mastery=mastery.score if mastery else 0.0,
                    questions_answered=mastery.questions_answered if mastery else 0,
                )
            )
        return progress
