"""
Learning models for the practice app.

SQLAlchemy models for:
- User accounts (students, teachers, parents) and classes
- Curriculum: subjects, topics and questions
- Progress: per-topic mastery and the learning event log

Each row that the practice engine reads has a ``to_domain()`` converter
returning the matching dataclass from ``src.core``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.mastery import Mastery
from src.core.models import MAX_YEAR_GROUP, MIN_YEAR_GROUP, Question, Role, Stage, Topic, User

from .base import Base


class UserAccount(Base):
    """
    A student, teacher or parent.

    Students may log in with a picture password instead of a text password,
    so ``password`` is nullable.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    password: Mapped[str | None] = mapped_column(Text)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    picture_password: Mapped[list | None] = mapped_column(JSON)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    year_group: Mapped[int | None] = mapped_column(Integer)  # 1-9
    class_id: Mapped[int | None] = mapped_column(ForeignKey("classes.id"))
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    coins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    avatar_config: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    mastery_records: Mapped[list[TopicMastery]] = relationship(back_populates="user")

    __table_args__ = (
        CheckConstraint("role IN ('student', 'teacher', 'parent')", name="ck_users_role"),
    )

    def __repr__(self) -> str:
        return f"<UserAccount id={self.id} username={self.username} role={self.role}>"

    def to_domain(self) -> User:
        return User(
            id=self.id,
            username=self.username,
            first_name=self.first_name,
            role=Role(self.role),
            year_group=self.year_group,
            coins=self.coins or 0,
            class_id=self.class_id,
            parent_id=self.parent_id,
            avatar_config=dict(self.avatar_config or {}),
        )


class SchoolClass(Base):
    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    teacher_id: Mapped[int] = mapped_column(Integer, nullable=False)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)  # For joining


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)  # e.g. "Science"
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)


class CurriculumTopic(Base):
    """A topic within a subject, e.g. "Electricity" or "Fractions"."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    stage: Mapped[str] = mapped_column(String(8), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    questions: Mapped[list[TopicQuestion]] = relationship(back_populates="topic")

    __table_args__ = (
        CheckConstraint("stage IN ('KS1', 'KS2', 'KS3')", name="ck_topics_stage"),
    )

    def to_domain(self) -> Topic:
        return Topic(
            id=self.id,
            subject_id=self.subject_id,
            name=self.name,
            stage=Stage(self.stage),
            slug=self.slug,
            description=self.description,
        )


class TopicQuestion(Base):
    """
    A multiple choice question.

    Year bounds are NOT NULL with defaults applied on insert, so every stored
    question carries an explicit age range.
    """

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id"), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(
        "type", String(32), default="multiple_choice", nullable=False
    )  # 'multiple_choice', 'drag_drop'
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    distractors: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    difficulty: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    min_year_group: Mapped[int] = mapped_column(Integer, default=MIN_YEAR_GROUP, nullable=False)
    max_year_group: Mapped[int] = mapped_column(Integer, default=MAX_YEAR_GROUP, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text)

    topic: Mapped[CurriculumTopic] = relationship(back_populates="questions")

    def __repr__(self) -> str:
        return f"<TopicQuestion id={self.id} topic={self.topic_id} difficulty={self.difficulty}>"

    def to_domain(self) -> Question:
        return Question(
            id=self.id,
            topic_id=self.topic_id,
            content=self.content,
            correct_answer=self.correct_answer,
            distractors=tuple(self.distractors or ()),
            difficulty=self.difficulty,
            min_year_group=self.min_year_group,
            max_year_group=self.max_year_group,
            explanation=self.explanation,
            question_type=self.question_type,
        )


class TopicMastery(Base):
    """
    Mastery score per user per topic (0-1 moving average).

    ``questions_answered`` doubles as the version number for
    compare-and-swap updates.
    """

    __tablename__ = "mastery"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id"), nullable=False)
    score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    questions_answered: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_practiced: Mapped[datetime | None] = mapped_column()

    user: Mapped[UserAccount] = relationship(back_populates="mastery_records")

    __table_args__ = (
        UniqueConstraint("user_id", "topic_id", name="uq_mastery_user_topic"),
        CheckConstraint("score >= 0 AND score <= 1", name="ck_mastery_score_range"),
    )

    def __repr__(self) -> str:
        return f"<TopicMastery user={self.user_id} topic={self.topic_id} score={self.score}>"

    def to_domain(self) -> Mastery:
        return Mastery(
            user_id=self.user_id,
            topic_id=self.topic_id,
            score=self.score,
            questions_answered=self.questions_answered,
            last_practiced=self.last_practiced,
        )


class LearningEventRecord(Base):
    """Append-only log of answers (never updated)."""

    __tablename__ = "learning_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id"), nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_taken: Mapped[int] = mapped_column(Integer, nullable=False)  # seconds
    timestamp: Mapped[datetime] = mapped_column(default=func.now())

    __table_args__ = (Index("idx_learning_events_user", "user_id", "timestamp"),)
