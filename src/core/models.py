"""
Domain models for the adaptive practice engine.

These are plain dataclasses shared by the engine, the stores and the serving
layers. ORM rows in ``src.db.models`` convert into them via ``to_domain()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.core.errors import InvalidInputError

MIN_YEAR_GROUP = 1
MAX_YEAR_GROUP = 9


class Stage(str, Enum):
    """Curriculum key stages."""

    KS1 = "KS1"
    KS2 = "KS2"
    KS3 = "KS3"


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    PARENT = "parent"


@dataclass(frozen=True)
class Topic:
    """A curriculum topic such as "Electricity" or "Fractions"."""

    id: int
    subject_id: int
    name: str
    stage: Stage
    slug: str = ""
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subjectId": self.subject_id,
            "name": self.name,
            "slug": self.slug,
            "stage": self.stage.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class Question:
    """
    A multiple choice question owned by the content catalog.

    Year bounds are required with defaults applied at construction, so
    filtering never has to guess at missing values.
    """

    id: int
    topic_id: int
    content: str
    correct_answer: str
    distractors: tuple[str, ...]
    difficulty: int = 1
    min_year_group: int = MIN_YEAR_GROUP
    max_year_group: int = MAX_YEAR_GROUP
    explanation: str | None = None
    question_type: str = "multiple_choice"

    def __post_init__(self):
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, "distractors", tuple(self.distractors))
        if not self.distractors:
            raise InvalidInputError(
                f"Question {self.id} must have at least one distractor", field="distractors"
            )
        if self.min_year_group > self.max_year_group:
            raise InvalidInputError(
                f"Question {self.id} has min year {self.min_year_group} "
                f"above max year {self.max_year_group}",
                field="minYearGroup",
            )

    def covers_year(self, year_group: int) -> bool:
        """Check whether the question is suitable for a year group (inclusive)."""
        return self.min_year_group <= year_group <= self.max_year_group

    @property
    def options(self) -> list[str]:
        """Correct answer followed by distractors (unshuffled)."""
        return [self.correct_answer, *self.distractors]

    def to_dict(self) -> dict[str, Any]:
        """Wire representation, including the correct answer."""
        return {
            "id": self.id,
            "topicId": self.topic_id,
            "content": self.content,
            "type": self.question_type,
            "correctAnswer": self.correct_answer,
            "distractors": list(self.distractors),
            "difficulty": self.difficulty,
            "minYearGroup": self.min_year_group,
            "maxYearGroup": self.max_year_group,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class LearningEvent:
    """Append-only record of a single answer."""

    user_id: int
    question_id: int
    is_correct: bool
    time_taken: int  # seconds
    timestamp: datetime


@dataclass
class User:
    """The subset of a user account the engine reads."""

    id: int
    username: str
    first_name: str = ""
    role: Role = Role.STUDENT
    year_group: int | None = None
    coins: int = 0
    class_id: int | None = None
    parent_id: int | None = None
    avatar_config: dict[str, Any] = field(default_factory=dict)
