"""
Core Mastery Module.

Mastery is a per-learner, per-topic score in [0, 1] maintained as an
exponential moving average of answer outcomes. It drives the difficulty the
practice engine aims for next.

Design:
- MasteryLevel: Enum for categorizing mastery scores
- Mastery: Dataclass for the stored mastery state
- target_difficulty: Five-level ramp from mastery to question difficulty
- update_mastery_score / apply_answer: The moving-average update rule
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
DIFFICULTY_LEVELS = 5
EMA_WEIGHT = 0.1


class MasteryLevel(str, Enum):
    """
    Mastery level categorization.

    Aligned with learning science research on skill acquisition stages.
    """

    NOT_STARTED = "not_started"  # 0%
    NOVICE = "novice"  # 1-39%
    DEVELOPING = "developing"  # 40-69%
    PROFICIENT = "proficient"  # 70-89%
    MASTERED = "mastered"  # 90-100%

    @classmethod
    def from_score(cls, score: float) -> MasteryLevel:
        """
        Convert a 0-1 mastery score to a level.

        Args:
            score: Mastery score between 0 and 1

        Returns:
            Corresponding MasteryLevel
        """
        if score <= 0:
            return cls.NOT_STARTED
        elif score < 0.4:
            return cls.NOVICE
        elif score < 0.7:
            return cls.DEVELOPING
        elif score < 0.9:
            return cls.PROFICIENT
        else:
            return cls.MASTERED

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOT_STARTED: "dim",
            MasteryLevel.NOVICE: "red",
            MasteryLevel.DEVELOPING: "yellow",
            MasteryLevel.PROFICIENT: "cyan",
            MasteryLevel.MASTERED: "green",
        }[self]


@dataclass(frozen=True)
class Mastery:
    """
    Mastery state for one (user, topic) pair.

    Created lazily on the first answer and never deleted.
    """

    user_id: int
    topic_id: int
    score: float = 0.0
    questions_answered: int = 0
    last_practiced: datetime | None = None

    @property
    def level(self) -> MasteryLevel:
        return MasteryLevel.from_score(self.score)

    @property
    def mastery_percentage(self) -> float:
        """Mastery as percentage (0-100)."""
        return self.score * 100


def target_difficulty(score: float) -> int:
    """
    Map a mastery score to the difficulty level to serve next.

    Formula: clamp(floor(score * 5) + 1, 1, 5)

    A score of 0 targets difficulty 1, 0.2 targets 2, and anything from 0.8
    upwards targets 5 (a perfect score would give 6 before clamping).
    """
    level = math.floor(score * DIFFICULTY_LEVELS) + 1
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, level))


def update_mastery_score(
    prior: float | None,
    is_correct: bool,
    weight: float = EMA_WEIGHT,
) -> float:
    """
    Apply one answer to a mastery score.

    Formula: new = prior × (1 - weight) + outcome × weight

    The first answer for a topic has no prior, so the score jumps straight to
    the outcome (1.0 or 0.0). Because the update is a convex combination of
    values in [0, 1] the result stays in [0, 1].

    Args:
        prior: Current score, or None if the learner has never answered
        is_correct: Outcome of the answer
        weight: Weight of the newest outcome (default 0.1)

    Returns:
        Updated score between 0 and 1
    """
    observed = 1.0 if is_correct else 0.0
    if prior is None:
        return observed
    score = prior * (1.0 - weight) + observed * weight
    return min(max(score, 0.0), 1.0)


def apply_answer(
    prior: Mastery | None,
    user_id: int,
    topic_id: int,
    is_correct: bool,
    now: datetime,
    weight: float = EMA_WEIGHT,
) -> Mastery:
    """Build the mastery record that results from answering one question."""
    if prior is None:
        return Mastery(
            user_id=user_id,
            topic_id=topic_id,
            score=update_mastery_score(None, is_correct, weight),
            questions_answered=1,
            last_practiced=now,
        )
    return replace(
        prior,
        score=update_mastery_score(prior.score, is_correct, weight),
        questions_answered=prior.questions_answered + 1,
        last_practiced=now,
    )


def format_progress_bar(score: float, width: int = 10) -> str:
    """
    Format a text progress bar.

    Args:
        score: Score 0-1
        width: Character width

    Returns:
        String like "████████░░"
    """
    filled = int(score * width)
    empty = width - filled
    return "█" * filled + "░" * empty
