"""
Core Module - Shared domain models and interfaces.

Components:
- mastery: Mastery state, difficulty targeting and the moving-average update
- models: Topics, questions, users and learning events
- interfaces: Collaborator protocols consumed by the practice engine
- errors: Domain exceptions
"""

from src.core.errors import (
    EngineError,
    InvalidInputError,
    MasteryConflictError,
    NotFoundError,
    UnauthenticatedError,
)
from src.core.mastery import (
    Mastery,
    MasteryLevel,
    apply_answer,
    target_difficulty,
    update_mastery_score,
)
from src.core.models import LearningEvent, Question, Role, Stage, Topic, User

__all__ = [
    # Errors
    "EngineError",
    "InvalidInputError",
    "MasteryConflictError",
    "NotFoundError",
    "UnauthenticatedError",
    # Mastery
    "Mastery",
    "MasteryLevel",
    "apply_answer",
    "target_difficulty",
    "update_mastery_score",
    # Models
    "LearningEvent",
    "Question",
    "Role",
    "Stage",
    "Topic",
    "User",
]
