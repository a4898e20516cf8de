# SQLAlchemy models
from .base import Base
from .learning import (
    CurriculumTopic,
    LearningEventRecord,
    SchoolClass,
    Subject,
    TopicMastery,
    TopicQuestion,
    UserAccount,
)

__all__ = [
    # Base
    "Base",
    # Accounts
    "UserAccount",
    "SchoolClass",
    # Curriculum
    "Subject",
    "CurriculumTopic",
    "TopicQuestion",
    # Progress
    "TopicMastery",
    "LearningEventRecord",
]
