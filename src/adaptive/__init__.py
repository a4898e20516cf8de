"""
Adaptive Practice Engine.

Components:
- candidate_policy: Ordered fallback cascade that builds the candidate pool
- practice_engine: Question selection and answer recording
- memory_store: In-memory collaborators for tests and offline use
"""
from src.adaptive.candidate_policy import (
    DEFAULT_CASCADE,
    CandidateStage,
    SelectionContext,
    build_candidate_pool,
)
from src.adaptive.memory_store import InMemoryPracticeStore
from src.adaptive.practice_engine import (
    AnswerResult,
    PracticeEngine,
    QuestionSelection,
    TopicProgress,
)

__all__ = [
    # Main engine
    "PracticeEngine",
    # Results
    "AnswerResult",
    "QuestionSelection",
    "TopicProgress",
    # Candidate policy
    "CandidateStage",
    "DEFAULT_CASCADE",
    "SelectionContext",
    "build_candidate_pool",
    # Stores
    "InMemoryPracticeStore",
]
