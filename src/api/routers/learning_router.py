"""
Learning API Router.

Endpoints for adaptive practice:
- Topic listing with the learner's mastery attached
- Next question selection
- Answer submission
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from src.adaptive.practice_engine import PracticeEngine
from src.api.dependencies import (
    get_current_user,
    get_practice_engine,
    parse_history,
    parse_int,
)
from src.core.errors import InvalidInputError
from src.core.models import Stage, User

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class AnswerSubmitRequest(BaseModel):
    """Request model for submitting an answer."""

    model_config = ConfigDict(populate_by_name=True)

    question_id: int = Field(..., alias="questionId", description="Question being answered")
    answer: str = Field(..., description="Learner's answer, compared exactly")
    time_taken: int = Field(..., alias="timeTaken", ge=0, description="Seconds spent on the question")


class AnswerResultResponse(BaseModel):
    """Response model for answer evaluation."""

    correct: bool
    correctAnswer: str
    coinsEarned: int
    newMastery: float
    feedback: str


class QuestionResponse(BaseModel):
    """Full question, including the correct answer and distractors."""

    id: int
    topicId: int
    content: str
    type: str
    correctAnswer: str
    distractors: list[str]
    difficulty: int
    minYearGroup: int
    maxYearGroup: int
    explanation: str | None


class TopicResponse(BaseModel):
    id: int
    subjectId: int
    name: str
    slug: str
    stage: str
    description: str | None
    mastery: float


# ========================================
# Endpoints
# ========================================


@router.get("/topics", response_model=list[TopicResponse], summary="List topics")
def list_topics(
    stage: str | None = Query(None, description="Curriculum stage: KS1, KS2, KS3"),
    subject_id: str | None = Query(None, alias="subjectId", description="Subject filter"),
    user: User = Depends(get_current_user),
    engine: PracticeEngine = Depends(get_practice_engine),
) -> list[dict[str, Any]]:
    """List topics, each with the current learner's mastery (0 if never practiced)."""
    try:
        stage_filter = Stage(stage) if stage else None
    except ValueError:
        raise InvalidInputError(f"Unknown stage: {stage}", field="stage") from None
    subject = parse_int(subject_id, "subjectId") if subject_id else None

    progress = engine.topic_overview(user.id, stage=stage_filter, subject_id=subject)
    return [p.to_dict() for p in progress]


@router.get("/learning/question", response_model=QuestionResponse, summary="Get next question")
def get_next_question(
    topic_id: str | None = Query(None, alias="topicId", description="Topic to practice"),
    history: str | None = Query(None, description="Comma-separated ids of questions already seen"),
    user: User = Depends(get_current_user),
    engine: PracticeEngine = Depends(get_practice_engine),
) -> dict[str, Any]:
    """
    Select the next question for the learner.

    Difficulty follows the learner's mastery; questions already in
    ``history`` are avoided until everything suitable has been seen.
    """
    topic = parse_int(topic_id, "topicId")
    seen = parse_history(history)

    selection = engine.select_next_question(user.id, topic, seen)
    return selection.to_dict()


@router.post("/learning/answer", response_model=AnswerResultResponse, summary="Submit answer")
def submit_answer(
    request: AnswerSubmitRequest,
    user: User = Depends(get_current_user),
    engine: PracticeEngine = Depends(get_practice_engine),
) -> dict[str, Any]:
    """Grade an answer, award coins and update mastery."""
    logger.debug(f"User {user.id} submitting answer for question {request.question_id}")
    result = engine.record_answer(
        user_id=user.id,
        question_id=request.question_id,
        submitted_answer=request.answer,
        time_taken_seconds=request.time_taken,
    )
    return result.to_dict()
