"""
Unit tests for the candidate cascade.
"""

import pytest

from src.adaptive.candidate_policy import (
    CandidateStage,
    SelectionContext,
    build_candidate_pool,
)
from src.core.errors import NotFoundError


def _ids(pool):
    return sorted(q.id for q in pool)


class TestCascade:
    def test_matched_stage_when_difficulty_and_year_fit(self, sample_questions):
        context = SelectionContext(year_group=2, target_difficulty=1)

        stage, pool = build_candidate_pool(sample_questions, context)

        assert stage == "matched"
        assert _ids(pool) == [1, 2]

    def test_relaxes_difficulty_before_year(self, sample_questions):
        # Year 5 learner at difficulty 1: no easy question covers year 5
        context = SelectionContext(year_group=5, target_difficulty=1)

        stage, pool = build_candidate_pool(sample_questions, context)

        assert stage == "unseen_in_year"
        assert _ids(pool) == [3, 4]

    def test_unseen_questions_preferred(self, sample_questions):
        context = SelectionContext(year_group=5, target_difficulty=5, history=frozenset({3}))

        stage, pool = build_candidate_pool(sample_questions, context)

        assert stage == "matched"
        assert _ids(pool) == [4]

    def test_history_relaxed_once_year_pool_exhausted(self, sample_questions):
        context = SelectionContext(year_group=5, target_difficulty=5, history=frozenset({3, 4}))

        stage, pool = build_candidate_pool(sample_questions, context)

        assert stage == "in_year"
        assert _ids(pool) == [3, 4]

    def test_year_relaxed_as_last_resort(self, sample_questions):
        context = SelectionContext(year_group=9, target_difficulty=3)

        stage, pool = build_candidate_pool(sample_questions, context)

        assert stage == "any"
        assert _ids(pool) == [1, 2, 3, 4]

    def test_never_empty_for_non_empty_topic(self, sample_questions):
        for year in range(1, 10):
            for difficulty in range(1, 6):
                context = SelectionContext(year, difficulty, frozenset(q.id for q in sample_questions))
                _, pool = build_candidate_pool(sample_questions, context)
                assert pool

    def test_empty_topic_raises(self):
        with pytest.raises(NotFoundError, match="No questions found"):
            build_candidate_pool([], SelectionContext(year_group=5, target_difficulty=1))

    def test_custom_cascade_without_catch_all(self, sample_questions):
        cascade = (CandidateStage("hard_only", lambda q, ctx: q.difficulty > 5),)

        with pytest.raises(NotFoundError):
            build_candidate_pool(sample_questions, SelectionContext(5, 1), cascade)
