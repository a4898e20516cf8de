"""
Unit tests for PracticeEngine over the in-memory store.
"""

import itertools
import random
import threading

import pytest

from src.adaptive.memory_store import InMemoryPracticeStore
from src.adaptive.practice_engine import ENCOURAGEMENT, PRAISE, PracticeEngine
from src.core.errors import InvalidInputError, NotFoundError
from src.core.mastery import Mastery, update_mastery_score


class TestSelectNextQuestion:
    def test_year5_beginner_gets_hard_question_in_year(self, practice_engine):
        # Mastery 0 targets difficulty 1, but only difficulty 5 covers year 5
        selection = practice_engine.select_next_question(user_id=2, topic_id=4)

        assert selection.target_difficulty == 1
        assert selection.stage == "unseen_in_year"
        assert selection.question.id in {3, 4}
        assert selection.question.difficulty == 5

    def test_history_avoids_repeats(self, practice_engine):
        selection = practice_engine.select_next_question(2, 4, answered_history=[3])
        assert selection.question.id == 4

    def test_history_recycled_when_exhausted(self, practice_engine):
        selection = practice_engine.select_next_question(2, 4, answered_history=[3, 4])

        assert selection.stage == "in_year"
        assert selection.question.id in {3, 4}

    def test_mastery_drives_target_difficulty(self, practice_engine, memory_store):
        memory_store.upsert_mastery(
            2, 4, lambda prior: Mastery(user_id=2, topic_id=4, score=0.85, questions_answered=10)
        )

        selection = practice_engine.select_next_question(2, 4)

        assert selection.target_difficulty == 5
        assert selection.stage == "matched"

    def test_missing_year_group_defaults_to_year5(self, practice_engine):
        selection = practice_engine.select_next_question(user_id=3, topic_id=4)
        assert selection.question.id in {3, 4}

    def test_empty_topic_raises_not_found(self, practice_engine):
        with pytest.raises(NotFoundError, match="No questions found"):
            practice_engine.select_next_question(2, 1)

    def test_unknown_user_raises_not_found(self, practice_engine):
        with pytest.raises(NotFoundError):
            practice_engine.select_next_question(99, 4)

    def test_selection_returns_full_question(self, practice_engine):
        data = practice_engine.select_next_question(2, 4).to_dict()
        assert "correctAnswer" in data
        assert "distractors" in data

    def test_seeded_rng_is_reproducible(self, memory_store):
        picks = []
        for _ in range(2):
            engine = PracticeEngine(
                memory_store, memory_store, memory_store, memory_store, rng=random.Random(7)
            )
            picks.append([engine.select_next_question(2, 4).question.id for _ in range(5)])
        assert picks[0] == picks[1]


class TestRecordAnswer:
    def test_correct_answer_awards_coins_and_mastery(self, practice_engine, memory_store):
        result = practice_engine.record_answer(2, 3, "245", 12)

        assert result.correct is True
        assert result.coins_earned == 10
        assert result.new_mastery == 1.0
        assert result.feedback == PRAISE
        assert result.correct_answer == "245"
        assert memory_store.get_user(2).coins == 10

    def test_wrong_answer_uses_explanation(self, practice_engine, memory_store):
        result = practice_engine.record_answer(2, 3, "235", 20)

        assert result.correct is False
        assert result.coins_earned == 0
        assert result.new_mastery == 0.0
        assert result.feedback == "156 + 89 = 245"
        assert memory_store.get_user(2).coins == 0

    def test_wrong_answer_without_explanation_encourages(self, practice_engine):
        result = practice_engine.record_answer(2, 4, "623", 5)
        assert result.feedback == ENCOURAGEMENT

    def test_matching_is_case_and_whitespace_sensitive(self, memory_store, practice_engine):
        from src.core.models import Question

        memory_store.add_question(
            Question(id=20, topic_id=1, content="Good conductor?", correct_answer="Copper",
                     distractors=["Wood"])
        )

        assert practice_engine.record_answer(2, 20, "copper", 1).correct is False
        assert practice_engine.record_answer(2, 20, "Copper ", 1).correct is False
        assert practice_engine.record_answer(2, 20, "Copper", 1).correct is True

    def test_moving_average_after_first_answer(self, practice_engine):
        practice_engine.record_answer(2, 3, "245", 1)
        result = practice_engine.record_answer(2, 4, "wrong", 1)

        assert result.new_mastery == pytest.approx(0.9)
        assert result.questions_answered == 2

    def test_event_logged(self, practice_engine, memory_store, fixed_now):
        practice_engine.record_answer(2, 3, "245", 12)

        [event] = memory_store.events
        assert event.user_id == 2
        assert event.question_id == 3
        assert event.is_correct is True
        assert event.time_taken == 12
        assert event.timestamp == fixed_now

    def test_mastery_keyed_by_question_topic(self, practice_engine, memory_store, fixed_now):
        practice_engine.record_answer(2, 1, "8", 3)

        mastery = memory_store.get_mastery(2, 4)
        assert mastery.questions_answered == 1
        assert mastery.last_practiced == fixed_now

    def test_unknown_question(self, practice_engine, memory_store):
        with pytest.raises(NotFoundError, match="Question not found"):
            practice_engine.record_answer(2, 999, "8", 1)
        assert memory_store.events == []

    @pytest.mark.parametrize("answer", ["245", "wrong"])
    def test_unknown_user_writes_nothing(self, practice_engine, memory_store, answer):
        with pytest.raises(NotFoundError, match="User 777"):
            practice_engine.record_answer(777, 3, answer, 1)

        assert memory_store.events == []
        assert memory_store.get_mastery(777, 4) is None

    def test_negative_time_rejected(self, practice_engine):
        with pytest.raises(InvalidInputError) as exc_info:
            practice_engine.record_answer(2, 3, "245", -1)
        assert exc_info.value.field == "timeTaken"

    def test_non_string_answer_rejected(self, practice_engine):
        with pytest.raises(InvalidInputError) as exc_info:
            practice_engine.record_answer(2, 3, 245, 1)
        assert exc_info.value.field == "answer"


class FailingMasteryStore(InMemoryPracticeStore):
    def upsert_mastery(self, user_id, topic_id, update_fn):
        raise RuntimeError("mastery store unavailable")


class TestUnitOfWork:
    def test_failure_leaves_no_partial_writes(self, sample_questions, year5_student):
        store = FailingMasteryStore()
        store.add_user(year5_student)
        for question in sample_questions:
            store.add_question(question)
        engine = PracticeEngine(store, store, store, store, unit_of_work=store.transaction)

        with pytest.raises(RuntimeError):
            engine.record_answer(2, 3, "245", 10)

        assert store.events == []
        assert store.get_user(2).coins == 0
        assert store.get_mastery(2, 4) is None

    def test_concurrent_answers_are_not_lost(self, memory_store):
        engine = PracticeEngine(
            memory_store, memory_store, memory_store, memory_store,
            unit_of_work=memory_store.transaction,
        )
        barrier = threading.Barrier(8)
        errors = []

        def answer():
            barrier.wait()
            try:
                for _ in range(5):
                    engine.record_answer(2, 3, "245", 1)
            except Exception as e:  # pragma: no cover - surfaced by the assertion below
                errors.append(e)

        threads = [threading.Thread(target=answer) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        mastery = memory_store.get_mastery(2, 4)
        assert mastery.questions_answered == 40
        assert mastery.score == 1.0
        assert memory_store.get_user(2).coins == 400
        assert len(memory_store.events) == 40

    def test_concurrent_mixed_outcomes_match_a_serial_order(self, memory_store):
        engine = PracticeEngine(
            memory_store, memory_store, memory_store, memory_store,
            unit_of_work=memory_store.transaction,
        )
        rounds = 4
        barrier = threading.Barrier(2)
        errors = []

        def answer(submitted):
            barrier.wait()
            try:
                for _ in range(rounds):
                    engine.record_answer(2, 3, submitted, 1)
            except Exception as e:  # pragma: no cover - surfaced by the assertion below
                errors.append(e)

        threads = [threading.Thread(target=answer, args=(s,)) for s in ("245", "235")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Every interleaving of four correct and four wrong answers
        serial_scores = []
        for correct_slots in itertools.combinations(range(2 * rounds), rounds):
            score = None
            for slot in range(2 * rounds):
                score = update_mastery_score(score, slot in correct_slots, engine.ema_weight)
            serial_scores.append(score)

        assert errors == []
        mastery = memory_store.get_mastery(2, 4)
        assert mastery.questions_answered == 2 * rounds
        assert any(mastery.score == pytest.approx(s) for s in serial_scores)
        assert memory_store.get_user(2).coins == rounds * engine.coin_reward
        assert len(memory_store.events) == 2 * rounds



class TestTopicOverview:
    def test_untouched_topics_report_zero(self, practice_engine):
        overview = practice_engine.topic_overview(2)

        assert [p.topic.id for p in overview] == [1, 4, 9]
        assert all(p.mastery == 0.0 for p in overview)

    def test_reports_practiced_mastery(self, practice_engine):
        practice_engine.record_answer(2, 3, "245", 1)

        by_topic = {p.topic.id: p for p in practice_engine.topic_overview(2)}

        assert by_topic[4].mastery == 1.0
        assert by_topic[4].questions_answered == 1
        assert by_topic[4].to_dict()["mastery"] == 1.0
        assert by_topic[1].mastery == 0.0

    def test_stage_and_subject_filters(self, practice_engine):
        from src.core.models import Stage

        assert [p.topic.id for p in practice_engine.topic_overview(2, stage=Stage.KS1)] == [9]
        assert [p.topic.id for p in practice_engine.topic_overview(2, subject_id=1)] == [1]
