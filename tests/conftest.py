"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.adaptive.memory_store import InMemoryPracticeStore  # noqa: E402
from src.adaptive.practice_engine import PracticeEngine  # noqa: E402
from src.core.models import Question, Stage, Topic, User  # noqa: E402
from src.db.database import create_db_engine, init_db  # noqa: E402

FIXED_NOW = datetime(2024, 3, 1, 9, 30)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


# ========================================
# Domain fixtures
# ========================================


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def addition_topic():
    return Topic(id=4, subject_id=2, name="Addition", stage=Stage.KS2, slug="addition")


@pytest.fixture
def year5_student():
    return User(id=2, username="student1", first_name="Alex", year_group=5)


@pytest.fixture
def sample_questions():
    """Easy questions for years 1-3 and hard ones for years 5-7."""
    return [
        Question(id=1, topic_id=4, content="What is 5 + 3?", correct_answer="8",
                 distractors=["7", "9", "6"], difficulty=1, min_year_group=1, max_year_group=3,
                 explanation="5 + 3 = 8"),
        Question(id=2, topic_id=4, content="What is 2 + 2?", correct_answer="4",
                 distractors=["3", "5"], difficulty=1, min_year_group=1, max_year_group=3),
        Question(id=3, topic_id=4, content="What is 156 + 89?", correct_answer="245",
                 distractors=["235", "255", "244"], difficulty=5, min_year_group=5, max_year_group=7,
                 explanation="156 + 89 = 245"),
        Question(id=4, topic_id=4, content="What is 278 + 355?", correct_answer="633",
                 distractors=["623", "643"], difficulty=5, min_year_group=5, max_year_group=7),
    ]


@pytest.fixture
def memory_store(addition_topic, year5_student, sample_questions):
    """In-memory store loaded with one topic, one student and the sample questions."""
    store = InMemoryPracticeStore()
    store.add_topic(addition_topic)
    store.add_topic(Topic(id=1, subject_id=1, name="Electricity", stage=Stage.KS2, slug="electricity"))
    store.add_topic(Topic(id=9, subject_id=2, name="Place Value", stage=Stage.KS1, slug="place-value"))
    store.add_user(year5_student)
    store.add_user(User(id=3, username="newbie", first_name="Sam"))
    for question in sample_questions:
        store.add_question(question)
    return store


@pytest.fixture
def practice_engine(memory_store):
    """Engine over the in-memory store with a seeded RNG and a fixed clock."""
    return PracticeEngine(
        catalog=memory_store,
        mastery_store=memory_store,
        event_log=memory_store,
        users=memory_store,
        unit_of_work=memory_store.transaction,
        rng=random.Random(1234),
        clock=lambda: FIXED_NOW,
    )


# ========================================
# Database fixtures
# ========================================


@pytest.fixture
def sql_engine(tmp_path):
    """Temporary file-backed SQLite database with all tables created."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'edukid-test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sql_engine):
    return sessionmaker(bind=sql_engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_session(db_session):
    """Session over a database holding the demo data, committed."""
    from src.db.seed import seed_database

    seed_database(db_session)
    db_session.commit()
    return db_session
