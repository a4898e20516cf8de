"""
Demo data for a fresh database.

Loads two subjects, eight KS2 topics, a teacher and a year 5 student, and
question sets for Addition and Electricity. Safe to run repeatedly: only missing
rows are inserted.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.db.models import CurriculumTopic, Subject, TopicQuestion, UserAccount

DEMO_STUDENT = "student1"

SUBJECTS = [
    {"name": "Science", "slug": "science"},
    {"name": "Maths", "slug": "maths"},
]

TOPICS = [
    {"name": "Electricity", "slug": "electricity", "stage": "KS2", "subject": "science", "description": "Circuits and conductors"},
    {"name": "Plants", "slug": "plants", "stage": "KS2", "subject": "science", "description": "Photosynthesis and growth"},
    {"name": "Space", "slug": "space", "stage": "KS2", "subject": "science", "description": "Planets and the solar system"},
    {"name": "Addition", "slug": "addition", "stage": "KS2", "subject": "maths", "description": "Adding numbers together"},
    {"name": "Subtraction", "slug": "subtraction", "stage": "KS2", "subject": "maths", "description": "Taking numbers away"},
    {"name": "Multiplication", "slug": "multiplication", "stage": "KS2", "subject": "maths", "description": "Times tables and products"},
    {"name": "Division", "slug": "division", "stage": "KS2", "subject": "maths", "description": "Sharing and grouping"},
    {"name": "Fractions", "slug": "fractions", "stage": "KS2", "subject": "maths", "description": "Parts of a whole"},
]

USERS = [
    {"username": "admin", "password": "admin", "role": "teacher", "first_name": "Admin", "year_group": None, "avatar_config": {}},
    {"username": DEMO_STUDENT, "password": "admin", "role": "student", "first_name": "Alex", "year_group": 5, "avatar_config": {"color": "blue"}},
]

# (content, correct, distractors, difficulty, min_year, max_year, explanation)
QUESTIONS = {
    "addition": [
        ("What is 5 + 3?", "8", ["7", "9", "6"], 1, 1, 3, "5 + 3 = 8"),
        ("What is 12 + 7?", "19", ["18", "20", "17"], 2, 2, 4, "12 + 7 = 19"),
        ("What is 25 + 16?", "41", ["40", "42", "39"], 3, 3, 5, "25 + 16 = 41"),
        ("What is 48 + 27?", "75", ["74", "76", "65"], 4, 4, 6, "48 + 27 = 75"),
        ("What is 156 + 89?", "245", ["235", "255", "244"], 5, 5, 7, "156 + 89 = 245"),
        ("What is 342 + 589?", "931", ["921", "941", "831"], 6, 6, 8, "342 + 589 = 931"),
        (
            "If you have 15 apples and buy 23 more, how many do you have?",
            "38", ["37", "39", "35"], 2, 2, 4, "15 + 23 = 38",
        ),
    ],
    "electricity": [
        (
            "Which of these is a good conductor of electricity?",
            "Copper", ["Wood", "Plastic", "Rubber"], 2, 3, 6,
            "Metals like copper allow electricity to flow freely.",
        ),
        (
            "What component breaks a circuit to stop the flow?",
            "Switch", ["Battery", "Bulb", "Wire"], 3, 3, 6,
            "A switch opens the circuit gap.",
        ),
        (
            "What is the unit used to measure electric current?",
            "Ampere", ["Volt", "Watt", "Ohm"], 5, 6, 9,
            "The Ampere (Amp) is the unit of electric current.",
        ),
    ],
}


def seed_database(session: Session) -> dict[str, Any]:
    """
    Insert whichever demo rows are missing.

    Subjects and topics are matched on slug, users on username. Question sets
    are only loaded for topics created by this call.

    Returns:
        Dict of inserted row counts, with ``skipped`` set when nothing was done
    """
    subjects = {s.slug: s for s in session.scalars(select(Subject))}
    topics = {t.slug: t for t in session.scalars(select(CurriculumTopic))}
    usernames = set(session.scalars(select(UserAccount.username)))
    counts = {"subjects": 0, "topics": 0, "users": 0, "questions": 0}

    for data in SUBJECTS:
        if data["slug"] not in subjects:
            subjects[data["slug"]] = Subject(**data)
            session.add(subjects[data["slug"]])
            counts["subjects"] += 1
    session.flush()

    new_topics = set()
    for data in TOPICS:
        if data["slug"] in topics:
            continue
        topic = CurriculumTopic(
            subject_id=subjects[data["subject"]].id,
            name=data["name"],
            slug=data["slug"],
            stage=data["stage"],
            description=data["description"],
        )
        session.add(topic)
        topics[data["slug"]] = topic
        new_topics.add(data["slug"])
        counts["topics"] += 1
    session.flush()

    for data in USERS:
        if data["username"] not in usernames:
            session.add(UserAccount(**data))
            counts["users"] += 1

    for slug, rows in QUESTIONS.items():
        if slug not in new_topics:
            continue
        for content, correct, distractors, difficulty, min_year, max_year, explanation in rows:
            session.add(
                TopicQuestion(
                    topic_id=topics[slug].id,
                    content=content,
                    question_type="multiple_choice",
                    correct_answer=correct,
                    distractors=distractors,
                    difficulty=difficulty,
                    min_year_group=min_year,
                    max_year_group=max_year,
                    explanation=explanation,
                )
            )
            counts["questions"] += 1
    session.flush()

    if not any(counts.values()):
        logger.info("Demo data already present; skipping seed")
        return {"skipped": True, **counts}

    summary = {"skipped": False, **counts}
    logger.info(f"Seeded demo data: {summary}")
    return summary
