"""
Request-scoped dependencies for the API.

Each request gets its own session, store and engine. The current user comes
from a header set by the authentication layer in front of this service.
"""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from config import get_settings
from src.adaptive.practice_engine import PracticeEngine
from src.core.errors import InvalidInputError, NotFoundError, UnauthenticatedError
from src.core.models import User
from src.db.database import get_session
from src.db.stores import SqlPracticeStore


def get_store(session: Session = Depends(get_session)) -> SqlPracticeStore:
    return SqlPracticeStore(session)


def get_practice_engine(store: SqlPracticeStore = Depends(get_store)) -> PracticeEngine:
    return PracticeEngine(
        catalog=store,
        mastery_store=store,
        event_log=store,
        users=store,
        unit_of_work=store.transaction,
    )


def get_current_user(request: Request, store: SqlPracticeStore = Depends(get_store)) -> User:
    """Resolve the authenticated user or fail with 401 before any engine logic."""
    raw = request.headers.get(get_settings().user_header)
    if not raw:
        raise UnauthenticatedError("Not authenticated")
    try:
        user_id = int(raw)
    except ValueError:
        raise UnauthenticatedError("Not authenticated") from None
    try:
        return store.get_user(user_id)
    except NotFoundError:
        raise UnauthenticatedError("Not authenticated") from None


def parse_int(value: str | None, field: str) -> int:
    """Parse a required integer query parameter."""
    if value is None or value.strip() == "":
        raise InvalidInputError(f"Missing {field}", field=field)
    try:
        return int(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {field}", field=field) from None


def parse_history(raw: str | None) -> frozenset[int]:
    """
    Parse a comma-separated list of question ids.

    Examples:
        parse_history(None)     -> frozenset()
        parse_history("3,5,8")  -> frozenset({3, 5, 8})
        parse_history("3,x")    -> InvalidInputError
    """
    if raw is None or raw.strip() == "":
        return frozenset()
    ids = set()
    for part in raw.split(","):
        try:
            ids.add(int(part.strip()))
        except ValueError:
            raise InvalidInputError(f"Malformed history entry: {part!r}", field="history") from None
    return frozenset(ids)
