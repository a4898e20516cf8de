"""API routers for EduKid practice."""

from src.api.routers import learning_router

__all__ = [
    "learning_router",
]
