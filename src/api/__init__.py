"""FastAPI application for EduKid practice."""
