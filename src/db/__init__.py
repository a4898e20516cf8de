"""Persistence: ORM models, sessions, stores and demo data."""
