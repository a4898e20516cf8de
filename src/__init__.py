"""EduKid practice service."""
