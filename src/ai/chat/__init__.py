"""Tutor chat scoped to a single course step."""
