"""Lesson portal backend."""
