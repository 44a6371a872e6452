"""Supporting services for the lesson portal."""

from .generation_logging import GenerationLogWriter, cleanup_old_logs
from .lesson_store import InMemoryLessonStore, LessonNotFound, LessonStore

__all__ = [
    "GenerationLogWriter",
    "InMemoryLessonStore",
    "LessonNotFound",
    "LessonStore",
    "cleanup_old_logs",
]
