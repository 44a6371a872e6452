"""In-memory storage for lesson records."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import uuid4

from ..schemas.lessons import Lesson


class LessonNotFound(LookupError):
    """Raised when a lesson id is not present in the store."""


class LessonStore(Protocol):
    async def list(self) -> list[Lesson]:
        ...

    async def get(self, lesson_id: str) -> Lesson:
        ...

    async def create(self, fields: dict[str, Any]) -> Lesson:
        ...

    async def update(self, lesson_id: str, changes: dict[str, Any]) -> Lesson:
        ...

    async def delete(self, lesson_id: str) -> None:
        ...


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryLessonStore:
    """Keep lessons in insertion order for the lifetime of the process."""

    def __init__(self) -> None:
        self._lessons: dict[str, Lesson] = {}
        self._lock = asyncio.Lock()

    async def list(self) -> list[Lesson]:
        async with self._lock:
            return list(self._lessons.values())

    async def get(self, lesson_id: str) -> Lesson:
        async with self._lock:
            try:
                return self._lessons[lesson_id]
            except KeyError as exc:
                raise LessonNotFound(lesson_id) from exc

    async def create(self, fields: dict[str, Any]) -> Lesson:
        lesson = Lesson(**fields, id=str(uuid4()), updated_at=_utcnow_iso())
        async with self._lock:
            self._lessons[lesson.id] = lesson
        return lesson

    async def update(self, lesson_id: str, changes: dict[str, Any]) -> Lesson:
        async with self._lock:
            current = self._lessons.get(lesson_id)
            if current is None:
                raise LessonNotFound(lesson_id)
            allowed = {
                key: value
                for key, value in changes.items()
                if key not in {"id", "updated_at"}
            }
            updated = current.model_copy(
                update={**allowed, "updated_at": _utcnow_iso()}
            )
            self._lessons[lesson_id] = updated
            return updated

    async def delete(self, lesson_id: str) -> None:
        async with self._lock:
            if lesson_id not in self._lessons:
                raise LessonNotFound(lesson_id)
            del self._lessons[lesson_id]


__all__ = ["InMemoryLessonStore", "LessonNotFound", "LessonStore"]
