"""Lesson record CRUD routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from ..schemas.lessons import Lesson, LessonCreate, LessonUpdate
from ..services.lesson_store import LessonNotFound, LessonStore

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


def get_lesson_store(request: Request) -> LessonStore:
    store = getattr(request.app.state, "lesson_store", None)
    if store is None:
        raise HTTPException(status_code=500, detail="Lesson store unavailable")
    return store


def _not_found() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "Lesson not found"},
    )


@router.get("", response_model=list[Lesson], response_model_by_alias=True)
async def list_lessons(store: LessonStore = Depends(get_lesson_store)) -> list[Lesson]:
    return await store.list()


@router.post(
    "",
    response_model=Lesson,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_lesson(
    payload: LessonCreate,
    store: LessonStore = Depends(get_lesson_store),
) -> Lesson:
    return await store.create(payload.to_fields())


@router.put("/{lesson_id}", response_model=Lesson, response_model_by_alias=True)
async def update_lesson(
    lesson_id: str,
    payload: LessonUpdate,
    store: LessonStore = Depends(get_lesson_store),
):
    try:
        return await store.update(lesson_id, payload.changes())
    except LessonNotFound:
        return _not_found()


@router.delete(
    "/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_lesson(
    lesson_id: str,
    store: LessonStore = Depends(get_lesson_store),
) -> Response:
    try:
        await store.delete(lesson_id)
    except LessonNotFound:
        return _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["get_lesson_store", "router"]
