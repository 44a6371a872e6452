"""Lesson generation route."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..errors import ConfigurationError, UpstreamError
from ..generation import LessonGenerator
from ..schemas.lessons import GenerationRequest, GenerationResponse, UploadedFile

router = APIRouter(prefix="/api/ai", tags=["generation"])

logger = logging.getLogger(__name__)


def get_lesson_generator(request: Request) -> LessonGenerator:
    generator = getattr(request.app.state, "lesson_generator", None)
    if generator is None:
        raise HTTPException(status_code=500, detail="Lesson generator unavailable")
    return generator


def _is_enabled(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message})


async def _read_uploads(
    uploads: List[UploadFile], max_bytes: int
) -> tuple[UploadedFile, ...]:
    files: list[UploadedFile] = []
    for upload in uploads:
        try:
            # Only the head of each file reaches the prompt
            raw = await upload.read(max_bytes)
        finally:
            await upload.close()
        files.append(UploadedFile(name=upload.filename or "upload", raw_bytes=raw))
    return tuple(files)


@router.post(
    "/lesson",
    response_model=GenerationResponse,
    responses={500: {"description": "Configuration or upstream failure"}},
)
async def generate_lesson(
    topic: str = Form(""),
    grade_level: str = Form("", alias="gradeLevel"),
    duration: str = Form(""),
    objectives: str = Form(""),
    include_web_search: Optional[str] = Form(None, alias="includeWebSearch"),
    image_search_query: Optional[str] = Form(None, alias="imageSearchQuery"),
    youtube_url: Optional[str] = Form(None, alias="youtubeUrl"),
    files: Optional[List[UploadFile]] = File(None),
    generator: LessonGenerator = Depends(get_lesson_generator),
    settings: Settings = Depends(get_settings),
):
    """Generate a lesson plan from form fields and uploaded materials."""

    uploaded = await _read_uploads(files or [], settings.max_upload_bytes)
    generation_request = GenerationRequest(
        topic=topic,
        grade_level=grade_level,
        duration=duration,
        objectives=objectives,
        include_web_search=_is_enabled(include_web_search),
        image_query=image_search_query,
        video_reference=youtube_url,
        uploaded_files=uploaded,
    )

    try:
        result = await generator.generate(generation_request)
    except ConfigurationError as exc:
        return _error(str(exc))
    except UpstreamError as exc:
        logger.warning("Lesson generation upstream failure: %s", exc.message)
        return _error(exc.message)

    return GenerationResponse(content=result.content, citations=result.citations)


__all__ = ["get_lesson_generator", "router"]
