"""Request and response schemas."""

from .lessons import (
    GenerationRequest,
    GenerationResponse,
    Lesson,
    LessonCreate,
    LessonUpdate,
    UploadedFile,
)

__all__ = [
    "GenerationRequest",
    "GenerationResponse",
    "Lesson",
    "LessonCreate",
    "LessonUpdate",
    "UploadedFile",
]
