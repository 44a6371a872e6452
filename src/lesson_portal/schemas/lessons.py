"""Pydantic models for lesson records and generation requests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class UploadedFile(BaseModel):
    """Raw bytes of a file attached to a generation request."""

    name: str
    raw_bytes: bytes = b""

    model_config = ConfigDict(frozen=True)


class GenerationRequest(BaseModel):
    """Fields parsed from a lesson generation submission."""

    topic: str = ""
    grade_level: str = Field(default="", alias="gradeLevel")
    duration: str = ""
    objectives: str = ""
    include_web_search: bool = Field(default=False, alias="includeWebSearch")
    image_query: Optional[str] = Field(default=None, alias="imageSearchQuery")
    video_reference: Optional[str] = Field(default=None, alias="youtubeUrl")
    uploaded_files: Tuple[UploadedFile, ...] = ()

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class GenerationResponse(BaseModel):
    """JSON body returned for a completed generation."""

    content: str
    citations: List[Dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str


class LessonBase(BaseModel):
    title: str = "Untitled lesson"
    grade_level: str = Field(default="", alias="gradeLevel")
    duration: str = ""
    objectives: str = ""
    content: str = ""
    resources: List[Any] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class LessonCreate(LessonBase):
    """Payload accepted when creating a lesson."""

    title: Optional[str] = None  # type: ignore[assignment]

    def to_fields(self) -> dict[str, Any]:
        fields = self.model_dump(exclude={"title"})
        fields["title"] = self.title or "Untitled lesson"
        return fields


class LessonUpdate(BaseModel):
    """Partial update; only fields that were sent are applied."""

    title: Optional[str] = None
    grade_level: Optional[str] = Field(default=None, alias="gradeLevel")
    duration: Optional[str] = None
    objectives: Optional[str] = None
    content: Optional[str] = None
    resources: Optional[List[Any]] = None

    model_config = ConfigDict(populate_by_name=True)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class Lesson(LessonBase):
    """Stored lesson record."""

    id: str
    updated_at: str = Field(alias="updatedAt")


__all__ = [
    "ErrorResponse",
    "GenerationRequest",
    "GenerationResponse",
    "Lesson",
    "LessonBase",
    "LessonCreate",
    "LessonUpdate",
    "UploadedFile",
]
