"""System and user instructions for lesson plan generation."""

from __future__ import annotations

from dataclasses import dataclass

from ..schemas.lessons import GenerationRequest

LESSON_SYSTEM_PROMPT = (
    "You are an assistant for teachers. Create structured lesson plans with citations. "
    "If you use facts from web search, cite them inline like [1], [2]. "
    "You may call the image_search tool to find image URLs and include them."
)

LESSON_SECTIONS = (
    "Overview",
    "Learning Objectives",
    "Materials",
    "Lesson Steps",
    "Assessment",
    "Homework",
)

DEFAULT_IMAGE_QUERY_TEMPLATE = "{topic} classroom illustration"


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str

    def as_input_items(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def resolve_image_query(request: GenerationRequest) -> str:
    """Return the requested image query or one derived from the topic."""

    explicit = (request.image_query or "").strip()
    if explicit:
        return explicit
    return DEFAULT_IMAGE_QUERY_TEMPLATE.format(topic=request.topic or "lesson")


def build_prompts(
    request: GenerationRequest,
    upload_digest: str,
    image_query: str,
) -> PromptPair:
    """Assemble the instructions; identical inputs give identical strings."""

    sections = ", ".join(f'"{name}"' for name in LESSON_SECTIONS)
    user_prompt = "\n".join(
        [
            f"Build a lesson plan in markdown with sections: {sections}.",
            "",
            f"Topic: {request.topic}",
            f"Grade level: {request.grade_level}",
            f"Duration: {request.duration}",
            f"Objectives: {request.objectives}",
            "",
            "Include any relevant citations for facts.",
            "",
            "Uploaded context for RAG:",
            upload_digest,
            "",
            f"If images are requested, call image_search with this query: {image_query}",
            f"YouTube link to include (if any): {request.video_reference or ''}",
        ]
    )
    return PromptPair(system=LESSON_SYSTEM_PROMPT, user=user_prompt)


__all__ = [
    "DEFAULT_IMAGE_QUERY_TEMPLATE",
    "LESSON_SECTIONS",
    "LESSON_SYSTEM_PROMPT",
    "PromptPair",
    "build_prompts",
    "resolve_image_query",
]
