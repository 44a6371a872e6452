"""Tool-augmented lesson generation."""

from .capabilities import CapabilityRegistry, CapabilityResult
from .image_search import ImageResult, ImageSearchClient
from .orchestrator import GenerationResult, LessonGenerator
from .session import MAX_ROUNDS, GenerationSession, SessionState

__all__ = [
    "CapabilityRegistry",
    "CapabilityResult",
    "GenerationResult",
    "GenerationSession",
    "ImageResult",
    "ImageSearchClient",
    "LessonGenerator",
    "MAX_ROUNDS",
    "SessionState",
]
