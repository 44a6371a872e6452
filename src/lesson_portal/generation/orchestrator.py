"""Lesson generator wiring prompts, capabilities and the session loop."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from ..errors import ConfigurationError
from ..responses_client import ResponsesClient
from ..schemas.lessons import GenerationRequest
from .capabilities import CapabilityRegistry, CapabilityResult
from .image_search import ImageSearchClient
from .prompts import build_prompts, resolve_image_query
from .session import GenerationSession, ImageSearcher, ModelService
from .uploads import summarize_uploads

if TYPE_CHECKING:
    from ..config import Settings
    from ..services.generation_logging import GenerationLogWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation.

    `citations` holds the annotation objects (for example `url_citation`)
    attached to the final response's `output_text` parts, flattened in order.
    It is not the raw content-part list of the first output item.
    """

    content: str
    citations: list[dict[str, Any]] = field(default_factory=list)
    rounds: int = 0
    capability_results: list[CapabilityResult] = field(default_factory=list)


def _request_snapshot(request: GenerationRequest) -> dict[str, Any]:
    snapshot = request.model_dump(mode="json", exclude={"uploaded_files"})
    snapshot["uploaded_files"] = [
        {"name": upload.name, "size_bytes": len(upload.raw_bytes)}
        for upload in request.uploaded_files
    ]
    return snapshot


class LessonGenerator:
    """Entry point for `generate(request)`; stateless across requests."""

    def __init__(
        self,
        settings: Settings,
        *,
        model_service: Optional[ModelService] = None,
        image_search: Optional[ImageSearcher] = None,
        log_writer: Optional[GenerationLogWriter] = None,
    ) -> None:
        self._settings = settings
        self._client = model_service or ResponsesClient(settings)
        self._image_search = image_search or ImageSearchClient.from_settings(settings)
        self._log_writer = log_writer

    def _ensure_configured(self) -> None:
        # Injected model services bring their own credentials
        if isinstance(self._client, ResponsesClient) and not (
            self._settings.has_openai_credentials
        ):
            raise ConfigurationError("OPENAI_API_KEY is not configured.")

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Produce a lesson plan, running capability rounds as requested."""

        self._ensure_configured()

        generation_id = uuid.uuid4().hex
        image_query = resolve_image_query(request)
        prompts = build_prompts(
            request, summarize_uploads(request.uploaded_files), image_query
        )
        registry = CapabilityRegistry.for_request(request.include_web_search)
        session = GenerationSession(
            self._client,
            registry,
            self._image_search,
            default_image_query=image_query,
        )
        logger.info(
            "Starting generation %s (topic=%r, capabilities=%s, files=%d)",
            generation_id,
            request.topic,
            ",".join(registry.names),
            len(request.uploaded_files),
        )

        try:
            content = await session.run(prompts)
        except Exception as exc:
            logger.warning("Generation %s failed: %s", generation_id, exc)
            await self._write_log(
                generation_id,
                request,
                session,
                {"state": session.state.value, "error": str(exc)},
            )
            raise

        await self._write_log(
            generation_id,
            request,
            session,
            {
                "state": session.state.value,
                "rounds": session.round,
                "content_chars": len(content),
            },
        )
        return GenerationResult(
            content=content,
            citations=session.citations,
            rounds=session.round,
            capability_results=session.results,
        )

    async def _write_log(
        self,
        generation_id: str,
        request: GenerationRequest,
        session: GenerationSession,
        outcome: dict[str, Any],
    ) -> None:
        if self._log_writer is None:
            return
        try:
            await self._log_writer.write(
                generation_id=generation_id,
                request_snapshot=_request_snapshot(request),
                transcript=session.transcript,
                outcome=outcome,
            )
        except OSError as exc:
            logger.warning(
                "Failed to write generation log for %s: %s", generation_id, exc
            )

    async def aclose(self) -> None:
        close = getattr(self._client, "aclose", None)
        if close is not None:
            await close()


__all__ = ["GenerationResult", "LessonGenerator"]
