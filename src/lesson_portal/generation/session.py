"""Round-bounded model/tool exchange for a single generation request."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..responses_client import ModelResponse
from .capabilities import (
    CapabilityRegistry,
    CapabilityResult,
    ImageSearchInvocation,
    Invocation,
    UnknownInvocation,
    UnrecognizedCapability,
    WebSearchInvocation,
)
from .image_search import ImageResult
from .prompts import PromptPair

logger = logging.getLogger(__name__)

MAX_ROUNDS = 3

HOSTED_WEB_SEARCH_NOTICE = (
    "web_search is performed by the model service and cannot be run locally."
)


class ModelService(Protocol):
    async def create_response(
        self,
        *,
        input_items: Sequence[Mapping[str, Any]],
        tools: Sequence[Mapping[str, Any]],
        previous_response_id: Optional[str] = None,
    ) -> ModelResponse:
        ...


class ImageSearcher(Protocol):
    async def search(self, query: str, count: int) -> list[ImageResult]:
        ...


class SessionState(str, Enum):
    DRAFTING = "drafting"
    AWAITING_CAPABILITY_RESULTS = "awaiting_capability_results"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationSession:
    """Drive submit, dispatch and resubmit rounds until the model stops asking.

    A session is single use: create one per request and discard it once
    `run` returns or raises.
    """

    def __init__(
        self,
        model_service: ModelService,
        registry: CapabilityRegistry,
        image_search: ImageSearcher,
        *,
        default_image_query: str,
    ) -> None:
        self._model = model_service
        self._registry = registry
        self._image_search = image_search
        self._default_image_query = default_image_query

        self._state = SessionState.DRAFTING
        self._round = 0
        self._model_calls = 0
        self._continuation_token: Optional[str] = None
        self._final_text: Optional[str] = None
        self._citations: tuple[dict[str, Any], ...] = ()
        self._results: list[CapabilityResult] = []
        self._transcript: list[dict[str, Any]] = []
        self._error: Optional[Exception] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def round(self) -> int:
        return self._round

    @property
    def model_calls(self) -> int:
        return self._model_calls

    @property
    def continuation_token(self) -> Optional[str]:
        return self._continuation_token

    @property
    def final_text(self) -> Optional[str]:
        return self._final_text

    @property
    def citations(self) -> list[dict[str, Any]]:
        return list(self._citations)

    @property
    def results(self) -> list[CapabilityResult]:
        return list(self._results)

    @property
    def transcript(self) -> list[dict[str, Any]]:
        return list(self._transcript)

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    async def run(self, prompts: PromptPair) -> str:
        """Run the exchange to completion and return the generated text."""

        if self._model_calls or self._state is not SessionState.DRAFTING:
            raise RuntimeError("GenerationSession instances are single use")

        tools = self._registry.to_payload()
        pending: list[dict[str, Any]] = prompts.as_input_items()

        try:
            while True:
                response = await self._submit(pending, tools)
                invocations = self._extract_invocations(response)

                if not invocations:
                    self._complete(response)
                    break

                if self._round >= MAX_ROUNDS:
                    logger.warning(
                        "Capability rounds exhausted after %d round(s); "
                        "ignoring %d pending invocation(s)",
                        self._round,
                        len(invocations),
                    )
                    self._complete(response)
                    break

                self._state = SessionState.AWAITING_CAPABILITY_RESULTS
                round_results = await self._dispatch(invocations)
                self._results.extend(round_results)
                self._round += 1
                pending = [result.to_input_item() for result in round_results]
                self._state = SessionState.DRAFTING
        except Exception as exc:
            self._state = SessionState.FAILED
            self._error = exc
            raise

        return self._final_text or ""

    async def _submit(
        self,
        input_items: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> ModelResponse:
        self._model_calls += 1
        response = await self._model.create_response(
            input_items=input_items,
            tools=tools,
            previous_response_id=self._continuation_token,
        )
        self._continuation_token = response.response_id
        self._transcript.append(
            {
                "round": self._round,
                "input": input_items,
                "response_id": response.response_id,
                "output_text": response.output_text,
                "tool_calls": list(response.tool_calls),
            }
        )
        return response

    def _extract_invocations(self, response: ModelResponse) -> list[Invocation]:
        return [
            self._registry.parse_invocation(
                item, index=index, default_query=self._default_image_query
            )
            for index, item in enumerate(response.tool_calls)
        ]

    def _complete(self, response: ModelResponse) -> None:
        self._final_text = response.output_text or ""
        self._citations = response.citations
        self._state = SessionState.COMPLETED
        logger.info(
            "Generation completed after %d model call(s), %d capability result(s)",
            self._model_calls,
            len(self._results),
        )

    async def _dispatch(self, invocations: list[Invocation]) -> list[CapabilityResult]:
        results: list[CapabilityResult] = []
        for invocation in invocations:
            if isinstance(invocation, UnknownInvocation):
                logger.warning(
                    "Skipping invocation %s of unregistered capability %r",
                    invocation.call_id,
                    invocation.name,
                )
                continue
            results.append(await self._execute(invocation))
        return results

    async def _execute(self, invocation: Invocation) -> CapabilityResult:
        if isinstance(invocation, ImageSearchInvocation):
            logger.info(
                "image_search %s: query=%r count=%d%s",
                invocation.call_id,
                invocation.query,
                invocation.count,
                " (defaults)" if invocation.used_defaults else "",
            )
            # UpstreamError propagates and fails the session
            images = await self._image_search.search(invocation.query, invocation.count)
            return CapabilityResult(
                call_id=invocation.call_id,
                output={"results": [image.to_dict() for image in images]},
            )
        if isinstance(invocation, WebSearchInvocation):
            return CapabilityResult(
                call_id=invocation.call_id,
                output={"query": invocation.query, "error": HOSTED_WEB_SEARCH_NOTICE},
            )
        raise UnrecognizedCapability(getattr(invocation, "name", "unknown"))


__all__ = [
    "GenerationSession",
    "HOSTED_WEB_SEARCH_NOTICE",
    "ImageSearcher",
    "MAX_ROUNDS",
    "ModelService",
    "SessionState",
]
