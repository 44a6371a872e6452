"""Client for the language-model Responses endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import httpx
from fastapi import status

from .config import Settings
from .errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

TOOL_CALL_ITEM_TYPES = frozenset({"function_call", "tool_call"})


@dataclass(frozen=True)
class ModelResponse:
    """Normalized view over one Responses API payload."""

    response_id: Optional[str]
    output_text: str
    tool_calls: tuple[dict[str, Any], ...] = ()
    citations: tuple[dict[str, Any], ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ModelResponse":
        output = payload.get("output")
        items: list[Mapping[str, Any]] = []
        if isinstance(output, Sequence) and not isinstance(output, str):
            items = [item for item in output if isinstance(item, Mapping)]

        tool_calls = tuple(
            dict(item) for item in items if item.get("type") in TOOL_CALL_ITEM_TYPES
        )

        fragments: list[str] = []
        citations: list[dict[str, Any]] = []
        for item in items:
            if item.get("type") != "message":
                continue
            content = item.get("content")
            if not isinstance(content, Sequence) or isinstance(content, str):
                continue
            for part in content:
                if not isinstance(part, Mapping):
                    continue
                if part.get("type") != "output_text":
                    continue
                text = part.get("text")
                if isinstance(text, str):
                    fragments.append(text)
                annotations = part.get("annotations")
                if isinstance(annotations, Sequence) and not isinstance(
                    annotations, str
                ):
                    citations.extend(
                        dict(entry)
                        for entry in annotations
                        if isinstance(entry, Mapping)
                    )

        # Some gateways flatten the text for us
        output_text = payload.get("output_text")
        if not isinstance(output_text, str):
            output_text = "".join(fragments)

        response_id = payload.get("id")
        return cls(
            response_id=response_id if isinstance(response_id, str) else None,
            output_text=output_text,
            tool_calls=tool_calls,
            citations=tuple(citations),
            raw=dict(payload),
        )


class ResponsesClient:
    """Client responsible for non-streaming Responses API calls."""

    _client_lock: asyncio.Lock = asyncio.Lock()
    _client_pool: dict[tuple[str, float], httpx.AsyncClient] = {}

    def __init__(self, settings: Settings):
        self._settings = settings

    def _client_key(self) -> tuple[str, float]:
        return (self._base_url, float(self._settings.request_timeout))

    async def _get_http_client(self) -> httpx.AsyncClient:
        key = self._client_key()
        client = self.__class__._client_pool.get(key)
        if client is not None:
            return client

        async with self.__class__._client_lock:
            client = self.__class__._client_pool.get(key)
            if client is None:
                timeout = httpx.Timeout(self._settings.request_timeout, connect=10.0)
                limits = httpx.Limits(
                    max_connections=50,
                    max_keepalive_connections=20,
                )
                client = httpx.AsyncClient(
                    timeout=timeout,
                    limits=limits,
                    http2=True,
                )
                self.__class__._client_pool[key] = client
        return client

    @property
    def model(self) -> str:
        return self._settings.generation_model

    @property
    def _headers(self) -> dict[str, str]:
        if not self._settings.has_openai_credentials:
            raise ConfigurationError("OPENAI_API_KEY is not configured.")
        api_key = self._settings.openai_api_key.get_secret_value()  # type: ignore[union-attr]
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @property
    def _base_url(self) -> str:
        """Return the API base URL without a trailing slash."""

        return str(self._settings.openai_base_url).rstrip("/")

    async def create_response(
        self,
        *,
        input_items: Sequence[Mapping[str, Any]],
        tools: Sequence[Mapping[str, Any]],
        previous_response_id: Optional[str] = None,
    ) -> ModelResponse:
        """Submit one round to the model and return the parsed response."""

        payload: dict[str, Any] = {
            "model": self.model,
            "input": [dict(item) for item in input_items],
        }
        if previous_response_id:
            payload["previous_response_id"] = previous_response_id
        if tools:
            payload["tools"] = [dict(tool) for tool in tools]

        headers = self._headers
        client = await self._get_http_client()
        logger.debug(
            "Submitting %d input item(s) to %s (continuation=%s)",
            len(payload["input"]),
            self.model,
            previous_response_id,
        )
        try:
            response = await client.post(
                f"{self._base_url}/responses",
                headers=headers,
                json=payload,
            )
        except httpx.HTTPError as exc:
            raise UpstreamError(status.HTTP_502_BAD_GATEWAY, str(exc)) from exc

        if response.status_code >= 400:
            detail = self._extract_error_detail(response.content)
            raise UpstreamError(response.status_code, detail)

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError(status.HTTP_502_BAD_GATEWAY, str(exc)) from exc

        if not isinstance(body, Mapping):
            raise UpstreamError(
                status.HTTP_502_BAD_GATEWAY, "Model response was not a JSON object"
            )
        return ModelResponse.from_payload(body)

    async def aclose(self) -> None:
        await self.__class__.aclose_shared()

    @classmethod
    async def aclose_shared(cls) -> None:
        async with cls._client_lock:
            clients = list(cls._client_pool.values())
            cls._client_pool.clear()
        for client in clients:
            try:
                await client.aclose()
            except Exception as exc:  # pragma: no cover - best effort cleanup
                logger.debug("Error closing HTTP client: %s", exc)

    @staticmethod
    def _extract_error_detail(raw: bytes) -> Any:
        if not raw:
            return "Model service returned an empty error response."
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="ignore")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return text
        if isinstance(payload, dict):
            return payload.get("error") or payload
        return payload


__all__ = ["ModelResponse", "ResponsesClient", "TOOL_CALL_ITEM_TYPES"]
