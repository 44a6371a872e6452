from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from pydantic import AnyHttpUrl, SecretStr

from lesson_portal.config import Settings
from lesson_portal.errors import ConfigurationError, UpstreamError
from lesson_portal.responses_client import ModelResponse, ResponsesClient


def make_client(api_key: str | None = "test") -> ResponsesClient:
    settings = Settings(
        openai_api_key=SecretStr(api_key) if api_key is not None else None,
        openai_base_url=AnyHttpUrl("https://example.com/v1"),
        generation_model="test-model",
    )
    return ResponsesClient(settings)


def _http_response(status_code: int, body) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    raw = json.dumps(body).encode() if body is not None else b""
    response.content = raw
    response.json.return_value = body
    return response


def _install_http(
    monkeypatch: pytest.MonkeyPatch, client: ResponsesClient, http: AsyncMock
) -> None:
    async def _get_http_client():
        return http

    monkeypatch.setattr(client, "_get_http_client", _get_http_client)


def test_model_response_collects_text_calls_and_citations() -> None:
    payload = {
        "id": "resp_1",
        "output": [
            {"type": "web_search_call", "id": "ws_1", "status": "completed"},
            {
                "type": "message",
                "role": "assistant",
                "content": [
                    {
                        "type": "output_text",
                        "text": "Plants make food [1].",
                        "annotations": [
                            {"type": "url_citation", "url": "https://example.org/leaf"}
                        ],
                    },
                    {"type": "output_text", "text": " More."},
                ],
            },
            {
                "type": "function_call",
                "call_id": "call_1",
                "name": "image_search",
                "arguments": '{"query": "leaf"}',
            },
        ],
    }

    response = ModelResponse.from_payload(payload)

    assert response.response_id == "resp_1"
    assert response.output_text == "Plants make food [1]. More."
    assert [call["call_id"] for call in response.tool_calls] == ["call_1"]
    assert response.citations == (
        {"type": "url_citation", "url": "https://example.org/leaf"},
    )


def test_model_response_prefers_flattened_output_text() -> None:
    response = ModelResponse.from_payload({"id": "r", "output_text": "flat", "output": []})
    assert response.output_text == "flat"
    assert response.tool_calls == ()


def test_model_response_tolerates_missing_output() -> None:
    response = ModelResponse.from_payload({"id": None, "output": "garbage"})
    assert response.response_id is None
    assert response.output_text == ""


@pytest.mark.asyncio
async def test_first_round_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    client = make_client()
    http = AsyncMock()
    http.post.return_value = _http_response(200, {"id": "resp_1", "output": []})
    _install_http(monkeypatch, client, http)

    result = await client.create_response(
        input_items=[{"role": "system", "content": "s"}, {"role": "user", "content": "u"}],
        tools=[{"type": "web_search"}],
    )

    assert result.response_id == "resp_1"
    args, kwargs = http.post.call_args
    assert args[0] == "https://example.com/v1/responses"
    assert kwargs["headers"]["Authorization"] == "Bearer test"
    assert kwargs["json"] == {
        "model": "test-model",
        "input": [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}],
        "tools": [{"type": "web_search"}],
    }


@pytest.mark.asyncio
async def test_continuation_payload_references_previous_response(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    client = make_client()
    http = AsyncMock()
    http.post.return_value = _http_response(200, {"id": "resp_2", "output": []})
    _install_http(monkeypatch, client, http)

    outputs = [{"type": "function_call_output", "call_id": "call_1", "output": "{}"}]
    await client.create_response(
        input_items=outputs, tools=[], previous_response_id="resp_1"
    )

    body = http.post.call_args.kwargs["json"]
    assert body["previous_response_id"] == "resp_1"
    assert body["input"] == outputs
    assert "tools" not in body


@pytest.mark.asyncio
async def test_error_status_raises_upstream_error(monkeypatch: pytest.MonkeyPatch) -> None:
    client = make_client()
    http = AsyncMock()
    http.post.return_value = _http_response(
        429, {"error": {"message": "Rate limit reached", "type": "requests"}}
    )
    _install_http(monkeypatch, client, http)

    with pytest.raises(UpstreamError) as excinfo:
        await client.create_response(input_items=[], tools=[])

    assert excinfo.value.status_code == 429
    assert excinfo.value.message == "Rate limit reached"


@pytest.mark.asyncio
async def test_transport_error_raises_bad_gateway(monkeypatch: pytest.MonkeyPatch) -> None:
    client = make_client()
    http = AsyncMock()
    http.post.side_effect = httpx.ReadTimeout("timed out")
    _install_http(monkeypatch, client, http)

    with pytest.raises(UpstreamError) as excinfo:
        await client.create_response(input_items=[], tools=[])

    assert excinfo.value.status_code == 502
    assert "timed out" in excinfo.value.message


@pytest.mark.asyncio
async def test_missing_key_raises_configuration_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    client = make_client(api_key=None)
    http = AsyncMock()
    _install_http(monkeypatch, client, http)

    with pytest.raises(ConfigurationError):
        await client.create_response(input_items=[], tools=[])

    http.post.assert_not_called()


def test_extract_error_detail_handles_plain_text() -> None:
    assert ResponsesClient._extract_error_detail(b"bad gateway") == "bad gateway"
    assert "empty" in ResponsesClient._extract_error_detail(b"")
