"""Tests for LessonGenerator.generate wiring."""

from __future__ import annotations

import json
import logging
from typing import Any

import pytest
from pydantic import SecretStr

from lesson_portal.config import Settings
from lesson_portal.errors import ConfigurationError, UpstreamError
from lesson_portal.generation import LessonGenerator
from lesson_portal.generation.image_search import ImageResult
from lesson_portal.responses_client import ModelResponse
from lesson_portal.schemas.lessons import GenerationRequest, UploadedFile
from lesson_portal.services.generation_logging import GenerationLogWriter


class RecordingModel:
    def __init__(self, responses: list[ModelResponse]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def create_response(self, *, input_items, tools, previous_response_id=None):
        self.calls.append(
            {"input": list(input_items), "tools": list(tools), "previous": previous_response_id}
        )
        return self._responses.pop(0)


class RecordingSearch:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, int]] = []
        self._error = error

    async def search(self, query: str, count: int) -> list[ImageResult]:
        self.calls.append((query, count))
        if self._error:
            raise self._error
        return []


def _request(**overrides) -> GenerationRequest:
    fields: dict[str, Any] = {"topic": "Photosynthesis", "grade_level": "5"}
    fields.update(overrides)
    return GenerationRequest(**fields)


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_any_call() -> None:
    generator = LessonGenerator(Settings(openai_api_key=None))

    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY is not configured."):
        await generator.generate(_request())


@pytest.mark.asyncio
async def test_blank_credentials_count_as_missing() -> None:
    generator = LessonGenerator(Settings(openai_api_key=SecretStr("   ")))

    with pytest.raises(ConfigurationError):
        await generator.generate(_request())


@pytest.mark.asyncio
async def test_generate_returns_content_and_citations() -> None:
    model = RecordingModel(
        [
            ModelResponse(
                response_id="resp_1",
                output_text="# Lesson",
                citations=({"type": "url_citation", "url": "https://example.org"},),
            )
        ]
    )
    generator = LessonGenerator(
        Settings(openai_api_key=None), model_service=model, image_search=RecordingSearch()
    )

    result = await generator.generate(
        _request(uploaded_files=(UploadedFile(name="notes.txt", raw_bytes=b"chlorophyll"),))
    )

    assert result.content == "# Lesson"
    assert result.citations == [{"type": "url_citation", "url": "https://example.org"}]
    assert result.rounds == 0
    assert result.capability_results == []

    user_prompt = model.calls[0]["input"][1]["content"]
    assert "File: notes.txt\nchlorophyll" in user_prompt
    assert "Photosynthesis classroom illustration" in user_prompt
    assert [tool["name"] for tool in model.calls[0]["tools"]] == ["image_search"]


@pytest.mark.asyncio
async def test_web_search_flag_adds_hosted_tool() -> None:
    model = RecordingModel([ModelResponse(response_id="r", output_text="ok")])
    generator = LessonGenerator(
        Settings(), model_service=model, image_search=RecordingSearch()
    )

    await generator.generate(_request(include_web_search=True))

    assert model.calls[0]["tools"][0] == {"type": "web_search"}


@pytest.mark.asyncio
async def test_default_query_used_for_malformed_image_arguments() -> None:
    model = RecordingModel(
        [
            ModelResponse(
                response_id="resp_1",
                output_text="",
                tool_calls=(
                    {"type": "function_call", "call_id": "c1", "name": "image_search", "arguments": "oops"},
                ),
            ),
            ModelResponse(response_id="resp_2", output_text="done"),
        ]
    )
    search = RecordingSearch()
    generator = LessonGenerator(Settings(), model_service=model, image_search=search)

    result = await generator.generate(_request(image_query="plant cell diagram"))

    assert search.calls == [("plant cell diagram", 4)]
    assert result.rounds == 1
    assert [item.call_id for item in result.capability_results] == ["c1"]


@pytest.mark.asyncio
async def test_transcript_written_on_success(tmp_path) -> None:
    writer = GenerationLogWriter(tmp_path, min_level=logging.INFO)
    model = RecordingModel([ModelResponse(response_id="resp_1", output_text="done")])
    generator = LessonGenerator(
        Settings(), model_service=model, image_search=RecordingSearch(), log_writer=writer
    )

    await generator.generate(
        _request(uploaded_files=(UploadedFile(name="a.txt", raw_bytes=b"12345"),))
    )

    log_files = list(tmp_path.rglob("*.log"))
    assert len(log_files) == 1
    text = log_files[0].read_text(encoding="utf-8")
    body = text.split("=" * 80)[1]
    entry = json.loads(body)
    assert entry["outcome"]["state"] == "completed"
    assert entry["request"]["uploaded_files"] == [{"name": "a.txt", "size_bytes": 5}]
    assert entry["transcript"][0]["response_id"] == "resp_1"


@pytest.mark.asyncio
async def test_transcript_written_and_error_raised_on_failure(tmp_path) -> None:
    writer = GenerationLogWriter(tmp_path, min_level=logging.INFO)
    model = RecordingModel(
        [
            ModelResponse(
                response_id="resp_1",
                output_text="",
                tool_calls=(
                    {"type": "function_call", "call_id": "c1", "name": "image_search", "arguments": "{}"},
                ),
            )
        ]
    )
    generator = LessonGenerator(
        Settings(),
        model_service=model,
        image_search=RecordingSearch(UpstreamError(500, "Image search failed.")),
        log_writer=writer,
    )

    with pytest.raises(UpstreamError):
        await generator.generate(_request())

    entry_text = next(tmp_path.rglob("*.log")).read_text(encoding="utf-8")
    assert '"state": "failed"' in entry_text
    assert "Image search failed." in entry_text
