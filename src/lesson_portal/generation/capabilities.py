"""Capabilities the model may invoke while drafting a lesson."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

IMAGE_SEARCH = "image_search"
WEB_SEARCH = "web_search"

DEFAULT_IMAGE_COUNT = 4
MAX_IMAGE_COUNT = 50


class ArgumentParseError(ValueError):
    """Invocation arguments were not a JSON object."""


class UnrecognizedCapability(LookupError):
    """Invocation named a capability that is not registered for the session."""


@dataclass(frozen=True)
class CapabilityDescriptor:
    name: str
    description: str
    parameters: Optional[Mapping[str, Any]] = None
    hosted: bool = False

    def to_payload(self) -> dict[str, Any]:
        if self.hosted:
            # Hosted tools are declared by type only; the service runs them.
            return {"type": self.name}
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters or {}),
        }


WEB_SEARCH_CAPABILITY = CapabilityDescriptor(
    name=WEB_SEARCH,
    description="Search the public web for facts to cite.",
    parameters={
        "type": "object",
        "properties": {"query": {"type": "string"}},
        "required": ["query"],
    },
    hosted=True,
)

IMAGE_SEARCH_CAPABILITY = CapabilityDescriptor(
    name=IMAGE_SEARCH,
    description="Search for classroom-safe images and return direct URLs.",
    parameters={
        "type": "object",
        "properties": {
            "query": {"type": "string"},
            "count": {"type": "number", "default": DEFAULT_IMAGE_COUNT},
        },
        "required": ["query"],
    },
)


@dataclass(frozen=True)
class ImageSearchInvocation:
    call_id: str
    query: str
    count: int = DEFAULT_IMAGE_COUNT
    used_defaults: bool = False


@dataclass(frozen=True)
class WebSearchInvocation:
    call_id: str
    query: str
    used_defaults: bool = False


@dataclass(frozen=True)
class UnknownInvocation:
    call_id: str
    name: str
    raw_arguments: Any = None


Invocation = Union[ImageSearchInvocation, WebSearchInvocation, UnknownInvocation]


@dataclass(frozen=True)
class CapabilityResult:
    call_id: str
    output: dict[str, Any]

    def to_input_item(self) -> dict[str, Any]:
        return {
            "type": "function_call_output",
            "call_id": self.call_id,
            "output": json.dumps(self.output, ensure_ascii=False),
        }


def parse_arguments(raw: Any) -> dict[str, Any]:
    """Decode invocation arguments, raising ArgumentParseError when unusable."""

    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (str, bytes)):
        try:
            decoded = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ArgumentParseError(f"Invalid JSON arguments: {exc}") from exc
        if not isinstance(decoded, dict):
            raise ArgumentParseError(
                f"Expected a JSON object for arguments but received {type(decoded).__name__}."
            )
        return decoded
    raise ArgumentParseError(
        f"Unsupported argument payload type {type(raw).__name__}."
    )


def _coerce_count(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return max(1, min(MAX_IMAGE_COUNT, value))
    if isinstance(value, float):
        number = value
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    # json.loads accepts NaN and Infinity, and "1e400" parses to inf
    if not math.isfinite(number):
        return None
    return max(1, min(MAX_IMAGE_COUNT, int(number)))


def _coerce_query(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _call_identity(item: Mapping[str, Any], index: int) -> tuple[str, str, Any]:
    function = item.get("function")
    if not isinstance(function, Mapping):
        function = {}
    name = item.get("name") or function.get("name") or ""
    raw_arguments = item.get("arguments")
    if raw_arguments is None:
        raw_arguments = function.get("arguments")
    call_id = item.get("call_id") or item.get("id") or f"call_{index}"
    return str(name), str(call_id), raw_arguments


class CapabilityRegistry:
    """Ordered, read-only set of capabilities offered during one session."""

    def __init__(self, descriptors: Sequence[CapabilityDescriptor]):
        seen: set[str] = set()
        for descriptor in descriptors:
            if descriptor.name in seen:
                raise ValueError(f"Duplicate capability name: {descriptor.name}")
            seen.add(descriptor.name)
        self._descriptors = tuple(descriptors)

    @classmethod
    def for_request(cls, include_web_search: bool) -> "CapabilityRegistry":
        descriptors: list[CapabilityDescriptor] = []
        if include_web_search:
            descriptors.append(WEB_SEARCH_CAPABILITY)
        descriptors.append(IMAGE_SEARCH_CAPABILITY)
        return cls(descriptors)

    @property
    def descriptors(self) -> tuple[CapabilityDescriptor, ...]:
        return self._descriptors

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(descriptor.name for descriptor in self._descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self._descriptors)

    def get(self, name: str) -> CapabilityDescriptor:
        for descriptor in self._descriptors:
            if descriptor.name == name:
                return descriptor
        raise UnrecognizedCapability(name)

    def to_payload(self) -> list[dict[str, Any]]:
        return [descriptor.to_payload() for descriptor in self._descriptors]

    def parse_invocation(
        self,
        item: Mapping[str, Any],
        *,
        index: int = 0,
        default_query: str,
    ) -> Invocation:
        """Classify a raw tool call item into one of the invocation variants."""

        name, call_id, raw_arguments = _call_identity(item, index)
        try:
            self.get(name)
        except UnrecognizedCapability:
            return UnknownInvocation(
                call_id=call_id, name=name, raw_arguments=raw_arguments
            )

        try:
            arguments = parse_arguments(raw_arguments)
            used_defaults = False
        except ArgumentParseError as exc:
            logger.warning(
                "Falling back to default arguments for %s (%s): %s",
                name,
                call_id,
                exc,
            )
            arguments = {}
            used_defaults = True

        query = _coerce_query(arguments.get("query"))
        if query is None:
            query = default_query
            used_defaults = True

        if name == WEB_SEARCH:
            return WebSearchInvocation(
                call_id=call_id, query=query, used_defaults=used_defaults
            )

        count = _coerce_count(arguments.get("count"))
        return ImageSearchInvocation(
            call_id=call_id,
            query=query,
            count=DEFAULT_IMAGE_COUNT if count is None else count,
            used_defaults=used_defaults,
        )


__all__ = [
    "ArgumentParseError",
    "CapabilityDescriptor",
    "CapabilityRegistry",
    "CapabilityResult",
    "DEFAULT_IMAGE_COUNT",
    "IMAGE_SEARCH",
    "IMAGE_SEARCH_CAPABILITY",
    "ImageSearchInvocation",
    "Invocation",
    "MAX_IMAGE_COUNT",
    "UnknownInvocation",
    "UnrecognizedCapability",
    "WEB_SEARCH",
    "WEB_SEARCH_CAPABILITY",
    "WebSearchInvocation",
    "parse_arguments",
]
