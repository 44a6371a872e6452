"""Errors surfaced by lesson generation."""

from __future__ import annotations

from typing import Any


class ConfigurationError(RuntimeError):
    """Raised when a required credential or setting is missing."""


class UpstreamError(Exception):
    """Wrap transport or API failures from the model service or image search."""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(str(detail))
        self.status_code = status_code
        self.detail = detail

    @property
    def message(self) -> str:
        if isinstance(self.detail, str):
            return self.detail
        if isinstance(self.detail, dict):
            message = self.detail.get("message")
            if isinstance(message, str) and message:
                return message
        return str(self.detail)


__all__ = ["ConfigurationError", "UpstreamError"]
