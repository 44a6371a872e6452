"""Load `logging_settings.conf`: console verbosity and transcript retention."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

LevelName = Literal["debug", "info", "warning", "off"]

_LEVELS: dict[str, Optional[int]] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "off": None,
}
DEFAULT_RETENTION_HOURS = 48


class LoggingSettings(BaseModel):
    """Values from the settings file; anything unreadable falls back to a default.

    `generations` gates `GenerationLogWriter`, which only emits INFO records,
    so `warning` behaves like `off` for transcripts.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    terminal: LevelName = "info"
    generations: LevelName = "info"
    retention_hours: int = DEFAULT_RETENTION_HOURS

    @field_validator("terminal", "generations", mode="before")
    @classmethod
    def _known_level(cls, value: Any) -> str:
        name = str(value).strip().lower()
        return name if name in _LEVELS else "info"

    @field_validator("retention_hours", mode="before")
    @classmethod
    def _non_negative_hours(cls, value: Any) -> int:
        try:
            return max(0, int(str(value).strip()))
        except ValueError:
            return DEFAULT_RETENTION_HOURS

    @property
    def terminal_level(self) -> Optional[int]:
        return _LEVELS[self.terminal]

    @property
    def generations_level(self) -> Optional[int]:
        return _LEVELS[self.generations]

    @property
    def transcripts_enabled(self) -> bool:
        level = self.generations_level
        return level is not None and level <= logging.INFO


def _read_pairs(path: Path) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        pairs[key.strip().lower()] = value.strip()
    return pairs


def parse_logging_settings(path: Path) -> LoggingSettings:
    """Read `key = value` lines from `path`; a missing file yields the defaults."""

    if not path.exists():
        return LoggingSettings()
    return LoggingSettings.model_validate(_read_pairs(path))


__all__ = ["DEFAULT_RETENTION_HOURS", "LoggingSettings", "parse_logging_settings"]
