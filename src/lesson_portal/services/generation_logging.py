"""Persist per-generation transcripts for debugging and replay."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class GenerationLogWriter:
    """Write one JSON transcript file per generation under dated folders."""

    def __init__(self, base_dir: Path, *, min_level: int | None) -> None:
        self._base_dir = base_dir.resolve()
        self._min_level = min_level

    @property
    def enabled(self) -> bool:
        # Transcripts are INFO-level events.
        return self._min_level is not None and logging.INFO >= self._min_level

    async def write(
        self,
        *,
        generation_id: str,
        request_snapshot: dict[str, Any],
        transcript: list[dict[str, Any]],
        outcome: dict[str, Any],
        logged_at: datetime | None = None,
    ) -> Path | None:
        """Append a transcript entry for a finished generation if enabled."""

        if not self.enabled:
            return None

        timestamp = (logged_at or datetime.now(timezone.utc)).astimezone(
            timezone.utc
        )
        safe_id = generation_id.replace("/", "_")

        entry = {
            "type": "generation_transcript",
            "logged_at": timestamp.isoformat(),
            "generation_id": generation_id,
            "model_calls": len(transcript),
            "request": request_snapshot,
            "transcript": transcript,
            "outcome": outcome,
        }
        rendered_entry = json.dumps(entry, ensure_ascii=False, indent=2, default=repr)
        log_path = (
            self._base_dir
            / timestamp.strftime("%Y-%m-%d")
            / f"generation_{timestamp.strftime('%Y-%m-%d_%H-%M-%S')}_UTC_{safe_id}.log"
        )

        delimiter = "=" * 80
        header = timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")
        payload = f"{header}\n{delimiter}\n{rendered_entry}\n{delimiter}\n"

        await asyncio.to_thread(self._append_entry, log_path, payload)
        return log_path

    def _append_entry(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(content)


def cleanup_old_logs(
    log_directory: Path,
    retention_hours: int,
    *,
    now: datetime | None = None,
) -> tuple[int, int]:
    """Delete transcript files older than `retention_hours` (0 disables).

    Returns a tuple of (files_deleted, errors_encountered).
    """
    if retention_hours <= 0:
        return (0, 0)

    dir_path = log_directory.resolve()
    if not dir_path.exists():
        return (0, 0)

    cutoff_time = (now or datetime.now(timezone.utc)) - timedelta(
        hours=retention_hours
    )
    files_deleted = 0
    errors = 0

    for log_file in dir_path.rglob("*.log"):
        try:
            mtime = datetime.fromtimestamp(log_file.stat().st_mtime, tz=timezone.utc)
            if mtime < cutoff_time:
                log_file.unlink()
                files_deleted += 1
                logger.debug("Deleted old generation log: %s", log_file)
        except OSError as exc:
            errors += 1
            logger.warning("Failed to delete %s: %s", log_file, exc)

    for date_dir in dir_path.iterdir():
        if date_dir.is_dir() and not any(date_dir.iterdir()):
            try:
                date_dir.rmdir()
            except OSError as exc:
                logger.debug("Could not remove %s: %s", date_dir, exc)

    if files_deleted:
        logger.info(
            "Generation log cleanup complete: %d file(s) deleted, %d error(s)",
            files_deleted,
            errors,
        )
    return (files_deleted, errors)


__all__ = ["GenerationLogWriter", "cleanup_old_logs"]
