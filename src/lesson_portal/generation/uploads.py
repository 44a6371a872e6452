"""Turn uploaded lesson materials into prompt context."""

from __future__ import annotations

from typing import Iterable

from ..schemas.lessons import UploadedFile

MAX_UPLOAD_CHARS = 4000
NO_UPLOADS_PLACEHOLDER = "No uploaded files provided."


def _decode(raw: bytes) -> str:
    # Binary uploads degrade to replacement characters instead of failing
    return raw.decode("utf-8", errors="replace")


def summarize_uploads(files: Iterable[UploadedFile]) -> str:
    """Render each file as a `File: <name>` block capped at MAX_UPLOAD_CHARS."""

    blocks = [
        f"File: {upload.name}\n{_decode(upload.raw_bytes)[:MAX_UPLOAD_CHARS]}"
        for upload in files
    ]
    if not blocks:
        return NO_UPLOADS_PLACEHOLDER
    return "\n\n".join(blocks)


__all__ = ["MAX_UPLOAD_CHARS", "NO_UPLOADS_PLACEHOLDER", "summarize_uploads"]
