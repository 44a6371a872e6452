"""Wikimedia Commons image lookup used by the image_search capability.

API docs: https://www.mediawiki.org/wiki/API:Search (generator=search)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import quote

import httpx
from fastapi import status

from ..config import Settings
from ..errors import UpstreamError
from .capabilities import DEFAULT_IMAGE_COUNT

logger = logging.getLogger(__name__)

USER_AGENT = "lesson-portal/0.1 (image_search capability)"


@dataclass(frozen=True)
class ImageResult:
    title: str
    image_url: str
    source_page_url: str

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "url": self.image_url,
            "pageUrl": self.source_page_url,
        }


class ImageSearchClient:
    """Query Commons for images matching a search phrase."""

    def __init__(
        self,
        *,
        base_url: str = "https://commons.wikimedia.org",
        thumbnail_width: int = 800,
        timeout: float = 15.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._thumbnail_width = thumbnail_width
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageSearchClient":
        return cls(
            base_url=str(settings.image_search_base_url),
            thumbnail_width=settings.image_search_thumbnail_width,
            timeout=settings.image_search_timeout,
        )

    def _page_url(self, title: str) -> str:
        return f"{self._base_url}/wiki/{quote(title.replace(' ', '_'), safe=':()/,')}"

    async def search(
        self, query: str, count: int = DEFAULT_IMAGE_COUNT
    ) -> list[ImageResult]:
        """Return up to `count` images; pages without an image asset are skipped."""

        params = {
            "action": "query",
            "format": "json",
            "origin": "*",
            "generator": "search",
            "gsrlimit": str(count),
            "gsrsearch": query,
            "prop": "imageinfo",
            "iiprop": "url",
            "iiurlwidth": str(self._thumbnail_width),
        }
        url = f"{self._base_url}/w/api.php"

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=5.0),
                headers={"User-Agent": USER_AGENT},
            ) as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamError(status.HTTP_502_BAD_GATEWAY, str(exc)) from exc

        if not 200 <= response.status_code < 300:
            logger.warning(
                "Image search for %r failed with status %s",
                query,
                response.status_code,
            )
            raise UpstreamError(response.status_code, "Image search failed.")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(status.HTTP_502_BAD_GATEWAY, str(exc)) from exc

        results = self._parse_pages(payload)
        logger.debug("Image search for %r returned %d result(s)", query, len(results))
        return results

    def _parse_pages(self, payload: Any) -> list[ImageResult]:
        if not isinstance(payload, Mapping):
            return []
        query_block = payload.get("query")
        if not isinstance(query_block, Mapping):
            return []
        pages = query_block.get("pages")
        if isinstance(pages, Mapping):
            entries = list(pages.values())
        elif isinstance(pages, list):
            entries = pages
        else:
            return []

        results: list[ImageResult] = []
        for page in entries:
            if not isinstance(page, Mapping):
                continue
            image_info = page.get("imageinfo")
            if not isinstance(image_info, list) or not image_info:
                continue
            first = image_info[0]
            title = page.get("title")
            image_url = first.get("url") if isinstance(first, Mapping) else None
            if not (isinstance(title, str) and title):
                continue
            if not (isinstance(image_url, str) and image_url):
                continue
            results.append(
                ImageResult(
                    title=title,
                    image_url=image_url,
                    source_page_url=self._page_url(title),
                )
            )
        return results


__all__ = ["ImageResult", "ImageSearchClient"]
