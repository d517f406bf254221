"""YouTube Data API v3 provider implementing IVideoSearchProvider.

Two calls per search: ``search?part=snippet`` for the matching videos,
then ``videos?part=contentDetails`` for their durations.  The duration
lookup is best-effort; a failure there still returns the videos.

Every failure (missing key, HTTP error, malformed payload) degrades to an
empty list so a video lookup never breaks the caller.  The
``httpx.AsyncClient`` is injected for testability and connection pooling.
"""

from __future__ import annotations

import re
from typing import Any

import httpx

from examly.interfaces.video_search_provider import IVideoSearchProvider, VideoResult
from examly.utils.logging import get_logger

_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"
_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def format_duration(duration: str | None) -> str:
    """Format an ISO-8601 duration (``PT1H2M10S``) as ``1:02:10``.

    Returns ``""`` for empty or unrecognised input.
    """
    if not duration:
        return ""
    match = _DURATION_RE.match(duration)
    if not match:
        return ""
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


class YouTubeVideoProvider(IVideoSearchProvider):
    """Video search against the YouTube Data API.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``.
    api_key:
        YouTube Data API key; empty disables the provider.
    """

    def __init__(self, http_client: httpx.AsyncClient, api_key: str) -> None:
        self._http = http_client
        self._api_key = api_key
        self._logger = get_logger(__name__)

    async def search(self, query: str, max_results: int = 5) -> list[VideoResult]:
        if not self._api_key:
            self._logger.warning("youtube_search_skipped", reason="YOUTUBE_API_KEY not configured")
            return []
        if not query or not query.strip():
            return []

        params = {
            "part": "snippet",
            "q": query.strip(),
            "type": "video",
            "maxResults": str(max_results),
            "order": "relevance",
            "videoEmbeddable": "true",
            "videoSyndicated": "true",
            "key": self._api_key,
        }
        try:
            response = await self._http.get(
                _SEARCH_URL, params=params, headers={"Accept": "application/json"}
            )
            response.raise_for_status()
            items = response.json().get("items") or []
            if not items:
                return []
            durations = await self._fetch_durations(
                [item["id"]["videoId"] for item in items]
            )
            return [self._to_result(item, durations) for item in items]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            self._logger.error("youtube_search_failed", query=query, error=str(exc))
            return []

    async def _fetch_durations(self, video_ids: list[str]) -> dict[str, str]:
        params = {"part": "contentDetails", "id": ",".join(video_ids), "key": self._api_key}
        try:
            response = await self._http.get(
                _VIDEOS_URL, params=params, headers={"Accept": "application/json"}
            )
            response.raise_for_status()
            items = response.json().get("items") or []
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.warning("youtube_details_failed", error=str(exc))
            return {}
        return {
            item["id"]: (item.get("contentDetails") or {}).get("duration")
            for item in items
            if isinstance(item, dict) and "id" in item
        }

    @staticmethod
    def _to_result(item: dict[str, Any], durations: dict[str, str]) -> VideoResult:
        video_id = item["id"]["videoId"]
        snippet = item.get("snippet") or {}
        thumbnails = snippet.get("thumbnails") or {}
        thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url", "")
        return VideoResult(
            video_id=video_id,
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            thumbnail=thumbnail,
            channel_title=snippet.get("channelTitle", ""),
            published_at=snippet.get("publishedAt", ""),
            duration=durations.get(video_id) or None,
        )

    def is_available(self) -> bool:
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "youtube"
