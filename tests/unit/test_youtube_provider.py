"""Unit tests for YouTubeVideoProvider using httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from examly.providers.video.youtube_provider import YouTubeVideoProvider, format_duration

SEARCH_PAYLOAD = {
    "items": [
        {
            "id": {"videoId": "abc123"},
            "snippet": {
                "title": "Entropy in 10 minutes",
                "description": "A short intro",
                "thumbnails": {"high": {"url": "https://img/abc-high.jpg"}},
                "channelTitle": "Physics Lab",
                "publishedAt": "2024-01-02T00:00:00Z",
            },
        },
        {
            "id": {"videoId": "def456"},
            "snippet": {
                "title": "Carnot cycle",
                "thumbnails": {"default": {"url": "https://img/def.jpg"}},
            },
        },
    ]
}
VIDEOS_PAYLOAD = {
    "items": [
        {"id": "abc123", "contentDetails": {"duration": "PT10M5S"}},
        {"id": "def456", "contentDetails": {"duration": "PT1H2M3S"}},
    ]
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("PT1H2M10S", "1:02:10"),
        ("PT4M5S", "4:05"),
        ("PT45S", "0:45"),
        ("", ""),
        (None, ""),
        ("garbage", ""),
    ],
)
def test_format_duration(raw: str | None, expected: str) -> None:
    assert format_duration(raw) == expected


async def test_search_combines_snippets_and_durations() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json=SEARCH_PAYLOAD)
        return httpx.Response(200, json=VIDEOS_PAYLOAD)

    async with _client(handler) as client:
        results = await YouTubeVideoProvider(client, "yt-key").search("entropy", max_results=2)

    assert [r.video_id for r in results] == ["abc123", "def456"]
    assert results[0].thumbnail == "https://img/abc-high.jpg"
    assert results[0].channel_title == "Physics Lab"
    assert results[0].duration == "PT10M5S"
    assert results[1].thumbnail == "https://img/def.jpg"
    assert seen[0].url.params["q"] == "entropy"
    assert seen[0].url.params["maxResults"] == "2"
    assert seen[1].url.params["id"] == "abc123,def456"


async def test_duration_failure_still_returns_videos() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json=SEARCH_PAYLOAD)
        return httpx.Response(500)

    async with _client(handler) as client:
        results = await YouTubeVideoProvider(client, "yt-key").search("entropy")

    assert len(results) == 2
    assert all(r.duration is None for r in results)


async def test_http_error_gives_empty_list() -> None:
    async with _client(lambda request: httpx.Response(403)) as client:
        assert await YouTubeVideoProvider(client, "yt-key").search("entropy") == []


async def test_malformed_payload_gives_empty_list() -> None:
    payload = {"items": [{"snippet": {"title": "no id"}}]}
    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        assert await YouTubeVideoProvider(client, "yt-key").search("entropy") == []


async def test_missing_key_skips_the_call() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _client(handler) as client:
        provider = YouTubeVideoProvider(client, "")
        assert not provider.is_available()
        assert await provider.search("entropy") == []


async def test_blank_query_gives_empty_list() -> None:
    async with _client(lambda request: httpx.Response(200, json=SEARCH_PAYLOAD)) as client:
        assert await YouTubeVideoProvider(client, "yt-key").search("   ") == []
