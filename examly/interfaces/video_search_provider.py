"""Abstract base class for video search providers.

Used to turn an AI-suggested search query into concrete, watchable
videos.  Providers must never raise: a missing key or a failing upstream
yields an empty list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class VideoResult:
    """One video returned by a search."""

    video_id: str
    title: str
    description: str
    thumbnail: str
    channel_title: str
    published_at: str
    duration: str | None = None

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"


# Concrete implementation: YouTubeVideoProvider (examly/providers/video/)
class IVideoSearchProvider(ABC):

    @abstractmethod
    async def search(self, query: str, max_results: int = 5) -> list[VideoResult]:
        """Search for videos matching *query*.

        Returns
        -------
        list[VideoResult]
            Up to *max_results* videos; empty when the provider is not
            configured or the upstream call failed.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has what it needs to search."""
