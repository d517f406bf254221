"""Video search adapters."""

from examly.providers.video.youtube_provider import YouTubeVideoProvider, format_duration

__all__ = ["YouTubeVideoProvider", "format_duration"]
