import logging
from dataclasses import dataclass

from ytmusicapi import YTMusic

logger = logging.getLogger(__name__)


@dataclass
class YTMusicMatch:
    video_id: str
    title: str
    artist: str
    duration_seconds: int

    @property
    def youtube_url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"


class YTMusicClient:
    """YouTube Music client used to find a playable equivalent of a track."""

    def __init__(self, client: YTMusic | None = None):
        self._client = client or YTMusic()  # No auth needed for search

    def search_track(self, query: str) -> YTMusicMatch | None:
        """Return the best song match for the query, or None if there is none."""
        try:
            results = self._client.search(query, filter="songs", limit=1)
        except Exception as e:  # ytmusicapi raises bare Exception on bad responses
            logger.warning("YouTube Music search failed for %r: %s", query, e)
            return None

        if not results:
            return None

        song = results[0]
        video_id = song.get("videoId")
        if not video_id:
            return None

        artists = song.get("artists") or []
        return YTMusicMatch(
            video_id=video_id,
            title=song.get("title", "Unknown"),
            artist=", ".join(a["name"] for a in artists if a.get("name")) or "Unknown",
            duration_seconds=song.get("duration_seconds") or 0,
        )
