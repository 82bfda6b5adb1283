import asyncio
import logging
from dataclasses import dataclass

from src.clients.youtube import YouTubeClient
from src.clients.ytmusic import YTMusicClient
from src.models.track import Track

logger = logging.getLogger(__name__)


@dataclass
class BridgeResult:
    url: str  # Direct audio URL, ready for ffmpeg
    query: str
    video_url: str


class YouTubeBridge:
    """
    Finds a playable YouTube equivalent for a track scraped elsewhere.

    Flow: "<title> <artist>" → ytmusicapi song search → yt-dlp audio URL.
    Falls back to a plain YouTube search matched on duration when YouTube
    Music has nothing.
    """

    def __init__(self, ytmusic: YTMusicClient, youtube: YouTubeClient):
        self.ytmusic = ytmusic
        self.youtube = youtube

    async def request_bridge(self, track: Track) -> BridgeResult | None:
        query = f"{track.title} {track.author}"

        # ytmusicapi and yt-dlp block; keep them off the event loop
        match = await asyncio.to_thread(self.ytmusic.search_track, query)
        if match:
            video_url = match.youtube_url
        else:
            video_url = await asyncio.to_thread(
                self.youtube.search_video, query, track.duration_ms
            )

        if not video_url:
            logger.warning("No YouTube match for %r", query)
            return None

        audio_url = await asyncio.to_thread(self.youtube.get_audio_url, video_url)
        if not audio_url:
            return None

        return BridgeResult(url=audio_url, query=query, video_url=video_url)
