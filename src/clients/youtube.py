import logging
from typing import Any

import yt_dlp

logger = logging.getLogger(__name__)


class YouTubeClient:
    YTDL_OPTIONS = {
        "format": "bestaudio/best",
        "noplaylist": True,
        "quiet": True,
        "no_warnings": True,
        "extract_flat": False,
    }

    DURATION_TOLERANCE = 0.10  # 10% tolerance for duration matching

    def __init__(self, ytdl: Any = None):
        self._ytdl = ytdl or yt_dlp.YoutubeDL(self.YTDL_OPTIONS)

    def search_video(self, query: str, target_duration_ms: int = 0) -> str | None:
        """
        Search YouTube for a video matching the query.

        Prefers the closest entry within DURATION_TOLERANCE of the target
        duration, otherwise the first result. A target of 0 means "first result".
        """
        try:
            result = self._ytdl.extract_info(f"ytsearch5:{query}", download=False)
        except yt_dlp.DownloadError as e:
            logger.warning("YouTube search failed for %r: %s", query, e)
            return None

        entries = [e for e in (result or {}).get("entries", []) if e]
        if not entries:
            return None

        chosen = entries[0]
        if target_duration_ms:
            target_seconds = target_duration_ms / 1000
            tolerance = target_seconds * self.DURATION_TOLERANCE
            in_range = [
                e for e in entries
                if abs((e.get("duration") or 0) - target_seconds) <= tolerance
            ]
            if in_range:
                chosen = min(in_range, key=lambda e: abs((e.get("duration") or 0) - target_seconds))

        return chosen.get("webpage_url") or chosen.get("url")

    def get_audio_url(self, video_url: str) -> str | None:
        """
        Extract a direct audio URL for a YouTube video.
        Call this right before playback - URLs expire after ~6 hours.
        """
        try:
            info = self._ytdl.extract_info(video_url, download=False)
        except yt_dlp.DownloadError as e:
            logger.warning("Could not extract audio for %s: %s", video_url, e)
            return None

        formats = info.get("formats") or []
        audio_formats = [
            f for f in formats
            if f.get("acodec") not in (None, "none") and f.get("vcodec") == "none"
        ]
        # Prefer opus for Discord compatibility
        opus = [f for f in audio_formats if "opus" in (f.get("acodec") or "").lower()]

        best = (opus or audio_formats or [info])[0]
        return best.get("url")
