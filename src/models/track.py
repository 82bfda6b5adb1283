from dataclasses import dataclass, field
from typing import Any, Literal

from src.clients.apple_music_helpers import DEFAULT_DURATION, FALLBACK_THUMBNAIL, UNKNOWN_ARTIST


@dataclass(frozen=True)
class AppleMusicTrack:
    """A track as scraped from Apple Music. Every field is always populated."""

    id: str
    title: str
    url: str
    artist: str = UNKNOWN_ARTIST
    duration: str = DEFAULT_DURATION
    thumbnail: str = FALLBACK_THUMBNAIL


@dataclass(frozen=True)
class AppleMusicCollection:
    """An album or playlist page with its tracks in page order."""

    title: str
    artwork: str
    tracks: tuple[AppleMusicTrack, ...] = ()
    id: str | None = None
    description: str | None = None
    url: str | None = None
    artist: str | None = None


@dataclass
class SearchContext:
    requested_by: str | None = None


@dataclass
class Track:
    """A track ready to be queued. Playback is resolved through its extractor."""

    title: str
    author: str
    duration: str  # Display string, e.g. "3:25"
    thumbnail: str
    url: str
    description: str = ""
    views: int = 0
    source: str = "apple_music"
    requested_by: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    playlist: "Playlist | None" = field(default=None, repr=False, compare=False)
    extractor: Any = field(default=None, repr=False, compare=False)

    @property
    def artist(self) -> str:
        return self.author

    @property
    def duration_ms(self) -> int:
        """Duration in milliseconds, parsed from the display string."""
        total_seconds = 0
        for part in self.duration.split(":"):
            try:
                total_seconds = total_seconds * 60 + int(float(part.replace(",", ".")))
            except ValueError:
                return 0
        return total_seconds * 1000


@dataclass
class PlaylistAuthor:
    name: str
    url: str = ""


@dataclass
class Playlist:
    """An album or playlist as seen by the queue."""

    title: str
    description: str
    thumbnail: str
    type: Literal["album", "playlist"]
    author: PlaylistAuthor
    id: str = ""
    url: str = ""
    source: str = "apple_music"
    tracks: list[Track] = field(default_factory=list, repr=False)
    raw_playlist: AppleMusicCollection | None = field(default=None, repr=False)


@dataclass
class ExtractorInfo:
    """What a query resolved to: nothing, some tracks, or a playlist and its tracks."""

    playlist: Playlist | None = None
    tracks: list[Track] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.tracks
