import logging
from dataclasses import dataclass
from typing import Literal

from src.bridge import YouTubeBridge
from src.clients.apple_music import AppleMusicClient
from src.clients.apple_music_helpers import QueryType, classify_query, is_valid_query
from src.clients.youtube import YouTubeClient
from src.clients.ytmusic import YTMusicClient
from src.models.track import (
    AppleMusicCollection,
    AppleMusicTrack,
    ExtractorInfo,
    Playlist,
    PlaylistAuthor,
    SearchContext,
    Track,
)
from src.streaming import (
    BridgeStreamProducer,
    CustomStreamProducer,
    StreamFN,
    StreamProducer,
    Streamable,
)

logger = logging.getLogger(__name__)


@dataclass
class AppleMusicExtractorOptions:
    create_stream: StreamFN | None = None


class AppleMusicExtractor:
    """Resolves Apple Music links and search terms to queueable Track(s)."""

    identifier = "com.discord-player.applemusicextractor"

    def __init__(
        self,
        client: AppleMusicClient | None = None,
        options: AppleMusicExtractorOptions | None = None,
        bridge: YouTubeBridge | None = None,
    ):
        self.client = client or AppleMusicClient()
        self.options = options or AppleMusicExtractorOptions()
        self._bridge = bridge
        self.protocols: list[str] = []
        self._stream: StreamProducer | None = None

    async def activate(self) -> None:
        self.protocols = ["amsearch", "applemusic"]

        if self.options.create_stream is not None:
            self._stream = CustomStreamProducer(self, self.options.create_stream)
        else:
            if self._bridge is None:
                self._bridge = YouTubeBridge(YTMusicClient(), YouTubeClient())
            self._stream = BridgeStreamProducer(self._bridge)

    async def deactivate(self) -> None:
        self.protocols = []

    async def validate(self, query: str) -> bool:
        return is_valid_query(query)

    async def handle(self, query: str, context: SearchContext) -> ExtractorInfo:
        """
        Resolve a query to tracks.

        Supports:
        - Apple Music song links (/song/... and /album/...?i=...)
        - Apple Music album links
        - Apple Music playlist links
        - Free text search

        Returns an empty ExtractorInfo when nothing was found; never raises
        for missing content.
        """
        if not is_valid_query(query):
            logger.debug("Rejected query %r", query)
            return ExtractorInfo()

        query_type = classify_query(query)

        if query_type is QueryType.SONG:
            info = await self.client.get_song_info(query)
            if not info:
                return ExtractorInfo()
            return ExtractorInfo(tracks=[self._build_track(info, context)])

        if query_type is QueryType.ALBUM:
            collection = await self.client.get_album_info(query)
            if not collection:
                return ExtractorInfo()
            playlist = self._build_playlist(collection, context, "album")
            return ExtractorInfo(playlist=playlist, tracks=playlist.tracks)

        if query_type is QueryType.PLAYLIST:
            collection = await self.client.get_playlist_info(query)
            if not collection:
                return ExtractorInfo()
            playlist = self._build_playlist(collection, context, "playlist")
            return ExtractorInfo(playlist=playlist, tracks=playlist.tracks)

        results = await self.client.search(query)
        return ExtractorInfo(tracks=[self._build_track(t, context) for t in results])

    async def stream(self, track: Track) -> Streamable:
        """
        Produce a playable source for a track: a URL string or a binary stream.
        Raises BridgeError if no source can be found.
        """
        if self._stream is None:
            raise RuntimeError("Extractor is not activated")
        return await self._stream.produce(track)

    def _build_track(
        self,
        info: AppleMusicTrack,
        context: SearchContext,
        playlist: Playlist | None = None,
    ) -> Track:
        return Track(
            title=info.title,
            author=info.artist,
            description=info.title,
            duration=info.duration,
            thumbnail=info.thumbnail,
            url=info.url,
            requested_by=context.requested_by,
            metadata={"source": info, "bridge": None},
            playlist=playlist,
            extractor=self,
        )

    def _build_playlist(
        self,
        data: AppleMusicCollection,
        context: SearchContext,
        playlist_type: Literal["album", "playlist"],
    ) -> Playlist:
        author = data.artist if playlist_type == "album" else data.description
        playlist = Playlist(
            title=data.title,
            description=data.description or data.title,
            thumbnail=data.artwork,
            type=playlist_type,
            author=PlaylistAuthor(name=author or ""),
            id=data.id or "",
            url=data.url or "",
            raw_playlist=data,
        )
        playlist.tracks = [self._build_track(t, context, playlist) for t in data.tracks]
        return playlist
