import asyncio
import logging
from typing import Callable

import discord

from src.models.track import Track
from src.music.queue import GuildQueue
from src.resolver import AppleMusicExtractor
from src.streaming import BridgeError

logger = logging.getLogger(__name__)

IDLE_TIMEOUT_SECONDS = 120  # 2 minutes

FFMPEG_BEFORE_OPTIONS = "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5"
FFMPEG_OPTIONS = "-vn"


def make_audio_source(stream) -> discord.AudioSource:
    """Wrap an extractor stream (URL string or binary stream) for discord.py."""
    if isinstance(stream, str):
        source = discord.FFmpegPCMAudio(
            stream, before_options=FFMPEG_BEFORE_OPTIONS, options=FFMPEG_OPTIONS
        )
    else:
        source = discord.FFmpegPCMAudio(stream, pipe=True, options=FFMPEG_OPTIONS)
    return discord.PCMVolumeTransformer(source)


class Player:
    """Handles voice playback for a single guild."""

    def __init__(
        self,
        voice_client: discord.VoiceClient,
        queue: GuildQueue,
        extractor: AppleMusicExtractor,
        on_track_start: Callable[[Track], None] | None = None,
        on_track_error: Callable[[Track, Exception], None] | None = None,
        on_disconnect: Callable[[], None] | None = None,
    ):
        self.voice_client = voice_client
        self.queue = queue
        self.extractor = extractor
        self.on_track_start = on_track_start
        self.on_track_error = on_track_error
        self.on_disconnect = on_disconnect
        self._idle_task: asyncio.Task | None = None

    async def play_next(self) -> Track | None:
        """
        Play the next playable track in the queue.
        Tracks that can't be bridged are skipped. Returns None if the queue runs out.
        """
        self._cancel_idle_timer()

        while (track := self.queue.next()) is not None:
            try:
                stream = await self.extractor.stream(track)
                source = make_audio_source(stream)
            except (BridgeError, discord.ClientException) as e:
                logger.warning("Skipping %s: %s", track.url, e)
                if self.on_track_error:
                    self.on_track_error(track, e)
                continue

            self.voice_client.play(source, after=self._after_callback)
            if self.on_track_start:
                self.on_track_start(track)
            return track

        self._start_idle_timer()
        return None

    def _after_callback(self, error: Exception | None) -> None:
        # Runs on discord.py's audio thread
        if error:
            logger.error("Player error: %s", error)
        asyncio.run_coroutine_threadsafe(self.play_next(), self.voice_client.loop)

    def pause(self) -> bool:
        if self.voice_client.is_playing():
            self.voice_client.pause()
            return True
        return False

    def resume(self) -> bool:
        if self.voice_client.is_paused():
            self.voice_client.resume()
            return True
        return False

    def skip(self) -> None:
        if self.is_playing():
            self.voice_client.stop()  # This triggers the after callback

    async def stop(self) -> None:
        """Stop playback and disconnect."""
        self._cancel_idle_timer()
        self.queue.clear()
        self.queue.current = None
        if self.voice_client.is_connected():
            await self.voice_client.disconnect()
        if self.on_disconnect:
            self.on_disconnect()

    def is_playing(self) -> bool:
        """Check if currently playing or paused."""
        return self.voice_client.is_playing() or self.voice_client.is_paused()

    def _start_idle_timer(self) -> None:
        self._idle_task = asyncio.create_task(self._idle_disconnect())

    def _cancel_idle_timer(self) -> None:
        if self._idle_task and not self._idle_task.done():
            self._idle_task.cancel()
        self._idle_task = None

    async def _idle_disconnect(self) -> None:
        await asyncio.sleep(IDLE_TIMEOUT_SECONDS)
        if self.voice_client.is_connected() and not self.is_playing():
            await self.voice_client.disconnect()
            if self.on_disconnect:
                self.on_disconnect()


class PlayerManager:
    """Manages players for all guilds."""

    def __init__(self, extractor: AppleMusicExtractor):
        self._players: dict[int, Player] = {}
        self._extractor = extractor

    def create(self, guild_id: int, voice_client: discord.VoiceClient, queue: GuildQueue, **callbacks) -> Player:
        player = Player(voice_client=voice_client, queue=queue, extractor=self._extractor, **callbacks)
        self._players[guild_id] = player
        return player

    def get(self, guild_id: int) -> Player | None:
        return self._players.get(guild_id)

    def remove(self, guild_id: int) -> None:
        self._players.pop(guild_id, None)
