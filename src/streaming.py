import inspect
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, BinaryIO, Callable, Union

from src.bridge import YouTubeBridge
from src.models.track import Track

if TYPE_CHECKING:
    from src.resolver import AppleMusicExtractor

Streamable = Union[str, BinaryIO]
StreamFN = Callable[["AppleMusicExtractor", str, Track], Union[Streamable, Awaitable[Streamable]]]


class BridgeError(RuntimeError):
    """No playable source could be found for a track."""


class StreamProducer(ABC):
    """Turns a queued track into something the player can feed to ffmpeg."""

    @abstractmethod
    async def produce(self, track: Track) -> Streamable:
        ...


class CustomStreamProducer(StreamProducer):
    """Delegates to a user supplied create_stream function."""

    def __init__(self, extractor: "AppleMusicExtractor", fn: StreamFN):
        self._extractor = extractor
        self._fn = fn

    async def produce(self, track: Track) -> Streamable:
        try:
            result: Any = self._fn(self._extractor, track.url, track)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:  # user code; any failure means no source for this track
            raise BridgeError(f"create_stream failed for {track.url}: {e}") from e

        if not result:
            raise BridgeError(f"create_stream returned nothing for {track.url}")
        return result


class BridgeStreamProducer(StreamProducer):
    """Asks the YouTube bridge for an equivalent source."""

    def __init__(self, bridge: YouTubeBridge):
        self._bridge = bridge

    async def produce(self, track: Track) -> Streamable:
        result = await self._bridge.request_bridge(track)
        if not result or not result.url:
            raise BridgeError("Could not bridge this track")
        track.metadata["bridge"] = result
        return result.url
