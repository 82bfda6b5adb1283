import random
from collections import deque

from src.models.track import ExtractorInfo, Track


class GuildQueue:
    """Queue for a single guild's music playback."""

    def __init__(self):
        self._queue: deque[Track] = deque()
        self.current: Track | None = None
        self.shuffle: bool = False

    def add(self, track: Track) -> int:
        """Add a track to the queue. Returns position in queue (0 = playing next)."""
        self._queue.append(track)
        return len(self._queue) - 1

    def add_info(self, info: ExtractorInfo, requested_by: str | None = None) -> int | None:
        """
        Queue every track of an extractor response, in order.
        Returns the position of the first one, or None if there was nothing to add.
        """
        first_position = None
        for track in info.tracks:
            if requested_by is not None:
                track.requested_by = requested_by
            position = self.add(track)
            if first_position is None:
                first_position = position
        return first_position

    def next(self) -> Track | None:
        """Advance to the next track. Returns None (and clears current) when empty."""
        if not self._queue:
            self.current = None
            return None

        if self.shuffle:
            index = self._fair_shuffle_index()
            self.current = self._queue[index]
            del self._queue[index]
        else:
            self.current = self._queue.popleft()

        return self.current

    def _fair_shuffle_index(self) -> int:
        """Random pick that prefers a different requester than the current track's."""
        previous = self.current.requested_by if self.current else None
        candidates = [i for i, t in enumerate(self._queue) if t.requested_by != previous]
        if candidates:
            return random.choice(candidates)
        return random.randrange(len(self._queue))

    def clear(self) -> None:
        """Clear all tracks from the queue (keeps current track playing)."""
        self._queue.clear()

    def get_list(self) -> list[Track]:
        return list(self._queue)

    @property
    def remaining_ms(self) -> int:
        """Total duration of the tracks waiting in the queue."""
        return sum(t.duration_ms for t in self._queue)

    def __len__(self) -> int:
        return len(self._queue)


class QueueManager:
    """Manages queues for all guilds."""

    def __init__(self):
        self._queues: dict[int, GuildQueue] = {}

    def get(self, guild_id: int) -> GuildQueue:
        return self._queues.setdefault(guild_id, GuildQueue())

    def remove(self, guild_id: int) -> None:
        """Remove a guild's queue (call when bot leaves voice)."""
        self._queues.pop(guild_id, None)
