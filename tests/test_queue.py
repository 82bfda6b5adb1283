import unittest

from src.models.track import ExtractorInfo, Track
from src.music.queue import GuildQueue, QueueManager


def _track(title, requested_by=None, duration="3:00"):
    return Track(
        title=title,
        author="Artist",
        duration=duration,
        thumbnail="https://img/t.jpg",
        url=f"https://music.apple.com/us/song/{title}/1",
        requested_by=requested_by,
    )


class GuildQueueTests(unittest.TestCase):
    def test_add_and_next_in_order(self):
        queue = GuildQueue()
        self.assertEqual(queue.add(_track("a")), 0)
        self.assertEqual(queue.add(_track("b")), 1)

        self.assertEqual(queue.next().title, "a")
        self.assertEqual(queue.current.title, "a")
        self.assertEqual(queue.next().title, "b")
        self.assertIsNone(queue.next())
        self.assertIsNone(queue.current)

    def test_add_info_sets_requester_and_returns_first_position(self):
        queue = GuildQueue()
        queue.add(_track("already"))
        info = ExtractorInfo(tracks=[_track("a"), _track("b")])

        self.assertEqual(queue.add_info(info, requested_by="bob"), 1)
        self.assertEqual([t.requested_by for t in queue.get_list()], [None, "bob", "bob"])
        self.assertIsNone(queue.add_info(ExtractorInfo()))

    def test_fair_shuffle_alternates_requesters(self):
        queue = GuildQueue()
        queue.shuffle = True
        for i in range(3):
            queue.add(_track(f"alice-{i}", requested_by="alice"))
        queue.add(_track("bob-0", requested_by="bob"))

        queue.current = _track("playing", requested_by="alice")
        self.assertEqual(queue.next().requested_by, "bob")
        self.assertEqual(queue.next().requested_by, "alice")

    def test_remaining_duration_and_clear(self):
        queue = GuildQueue()
        queue.add(_track("a", duration="3:00"))
        queue.add(_track("b", duration="1:02:03"))

        self.assertEqual(queue.remaining_ms, (180 + 3723) * 1000)

        queue.clear()
        self.assertEqual(len(queue), 0)


class QueueManagerTests(unittest.TestCase):
    def test_get_is_per_guild(self):
        manager = QueueManager()
        self.assertIs(manager.get(1), manager.get(1))
        self.assertIsNot(manager.get(1), manager.get(2))

        manager.remove(1)
        manager.remove(1)
        self.assertEqual(len(manager.get(1)), 0)


class TrackDurationTests(unittest.TestCase):
    def test_duration_ms(self):
        self.assertEqual(_track("a", duration="0:05").duration_ms, 5000)
        self.assertEqual(_track("a", duration="garbage").duration_ms, 0)


if __name__ == "__main__":
    unittest.main()
