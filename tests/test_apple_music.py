import unittest
from pathlib import Path

import httpx

from src.clients.apple_music import AppleMusicClient
from src.clients.apple_music_helpers import FALLBACK_THUMBNAIL
from src.clients.page_fetcher import Document, PageFetcher

FIXTURES = Path(__file__).parent / "fixtures"


def _fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


class FakeFetcher(PageFetcher):
    """Serves fixture HTML by URL and records what was requested."""

    def __init__(self, pages: dict[str, str]):
        super().__init__()
        self.pages = pages
        self.requested: list[str] = []

    async def fetch(self, url):
        self.requested.append(url)
        html = self.pages.get(url)
        return Document.parse(html) if html is not None else None


def _failing_client() -> AppleMusicClient:
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    return AppleMusicClient(fetcher=PageFetcher(transport=httpx.MockTransport(handler)))


class SearchTests(unittest.IsolatedAsyncioTestCase):
    async def test_maps_track_lockup_section(self):
        fetcher = FakeFetcher({
            "https://music.apple.com/us/search?term=never%20gonna%20give%20you%20up": _fixture("search.html"),
        })
        client = AppleMusicClient(fetcher=fetcher)

        tracks = await client.search("never gonna give you up")

        self.assertEqual(len(tracks), 2)
        first, second = tracks
        self.assertEqual(first.id, "1559523359")
        self.assertEqual(first.title, "Never Gonna Give You Up")
        self.assertEqual(first.artist, "Rick Astley")
        self.assertEqual(first.duration, "3:33")
        self.assertEqual(first.thumbnail, "https://is1-ssl.mzstatic.com/image/thumb/Music/3000x3000bb.jpg")
        self.assertEqual(first.url, "https://music.apple.com/us/song/never-gonna-give-you-up/1559523359")

        self.assertEqual(second.id, "42")
        self.assertEqual(second.artist, "Unknown Artist")
        self.assertEqual(second.duration, "0:00")
        self.assertEqual(second.thumbnail, FALLBACK_THUMBNAIL)

    async def test_uses_configured_storefront(self):
        fetcher = FakeFetcher({})
        client = AppleMusicClient(fetcher=fetcher, storefront="jp")

        await client.search("a&b")

        self.assertEqual(fetcher.requested, ["https://music.apple.com/jp/search?term=a%26b"])

    async def test_page_without_payload_returns_empty(self):
        fetcher = FakeFetcher({"https://music.apple.com/us/search?term=x": "<html><body></body></html>"})
        self.assertEqual(await AppleMusicClient(fetcher=fetcher).search("x"), [])

    async def test_malformed_payload_returns_empty(self):
        html = '<script id="serialized-server-data">{not json</script>'
        fetcher = FakeFetcher({"https://music.apple.com/us/search?term=x": html})
        self.assertEqual(await AppleMusicClient(fetcher=fetcher).search("x"), [])


class SongTests(unittest.IsolatedAsyncioTestCase):
    SONG_URL = "https://music.apple.com/us/song/never-gonna-give-you-up/1559523359"

    async def test_reads_meta_tags(self):
        fetcher = FakeFetcher({self.SONG_URL: _fixture("song.html")})
        client = AppleMusicClient(fetcher=fetcher)

        song = await client.get_song_info(
            "https://music.apple.com/gb/album/never-gonna-give-you-up/1559523357?i=1559523359"
        )

        self.assertEqual(fetcher.requested, [self.SONG_URL])
        self.assertEqual(song.id, "1559523359")
        self.assertEqual(song.title, "Never Gonna Give You Up")
        self.assertEqual(song.duration, "3:33")
        self.assertEqual(song.artist, "Rick Astley")
        self.assertEqual(song.thumbnail, "https://is1-ssl.mzstatic.com/image/thumb/Music/secure/1200x630wp.jpg")
        self.assertEqual(song.url, self.SONG_URL)

    async def test_falls_back_on_sparse_page(self):
        url = "https://music.apple.com/us/song/take-on-me/1000"
        client = AppleMusicClient(fetcher=FakeFetcher({url: _fixture("song_sparse.html")}))

        song = await client.get_song_info(url)

        self.assertEqual(song.id, "1000")
        self.assertEqual(song.title, "Take On Me")
        self.assertEqual(song.duration, "3:45")
        self.assertEqual(song.artist, "a-ha")
        self.assertEqual(song.thumbnail, FALLBACK_THUMBNAIL)

    async def test_same_page_gives_identical_records(self):
        client = AppleMusicClient(fetcher=FakeFetcher({self.SONG_URL: _fixture("song.html")}))

        first = await client.get_song_info(self.SONG_URL)
        second = await client.get_song_info(self.SONG_URL)

        self.assertEqual(first, second)
        self.assertEqual(repr(first), repr(second))

    async def test_album_link_without_track_id_returns_none(self):
        fetcher = FakeFetcher({})
        client = AppleMusicClient(fetcher=fetcher)

        self.assertIsNone(await client.get_song_info("https://music.apple.com/us/album/x/123"))
        self.assertEqual(fetcher.requested, [])

    async def test_page_without_meta_returns_none(self):
        client = AppleMusicClient(fetcher=FakeFetcher({self.SONG_URL: "<html><body>gone</body></html>"}))
        self.assertIsNone(await client.get_song_info(self.SONG_URL))


class AlbumTests(unittest.IsolatedAsyncioTestCase):
    ALBUM_URL = "https://music.apple.com/us/album/album-y/1440818839"

    async def test_builds_tracks_from_json_ld(self):
        fetcher = FakeFetcher({self.ALBUM_URL: _fixture("album.html")})
        client = AppleMusicClient(fetcher=fetcher)

        album = await client.get_album_info(self.ALBUM_URL + "?l=en")

        self.assertEqual(fetcher.requested, [self.ALBUM_URL])
        self.assertEqual(album.id, "1440818839")
        self.assertEqual(album.title, "Album Y")
        self.assertEqual(album.description, "Album Y")
        self.assertEqual(album.artist, "Artist X")
        self.assertEqual(album.url, self.ALBUM_URL + "?l=en")

        self.assertEqual(len(album.tracks), 3)
        self.assertEqual([t.id for t in album.tracks], ["1440818840", "1440818841", "1440818842"])
        self.assertTrue(all(t.artist == "Artist X" for t in album.tracks))
        self.assertTrue(all(t.thumbnail == album.artwork for t in album.tracks))
        self.assertEqual([t.duration for t in album.tracks], ["3:05", "1:02:03", "0:00"])
        self.assertEqual(album.tracks[2].title, "Unknown Title")

    async def test_page_without_json_ld_still_returns_album(self):
        client = AppleMusicClient(fetcher=FakeFetcher({self.ALBUM_URL: _fixture("album_no_schema.html")}))

        album = await client.get_album_info(self.ALBUM_URL)

        self.assertEqual(album.title, "Unknown Album")
        self.assertEqual(album.artist, "Unknown Artist")
        self.assertEqual(album.artwork, FALLBACK_THUMBNAIL)
        self.assertEqual(album.tracks, ())

    async def test_malformed_json_ld_returns_none(self):
        html = '<meta name="apple:title" content="A"><script id="schema:music-album">{oops</script>'
        client = AppleMusicClient(fetcher=FakeFetcher({self.ALBUM_URL: html}))
        self.assertIsNone(await client.get_album_info(self.ALBUM_URL))


class PlaylistTests(unittest.IsolatedAsyncioTestCase):
    PLAYLIST_URL = "https://music.apple.com/us/playlist/todays-hits/pl.f4d106fed2bd41149aaacabb233eb5eb"

    async def test_resolves_artists_by_position(self):
        client = AppleMusicClient(fetcher=FakeFetcher({self.PLAYLIST_URL: _fixture("playlist.html")}))

        playlist = await client.get_playlist_info(self.PLAYLIST_URL)

        self.assertEqual(playlist.title, "Today's Hits")
        self.assertEqual(playlist.description, "Apple Music Pop")
        self.assertEqual(playlist.url, self.PLAYLIST_URL)
        self.assertIsNone(playlist.id)
        self.assertEqual(
            [t.artist for t in playlist.tracks],
            ["Sabrina Carpenter", "Chappell Roan", "Billie Eilish", "Unknown Artist"],
        )
        self.assertEqual([t.id for t in playlist.tracks], ["111", "222", "333", "444"])
        self.assertEqual(playlist.tracks[0].duration, "2:55")
        self.assertEqual(playlist.tracks[3].title, "Unknown Title")
        self.assertTrue(all(t.thumbnail == FALLBACK_THUMBNAIL for t in playlist.tracks))

    async def test_defaults_when_page_is_bare(self):
        client = AppleMusicClient(fetcher=FakeFetcher({self.PLAYLIST_URL: "<html></html>"}))

        playlist = await client.get_playlist_info(self.PLAYLIST_URL)

        self.assertEqual(playlist.title, "Unknown Title")
        self.assertEqual(playlist.description, "No Description")
        self.assertEqual(playlist.artwork, FALLBACK_THUMBNAIL)
        self.assertEqual(playlist.tracks, ())

    async def test_broken_server_data_keeps_json_ld_artists(self):
        html = _fixture("playlist.html").replace('"sections": [', '"sections": {', 1)
        client = AppleMusicClient(fetcher=FakeFetcher({self.PLAYLIST_URL: html}))

        playlist = await client.get_playlist_info(self.PLAYLIST_URL)

        self.assertEqual(
            [t.artist for t in playlist.tracks],
            ["Unknown Artist", "Unknown Artist", "Billie Eilish", "Unknown Artist"],
        )


class FetchFailureTests(unittest.IsolatedAsyncioTestCase):
    async def test_every_extractor_degrades(self):
        client = _failing_client()

        self.assertEqual(await client.search("anything"), [])
        self.assertIsNone(await client.get_song_info("https://music.apple.com/us/song/x/1"))
        self.assertIsNone(await client.get_album_info("https://music.apple.com/us/album/x/1"))
        self.assertIsNone(await client.get_playlist_info("https://music.apple.com/us/playlist/x/pl.abc"))


if __name__ == "__main__":
    unittest.main()
