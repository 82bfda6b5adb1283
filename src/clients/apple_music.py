import json
import logging
import re
from typing import Any
from urllib.parse import quote

from src.clients.apple_music_helpers import (
    DEFAULT_DURATION,
    FALLBACK_THUMBNAIL,
    UNKNOWN_ARTIST,
    last_path_segment,
    make_image,
    parse_duration,
    parse_song_link,
)
from src.clients.page_fetcher import Document, PageFetcher
from src.models.track import AppleMusicCollection, AppleMusicTrack

logger = logging.getLogger(__name__)

BASE_URL = "https://music.apple.com"
SERVER_DATA_ID = "serialized-server-data"
ALBUM_SCHEMA_ID = "schema:music-album"
PLAYLIST_SCHEMA_ID = "schema:music-playlist"

ARTIST_PATH_REGEX = re.compile(r"/artist/([^/]+)")


class AppleMusicError(Exception):
    """Base error for Apple Music extraction. Never escapes AppleMusicClient."""


class FetchError(AppleMusicError):
    """The page could not be downloaded or parsed."""


class ParseError(AppleMusicError):
    """The page was fetched but its structured data is missing or malformed."""


class AppleMusicClient:
    """Client for fetching Apple Music metadata by scraping the public web pages."""

    def __init__(self, fetcher: PageFetcher | None = None, storefront: str = "us"):
        self._fetcher = fetcher or PageFetcher()
        self.storefront = storefront

    async def search(self, query: str) -> list[AppleMusicTrack]:
        """
        Search Apple Music for songs.

        Returns the songs of the first results page, or [] if anything fails.
        """
        try:
            return await self._search(query)
        except (AppleMusicError, ValueError, LookupError, TypeError, AttributeError) as e:
            logger.debug("Search for %r failed: %s", query, e)
            return []

    async def get_song_info(self, link: str) -> AppleMusicTrack | None:
        """
        Get a song from a /song/ link or an /album/...?i= link.

        Returns None if the link can't be parsed or the page can't be read.
        """
        try:
            return await self._song(link)
        except (AppleMusicError, ValueError, LookupError, TypeError, AttributeError) as e:
            logger.debug("Song extraction failed for %s: %s", link, e)
            return None

    async def get_album_info(self, link: str) -> AppleMusicCollection | None:
        """Get an album and its tracks. Returns None if the page can't be read."""
        try:
            return await self._album(link)
        except (AppleMusicError, ValueError, LookupError, TypeError, AttributeError) as e:
            logger.debug("Album extraction failed for %s: %s", link, e)
            return None

    async def get_playlist_info(self, link: str) -> AppleMusicCollection | None:
        """Get a playlist and its tracks. Returns None if the page can't be fetched."""
        try:
            return await self._playlist(link)
        except (AppleMusicError, ValueError, LookupError, TypeError, AttributeError) as e:
            logger.debug("Playlist extraction failed for %s: %s", link, e)
            return None

    async def _get_document(self, url: str) -> Document:
        document = await self._fetcher.fetch(url)
        if document is None:
            raise FetchError(f"Could not load {url}")
        return document

    async def _search(self, query: str) -> list[AppleMusicTrack]:
        url = f"{BASE_URL}/{self.storefront}/search?term={quote(query, safe='')}"
        document = await self._get_document(url)

        sections = _load_server_data(document)[0]["data"]["sections"]
        section = next((s for s in sections if s.get("itemKind") == "trackLockup"), None)
        if not section or not section.get("items"):
            return []

        return [_search_item_to_track(item) for item in section["items"]]

    async def _song(self, link: str) -> AppleMusicTrack | None:
        slug, song_id = parse_song_link(link)
        if not slug or not song_id:
            return None

        song_url = f"{BASE_URL}/{self.storefront}/song/{slug}/{song_id}"
        document = await self._get_document(song_url)

        if not document.elements_by_tag("meta"):
            return None

        title = (
            document.meta_content(name="apple:title")
            or Document.text_of(document.select_one("title")).strip()
            or slug
        )

        return AppleMusicTrack(
            id=document.meta_content(name="apple:content_id") or song_id,
            title=title,
            url=song_url,
            artist=_song_artist(document),
            duration=_song_duration(document),
            thumbnail=_song_thumbnail(document),
        )

    async def _album(self, link: str) -> AppleMusicCollection:
        document = await self._get_document(link.split("?")[0])

        title = document.meta_content(name="apple:title") or "Unknown Album"
        thumbnail = document.meta_content(property="og:image") or FALLBACK_THUMBNAIL

        artist = UNKNOWN_ARTIST
        tracks: list[AppleMusicTrack] = []

        schema = _load_json_ld(document, ALBUM_SCHEMA_ID)
        if schema is not None:
            artist = _author_name(schema["byArtist"]) or UNKNOWN_ARTIST
            for entry in schema.get("tracks") or []:
                tracks.append(
                    AppleMusicTrack(
                        id=last_path_segment(entry["url"]),
                        title=entry.get("name") or "Unknown Title",
                        url=entry["url"],
                        artist=artist,
                        duration=parse_duration(entry.get("duration") or "PT0S"),
                        thumbnail=thumbnail,
                    )
                )

        return AppleMusicCollection(
            id=document.meta_content(name="apple:content_id") or "",
            title=title,
            description=title,
            artwork=thumbnail,
            artist=artist,
            url=link,
            tracks=tuple(tracks),
        )

    async def _playlist(self, link: str) -> AppleMusicCollection:
        document = await self._get_document(link)

        title = document.meta_content(property="og:title") or "Unknown Title"
        description = document.meta_content(property="og:description") or "No Description"
        artwork = document.meta_content(property="og:image") or FALLBACK_THUMBNAIL

        # Matched to the JSON-LD tracks by position; the two lists are assumed to line up.
        artist_names = _playlist_artist_names(document)

        try:
            schema = _load_json_ld(document, PLAYLIST_SCHEMA_ID)
        except ParseError as e:
            logger.debug("Ignoring playlist JSON-LD for %s: %s", link, e)
            schema = None

        tracks: list[AppleMusicTrack] = []
        for index, entry in enumerate((schema or {}).get("track") or []):
            url = entry.get("url") or ""
            artist = (
                (artist_names[index] if index < len(artist_names) else None)
                or _author_name(entry.get("byArtist"))
                or UNKNOWN_ARTIST
            )
            tracks.append(
                AppleMusicTrack(
                    id=last_path_segment(url),
                    title=entry.get("name") or "Unknown Title",
                    url=url,
                    artist=artist,
                    duration=parse_duration(entry.get("duration") or "PT0S"),
                )
            )

        return AppleMusicCollection(
            title=title,
            description=description,
            artwork=artwork,
            url=link,
            tracks=tuple(tracks),
        )


def _load_server_data(document: Document) -> Any:
    element = document.element_by_id(SERVER_DATA_ID)
    if element is None:
        raise ParseError(f"No #{SERVER_DATA_ID} element")
    try:
        return json.loads(Document.text_of(element))
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed #{SERVER_DATA_ID} JSON: {e}") from e


def _load_json_ld(document: Document, element_id: str) -> dict | None:
    """Return the JSON-LD object in script#<element_id>, or None if the page has none."""
    element = document.element_by_id(element_id)
    if element is None:
        return None
    try:
        data = json.loads(Document.text_of(element))
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed {element_id} JSON-LD: {e}") from e
    return data if isinstance(data, dict) else None


def _author_name(by_artist: Any) -> str | None:
    # schema.org allows either a single Person/MusicGroup or a list of them
    if isinstance(by_artist, list):
        by_artist = by_artist[0] if by_artist else None
    if isinstance(by_artist, dict):
        return by_artist.get("name")
    return None


def _search_item_to_track(item: dict) -> AppleMusicTrack:
    descriptor = item["contentDescriptor"]

    artwork = (item.get("artwork") or {}).get("dictionary")
    thumbnail = (
        make_image(artwork["url"], width=artwork["width"], height=artwork["height"])
        if artwork
        else FALLBACK_THUMBNAIL
    )

    subtitle_links = item.get("subtitleLinks") or []
    artist = subtitle_links[0].get("title") if subtitle_links else None

    return AppleMusicTrack(
        id=str(descriptor["identifiers"]["storeAdamID"]),
        title=item["title"],
        url=descriptor["url"],
        artist=artist or UNKNOWN_ARTIST,
        duration=item.get("duration") or DEFAULT_DURATION,
        thumbnail=thumbnail,
    )


def _song_duration(document: Document) -> str:
    raw = document.meta_content(property="music:song:duration")
    if raw:
        return parse_duration(raw)

    description = document.meta_content(name="apple:description") or ""
    if "Duration: " in description:
        return description.split("Duration: ", 1)[1].split('"')[0] or DEFAULT_DURATION
    return DEFAULT_DURATION


def _song_thumbnail(document: Document) -> str:
    for meta in document.elements_by_tag("meta"):
        if meta.get("property") in ("og:image:secure_url", "og:image") and meta.get("content"):
            return meta["content"]
    return FALLBACK_THUMBNAIL


def _song_artist(document: Document) -> str:
    musician = document.select_one("meta[property='music:musician']")
    if musician is not None:
        match = ARTIST_PATH_REGEX.search(musician.get("content") or "")
        if match:
            return " ".join(word[:1].upper() + word[1:] for word in match.group(1).split("-"))

    subtitle = Document.text_of(document.select_one(".song-subtitles__artists>a")).strip()
    return subtitle or "Apple Music"


def _playlist_artist_names(document: Document) -> list[str]:
    """Artist names from the embedded track list. Best effort, [] on any failure."""
    try:
        sections = _load_server_data(document)[0]["data"]["sections"]
        track_list = next(s for s in sections if "track-list" in s.get("id", ""))
        return [
            item.get("artistName")
            for item in track_list["items"]
            if "track-lockup" in item.get("id", "")
        ]
    except (ParseError, LookupError, TypeError, AttributeError, StopIteration):
        return []
