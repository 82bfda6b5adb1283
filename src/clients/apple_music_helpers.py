import re
from enum import Enum
from urllib.parse import parse_qs, urlparse

UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36 Edg/109.0.1518.49"
)

FALLBACK_THUMBNAIL = "https://music.apple.com/assets/favicon/favicon-180.png"
UNKNOWN_ARTIST = "Unknown Artist"
DEFAULT_DURATION = "0:00"

APPLE_MUSIC_SONG_REGEX = re.compile(
    r"^https?://music\.apple\.com/.+?/(?:song/.+?/|album/.+?/.+?\?i=)([0-9]+)$"
)
APPLE_MUSIC_ALBUM_REGEX = re.compile(r"^https?://music\.apple\.com/.+?/album/.+/([0-9]+)$")
APPLE_MUSIC_PLAYLIST_REGEX = re.compile(
    r"^https?://music\.apple\.com/.+?/playlist/.+/pl\.(u-|pm-)?[a-zA-Z0-9]+$"
)


def _unit(name: str, letter: str) -> str:
    return rf"(?:(?P<{name}>-?\d*[.,]?\d+){letter})?"


DURATION_REGEX = re.compile(
    "".join(
        [
            r"(?P<negative>-)?P",
            _unit("years", "Y"),
            _unit("months", "M"),
            _unit("weeks", "W"),
            _unit("days", "D"),
            r"(?:T",
            _unit("hours", "H"),
            _unit("minutes", "M"),
            _unit("seconds", "S"),
            r")?",
        ]
    )
)

DURATION_UNITS = ("years", "months", "weeks", "days", "hours", "minutes", "seconds")


class QueryType(Enum):
    SONG = "song"
    ALBUM = "album"
    PLAYLIST = "playlist"
    SEARCH = "search"


def parse_duration(value: str) -> str:
    """
    Convert an ISO-8601 duration (e.g. "PT3M25S") into a display string ("3:25").

    Leading empty units are dropped, minutes and seconds are always shown.
    Returns "0:00" for anything that doesn't parse.
    """
    if not isinstance(value, str):
        return DEFAULT_DURATION

    match = DURATION_REGEX.fullmatch(value.strip())
    if not match:
        return DEFAULT_DURATION

    parts = [match.group(unit) for unit in DURATION_UNITS]
    if not any(parts):
        return DEFAULT_DURATION

    first = next(i for i, part in enumerate(parts) if part)
    kept = parts[min(first, len(parts) - 2):]

    return ":".join(
        (part or "0") if i == 0 else _pad_unit(part or "0")
        for i, part in enumerate(kept)
    )


def _pad_unit(part: str) -> str:
    # Pad the integer digits only, so "3.5" becomes "03.5"
    whole, sep, fraction = part.replace(",", ".").partition(".")
    return whole.zfill(2) + sep + fraction


def make_image(url: str, width: int, height: int, ext: str = "jpg") -> str:
    """Fill the {w}, {h} and {f} placeholders of an Apple artwork URL."""
    return url.replace("{w}", str(width)).replace("{h}", str(height)).replace("{f}", ext)


def is_url(value: str) -> bool:
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def classify_query(query: str) -> QueryType:
    """Detect what type of input the query is."""
    if APPLE_MUSIC_SONG_REGEX.match(query):
        return QueryType.SONG
    if APPLE_MUSIC_ALBUM_REGEX.match(query):
        return QueryType.ALBUM
    if APPLE_MUSIC_PLAYLIST_REGEX.match(query):
        return QueryType.PLAYLIST
    return QueryType.SEARCH


def is_valid_query(query: str) -> bool:
    """
    Search terms are always accepted; URLs only when they are Apple Music
    song, album or playlist links.
    """
    if not query or not query.strip():
        return False
    return not is_url(query) or classify_query(query) is not QueryType.SEARCH


def parse_song_link(link: str) -> tuple[str | None, str | None]:
    """
    Return (slug, id) for a song link.

    Handles both /album/<slug>/<album id>?i=<track id> and /song/<slug>/<id>.
    """
    url = urlparse(link)
    slug = song_id = None

    if "/album/" in url.path:
        song_id = parse_qs(url.query).get("i", [None])[0]
        slug = url.path.split("album/", 1)[1].split("/")[0] or None
    elif "/song/" in url.path:
        parts = url.path.split("/song/", 1)[1].split("/")
        slug = parts[0] or None
        song_id = parts[1] if len(parts) > 1 and parts[1] else None

    return slug, song_id


def last_path_segment(url: str) -> str:
    return url.split("/")[-1]
