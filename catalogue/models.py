from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, computed_field

UNKNOWN_TITLE = "Unknown title"
UNKNOWN_ARTIST = "Unknown artist"

LYRICS_SEARCH_URL = "https://www.google.com/search?q="


def lyrics_link(title: str, artist: str) -> str:
    """Search-engine URL for the lyrics of a song."""
    query = quote(f"{title} {artist} lyrics", safe="-_.!~*'()")
    return f"{LYRICS_SEARCH_URL}{query}"


class Song(BaseModel):
    """A single song from the catalogue.

    Extra fields in the source record are carried through untouched.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    title: str | None = None
    artist: str | None = None

    @property
    def display_title(self) -> str:
        return self.title or UNKNOWN_TITLE

    @property
    def display_artist(self) -> str:
        return self.artist or UNKNOWN_ARTIST


class SongCard(BaseModel):
    """A rendered song: its placeholder handle plus what the card shows."""

    placeholder_id: str
    title: str
    artist: str
    artwork_url: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def lyrics_url(self) -> str:
        """Outbound "Find lyrics" link, opened in a new browsing context."""
        return lyrics_link(self.title, self.artist)


class CatalogueView(BaseModel):
    """One render of the (possibly filtered) catalogue."""

    query: str = ""
    status: str
    showing: int = 0
    total: int = 0
    render_id: int = 0
    cards: list[SongCard] = []
