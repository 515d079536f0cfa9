from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from .entities import PlaylistPage, PlaylistTrack


class CatalogClient(Protocol):
    """Port defining the catalog capabilities the sync core relies on.

    Implementations map provider payloads into domain entities and raise
    ``ProviderError`` for any transport or provider failure.
    """

    def search_track(self, query: str) -> Optional[str]:
        """Return the id of the top-ranked track for the query, or None."""

    def get_playlist(self, playlist_id: str) -> PlaylistPage:
        """Return the playlist name, declared total and its first page of tracks."""

    def get_playlist_tracks(self, playlist_id: str, offset: int, limit: int) -> List[PlaylistTrack]:
        """Return up to ``limit`` tracks starting at ``offset``."""

    def add_tracks(self, playlist_id: str, track_ids: Sequence[str]) -> None:
        """Append tracks to the playlist in one write request."""

    def current_user_id(self) -> str:
        """Return the id of the authenticated user."""

    def create_playlist(self, user_id: str, name: str, public: bool = True) -> str:
        """Create a playlist for the user and return its id."""


class TitleSource(Protocol):
    """Port for the forum feed that supplies candidate titles."""

    def fetch(self, subreddit: str, max_pages: int) -> List[str]:
        """Return post titles from up to ``max_pages`` pages of the feed."""
