import logging
from typing import Any, Dict, List, Optional, Sequence

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from redsync.domain.entities import PlaylistPage, PlaylistTrack
from redsync.domain.errors import ProviderError
from redsync.domain.ports import CatalogClient

logger = logging.getLogger(__name__)

_PROVIDER_ERRORS = (SpotifyException, requests.RequestException)


class SpotifyCatalog(CatalogClient):
    """Catalog adapter over an authenticated ``spotipy.Spotify`` client."""

    def __init__(self, client: spotipy.Spotify):
        self._client = client

    @classmethod
    def from_access_token(cls, access_token: str) -> 'SpotifyCatalog':
        """Build a catalog bound to a bearer token.

        The client library's own retry loop is switched off; a failed call
        surfaces immediately.
        """
        return cls(spotipy.Spotify(
            auth=access_token,
            requests_timeout=15,
            retries=0,
            status_retries=0,
        ))

    def _playlist_tracks_to_domain(self, items: List[Dict[str, Any]]) -> List[PlaylistTrack]:
        """Map playlist items to tracks, skipping local files and removed tracks."""
        tracks = []
        for item in items or []:
            track = (item or {}).get('track')
            if not track or not track.get('id'):
                continue
            tracks.append(PlaylistTrack(id=track['id'], name=track.get('name', '')))
        return tracks

    def search_track(self, query: str) -> Optional[str]:
        try:
            results = self._client.search(query, limit=1, offset=0, type='track')
        except _PROVIDER_ERRORS as e:
            raise ProviderError(f"Search for {query!r} failed: {e}") from e

        items = ((results or {}).get('tracks') or {}).get('items') or []
        if not items:
            return None
        return items[0].get('id')

    def get_playlist(self, playlist_id: str) -> PlaylistPage:
        try:
            playlist = self._client.playlist(
                playlist_id,
                fields='name,tracks(total,items(track(id,name)))'
            )
        except _PROVIDER_ERRORS as e:
            raise ProviderError(f"Failed to read playlist {playlist_id}: {e}") from e

        tracks = playlist.get('tracks') or {}
        return PlaylistPage(
            playlist_id=playlist_id,
            name=playlist.get('name', ''),
            total=int(tracks.get('total') or 0),
            tracks=self._playlist_tracks_to_domain(tracks.get('items')),
        )

    def get_playlist_tracks(self, playlist_id: str, offset: int, limit: int) -> List[PlaylistTrack]:
        try:
            page = self._client.playlist_items(
                playlist_id,
                fields='items(track(name,id))',
                limit=limit,
                offset=offset,
            )
        except _PROVIDER_ERRORS as e:
            raise ProviderError(f"Failed to read playlist {playlist_id} at offset {offset}: {e}") from e

        return self._playlist_tracks_to_domain((page or {}).get('items'))

    def add_tracks(self, playlist_id: str, track_ids: Sequence[str]) -> None:
        try:
            self._client.playlist_add_items(playlist_id, list(track_ids))
        except _PROVIDER_ERRORS as e:
            raise ProviderError(f"Failed to add {len(track_ids)} tracks to {playlist_id}: {e}") from e

    def current_user_id(self) -> str:
        try:
            user = self._client.current_user()
        except _PROVIDER_ERRORS as e:
            logger.debug("unable to get current user: %s", e)
            raise ProviderError(f"Failed to get current user: {e}") from e
        return user['id']

    def create_playlist(self, user_id: str, name: str, public: bool = True) -> str:
        try:
            result = self._client.user_playlist_create(user_id, name, public=public)
        except _PROVIDER_ERRORS as e:
            raise ProviderError(f"Failed to create playlist {name!r}: {e}") from e
        logger.info(f"Created playlist {name!r} ({result['id']})")
        return result['id']
