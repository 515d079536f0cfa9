from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from redsync.crosscutting.config import BATCH_SIZE, PAGE_SIZE
from redsync.crosscutting.logging import CorrelationContext
from redsync.domain.entities import PlaylistPage
from redsync.domain.errors import AddError, FetchError, ProviderError
from redsync.domain.normalization import merge_tracks, round_up_count, split_batches
from redsync.domain.ports import CatalogClient
from redsync.infrastructure.auth.session import Session

logger = logging.getLogger(__name__)


class PlaylistReconciler:
    """Adds to a playlist only the candidate tracks it does not already hold.

    The full playlist is read page by page into an id -> name index before
    any decision is made; additions are then written in ordered batches.
    A failed batch stops the run but earlier batches stay applied.
    """

    def __init__(self, session: Session, page_size: int = PAGE_SIZE, batch_size: int = BATCH_SIZE):
        self._session = session
        self._page_size = page_size
        self._batch_size = batch_size

    def _first_page(self, catalog: CatalogClient, playlist_id: str) -> PlaylistPage:
        try:
            return catalog.get_playlist(playlist_id)
        except ProviderError as e:
            raise FetchError(f"Failed to read playlist {playlist_id}: {e}") from e

    def build_index(self, catalog: CatalogClient, first: PlaylistPage) -> Dict[str, str]:
        """Snapshot every track of the playlist as an id -> name mapping."""
        index: Dict[str, str] = {}
        merge_tracks(index, first.tracks)

        pages = round_up_count(first.total, self._page_size)
        for page in range(1, pages):
            offset = page * self._page_size
            logger.debug(f"reading playlist {first.playlist_id} page {page + 1}/{pages} (offset={offset})")
            try:
                tracks = catalog.get_playlist_tracks(first.playlist_id, offset=offset, limit=self._page_size)
            except ProviderError as e:
                raise FetchError(
                    f"Failed to read playlist {first.playlist_id} at offset {offset}: {e}"
                ) from e
            merge_tracks(index, tracks)

        logger.debug(f"playlist {first.playlist_id} holds {len(index)} tracks (declared {first.total})")
        return index

    def plan_additions(self, index: Dict[str, str], candidate_ids: Iterable[str],
                       playlist_name: str = "") -> List[str]:
        """Candidates missing from the index, in candidate order, each once."""
        to_add: List[str] = []
        queued = set()
        for track_id in candidate_ids:
            if track_id in index:
                logger.info(f'track "{index[track_id]}" already in the playlist "{playlist_name}"')
            elif track_id not in queued:
                queued.add(track_id)
                to_add.append(track_id)
        return to_add

    def reconcile(self, playlist_id: str, candidate_ids: Iterable[str]) -> int:
        """Add the candidates not yet in the playlist.

        Returns:
            Number of track ids queued for addition

        Raises:
            NotReadyError: if the session is not authenticated
            FetchError: if any page of the playlist cannot be read
            AddError: on the first batch the provider rejects
        """
        catalog = self._session.catalog
        candidate_ids = list(candidate_ids)

        with CorrelationContext(stage='reconcile', playlist_id=playlist_id):
            first = self._first_page(catalog, playlist_id)
            if not candidate_ids:
                logger.info("no candidate tracks to add")
                return 0

            index = self.build_index(catalog, first)
            to_add = self.plan_additions(index, candidate_ids, first.name)

            batches = split_batches(to_add, self._batch_size)
            for number, batch in enumerate(batches, start=1):
                try:
                    catalog.add_tracks(playlist_id, batch)
                except ProviderError as e:
                    raise AddError(
                        f"Failed to add batch {number}/{len(batches)} to playlist {playlist_id}: {e}"
                    ) from e
                logger.debug(f"added batch {number}/{len(batches)} ({len(batch)} tracks)")

            logger.info(f"queued {len(to_add)} of {len(candidate_ids)} candidate tracks")
            return len(to_add)
