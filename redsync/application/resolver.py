from __future__ import annotations

import logging
from typing import Iterable, List

from redsync.domain.errors import ProviderError, SearchError
from redsync.domain.normalization import sanitize_title
from redsync.infrastructure.auth.session import Session

logger = logging.getLogger(__name__)


class TrackResolver:
    """Maps free-text titles to catalog track ids, one search per title."""

    def __init__(self, session: Session):
        self._session = session

    def resolve(self, titles: Iterable[str]) -> List[str]:
        """Resolve titles in order, dropping the ones the catalog cannot find.

        Raises:
            NotReadyError: if the session is not authenticated
            SearchError: on the first failed search; nothing is returned
        """
        catalog = self._session.catalog
        titles = list(titles)
        track_ids: List[str] = []

        for title in titles:
            query = sanitize_title(title)
            if not query:
                logger.debug(f"skipping empty query for title {title!r}")
                continue

            logger.debug(f"searching for {query}")
            try:
                track_id = catalog.search_track(query)
            except ProviderError as e:
                logger.debug(f"error occurred while searching for {query}: {e}")
                raise SearchError(f"Search for {query!r} failed: {e}") from e

            if track_id:
                logger.debug(f"found tracks for {query}, picking first track")
                track_ids.append(track_id)

        logger.info(f"found {len(track_ids)} tracks for {len(titles)} queries")
        return track_ids
