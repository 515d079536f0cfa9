from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from redsync.application.reconciler import PlaylistReconciler
from redsync.application.resolver import TrackResolver
from redsync.crosscutting.logging import CorrelationContext, log_with_fields
from redsync.domain.entities import SyncResult
from redsync.domain.errors import ProviderError, SyncError
from redsync.domain.ports import TitleSource
from redsync.infrastructure.auth.session import Session

logger = logging.getLogger(__name__)


def playlist_name_for(subreddits: Sequence[str]) -> str:
    """Name given to playlists created for a set of subreddits."""
    name = "Reddit Sync - "
    for sub in subreddits:
        name += "/r/" + sub + " "
    return name


class SyncWorkflow:
    """Feed titles -> catalog ids -> playlist additions, sequentially."""

    def __init__(self,
                 session: Session,
                 feed: TitleSource,
                 resolver: Optional[TrackResolver] = None,
                 reconciler: Optional[PlaylistReconciler] = None):
        self.session = session
        self.feed = feed
        self.resolver = resolver or TrackResolver(session)
        self.reconciler = reconciler or PlaylistReconciler(session)

    def collect_titles(self, subreddits: Sequence[str], max_pages: int) -> List[str]:
        titles: List[str] = []
        for sub in subreddits:
            with CorrelationContext(stage='fetch', subreddit=sub):
                titles.extend(self.feed.fetch(sub, max_pages))
        return titles

    def create_playlist(self, subreddits: Sequence[str]) -> str:
        name = playlist_name_for(subreddits)
        try:
            user_id = self.session.current_user_id()
            return self.session.catalog.create_playlist(user_id, name, public=True)
        except ProviderError as e:
            raise SyncError(f"Failed to create playlist {name!r}: {e}") from e

    def run(self, subreddits: Sequence[str], max_pages: int, playlist_id: Optional[str] = None) -> SyncResult:
        """Run one sync; the first error from any stage propagates."""
        titles = self.collect_titles(subreddits, max_pages)

        with CorrelationContext(stage='resolve'):
            track_ids = self.resolver.resolve(titles)

        if not playlist_id:
            playlist_id = self.create_playlist(subreddits)

        added = self.reconciler.reconcile(playlist_id, track_ids)
        result = SyncResult(
            playlist_id=playlist_id,
            titles=len(titles),
            resolved=len(track_ids),
            added=added,
        )
        log_with_fields(logger, 'INFO', "sync finished", {
            'playlistId': result.playlist_id,
            'titles': result.titles,
            'resolved': result.resolved,
            'added': result.added,
        })
        return result
