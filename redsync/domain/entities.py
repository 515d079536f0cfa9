from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class SessionState(Enum):
    """Authorization lifecycle of a provider session."""

    UNAUTHENTICATED = "unauthenticated"
    AWAITING_CALLBACK = "awaiting_callback"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class PlaylistTrack:
    """Catalog track as seen inside a playlist."""

    id: str
    name: str = ""


@dataclass(frozen=True)
class PlaylistPage:
    """One page of a playlist read, with the declared total size."""

    playlist_id: str
    name: str = ""
    total: int = 0
    tracks: List[PlaylistTrack] = field(default_factory=list)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one feed-to-playlist run."""

    playlist_id: str
    titles: int
    resolved: int
    added: int
