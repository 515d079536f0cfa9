from __future__ import annotations

import math
import re
from typing import Dict, Iterable, List, Sequence, TypeVar

from .entities import PlaylistTrack

T = TypeVar("T")

# Greedy on purpose: "A (x) B [y]" loses everything from "(" to "]".
_BRACKETED_PATTERN = re.compile(r"[\[(].*[\])]")


def sanitize_title(title: str) -> str:
    """Turn a forum post title into a catalog search query.

    People annotate genre or remix info in brackets, e.g.
    ``"Song Title (Radio Edit)"``; that part is dropped, double hyphens left
    behind collapse to one and surrounding whitespace is trimmed.
    """
    value = _BRACKETED_PATTERN.sub("", title or "")
    value = value.replace("--", "-")
    return value.strip()


def round_up_count(total: int, size: int) -> int:
    """Number of chunks of ``size`` needed to cover ``total`` items."""
    if size <= 0:
        raise ValueError("size must be positive")
    f = float(math.ceil(total / size))
    return int(f + math.copysign(0.5, f))


def split_batches(items: Sequence[T], limit: int) -> List[List[T]]:
    """Partition items into ordered chunks of at most ``limit`` elements."""
    batches = []
    for i in range(round_up_count(len(items), limit)):
        begin, end = i * limit, min(i * limit + limit, len(items))
        batches.append(list(items[begin:end]))
    return batches


def merge_tracks(index: Dict[str, str], tracks: Iterable[PlaylistTrack]) -> None:
    for track in tracks:
        index[track.id] = track.name
