"""Dense, fully tie-broken season ordering."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from domain.protocol import RankableEntry

# Never-recalculated entries sort as the earliest timestamp.
_NEVER_RECALCULATED = datetime.min


def ranking_sort_key(entry: RankableEntry) -> tuple[float, int, datetime, str]:
    """Composite desc, unique supporters desc, earlier recalculation, creator id asc."""
    return (
        -entry.composite_score,
        -entry.unique_supporters,
        entry.last_recalculated_at or _NEVER_RECALCULATED,
        entry.creator_id,
    )


class RankSequencer:
    """Assigns ranks 1..N by position in the total order; ties never share a rank."""

    def order(self, entries: Iterable[RankableEntry]) -> list[RankableEntry]:
        return sorted(entries, key=ranking_sort_key)

    def sequence(self, entries: Iterable[RankableEntry]) -> dict[str, int]:
        ranks: dict[str, int] = {}
        for position, entry in enumerate(self.order(entries), start=1):
            if entry.creator_id in ranks:
                raise ValueError(f"creator_id={entry.creator_id} appears twice in one season")
            ranks[entry.creator_id] = position
        return ranks


__all__ = ["RankSequencer", "ranking_sort_key"]
