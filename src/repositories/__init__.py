"""Database repository helpers."""

from repositories.moderation import (
    CreatorExclusions,
    add_exclusion,
    deactivate_exclusions,
    list_moderation_actions,
    load_exclusions,
    log_moderation_action,
)
from repositories.rankings import (
    ensure_ranking_entries,
    get_entry,
    list_creator_ids,
    ranking_snapshots,
    top_entries,
    write_ranks,
    write_scored_chunk,
)
from repositories.rewards import RewardGrant, insert_rewards, rewards_for_creator, rewards_for_season
from repositories.schema import ensure_season_ranking_schema
from repositories.seasons import (
    get_active_season,
    get_season,
    load_season_context,
    release_recalculation_lock,
    try_acquire_recalculation_lock,
)
from repositories.signals import SignalStore

__all__ = [
    "CreatorExclusions",
    "RewardGrant",
    "SignalStore",
    "add_exclusion",
    "deactivate_exclusions",
    "ensure_ranking_entries",
    "ensure_season_ranking_schema",
    "get_active_season",
    "get_entry",
    "get_season",
    "insert_rewards",
    "list_creator_ids",
    "list_moderation_actions",
    "load_exclusions",
    "load_season_context",
    "log_moderation_action",
    "ranking_snapshots",
    "release_recalculation_lock",
    "rewards_for_creator",
    "rewards_for_season",
    "top_entries",
    "try_acquire_recalculation_lock",
    "write_ranks",
    "write_scored_chunk",
]
