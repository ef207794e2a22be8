"""Reward tier bands and score-to-tier assignment."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from domain.errors import ConfigurationError


@dataclass(frozen=True)
class TierBand:
    """One [min_score, max_score) band; max_score=None marks the open top band."""

    name: str
    order: int
    min_score: float
    max_score: float | None = None
    badge_icon: str | None = None
    badge_color: str | None = None

    def contains(self, score: float) -> bool:
        if score < self.min_score:
            return False
        return self.max_score is None or score < self.max_score

    def as_config_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "order": self.order,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "badge_icon": self.badge_icon,
            "badge_color": self.badge_color,
        }


DEFAULT_TIER_BANDS: tuple[TierBand, ...] = (
    TierBand("Bronze Mouth", 1, 0.0, 1000.0, "\U0001f949", "#CD7F32"),
    TierBand("Silver Tongue", 2, 1000.0, 3000.0, "\U0001f948", "#C0C0C0"),
    TierBand("Golden Roast", 3, 3000.0, 7000.0, "\U0001f947", "#FFD700"),
    TierBand("Diamond Disrespect", 4, 7000.0, 15000.0, "\U0001f48e", "#B9F2FF"),
    TierBand("Legendary Menace", 5, 15000.0, None, "\U0001f451", "#FF0000"),
)


def validate_tier_bands(bands: Iterable[TierBand]) -> tuple[TierBand, ...]:
    """Return bands in ascending order, or raise if they do not partition [0, inf)."""
    ordered = tuple(sorted(bands, key=lambda band: band.order))
    if not ordered:
        raise ConfigurationError("at least one rank tier is required")

    names = [band.name for band in ordered]
    if len(names) != len(set(names)):
        raise ConfigurationError(f"duplicate rank tier names: {names}")
    orders = [band.order for band in ordered]
    if len(orders) != len(set(orders)):
        raise ConfigurationError(f"duplicate rank tier orders: {orders}")

    if ordered[0].min_score != 0.0:
        raise ConfigurationError(
            f"lowest rank tier '{ordered[0].name}' must start at 0, got {ordered[0].min_score}"
        )

    for current, following in zip(ordered, ordered[1:]):
        if current.max_score is None:
            raise ConfigurationError(
                f"rank tier '{current.name}' is open-ended but is not the top tier"
            )
        if current.max_score <= current.min_score:
            raise ConfigurationError(
                f"rank tier '{current.name}' has max_score <= min_score"
            )
        if current.max_score != following.min_score:
            kind = "gap" if current.max_score < following.min_score else "overlap"
            raise ConfigurationError(
                f"rank tiers '{current.name}' and '{following.name}' {kind}: "
                f"{current.max_score} != {following.min_score}"
            )

    if ordered[-1].max_score is not None:
        raise ConfigurationError(
            f"top rank tier '{ordered[-1].name}' must have an open upper edge"
        )
    return ordered


class TierAssigner:
    """Maps composite scores to tier names."""

    def __init__(self, bands: Sequence[TierBand]) -> None:
        self.bands = validate_tier_bands(bands)

    def band_for(self, score: float) -> TierBand:
        for band in self.bands:
            if band.contains(score):
                return band
        raise ConfigurationError(
            f"score={score} is below the lowest rank tier minimum {self.bands[0].min_score}"
        )

    def assign(self, score: float) -> str:
        return self.band_for(score).name


__all__ = ["DEFAULT_TIER_BANDS", "TierAssigner", "TierBand", "validate_tier_bands"]
