"""Season scoring configuration and TOML season definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from domain.config_base import FileBackedConfig, load_toml_configs
from domain.errors import ConfigurationError
from domain.season.tiers import DEFAULT_TIER_BANDS, TierBand, validate_tier_bands

WEIGHT_SUM_TOLERANCE = 1e-6


@dataclass(frozen=True)
class ScoringWeights:
    gift: float = 0.5
    battle: float = 0.3
    unique: float = 0.1
    momentum: float = 0.1

    def total(self) -> float:
        return self.gift + self.battle + self.unique + self.momentum


@dataclass(frozen=True)
class WinBonuses:
    """Flat bonus added to a won battle, by team-size bracket."""

    one_v_one: float = 500.0
    two_v_two: float = 400.0
    three_v_three: float = 350.0
    four_v_four: float = 300.0
    five_v_five: float = 250.0

    def for_team_size(self, team_size: int) -> float:
        if team_size == 1:
            return self.one_v_one
        if team_size == 2:
            return self.two_v_two
        if team_size == 3:
            return self.three_v_three
        if team_size == 4:
            return self.four_v_four
        if team_size == 5:
            return self.five_v_five
        return 0.0

    def values(self) -> tuple[float, ...]:
        return (
            self.one_v_one,
            self.two_v_two,
            self.three_v_three,
            self.four_v_four,
            self.five_v_five,
        )


@dataclass(frozen=True)
class SeasonConfig:
    """Validated, immutable weights and thresholds for one season."""

    weights: ScoringWeights = field(default_factory=ScoringWeights)
    win_bonuses: WinBonuses = field(default_factory=WinBonuses)
    whale_threshold_percent: float = 0.35
    whale_diminishing_multiplier: float = 0.5
    decay_days: float = 7.0
    decay_floor: float = 0.5
    recent_hours: float = 48.0
    recent_hours_weight: float = 2.0
    max_score_per_battle: float = 10_000.0
    tournament_multiplier: float = 1.2
    momentum_points_per_activity: float = 10.0

    def __post_init__(self) -> None:
        _validate_season_config(self)

    def as_config_json(self) -> dict[str, Any]:
        return {
            "weights": {
                "gift": self.weights.gift,
                "battle": self.weights.battle,
                "unique": self.weights.unique,
                "momentum": self.weights.momentum,
            },
            "win_bonus": {
                "1v1": self.win_bonuses.one_v_one,
                "2v2": self.win_bonuses.two_v_two,
                "3v3": self.win_bonuses.three_v_three,
                "4v4": self.win_bonuses.four_v_four,
                "5v5": self.win_bonuses.five_v_five,
            },
            "whale_threshold_percent": self.whale_threshold_percent,
            "whale_diminishing_multiplier": self.whale_diminishing_multiplier,
            "decay_days": self.decay_days,
            "decay_floor": self.decay_floor,
            "recent_hours": self.recent_hours,
            "recent_hours_weight": self.recent_hours_weight,
            "max_score_per_battle": self.max_score_per_battle,
            "tournament_multiplier": self.tournament_multiplier,
            "momentum_points_per_activity": self.momentum_points_per_activity,
        }

    @classmethod
    def from_config_json(cls, raw: dict[str, Any]) -> SeasonConfig:
        """Rebuild a config persisted with as_config_json; missing keys take defaults."""
        defaults = cls()
        weights_raw = raw.get("weights", {})
        bonus_raw = raw.get("win_bonus", {})
        return cls(
            weights=ScoringWeights(
                gift=float(weights_raw.get("gift", defaults.weights.gift)),
                battle=float(weights_raw.get("battle", defaults.weights.battle)),
                unique=float(weights_raw.get("unique", defaults.weights.unique)),
                momentum=float(weights_raw.get("momentum", defaults.weights.momentum)),
            ),
            win_bonuses=WinBonuses(
                one_v_one=float(bonus_raw.get("1v1", defaults.win_bonuses.one_v_one)),
                two_v_two=float(bonus_raw.get("2v2", defaults.win_bonuses.two_v_two)),
                three_v_three=float(bonus_raw.get("3v3", defaults.win_bonuses.three_v_three)),
                four_v_four=float(bonus_raw.get("4v4", defaults.win_bonuses.four_v_four)),
                five_v_five=float(bonus_raw.get("5v5", defaults.win_bonuses.five_v_five)),
            ),
            whale_threshold_percent=float(
                raw.get("whale_threshold_percent", defaults.whale_threshold_percent)
            ),
            whale_diminishing_multiplier=float(
                raw.get("whale_diminishing_multiplier", defaults.whale_diminishing_multiplier)
            ),
            decay_days=float(raw.get("decay_days", defaults.decay_days)),
            decay_floor=float(raw.get("decay_floor", defaults.decay_floor)),
            recent_hours=float(raw.get("recent_hours", defaults.recent_hours)),
            recent_hours_weight=float(raw.get("recent_hours_weight", defaults.recent_hours_weight)),
            max_score_per_battle=float(
                raw.get("max_score_per_battle", defaults.max_score_per_battle)
            ),
            tournament_multiplier=float(
                raw.get("tournament_multiplier", defaults.tournament_multiplier)
            ),
            momentum_points_per_activity=float(
                raw.get("momentum_points_per_activity", defaults.momentum_points_per_activity)
            ),
        )


def _validate_season_config(config: SeasonConfig) -> None:
    weights = config.weights
    for key, value in (
        ("gift", weights.gift),
        ("battle", weights.battle),
        ("unique", weights.unique),
        ("momentum", weights.momentum),
    ):
        if value < 0.0:
            raise ConfigurationError(f"[weights].{key} must be >= 0")
    if abs(weights.total() - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ConfigurationError(f"[weights] must sum to 1.0, got {weights.total():.6f}")

    if any(bonus < 0.0 for bonus in config.win_bonuses.values()):
        raise ConfigurationError("[win_bonus] values must be >= 0")
    if config.whale_threshold_percent <= 0.0 or config.whale_threshold_percent > 1.0:
        raise ConfigurationError("[whale].threshold_percent must be in (0, 1]")
    if config.whale_diminishing_multiplier < 0.0 or config.whale_diminishing_multiplier > 1.0:
        raise ConfigurationError("[whale].diminishing_multiplier must be between 0 and 1")
    if config.decay_days <= 0.0:
        raise ConfigurationError("[decay].days must be > 0")
    if config.decay_floor <= 0.0 or config.decay_floor > 1.0:
        raise ConfigurationError("[decay].floor must be in (0, 1]")
    if config.recent_hours < 0.0:
        raise ConfigurationError("[decay].recent_hours must be >= 0")
    if config.recent_hours >= config.decay_days * 24.0:
        raise ConfigurationError("[decay].recent_hours must be shorter than [decay].days")
    if config.recent_hours_weight < 1.0:
        raise ConfigurationError("[decay].recent_hours_weight must be >= 1")
    if config.max_score_per_battle <= 0.0:
        raise ConfigurationError("[battle].max_score_per_battle must be > 0")
    if config.tournament_multiplier < 1.0:
        raise ConfigurationError("[battle].tournament_multiplier must be >= 1")
    if config.momentum_points_per_activity < 0.0:
        raise ConfigurationError("[momentum].points_per_activity must be >= 0")


@dataclass(frozen=True)
class SeasonDefinition(FileBackedConfig):
    """A named season template: duration, scoring config and tier bands."""

    duration_days: int
    config: SeasonConfig
    tiers: tuple[TierBand, ...]

    def as_config_json(self) -> dict[str, Any]:
        payload = self.config.as_config_json()
        payload["duration_days"] = self.duration_days
        payload["tiers"] = [band.as_config_json() for band in self.tiers]
        return payload


def load_season_definitions(config_dir: Path) -> list[SeasonDefinition]:
    """Load and validate all season TOML config files in a directory."""
    return load_toml_configs(config_dir, parse_season_definition, label="season")


def parse_season_definition(raw: dict[str, Any], file_path: Path) -> SeasonDefinition:
    season_raw = raw.get("season", {})
    weights_raw = raw.get("weights", {})
    bonus_raw = raw.get("win_bonus", {})
    whale_raw = raw.get("whale", {})
    decay_raw = raw.get("decay", {})
    battle_raw = raw.get("battle", {})
    momentum_raw = raw.get("momentum", {})

    name = str(season_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [season].name is required")

    description_value = season_raw.get("description")
    description = None if description_value is None else str(description_value)

    duration_days = int(season_raw.get("duration_days", 14))
    if duration_days <= 0:
        raise ValueError(f"{file_path}: [season].duration_days must be > 0")

    defaults = SeasonConfig()
    try:
        config = SeasonConfig(
            weights=ScoringWeights(
                gift=float(weights_raw.get("gift", defaults.weights.gift)),
                battle=float(weights_raw.get("battle", defaults.weights.battle)),
                unique=float(weights_raw.get("unique", defaults.weights.unique)),
                momentum=float(weights_raw.get("momentum", defaults.weights.momentum)),
            ),
            win_bonuses=WinBonuses(
                one_v_one=float(bonus_raw.get("one_v_one", defaults.win_bonuses.one_v_one)),
                two_v_two=float(bonus_raw.get("two_v_two", defaults.win_bonuses.two_v_two)),
                three_v_three=float(
                    bonus_raw.get("three_v_three", defaults.win_bonuses.three_v_three)
                ),
                four_v_four=float(bonus_raw.get("four_v_four", defaults.win_bonuses.four_v_four)),
                five_v_five=float(bonus_raw.get("five_v_five", defaults.win_bonuses.five_v_five)),
            ),
            whale_threshold_percent=float(
                whale_raw.get("threshold_percent", defaults.whale_threshold_percent)
            ),
            whale_diminishing_multiplier=float(
                whale_raw.get("diminishing_multiplier", defaults.whale_diminishing_multiplier)
            ),
            decay_days=float(decay_raw.get("days", defaults.decay_days)),
            decay_floor=float(decay_raw.get("floor", defaults.decay_floor)),
            recent_hours=float(decay_raw.get("recent_hours", defaults.recent_hours)),
            recent_hours_weight=float(
                decay_raw.get("recent_hours_weight", defaults.recent_hours_weight)
            ),
            max_score_per_battle=float(
                battle_raw.get("max_score_per_battle", defaults.max_score_per_battle)
            ),
            tournament_multiplier=float(
                battle_raw.get("tournament_multiplier", defaults.tournament_multiplier)
            ),
            momentum_points_per_activity=float(
                momentum_raw.get("points_per_activity", defaults.momentum_points_per_activity)
            ),
        )
        tiers = _parse_tiers(raw.get("tiers"))
    except ConfigurationError as exc:
        raise ConfigurationError(f"{file_path}: {exc}") from exc

    return SeasonDefinition(
        name=name,
        description=description,
        file_path=file_path,
        duration_days=duration_days,
        config=config,
        tiers=tiers,
    )


def _parse_tiers(tiers_raw: list[dict[str, Any]] | None) -> tuple[TierBand, ...]:
    if not tiers_raw:
        return DEFAULT_TIER_BANDS

    bands = []
    for index, tier_raw in enumerate(tiers_raw, start=1):
        max_score = tier_raw.get("max_score")
        bands.append(
            TierBand(
                name=str(tier_raw.get("name", "")).strip() or f"Tier {index}",
                order=int(tier_raw.get("order", index)),
                min_score=float(tier_raw.get("min_score", 0.0)),
                max_score=None if max_score is None else float(max_score),
                badge_icon=tier_raw.get("badge_icon"),
                badge_color=tier_raw.get("badge_color"),
            )
        )
    return validate_tier_bands(bands)


__all__ = [
    "ScoringWeights",
    "SeasonConfig",
    "SeasonDefinition",
    "WinBonuses",
    "load_season_definitions",
    "parse_season_definition",
]
