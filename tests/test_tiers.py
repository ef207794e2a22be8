"""Unit tests for rank tier validation and assignment."""

from __future__ import annotations

import pytest

from domain.errors import ConfigurationError
from domain.season.tiers import DEFAULT_TIER_BANDS, TierAssigner, TierBand, validate_tier_bands


def test_default_bands_assign_expected_tiers() -> None:
    assigner = TierAssigner(DEFAULT_TIER_BANDS)
    assert assigner.assign(0.0) == "Bronze Mouth"
    assert assigner.assign(999.99) == "Bronze Mouth"
    assert assigner.assign(1000.0) == "Silver Tongue"
    assert assigner.assign(2999.0) == "Silver Tongue"
    assert assigner.assign(3000.0) == "Golden Roast"
    assert assigner.assign(7000.0) == "Diamond Disrespect"
    assert assigner.assign(15000.0) == "Legendary Menace"
    assert assigner.assign(1e12) == "Legendary Menace"


def test_every_non_negative_score_matches_exactly_one_band() -> None:
    scores = [0.0, 0.5, 671.0, 999.999, 1000.0, 4321.0, 6999.99, 14999.0, 15000.0, 2.5e9]
    for score in scores:
        matches = [band for band in DEFAULT_TIER_BANDS if band.contains(score)]
        assert len(matches) == 1


def test_score_below_lowest_band_is_a_configuration_error() -> None:
    assigner = TierAssigner(DEFAULT_TIER_BANDS)
    with pytest.raises(ConfigurationError, match="below the lowest"):
        assigner.assign(-1.0)


def test_bands_are_sorted_by_order() -> None:
    bands = [
        TierBand("Top", 2, 100.0, None),
        TierBand("Bottom", 1, 0.0, 100.0),
    ]
    assert [band.name for band in validate_tier_bands(bands)] == ["Bottom", "Top"]


@pytest.mark.parametrize(
    ("bands", "message"),
    [
        ([], "at least one"),
        ([TierBand("Only", 1, 10.0, None)], "must start at 0"),
        ([TierBand("Low", 1, 0.0, 100.0), TierBand("High", 2, 150.0, None)], "gap"),
        ([TierBand("Low", 1, 0.0, 100.0), TierBand("High", 2, 50.0, None)], "overlap"),
        ([TierBand("Low", 1, 0.0, None), TierBand("High", 2, 100.0, None)], "open-ended"),
        ([TierBand("Low", 1, 0.0, 100.0), TierBand("High", 2, 100.0, 200.0)], "open upper edge"),
        ([TierBand("Same", 1, 0.0, 100.0), TierBand("Same", 2, 100.0, None)], "duplicate rank tier names"),
        ([TierBand("Low", 1, 0.0, 100.0), TierBand("High", 1, 100.0, None)], "duplicate rank tier orders"),
    ],
)
def test_invalid_band_sets_are_rejected(bands: list[TierBand], message: str) -> None:
    with pytest.raises(ConfigurationError, match=message):
        validate_tier_bands(bands)
