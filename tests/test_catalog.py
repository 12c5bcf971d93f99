from config.catalog import (
    ANALYSIS_LEVELS, ANALYST_TEAMS, MARKET_OPTIONS, SCREENER_STYLES, SECTOR_OPTIONS,
    market_prompt_label, sector_label, style_description, style_label,
)
from models.session import AnalysisLevel, AnalystRole, MarketType


def test_catalog_covers_every_enum_member() -> None:
    assert set(MARKET_OPTIONS) == {m.value for m in MarketType}
    assert set(ANALYST_TEAMS) == {r.value for r in AnalystRole}
    assert set(ANALYSIS_LEVELS) == {int(level) for level in AnalysisLevel}


def test_option_values_are_unique() -> None:
    sectors = [s["value"] for s in SECTOR_OPTIONS]
    styles = [s["value"] for s in SCREENER_STYLES]
    assert len(sectors) == len(set(sectors)) == 11
    assert len(styles) == len(set(styles)) == 6


def test_unknown_keys_fall_back() -> None:
    assert sector_label("Nope") == "Nope"
    assert style_label("Nope") == "Nope"
    assert style_description("Nope") == ""
    assert market_prompt_label("Nope") == "Nope"


def test_known_keys_resolve() -> None:
    assert sector_label("AI_Computing") != "AI_Computing"
    assert style_description("GARP_Strategy").startswith("寻找 PEG")
