import pytest

from config.catalog import SCREENER_STYLES, sector_label, style_label
from llm.prompts import build_prompts, select_model
from models.session import AnalysisLevel, AnalystRole, Mode, ScreenerCriteria


@pytest.mark.parametrize("level,expected", [
    (1, "fast"), (2, "fast"), (3, "fast"), (4, "deep"), (5, "deep"),
])
def test_select_model_threshold(level, expected) -> None:
    assert select_model(level, "fast", "deep") == expected


def test_prompts_are_deterministic(state, now) -> None:
    assert build_prompts(state, now) == build_prompts(state, now)


def test_analysis_prompt_header_and_date(state, now) -> None:
    system, prompt = build_prompts(state, now)
    assert "2025年3月7日" in system
    assert "等级 3/5" in prompt
    assert "600508" in prompt
    assert "2025/3/7 09:30:05" in prompt
    assert "A股 (中国)" in prompt
    assert "核心结论仪表盘" in prompt


def test_role_blocks_follow_fixed_order(state, now) -> None:
    state.update_settings(roles=frozenset({AnalystRole.SOCIAL, AnalystRole.MARKET, AnalystRole.TECHNICAL}))
    _, prompt = build_prompts(state, now)

    positions = [
        prompt.index("宏观与行业策略"),
        prompt.index("技术面分析"),
        prompt.index("舆情与市场情绪"),
    ]
    assert positions == sorted(positions)
    assert "基本面透视" not in prompt
    assert "机构与资金动向" not in prompt


def test_optional_sections(state, now) -> None:
    _, prompt = build_prompts(state, now)
    assert "量化情绪评分 (0-100)" in prompt
    assert "风险因素提示" in prompt

    state.update_settings(include_sentiment=False, include_risk=False)
    _, prompt = build_prompts(state, now)
    assert "量化情绪评分" not in prompt
    assert "风险因素提示" not in prompt
    assert "交易信号与操作建议" in prompt


def test_analysis_prompt_always_closes_with_verdict(state, now) -> None:
    for level in AnalysisLevel:
        state.update_settings(level=level)
        _, prompt = build_prompts(state, now)
        assert "最终总结 (Final Verdict)" in prompt
        assert prompt.rstrip().endswith("(Concise recap for international investors in English)")


def test_screener_uses_catalog_labels(state, now) -> None:
    state.set_mode(Mode.SCREENER)
    state.update_screener(sector="Semiconductor", style="High_Dividend_Low_Vol")
    system, prompt = build_prompts(state, now)

    desc = next(s["desc"] for s in SCREENER_STYLES if s["value"] == "High_Dividend_Low_Vol")
    assert "2025年3月" in system
    assert sector_label("Semiconductor") in prompt
    assert style_label("High_Dividend_Low_Vol") in prompt
    assert f'"{desc}"' in prompt
    assert "| 排名 |" in prompt
    assert "600508" not in prompt


def test_screener_unknown_keys_fall_back_to_raw(state, now) -> None:
    state.set_mode(Mode.SCREENER)
    state.screener = ScreenerCriteria(sector="Quantum", style="Mystery")
    _, prompt = build_prompts(state, now)
    assert "Quantum" in prompt
    assert "Mystery" in prompt


def test_analysis_ignores_screener_fields(state, now) -> None:
    baseline = build_prompts(state, now)
    state.update_screener(sector="Bio_Pharma")
    assert build_prompts(state, now) == baseline

    other = state.snapshot()
    other.update_target(code="00700", market="HK_SHARE")
    _, prompt = build_prompts(other, now)
    assert "00700" in prompt
    assert "港股 (香港)" in prompt
