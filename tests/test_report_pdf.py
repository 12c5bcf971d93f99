from reportlab.platypus import Paragraph

from models.session import Mode
from utils.report_pdf import (
    build_styles, export_report_pdf, inline_markup, parse_table, report_filename,
)

REPORT = """# 🚀 600508 深度分析报告

## 🎯 核心结论仪表盘
- **综合评级**: 买入
- *核心逻辑*: 业绩增长

| 核心指标 | 最新数值 |
| :--- | :--- |
| 营收 | 120亿 |
| 净利润 |

> **分析师点评**: 行业景气度回升

---
## 🇺🇸 Executive Summary
Buy on dips.
"""


def test_export_produces_pdf_bytes(state) -> None:
    state.append_fragment(REPORT)
    data = export_report_pdf(state)
    assert data.startswith(b"%PDF")
    assert len(data) > 1000


def test_export_accepts_explicit_text(state) -> None:
    assert export_report_pdf(state, text="plain").startswith(b"%PDF")


def test_parse_table_drops_separator_and_pads() -> None:
    rows = parse_table([
        "| 核心指标 | 最新数值 |",
        "| :--- | :--- |",
        "| 营收 | 120亿 |",
        "| 净利润 |",
    ])
    assert rows == [["核心指标", "最新数值"], ["营收", "120亿"], ["净利润", ""]]


def test_inline_markup_underlines_bold_and_escapes() -> None:
    markup = inline_markup("**买入** <now> & *谨慎*")
    assert "<u><b>买入</b></u>" in markup
    assert "&lt;now&gt;" in markup
    assert "&amp;" in markup
    assert "<i>谨慎</i>" in markup


def test_report_filename(state) -> None:
    assert report_filename(state) == "ProStock_600508_2025-03-07.pdf"
    state.set_mode(Mode.SCREENER)
    assert report_filename(state) == "ProStock_Screener_2025-03-07.pdf"


def test_overlapping_emphasis_yields_valid_markup() -> None:
    markup = inline_markup("**粗 *斜** 文*")
    assert markup.startswith("<u><b>粗 *斜</b></u>")
    assert "<i>" not in markup
    Paragraph(markup, build_styles()["body"])


def test_bmp_symbols_are_stripped() -> None:
    markup = inline_markup("⚠️ 风险 ✅ 通过 ⚡ 新能源")
    assert markup == "风险  通过  新能源"
