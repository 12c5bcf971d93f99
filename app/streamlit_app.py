"""
app/streamlit_app.py
Main Streamlit UI for ProStock AI.
Run with:  streamlit run app/streamlit_app.py
"""

from __future__ import annotations

import sys
import os

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import hashlib
import logging
import time
from datetime import date

import streamlit as st
from streamlit.runtime import get_instance
from streamlit.runtime.scriptrunner import get_script_run_ctx

from config.catalog import (
    ANALYSIS_LEVELS, ANALYST_TEAMS, DEEP_MODEL_OPTIONS, FAST_MODEL_OPTIONS,
    MARKET_OPTIONS, SCREENER_STYLES, SECTOR_OPTIONS, sector_label, style_description, style_label,
)
from config.settings import ANTHROPIC_API_KEY, AUTO_REFRESH_SECONDS
from models.session import AnalysisLevel, AnalystRole, MarketType, Mode, SessionState
from utils.credentials import CredentialStore, bind_credential
from utils.refresh import AutoRefreshLoop, RefreshStatus
from utils.report_pdf import export_report_pdf, report_filename
from utils.runner import start_cycle

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ── Page config ───────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="ProStock AI 投资参谋",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ── Custom CSS ────────────────────────────────────────────────────────────────
st.markdown("""
<style>
    .report-header {
        display: flex;
        justify-content: space-between;
        align-items: flex-end;
        border-bottom: 2px solid #2563eb;
        padding-bottom: 12px;
        margin-bottom: 20px;
    }
    .report-brand { color: #1d4ed8; font-weight: 700; }
    .report-title { font-size: 1.9em; font-weight: 800; margin: 0; }
    .report-subject { font-size: 2.2em; font-weight: 900; text-align: right; }
    .report-date { color: #6b7280; font-family: monospace; text-align: right; }
    .report-body strong {
        background: rgba(254, 240, 138, 0.8);
        padding: 0 3px;
        border-radius: 3px;
    }
    .report-footer {
        margin-top: 40px;
        padding-top: 12px;
        border-top: 1px solid #e5e7eb;
        color: #9ca3af;
        font-size: 0.75em;
        text-align: center;
    }
</style>
""", unsafe_allow_html=True)


# ══════════════════════════════════════════════════════════════════════════════
# SESSION
# ══════════════════════════════════════════════════════════════════════════════

def _session_alive():
    """Predicate that turns False once this browser session is closed."""
    ctx = get_script_run_ctx()
    if ctx is None:
        return lambda: True
    session_id = ctx.session_id
    runtime = get_instance()
    return lambda: runtime.is_active_session(session_id)


def _session() -> tuple[SessionState, AutoRefreshLoop]:
    if "prostock" not in st.session_state:
        state = SessionState()
        bind_credential(state, CredentialStore())
        loop = AutoRefreshLoop(state, start_cycle, alive=_session_alive())
        loop.attach()
        st.session_state["prostock"] = (state, loop)
    return st.session_state["prostock"]


state, loop = _session()


def _default(key: str, value):
    """Seed a widget key from SessionState the first time it is rendered."""
    if key not in st.session_state:
        st.session_state[key] = value


def _widget(key: str, fallback):
    # Keys of widgets not rendered on the last run are dropped by Streamlit.
    return st.session_state.get(key, fallback)


def _sync_role_widgets():
    for role in AnalystRole:
        st.session_state[f"role_{role.value}"] = role in state.analysis.roles


# ── Widget callbacks (run before the rerun) ──────────────────────────────────
def _on_api_key():
    state.set_credential(st.session_state["api_key"].strip())


def _on_mode():
    state.set_mode(st.session_state["mode"])


def _on_target():
    report_date = _widget("report_date", None)
    state.update_target(
        code=_widget("stock_code", state.stock.code).strip().upper(),
        market=_widget("market", state.stock.market.value),
        date=report_date.isoformat() if report_date else state.stock.date,
    )


def _on_screener():
    state.update_screener(
        sector=_widget("sector", state.screener.sector),
        style=_widget("style", state.screener.style),
    )


def _on_settings():
    s = state.analysis
    state.update_settings(
        level=_widget("level", int(s.level)),
        include_sentiment=_widget("include_sentiment", s.include_sentiment),
        include_risk=_widget("include_risk", s.include_risk),
        fast_model=_widget("fast_model", s.fast_model),
        deep_model=_widget("deep_model", s.deep_model),
    )


def _on_role(role: AnalystRole):
    if not state.toggle_role(role):
        st.toast("至少需要保留一位分析师。")
    _sync_role_widgets()


def _on_auto_refresh():
    state.set_auto_refresh(st.session_state["auto_refresh"])


# ══════════════════════════════════════════════════════════════════════════════
# SIDEBAR
# ══════════════════════════════════════════════════════════════════════════════

with st.sidebar:
    st.markdown("## ⚙️ 高级配置")
    st.caption("Claude + Web Search | 多维度智能投研")
    st.divider()

    _default("api_key", state.api_key)
    st.text_input(
        "🔑 Anthropic API Key",
        key="api_key",
        type="password",
        placeholder="sk-ant-...",
        on_change=_on_api_key,
    )
    if state.api_key:
        st.success("✅ 已使用侧边栏中的 API Key")
    elif ANTHROPIC_API_KEY:
        st.info("ℹ️ 使用环境变量 ANTHROPIC_API_KEY")
    else:
        st.warning("⚠️ 未配置 API Key。\n请在上方输入，或在 `.env` 中设置 ANTHROPIC_API_KEY。")

    st.divider()
    st.markdown("**🧠 AI 模型配置**")
    _default("fast_model", state.analysis.fast_model)
    _default("deep_model", state.analysis.deep_model)
    st.selectbox("快速分析模型 (1-3级)", FAST_MODEL_OPTIONS, key="fast_model", on_change=_on_settings)
    st.selectbox("深度决策模型 (4-5级 / 选股)", DEEP_MODEL_OPTIONS, key="deep_model", on_change=_on_settings)

    st.divider()
    st.markdown("**🧾 报告附加模块**")
    _default("include_sentiment", state.analysis.include_sentiment)
    _default("include_risk", state.analysis.include_risk)
    st.toggle("🌡️ 量化情绪评分", key="include_sentiment", on_change=_on_settings)
    st.toggle("⚠️ 风险因素提示", key="include_risk", on_change=_on_settings)

    st.divider()
    st.caption("免责声明：本工具由 AI 生成内容，仅供参考，不构成投资建议。")


# ══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ══════════════════════════════════════════════════════════════════════════════

st.title("ProStock AI 投资参谋")
st.caption("多维度智能投研平台 | 机构级视角")
st.divider()

_default("mode", state.mode.value)
st.radio(
    "模式",
    [Mode.ANALYSIS.value, Mode.SCREENER.value],
    format_func=lambda m: "🔍 个股深度分析" if m == Mode.ANALYSIS.value else "🧪 智能选股 (反向筛选)",
    key="mode",
    horizontal=True,
    label_visibility="collapsed",
    on_change=_on_mode,
)

_default("stock_code", state.stock.code)
_default("market", state.stock.market.value)
_default("report_date", date.fromisoformat(state.stock.date))
_default("sector", state.screener.sector)
_default("style", state.screener.style)

market_select = dict(
    options=[m.value for m in MarketType],
    format_func=lambda m: MARKET_OPTIONS.get(m, m),
    key="market",
    on_change=_on_target,
)

if state.mode == Mode.ANALYSIS:
    st.markdown("### 📊 股票信息")
    c1, c2, c3 = st.columns(3)
    c1.text_input("* 股票代码", key="stock_code", placeholder="例: 600508 或 TSLA",
                  on_change=_on_target)
    c2.selectbox("市场类型", **market_select)
    c3.date_input("分析日期", key="report_date", on_change=_on_target)

    st.markdown("### 🎚️ 研究深度")
    _default("level", int(state.analysis.level))
    st.select_slider(
        "研究深度",
        options=[int(level) for level in AnalysisLevel],
        format_func=lambda lv: ANALYSIS_LEVELS[lv]["title"],
        key="level",
        label_visibility="collapsed",
        on_change=_on_settings,
    )
    level_info = ANALYSIS_LEVELS[int(state.analysis.level)]
    st.caption(f"{level_info['desc']} · 预计耗时 {level_info['time']}")

    st.markdown("### 👥 分析师团队")
    cols = st.columns(3)
    for i, role in enumerate(AnalystRole):
        team = ANALYST_TEAMS[role.value]
        _default(f"role_{role.value}", role in state.analysis.roles)
        cols[i % 3].checkbox(
            team["title"],
            key=f"role_{role.value}",
            help=team["desc"],
            on_change=_on_role,
            args=(role,),
        )
    if AnalystRole.SOCIAL in state.analysis.roles:
        st.caption("💬 舆情分析需要基本面支撑，已自动启用基本面专家。")

else:
    st.markdown("### 🧪 选股策略配置")
    c1, c2, c3 = st.columns(3)
    c1.selectbox(
        "* 关注赛道/板块",
        [s["value"] for s in SECTOR_OPTIONS],
        format_func=sector_label,
        key="sector",
        on_change=_on_screener,
    )
    c2.selectbox(
        "量化/技术策略",
        [s["value"] for s in SCREENER_STYLES],
        format_func=style_label,
        key="style",
        on_change=_on_screener,
    )
    c3.selectbox("目标市场", **market_select)
    st.info(f"**策略说明:** {style_description(state.screener.style)}")


# ══════════════════════════════════════════════════════════════════════════════
# ACTIONS
# ══════════════════════════════════════════════════════════════════════════════

_default("auto_refresh", state.auto_refresh)
st.toggle(
    f"⏱️ 实时盯盘 (每{AUTO_REFRESH_SECONDS:.0f}s自动刷新)",
    key="auto_refresh",
    on_change=_on_auto_refresh,
)

start_label = "▶️ 开始智能分析" if state.mode == Mode.ANALYSIS else "🔎 开始筛选潜力股"
start_clicked = st.button(start_label, type="primary", use_container_width=True, disabled=state.busy)

if loop.status is RefreshStatus.RUNNING or (state.busy and state.auto_refresh):
    st.caption("🔄 AI 正在自动刷新...")
elif loop.status is RefreshStatus.ARMED:
    st.caption("🟢 实时盯盘中，下一轮将自动开始。")


# ══════════════════════════════════════════════════════════════════════════════
# REPORT
# ══════════════════════════════════════════════════════════════════════════════

def _report_header() -> str:
    subject = state.stock.code.upper() if state.mode == Mode.ANALYSIS else "SCREENER"
    return f"""
    <div class="report-header">
        <div>
            <div class="report-brand">📄 ProStock AI</div>
            <div class="report-title">Investment Research</div>
        </div>
        <div>
            <div class="report-subject">{subject}</div>
            <div class="report-date">{state.stock.date}</div>
        </div>
    </div>
    """


error_box = st.empty()
report_area = st.container()

with report_area:
    header_box = st.empty()
    report_box = st.empty()
    footer_box = st.empty()


def _render_report(streaming: bool):
    if not (state.result_text or state.busy or streaming):
        return
    header_box.markdown(_report_header(), unsafe_allow_html=True)
    report_box.markdown(state.result_text + (" ▌" if streaming or state.busy else ""))


def _on_stream(s: SessionState, change: str):
    if change in ("cycle", "fragment"):
        _render_report(streaming=True)


if start_clicked:
    unsubscribe = state.subscribe(_on_stream)
    try:
        with st.spinner("AI 正在计算中..."):
            start_cycle(state)
    finally:
        unsubscribe()

if state.error:
    error_box.error(f"⚠️ {state.error}")

_render_report(streaming=False)


def _pdf_bytes() -> bytes:
    digest = hashlib.sha1(
        f"{state.mode.value}|{state.stock.code}|{state.stock.date}|{state.result_text}".encode("utf-8")
    ).hexdigest()
    cached = st.session_state.get("pdf_cache")
    if cached and cached[0] == digest:
        return cached[1]
    data = export_report_pdf(state)
    st.session_state["pdf_cache"] = (digest, data)
    return data


if state.result_text and not state.busy:
    footer_box.markdown(
        '<div class="report-footer">Generated by ProStock AI • Professional Investment Assistant<br>'
        "免责声明：本报告由人工智能生成，仅供参考，不构成任何投资建议。股市有风险，投资需谨慎。</div>",
        unsafe_allow_html=True,
    )
    try:
        st.download_button(
            "⬇️ 导出 PDF 报告",
            data=_pdf_bytes(),
            file_name=report_filename(state),
            mime="application/pdf",
        )
    except Exception as e:
        logger.error("PDF export failed: %s", e)
        st.error("导出 PDF 失败，请重试。")


# ── Live monitor polling ──────────────────────────────────────────────────────
# Timer-driven cycles write into SessionState from a background thread; poll
# so the page reflects them.
if loop.status is not RefreshStatus.IDLE or state.busy:
    time.sleep(1)
    st.rerun()
