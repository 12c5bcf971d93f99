"""
config/catalog.py
Static option catalog: markets, sectors, screener styles, analysis levels,
analyst teams and the model identifiers offered in the UI.
"""

from __future__ import annotations

from config.settings import DEFAULT_DEEP_MODEL, DEFAULT_FAST_MODEL

# ── Models ────────────────────────────────────────────────────────────────────
FAST_MODEL_OPTIONS = list(dict.fromkeys([DEFAULT_FAST_MODEL, "claude-haiku-4-5", "claude-sonnet-4-6"]))
DEEP_MODEL_OPTIONS = list(dict.fromkeys([DEFAULT_DEEP_MODEL, "claude-sonnet-4-6", "claude-opus-4-1"]))

# ── Markets ───────────────────────────────────────────────────────────────────
# Keyed by MarketType value.
MARKET_OPTIONS = {
    "A_SHARE":  "🇨🇳 A股市场",
    "HK_SHARE": "🇭🇰 港股市场",
    "US_SHARE": "🇺🇸 美股市场",
}

MARKET_PROMPT_LABELS = {
    "A_SHARE":  "A股 (中国)",
    "HK_SHARE": "港股 (香港)",
    "US_SHARE": "美股 (美国)",
}

# ── Screener ──────────────────────────────────────────────────────────────────
SECTOR_OPTIONS = [
    {"value": "All_Market",     "label": "🌍 全市场 (不限板块)"},
    {"value": "AI_Computing",   "label": "🤖 人工智能/算力/光模块"},
    {"value": "New_Energy_EV",  "label": "⚡ 新能源/固态电池/光伏"},
    {"value": "Semiconductor",  "label": "💾 半导体/芯片/国产替代"},
    {"value": "Low_Altitude",   "label": "🚁 低空经济/飞行汽车"},
    {"value": "High_Dividend",  "label": "🛡️ 煤炭/银行/电力 (高股息)"},
    {"value": "Consumer_Elec",  "label": "📱 消费电子/果链/华为链"},
    {"value": "Bio_Pharma",     "label": "💊 创新药/医疗器械"},
    {"value": "Machines",       "label": "🦾 人形机器人/工业母机"},
    {"value": "Internet_Plat",  "label": "🌐 互联网平台/中概互联"},
    {"value": "Real_Estate",    "label": "🏠 房地产/基建/顺周期"},
]

SCREENER_STYLES = [
    {
        "value": "GARP_Strategy",
        "label": "🦄 GARP策略 (低估值+高成长)",
        "desc":  "寻找 PEG < 1 且业绩增速 > 20% 的优质标的",
    },
    {
        "value": "High_Dividend_Low_Vol",
        "label": "💰 红利低波 (高股息+防守)",
        "desc":  "股息率 > 4%，现金流充沛，防御属性强",
    },
    {
        "value": "Smart_Money_Inflow",
        "label": "🏦 主力抢筹 (北向/机构加仓)",
        "desc":  "近期主力资金净流入，机构调研频繁",
    },
    {
        "value": "Turnaround_Reversal",
        "label": "🔄 困境反转 (业绩/价格拐点)",
        "desc":  "业绩预告扭亏，或股价底部放量突破",
    },
    {
        "value": "Technical_Breakout",
        "label": "📈 右侧突破 (量价齐升)",
        "desc":  "突破关键均线(MA60/MA120)或箱体上沿",
    },
    {
        "value": "Undervalued_Bluechip",
        "label": "💎 核心资产抄底 (超跌白马)",
        "desc":  "行业龙头，PE处于历史低位，被错杀",
    },
]

DEFAULT_SECTOR: str = SECTOR_OPTIONS[1]["value"]
DEFAULT_STYLE: str = SCREENER_STYLES[0]["value"]

# ── Analysis Depth ────────────────────────────────────────────────────────────
# Keyed by AnalysisLevel ordinal.
ANALYSIS_LEVELS = {
    1: {"title": "1级 - 快速分析", "desc": "基础数据概览，快速决策", "time": "2-5秒"},
    2: {"title": "2级 - 基础分析", "desc": "常规投资决策",           "time": "5-10秒"},
    3: {"title": "3级 - 标准分析", "desc": "技术+基本面，推荐",      "time": "10-20秒"},
    4: {"title": "4级 - 深度分析", "desc": "多轮辩论，深度研究",     "time": "30-60秒"},
    5: {"title": "5级 - 全面分析", "desc": "最全面的分析报告",       "time": "1-2分钟"},
}

# ── Analyst Teams ─────────────────────────────────────────────────────────────
# Keyed by AnalystRole value.
ANALYST_TEAMS = {
    "MARKET":        {"title": "市场策略师",   "desc": "分析宏观环境、行业周期及市场Beta系数"},
    "FUNDAMENTAL":   {"title": "基本面专家",   "desc": "深度挖掘财报、估值模型(DCF/PE)及护城河"},
    "INSTITUTIONAL": {"title": "机构追踪者",   "desc": "追踪主力资金、北向资金、ETF动向及内部交易"},
    "TECHNICAL":     {"title": "技术分析师",   "desc": "解读K线形态、量价关系及关键支撑阻力位"},
    "EVENT":         {"title": "事件驱动分析", "desc": "评估公告、并购重组、政策变化等催化剂"},
    "SOCIAL":        {"title": "舆情与心理",   "desc": "分析散户情绪、恐惧贪婪指数及社媒热度"},
}


def _find(options: list[dict], key: str) -> dict | None:
    return next((opt for opt in options if opt["value"] == key), None)


def sector_label(key: str) -> str:
    """Display label for a sector key; unknown keys are returned as-is."""
    opt = _find(SECTOR_OPTIONS, key)
    return opt["label"] if opt else key


def style_label(key: str) -> str:
    """Display label for a screener style key; unknown keys are returned as-is."""
    opt = _find(SCREENER_STYLES, key)
    return opt["label"] if opt else key


def style_description(key: str) -> str:
    opt = _find(SCREENER_STYLES, key)
    return opt["desc"] if opt else ""


def market_prompt_label(key: str) -> str:
    return MARKET_PROMPT_LABELS.get(key, key)
