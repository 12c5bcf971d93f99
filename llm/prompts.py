"""
llm/prompts.py
Prompt builder: turns a SessionState snapshot into the system instruction and
the user instruction sent to the model.

Pure functions. The only time-dependent input is the market date, which is
computed once per build and threaded through every section so one build
never straddles two calendar days.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from config.catalog import (
    market_prompt_label, sector_label, style_description, style_label,
)
from config.settings import DEEP_LEVEL_THRESHOLD
from models.session import AnalysisLevel, AnalystRole, Mode, SessionState
from utils.dates import DateInfo


def select_model(level: int, fast_model: str, deep_model: str) -> str:
    """Deep model for level 4 and above, fast model otherwise."""
    return deep_model if level >= DEEP_LEVEL_THRESHOLD else fast_model


def _level_name(level: int) -> str:
    try:
        return AnalysisLevel(level).name
    except ValueError:
        return f"L{level}"


# ══════════════════════════════════════════════════════════════════════════════
# SINGLE-STOCK ANALYSIS
# ══════════════════════════════════════════════════════════════════════════════

def build_system_instruction(state: SessionState, d: DateInfo) -> str:
    roles = ", ".join(r.value for r in state.analysis.ordered_roles)
    return f"""你是一个世界级的金融投资顾问团队。

🔴 **数据时效性严格协议 (Data Freshness Protocol) - 最高优先级**:
1. **当前绝对时间**: 现在是 **{d.year}年{d.month}月{d.day}日**。
2. **严禁旧数据**: 绝不允许将 {d.year - 1} 年或更早的数据描述为“当前”、“最新”或“实时”。
3. **强制标注日期**: 在引用任何价格、PE、资金流向数据时，**必须**在括号内标注具体数据来源日期。
   - *正确示例*: "最新股价: 25.50 (来源: {d.year}-{d.month:02d}-01)"
   - *错误示例*: "最新股价: 25.50" (未标注，可能引用了旧数据)
4. **搜索策略**: 你必须优先搜索包含 "{d.year}" 和 "{d.month}月" 的资讯。

**角色配置**:
你由以下专家团队组成:
{roles}。

**分析师互动机制**:
1. **深度合成**: 识别不同分析师之间的冲突或共振。
2. **辩论模式**: 风险专家必须挑战成长专家的观点。

**排版与可读性规则**:
1. **结构**: 以“🎯 核心结论仪表盘”开始。
2. **标题**: 纯中文 H2 (##)。
3. **列表**: 使用无序列表 (-)，禁止长文本。
4. **表格**: 财务数据必须使用 Markdown 表格。

**语言要求**: 正文全中文，仅 Summary 用英文。
"""


def _role_block(role: AnalystRole, d: DateInfo) -> str:
    if role is AnalystRole.MARKET:
        return f"""## 📈 宏观与行业策略
- **周期阶段**: {d.year}年行业处于什么位置？
- **行业地位**: 最新市场份额变化。
> **分析师点评**: [行业洞察]

"""
    if role is AnalystRole.FUNDAMENTAL:
        return f"""## 📊 基本面透视
- **{d.year} 业绩展望**: 营收/净利润最新预测。
- **估值分析**: 基于 {d.year} 预测 EPS 的动态 PE。

| 核心指标 | 最新数值 | 同比增长 | 行业平均 |
| :--- | :--- | :--- | :--- |
| 营收 | | | |
| 净利润 | | | |
| 动态市盈率(PE) | | | |

"""
    if role is AnalystRole.INSTITUTIONAL:
        return f"""## 🏦 机构与资金动向
* **美股**: {d.year} 最新 13F 持仓变化, 内部人交易。
* **A股/港股**: **{d.month}月** 北向/南向资金流向, 最新龙虎榜。

> **聪明钱 (Smart Money)**: 近期资金是在流入还是流出？

"""
    if role is AnalystRole.TECHNICAL:
        return """## 🕯️ 技术面分析
- **趋势判断**: 当前股价相对于 MA20/MA50/MA200 的位置。
- **关键点位**: **本周** 的支撑位与阻力位。
- **量价分析**: 近期成交量异动。

"""
    if role is AnalystRole.EVENT:
        return f"""## 📰 事件驱动与催化剂 ({d.year}最新)
- **近期**: {d.month}月发生的关键事件。
- **未来**: 接下来的财报日或产品发布会。

"""
    if role is AnalystRole.SOCIAL:
        return """## 💬 舆情与市场情绪
* 散户情绪 (贪婪/恐慌) - 基于最新发帖。
* **预期差**: 市场当前的主流观点是什么？
* 数据源: 股吧/雪球/Reddit/X (限制在最近一周)。

"""
    return ""


def build_analysis_prompt(state: SessionState, d: DateInfo) -> str:
    stock    = state.stock
    analysis = state.analysis
    code     = stock.code.strip()
    market   = market_prompt_label(stock.market.value)

    prompt = f"""请为以下股票撰写一份 {_level_name(analysis.level)} (等级 {int(analysis.level)}/5) 深度分析报告：
股票代码: {code}
市场类型: {market}
当前实时时间 (北京时间): {d.full}

🔴 **关键指令 (CRITICAL) - 必须严格遵守**:
1. **强制使用 {d.year} 最新数据**: 你必须通过网络搜索获取 **{d.year}年{d.month}月** 的最新实时数据。
2. **拒绝陈旧信息**: 如果搜索结果全是 {d.year - 1} 年的旧闻，你必须明确警告用户“缺乏 {d.year} 年最新催化剂”，而不是用旧闻充数。
3. **强制搜索关键词**:
   - "{code} 股价 {d.year}年{d.month}月"
   - "{code} 最新研报 {d.year}"
   - "{code} 资金流向 {d.year}年{d.month}月"
   - "{code} {d.year} 业绩预告"

**必须包含的输出结构**:

# 🚀 {code} 深度分析报告 ({d.year}特别版)

## 🎯 核心结论仪表盘
- **数据基准日**: {d.year}年{d.month}月{d.day}日
- **最新价格**: [价格] (⚠️必填: 数据日期)
- **综合评级**: [强力买入 / 买入 / 持有 / 减持 / 卖出]
- **核心逻辑**: [一句话概括]
- **主要风险**: [一句话概括]

---

"""

    for role in analysis.ordered_roles:
        prompt += _role_block(role, d)

    prompt += f"""## 🧩 综合博弈分析
* **信号共振**: 技术面、基本面和资金面在 {d.month}月 是否一致？
* **信号背离**: 哪里存在矛盾？
* **情景推演**:
  - *牛市剧本*: 股价上涨需要什么条件？
  - *熊市剧本*: 什么情况会破坏逻辑？

## 🔀 交易信号与操作建议
基于 {d.year}年{d.month}月 的最新数据，给出操作建议：
- **操作评级**: [买入 / 增持 / 持有 / 减仓 / 卖出]
- **适合周期**: [短线 / 中线 / 长线]
- **建议入场区**: [具体价格范围]
- **目标价格**:
  * **保守目标**: [价格]
  * **激进目标**: [价格]
- **止损位**: [价格] (逻辑失效点)

"""

    if analysis.include_sentiment:
        prompt += "## 🌡️ 量化情绪评分 (0-100)\n\n"

    if analysis.include_risk:
        prompt += f"""## ⚠️ 风险因素提示
请列出 3-5 个 **{d.year}年特有** 的风险点。**必须**归类：
*   **市场风险**
*   **经营风险**
*   **财务风险**
*   **政策风险**

格式示例:
- **[风险类别]**: 具体描述...

"""

    prompt += """---
## 📝 最终总结 (Final Verdict)
用一句话给出清晰的投资结论。

## 🇺🇸 Executive Summary
(Concise recap for international investors in English)
"""
    return prompt


# ══════════════════════════════════════════════════════════════════════════════
# REVERSE SCREENER
# ══════════════════════════════════════════════════════════════════════════════

def build_screener_system_instruction(d: DateInfo) -> str:
    return (
        f"你是一位专业的基金经理。你必须利用网络搜索查找 {d.year}年{d.month}月 的最新市场数据。"
        f"严禁使用 {d.year - 1} 年的旧数据作为当前依据。请全程使用中文回答。"
    )


def build_screener_prompt(state: SessionState, d: DateInfo) -> str:
    criteria = state.screener
    market   = market_prompt_label(state.stock.market.value)
    sector   = sector_label(criteria.sector)
    style    = style_label(criteria.style)
    desc     = style_description(criteria.style)

    return f"""角色: 你是一位资深的量化基金经理 (Quant Portfolio Manager)，拥有 **{d.year}年** 实时市场数据权限。
任务: 根据用户设定的策略模型，在 **{d.year}年{d.month}月** 的最新市场环境中，筛选出 3-5 只最符合的股票。

🔴 **最高指令 (CRITICAL)**:
1. **全中文输出**。
2. **严禁旧数据**: 必须基于 {d.year}年{d.month}月 的实时行情和资金流向。

📊 **筛选模型配置**:
- **目标市场**: {market}
- **核心赛道**: {sector}
- **量化策略**: {style}
- **策略逻辑**: "{desc}" (请严格遵循此逻辑进行筛选)

🔎 **执行步骤**:
1. **宏观扫描**: 确认 {sector} 板块在 {d.year}年{d.month}月 的行业景气度。
2. **策略过滤 (网络搜索)**:
   - 搜索关键词示例: "{market} {sector} 龙头股 {d.year} 涨幅", "{market} {criteria.style} 选股 {d.year} {d.month}月".
   - 如果策略是“高股息”，重点搜索股息率和现金流。
   - 如果策略是“GARP”，重点搜索 PEG 和 业绩增速。
3. **个股精选**: 选出 3-5 只最强的标的。

**输出格式要求**:

# 🎯 智能选股报告 ({d.year}量化版)

## 📋 模型参数
- **市场**: {market}
- **赛道**: {sector}
- **策略**: {style}

## 🏆 精选标的池 (数据截至: {d.year}-{d.month})

| 排名 | 代码 | 名称 | 最新价 | 核心指标匹配度 |
| :--- | :--- | :--- | :--- | :--- |
| 1 | [代码] | [名称] | [价格] | [例如: PEG=0.8, 业绩增30%] |
| ... | ... | ... | ... | ... |

## 💡 深度逻辑点评

### 1. [股票名称] ([代码])
- **入选理由**: 为什么它完美符合 "{style}"？
- **量化指标**: (列出符合策略的关键数据，如PE, ROE, 股息率等)
- **{d.year}核心催化剂**: 本月有什么资金或事件驱动？
- **主要风险**: 潜在的破坏逻辑的因素。

### 2. ...

---

## 📝 组合操作建议
给出针对该股票组合的仓位配置建议 (例如: 等权重配置 或 龙头重仓)。
"""


# ══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ══════════════════════════════════════════════════════════════════════════════

def build_prompts(state: SessionState, now: Optional[datetime] = None) -> tuple[str, str]:
    """
    Build ``(system_instruction, user_instruction)`` for the state's mode.

    ``now`` pins the market date; when omitted the current time is used.
    """
    d = DateInfo.from_datetime(now)
    if state.mode == Mode.SCREENER:
        return build_screener_system_instruction(d), build_screener_prompt(state, d)
    return build_system_instruction(state, d), build_analysis_prompt(state, d)
