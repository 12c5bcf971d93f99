"""
config/settings.py
Central configuration for ProStock AI.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ── API Keys ──────────────────────────────────────────────────────────────────
# Fallback used when the user has not entered a key in the sidebar.
ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")

# ── Model Settings ────────────────────────────────────────────────────────────
DEFAULT_FAST_MODEL: str = os.getenv("PROSTOCK_FAST_MODEL", "claude-haiku-4-5")
DEFAULT_DEEP_MODEL: str = os.getenv("PROSTOCK_DEEP_MODEL", "claude-sonnet-4-6")
DEEP_LEVEL_THRESHOLD: int = 4        # levels >= this use the deep model
LLM_MAX_TOKENS: int = 16000          # must stay above THINKING_BUDGET_TOKENS
THINKING_BUDGET_TOKENS: int = 4096
THINKING_MODEL_MARKERS = ("sonnet-4", "opus-4", "haiku-4-5", "3-7-sonnet")
WEB_SEARCH_TOOL: str = "web_search_20250305"
WEB_SEARCH_MAX_USES: int = 8

# ── Market Clock ──────────────────────────────────────────────────────────────
MARKET_UTC_OFFSET_HOURS: int = 8     # Beijing time, regardless of host TZ

# ── Session Defaults ──────────────────────────────────────────────────────────
DEFAULT_STOCK_CODE: str = "600508"
AUTO_REFRESH_SECONDS: float = float(os.getenv("PROSTOCK_REFRESH_SECONDS", "60"))

# ── Credential Store ──────────────────────────────────────────────────────────
CREDENTIAL_STORE_PATH: str = os.getenv(
    "PROSTOCK_STORE_PATH",
    os.path.join(os.path.expanduser("~"), ".prostock", "store.json"),
)
CREDENTIAL_KEY: str = "prostock_api_key"

# ── PDF Export ────────────────────────────────────────────────────────────────
PDF_PAGE_WIDTH_PX: int = 794         # A4 width at 96 DPI
PDF_PAGE_HEIGHT_PX: int = 1123
PDF_MARGIN_X_PX: int = 40
PDF_MARGIN_Y_PX: int = 30
PDF_BODY_FONT: str = "STSong-Light"  # reportlab built-in CID font with CJK glyphs
