from .session import (
    AnalysisLevel, AnalysisSettings, AnalystRole, MarketType, Mode,
    ScreenerCriteria, SessionState, StockTarget,
)
