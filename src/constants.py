"""
Shared constants used across multiple modules.
Single source of truth for lookback periods, score windows and weights.
"""

# Lookback periods (days) accepted by the correlation and insight operations
ALLOWED_PERIODS = (7, 14, 30, 60)
DEFAULT_PERIOD = 30

# Fewer aggregated days than this and correlations are not computed
MIN_CORRELATION_DAYS = 7

# Health score windows, both ending on the reference day:
#   recent = last 7 days, older = days 8-30
RECENT_WINDOW_DAYS = 7
SCORE_LOOKBACK_DAYS = 30

# Weighted sum for the overall health score (sums to 1.0)
COMPONENT_WEIGHTS = {
    "sleep": 0.25,
    "recovery": 0.25,
    "consistency": 0.20,
    "nutrition": 0.15,
    "stress": 0.15,
}
