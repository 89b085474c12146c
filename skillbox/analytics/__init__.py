"""Analytics modules for technical analysis."""

from .technical import (
    compute_bollinger_bands,
    compute_ema_series,
    compute_indicator_set,
    compute_macd,
    compute_rsi,
    compute_sma,
    compute_support_resistance,
    generate_recommendation,
)

__all__ = [
    "compute_sma",
    "compute_rsi",
    "compute_ema_series",
    "compute_macd",
    "compute_bollinger_bands",
    "compute_support_resistance",
    "generate_recommendation",
    "compute_indicator_set",
]
