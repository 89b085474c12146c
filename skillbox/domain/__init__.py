"""Domain layer - models and business entities."""

from .models import (
    BollingerBands,
    CostCheck,
    IndicatorSet,
    MACDResult,
    RiskReport,
    Severity,
    SupportResistance,
    ThreatCategory,
    ThreatFinding,
    WatchlistEntry,
)

__all__ = [
    "BollingerBands",
    "CostCheck",
    "IndicatorSet",
    "MACDResult",
    "RiskReport",
    "Severity",
    "SupportResistance",
    "ThreatCategory",
    "ThreatFinding",
    "WatchlistEntry",
]
