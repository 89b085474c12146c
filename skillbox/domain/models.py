"""Domain models for threat scanning and market analysis."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(str, Enum):
    """Finding severity."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ThreatCategory(str, Enum):
    """Threat classification."""
    SQL_INJECTION = "sql_injection"
    XSS = "xss"
    COMMAND_INJECTION = "command_injection"
    PATH_TRAVERSAL = "path_traversal"
    SENSITIVE_DATA_EXPOSURE = "sensitive_data_exposure"
    SOCIAL_ENGINEERING = "social_engineering"
    PROMPT_INJECTION = "prompt_injection"
    MALICIOUS_URI = "malicious_uri"
    SSRF = "ssrf"
    IP_BASED_URL = "ip_based_url"
    HOMOGRAPH_ATTACK = "homograph_attack"
    HARDCODED_SECRET = "hardcoded_secret"
    WEAK_CREDENTIAL = "weak_credential"
    INSECURE_SETTING = "insecure_setting"
    OVERLY_PERMISSIVE = "overly_permissive"


@dataclass(frozen=True)
class ThreatFinding:
    """
    A single detected threat.

    ``location`` holds one of:
    - ``{start, end, match}`` for text/prompt matches (match redacted where sensitive)
    - ``{url}`` (plus ``domain`` for homographs) for URL findings
    - ``{path, key, value}`` for configuration findings
    """
    threat: str
    severity: str
    description: str
    location: Dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "threat": self.threat,
            "severity": self.severity,
            "description": self.description,
            "location": dict(self.location),
        }
        if self.source is not None:
            data["source"] = self.source
        return data


@dataclass
class RiskReport:
    """Aggregate view over a list of findings."""
    risk_score: int
    risk_level: str
    total_threats: int
    severity_counts: Dict[str, int]
    threats_by_type: Dict[str, int]
    remediations: List[str]


@dataclass(frozen=True)
class MACDResult:
    """Last-point MACD values."""
    macd_line: float
    signal_line: float
    histogram: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "macdLine": self.macd_line,
            "signalLine": self.signal_line,
            "histogram": self.histogram,
        }


@dataclass(frozen=True)
class BollingerBands:
    """Bollinger band levels at the last point."""
    upper: float
    middle: float
    lower: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class SupportResistance:
    """Recent price floor and ceiling."""
    support: float
    resistance: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class IndicatorSet:
    """Technical indicator snapshot; None means insufficient history."""
    price: Optional[float]
    sma20: Optional[float]
    sma50: Optional[float]
    sma200: Optional[float]
    rsi: Optional[float]
    macd: Optional[MACDResult]
    bollinger_bands: Optional[BollingerBands]
    support: float
    resistance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sma20": self.sma20,
            "sma50": self.sma50,
            "sma200": self.sma200,
            "rsi": self.rsi,
            "macd": self.macd.to_dict() if self.macd else None,
            "bollingerBands": self.bollinger_bands.to_dict() if self.bollinger_bands else None,
            "support": self.support,
            "resistance": self.resistance,
        }


@dataclass
class WatchlistEntry:
    """Watchlist item keyed by uppercase symbol."""
    symbol: str
    type: str
    added_at: str
    target_price: Optional[float] = None
    alert_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "symbol": self.symbol,
            "type": self.type,
            "addedAt": self.added_at,
        }
        if self.target_price is not None:
            data["targetPrice"] = self.target_price
            data["alertType"] = self.alert_type
        return data


@dataclass
class CostCheck:
    """Result of the pre-flight budget gate."""
    ok: bool
    error: Optional[Dict[str, Any]] = None
