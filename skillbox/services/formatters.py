"""Output formatters for skill results (pure functions)."""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..domain.models import IndicatorSet, RiskReport, ThreatFinding, WatchlistEntry


def display_value(value: Any) -> str:
    """Render a scalar for result text; integral floats lose the trailing ``.0``."""
    if value is None:
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _money(value: Optional[float], digits: int = 2) -> str:
    return f"${value:.{digits}f}" if value is not None else "N/A"


# ==================== Guard agent ====================

def format_findings(
    findings: Sequence[ThreatFinding],
    header: str,
    style: str = "category",
) -> str:
    """
    Numbered findings list.

    Args:
        findings: Findings to render (non-empty)
        header: Lead line, e.g. "Found 2 security threat(s):"
        style: "position" adds the match offset, "source" shows the
            detection source instead of the category, "category" shows
            category and description only
    """
    lines = []
    for index, finding in enumerate(findings, start=1):
        severity = finding.severity.upper()
        if style == "source":
            lines.append(f"{index}. [{severity}] {finding.description} (source: {finding.source})")
        elif style == "position":
            start = finding.location.get("start")
            lines.append(
                f"{index}. [{severity}] {finding.threat}: {finding.description} (at position {start})"
            )
        else:
            lines.append(f"{index}. [{severity}] {finding.threat}: {finding.description}")
    return f"{header}\n\n" + "\n".join(lines)


def format_report(report: RiskReport, scan_counts: Mapping[str, int]) -> str:
    """Multi-section security report."""
    counts = report.severity_counts
    lines = [
        "=== Security Analysis Report ===",
        "",
        f"Risk Score: {report.risk_score}/100",
        f"Risk Level: {report.risk_level}",
        f"Total Threats: {report.total_threats}",
        "",
        "--- Severity Breakdown ---",
        f"  Critical: {counts.get('critical', 0)}",
        f"  High:     {counts.get('high', 0)}",
        f"  Medium:   {counts.get('medium', 0)}",
        f"  Low:      {counts.get('low', 0)}",
    ]

    if report.threats_by_type:
        lines.extend(["", "--- Threats by Category ---"])
        for category, count in report.threats_by_type.items():
            lines.append(f"  {category}: {count}")

    lines.extend(["", "--- Scans Performed ---"])
    for scan, count in scan_counts.items():
        lines.append(f"  {scan}: {count} threat(s)")

    lines.extend(["", "--- Remediation Suggestions ---"])
    for index, advice in enumerate(report.remediations, start=1):
        lines.append(f"  {index}. {advice}")

    return "\n".join(lines)


# ==================== Market analyzer ====================

def format_quote(symbol: str, asset_type: str, quote: Mapping[str, Any]) -> str:
    def get(key: str) -> str:
        return display_value(quote.get(key))

    return "\n".join([
        f"{symbol} ({asset_type.upper()}) Quote",
        f"Price: ${get('price')}",
        f"Change: {get('change')} ({get('changePercent')}%)",
        f"Volume: {get('volume')}",
        f"High: ${get('high')} | Low: ${get('low')}",
        f"Open: ${get('open')} | Prev Close: ${get('previousClose')}",
        f"Market Cap: {get('marketCap')}",
    ])


def format_analysis(
    symbol: str,
    asset_type: str,
    period: str,
    indicators: IndicatorSet,
    recommendation: str,
) -> str:
    """
    Technical analysis summary.

    Sections: moving averages, oscillators, Bollinger bands,
    support/resistance, then the recommendation in upper case.
    """
    macd = indicators.macd
    bands = indicators.bollinger_bands
    rsi = f"{indicators.rsi:.2f}" if indicators.rsi is not None else "N/A"

    lines = [
        f"Technical Analysis: {symbol} ({asset_type.upper()}) - {period}",
        f"Current Price: {_money(indicators.price)}",
        "",
        "--- Moving Averages ---",
        f"SMA(20): {_money(indicators.sma20)}",
        f"SMA(50): {_money(indicators.sma50)}",
        f"SMA(200): {_money(indicators.sma200)}",
        "",
        "--- Oscillators ---",
        f"RSI(14): {rsi}",
        f"MACD: {f'{macd.macd_line:.4f}' if macd else 'N/A'}",
        f"MACD Signal: {f'{macd.signal_line:.4f}' if macd else 'N/A'}",
        f"MACD Histogram: {f'{macd.histogram:.4f}' if macd else 'N/A'}",
        "",
        "--- Bollinger Bands ---",
        f"Upper: {_money(bands.upper) if bands else 'N/A'}",
        f"Middle: {_money(bands.middle) if bands else 'N/A'}",
        f"Lower: {_money(bands.lower) if bands else 'N/A'}",
        "",
        "--- Support / Resistance ---",
        f"Support: {_money(indicators.support)}",
        f"Resistance: {_money(indicators.resistance)}",
        "",
        f"Recommendation: {recommendation.upper()}",
    ]
    return "\n".join(lines)


def format_comparison(
    asset_type: str,
    period: str,
    comparisons: List[Dict[str, Any]],
    ranking: List[str],
) -> str:
    lines = [f"Symbol Comparison ({asset_type.upper()}) - {period}", ""]

    for item in comparisons:
        symbol = item["symbol"]
        if item.get("error"):
            lines.append(f"{symbol}: Error - {item['error']}")
            continue

        change = item["changePercent"]
        line = (
            f"{symbol}: ${item['startPrice']:.2f} -> ${item['endPrice']:.2f} "
            f"({change:+.2f}%)"
        )
        if item.get("volume") is not None:
            line += f" | Vol: {display_value(item['volume'])}"
        line += f" [Rank: {ranking.index(symbol) + 1}/{len(ranking)}]"
        lines.append(line)

    return "\n".join(lines)


def format_watchlist_added(entry: WatchlistEntry) -> str:
    text = f"Added {entry.symbol} to watchlist."
    if entry.target_price is not None:
        text += f" Alert when price goes {entry.alert_type} ${display_value(entry.target_price)}."
    return text


def format_watchlist(entries: Sequence[WatchlistEntry]) -> str:
    if not entries:
        return "Watchlist is empty."

    lines = []
    for entry in entries:
        line = f"{entry.symbol} ({entry.type})"
        if entry.target_price is not None:
            line += f" | Alert: {entry.alert_type} ${display_value(entry.target_price)}"
        lines.append(line)
    return f"Watchlist ({len(entries)} symbol(s)):\n" + "\n".join(lines)


def format_alerts(triggered: Sequence[Mapping[str, Any]], checked: int) -> str:
    if not triggered:
        return f"Checked {checked} alert(s). No alerts triggered."

    lines = [
        f"{t['symbol']}: ${display_value(t['currentPrice'])} has gone {t['alertType']} "
        f"target ${display_value(t['targetPrice'])}"
        for t in triggered
    ]
    return f"{len(triggered)} alert(s) triggered:\n" + "\n".join(lines)
