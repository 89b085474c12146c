"""Market analyzer: quotes, technical analysis, comparison and watchlist alerts."""

import logging
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional

from ..analytics.technical import compute_indicator_set, generate_recommendation
from ..clients.resolver import ClientPolicy, ResolvedClient, resolve_client
from ..context import SkillContext
from ..domain.models import WatchlistEntry
from ..errors import (
    FETCH_ERROR,
    INVALID_INPUT,
    INVALID_PERIOD,
    INVALID_SYMBOLS,
    INVALID_TYPE,
    MISSING_SYMBOL,
    NO_DATA,
    NOT_FOUND,
    PROVIDER_NOT_CONFIGURED,
    SkillError,
    error_response,
    success_response,
)
from ..providers.fetch import (
    COST_PER_ALERT_CHECK,
    COST_PER_ANALYZE,
    COST_PER_COMPARE_SYMBOL,
    COST_PER_QUOTE,
    HISTORICAL_ENDPOINT,
    QUOTE_ENDPOINT,
    check_cost_limit,
    fetch_with_retry,
    resolve_timeout,
)
from ..redaction import redact_sensitive
from ..services.formatters import (
    format_alerts,
    format_analysis,
    format_comparison,
    format_quote,
    format_watchlist,
    format_watchlist_added,
)
from ..storage.watchlist_repo import InMemoryWatchlistStore, WatchlistStore
from .base import Skill

logger = logging.getLogger(__name__)

VALID_ACTIONS = (
    "quote", "analyze", "compare",
    "watchlist_add", "watchlist_remove", "watchlist_list",
    "alert",
)
VALID_TYPES = ("stock", "crypto")
VALID_PERIODS = ("1w", "1m", "3m", "6m", "1y")
VALID_ALERT_TYPES = ("above", "below")

DEFAULT_TYPE = "stock"
DEFAULT_PERIOD = "1m"

PROVIDER_MESSAGE = "Gateway client required for market data access. Configure the platform adapter."

QUOTE_FIELDS = (
    "price", "change", "changePercent", "volume", "high", "low",
    "open", "previousClose", "marketCap",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _symbol(params: Mapping[str, Any], action: str) -> str:
    symbol = params.get("symbol")
    if not isinstance(symbol, str) or not symbol.strip():
        raise SkillError(MISSING_SYMBOL, f'The "symbol" parameter is required for {action}.')
    return symbol.strip().upper()


def _asset_type(params: Mapping[str, Any]) -> str:
    asset_type = params.get("type", DEFAULT_TYPE)
    if asset_type is None:
        asset_type = DEFAULT_TYPE
    if asset_type not in VALID_TYPES:
        raise SkillError(INVALID_TYPE, f'Invalid type "{asset_type}". Must be one of: {", ".join(VALID_TYPES)}')
    return asset_type


def _period(params: Mapping[str, Any]) -> str:
    period = params.get("period", DEFAULT_PERIOD)
    if period is None:
        period = DEFAULT_PERIOD
    if period not in VALID_PERIODS:
        raise SkillError(INVALID_PERIOD, f'Invalid period "{period}". Must be one of: {", ".join(VALID_PERIODS)}')
    return period


def _quote_payload(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        return {}
    quote = data.get("quote")
    return quote if isinstance(quote, Mapping) and quote else data


def _price_history(data: Any) -> Optional[List[float]]:
    """Closing prices from a historical payload, or None when absent/empty."""
    if isinstance(data, Mapping):
        prices = data.get("prices") or data.get("closingPrices") or data
    else:
        prices = data
    if not isinstance(prices, (list, tuple)) or not prices:
        return None
    return [float(price) for price in prices]


def _current_price(data: Any) -> Optional[float]:
    if not isinstance(data, Mapping):
        return None
    quote = data.get("quote")
    if isinstance(quote, Mapping) and quote.get("price") is not None:
        return quote["price"]
    return data.get("price")


class MarketAnalyzerSkill(Skill):
    """
    Stock and crypto analysis skill.

    Owns its watchlist store for its whole lifetime: the store is created
    with the skill (unless one is injected) and emptied by ``close()``.
    External actions (quote, analyze, compare, alert) go through the
    cost gate and the retrying fetch layer; compare and alert fetch one
    symbol at a time.
    """

    name = "market-analyzer"
    valid_actions = VALID_ACTIONS

    def __init__(
        self,
        store: Optional[WatchlistStore] = None,
        client_policy: ClientPolicy = ClientPolicy.GATEWAY_FIRST,
    ):
        self.store = store if store is not None else InMemoryWatchlistStore()
        self.client_policy = client_policy

    @staticmethod
    def redact(text: Any) -> Any:
        return redact_sensitive(text)

    def close(self) -> None:
        """Release state held by the skill."""
        self.store.clear()

    def _client(self, context: SkillContext) -> ResolvedClient:
        resolved = resolve_client(context, self.client_policy)
        if resolved is None:
            raise SkillError(PROVIDER_NOT_CONFIGURED, PROVIDER_MESSAGE, retriable=False)
        return resolved

    # ==================== External actions ====================

    async def _handle_quote(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        symbol = _symbol(params, "quote action")
        asset_type = _asset_type(params)
        resolved = self._client(context)

        cost = check_cost_limit(context, COST_PER_QUOTE, "quote")
        if not cost.ok:
            return cost.error

        data = await fetch_with_retry(
            resolved.client,
            QUOTE_ENDPOINT,
            {"params": {"symbol": symbol, "type": asset_type}},
            resolve_timeout(context),
        )
        quote = _quote_payload(data)

        return success_response(
            redact_sensitive(format_quote(symbol, asset_type, quote)),
            "quote",
            symbol=symbol,
            type=asset_type,
            **{field: quote.get(field) for field in QUOTE_FIELDS},
            timestamp=quote.get("timestamp") or _now_iso(),
        )

    async def _handle_analyze(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        symbol = _symbol(params, "analyze action")
        asset_type = _asset_type(params)
        period = _period(params)
        resolved = self._client(context)

        cost = check_cost_limit(context, COST_PER_ANALYZE, "analyze")
        if not cost.ok:
            return cost.error

        data = await fetch_with_retry(
            resolved.client,
            HISTORICAL_ENDPOINT,
            {"params": {"symbol": symbol, "type": asset_type, "period": period}},
            resolve_timeout(context),
        )

        try:
            prices = _price_history(data)
        except (TypeError, ValueError) as exc:
            raise SkillError(FETCH_ERROR, f"Malformed historical data for {symbol}: {exc}") from exc
        if prices is None:
            raise SkillError(NO_DATA, f"No historical data available for {symbol}.")

        indicators = compute_indicator_set(prices)
        recommendation = generate_recommendation(indicators)
        logger.info("Analyzed %s over %d points: %s", symbol, len(prices), recommendation)

        return success_response(
            redact_sensitive(format_analysis(symbol, asset_type, period, indicators, recommendation)),
            "analyze",
            symbol=symbol,
            type=asset_type,
            period=period,
            currentPrice=indicators.price,
            indicators=indicators.to_dict(),
            recommendation=recommendation,
            dataPoints=len(prices),
        )

    async def _handle_compare(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        """
        Fetch history for each symbol in turn and rank by change percent.

        Per-symbol failures are recorded on that symbol's entry and do not
        fail the comparison.
        """
        raw_symbols = params.get("symbols")
        if not isinstance(raw_symbols, (list, tuple)) or not all(
            isinstance(s, str) and s.strip() for s in raw_symbols
        ):
            raise SkillError(INVALID_SYMBOLS, 'The "symbols" parameter must be an array of at least 2 symbols.')
        # Repeats collapse onto the first occurrence
        symbols = list(dict.fromkeys(s.strip().upper() for s in raw_symbols))
        if len(symbols) < 2:
            raise SkillError(INVALID_SYMBOLS, 'The "symbols" parameter must be an array of at least 2 symbols.')
        asset_type = _asset_type(params)
        period = _period(params)
        resolved = self._client(context)

        cost = check_cost_limit(context, COST_PER_COMPARE_SYMBOL * len(symbols), "compare")
        if not cost.ok:
            return cost.error

        timeout_ms = resolve_timeout(context)
        comparisons: List[Dict[str, Any]] = []

        for symbol in symbols:
            try:
                data = await fetch_with_retry(
                    resolved.client,
                    HISTORICAL_ENDPOINT,
                    {"params": {"symbol": symbol, "type": asset_type, "period": period}},
                    timeout_ms,
                )
                prices = _price_history(data)
            except SkillError as exc:
                logger.warning("Compare: %s failed with %s", symbol, exc.code)
                comparisons.append({"symbol": symbol, "error": redact_sensitive(exc.message)})
                continue
            except (TypeError, ValueError) as exc:
                comparisons.append({"symbol": symbol, "error": redact_sensitive(f"Malformed data: {exc}")})
                continue

            if prices is None or len(prices) < 2:
                comparisons.append({"symbol": symbol, "error": "Insufficient data"})
                continue
            first, last = prices[0], prices[-1]
            if first == 0:
                comparisons.append({"symbol": symbol, "error": "Invalid starting price"})
                continue

            comparisons.append({
                "symbol": symbol,
                "startPrice": first,
                "endPrice": last,
                "changePercent": (last - first) / first * 100,
                "volume": data.get("volume") if isinstance(data, Mapping) else None,
                "dataPoints": len(prices),
            })

        ranked = sorted(
            (c for c in comparisons if not c.get("error")),
            key=lambda c: c["changePercent"],
            reverse=True,
        )
        ranking = [c["symbol"] for c in ranked]

        return success_response(
            redact_sensitive(format_comparison(asset_type, period, comparisons, ranking)),
            "compare",
            type=asset_type,
            period=period,
            comparisons=comparisons,
            ranking=ranking,
        )

    async def _handle_alert(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        entries = [e for e in self.store.list_entries() if e.target_price is not None]
        if not entries:
            return success_response(
                "No alerts configured. Add symbols with targetPrice to the watchlist first.",
                "alert",
                triggered=[],
                checked=0,
                errors=[],
            )

        resolved = self._client(context)
        cost = check_cost_limit(context, COST_PER_ALERT_CHECK * len(entries), "alert")
        if not cost.ok:
            return cost.error

        timeout_ms = resolve_timeout(context)
        triggered: List[Dict[str, Any]] = []
        errors: List[Dict[str, str]] = []

        for entry in entries:
            try:
                data = await fetch_with_retry(
                    resolved.client,
                    QUOTE_ENDPOINT,
                    {"params": {"symbol": entry.symbol, "type": entry.type}},
                    timeout_ms,
                )
            except SkillError as exc:
                logger.warning("Alert check for %s failed with %s", entry.symbol, exc.code)
                errors.append({"symbol": entry.symbol, "error": redact_sensitive(exc.message)})
                continue

            price = _current_price(data)
            if not _is_number(price):
                continue

            hit = (
                (entry.alert_type == "above" and price >= entry.target_price)
                or (entry.alert_type == "below" and price <= entry.target_price)
            )
            if hit:
                triggered.append({
                    "symbol": entry.symbol,
                    "type": entry.type,
                    "currentPrice": price,
                    "targetPrice": entry.target_price,
                    "alertType": entry.alert_type,
                })

        return success_response(
            redact_sensitive(format_alerts(triggered, len(entries))),
            "alert",
            triggered=triggered,
            checked=len(entries),
            errors=errors,
        )

    # ==================== Watchlist ====================

    async def _handle_watchlist_add(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        symbol = _symbol(params, "watchlist_add")
        asset_type = _asset_type(params)

        target_price = params.get("targetPrice")
        alert_type = None
        if target_price is not None:
            if not _is_number(target_price):
                raise SkillError(INVALID_INPUT, 'The "targetPrice" parameter must be a number.')
            alert_type = params.get("alertType")
            if alert_type not in VALID_ALERT_TYPES:
                alert_type = "above"

        entry = WatchlistEntry(
            symbol=symbol,
            type=asset_type,
            added_at=_now_iso(),
            target_price=target_price,
            alert_type=alert_type,
        )
        self.store.add(entry)

        return success_response(
            format_watchlist_added(entry),
            "watchlist_add",
            symbol=symbol,
            entry=entry.to_dict(),
        )

    async def _handle_watchlist_remove(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        symbol = _symbol(params, "watchlist_remove")
        if not self.store.remove(symbol):
            return error_response(
                f"Symbol {symbol} is not in the watchlist.",
                "watchlist_remove",
                NOT_FOUND,
                symbol=symbol,
            )
        return success_response(f"Removed {symbol} from watchlist.", "watchlist_remove", symbol=symbol)

    async def _handle_watchlist_list(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        entries = self.store.list_entries()
        return success_response(
            format_watchlist(entries),
            "watchlist_list",
            count=len(entries),
            entries=[entry.to_dict() for entry in entries],
        )
