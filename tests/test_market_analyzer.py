"""Tests for the market analyzer skill."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from skillbox.context import SkillContext
from skillbox.errors import AbortError
from skillbox.skills.market_analyzer import PROVIDER_MESSAGE, MarketAnalyzerSkill


def _market_client(handler=None, return_value=None):
    client = MagicMock()
    client.fetch = AsyncMock(side_effect=handler, return_value=return_value)
    return client


def _history(start, step, count=60):
    return {"prices": [start + step * i for i in range(count)], "volume": 1000}


class MarketAnalyzerTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.skill = MarketAnalyzerSkill()
        backoff = patch("skillbox.providers.fetch.backoff_with_jitter", return_value=0)
        backoff.start()
        self.addCleanup(backoff.stop)


class TestQuote(MarketAnalyzerTestCase):
    async def test_quote(self):
        client = _market_client(return_value={
            "quote": {"price": 190.5, "change": 1.25, "changePercent": 0.66, "volume": 5000000,
                      "timestamp": "2024-01-02T00:00:00Z"},
        })

        response = await self.skill.execute(
            {"action": "quote", "symbol": " aapl "}, SkillContext(gateway_client=client)
        )
        metadata = response["metadata"]

        self.assertTrue(metadata["success"])
        self.assertEqual(metadata["symbol"], "AAPL")
        self.assertEqual(metadata["type"], "stock")
        self.assertEqual(metadata["price"], 190.5)
        self.assertIsNone(metadata["marketCap"])
        self.assertEqual(metadata["timestamp"], "2024-01-02T00:00:00Z")
        self.assertIn("AAPL (STOCK) Quote", response["result"])
        self.assertIn("Price: $190.5", response["result"])
        self.assertIn("Market Cap: N/A", response["result"])
        client.fetch.assert_awaited_once_with(
            "market-data/quote", {"params": {"symbol": "AAPL", "type": "stock"}}
        )

    async def test_gateway_preferred(self):
        gateway = _market_client(return_value={"price": 1})
        provider = _market_client(return_value={"price": 2})

        response = await self.skill.execute(
            {"action": "quote", "symbol": "BTC", "type": "crypto"},
            SkillContext(gateway_client=gateway, provider_client=provider),
        )

        self.assertEqual(response["metadata"]["price"], 1)
        provider.fetch.assert_not_awaited()

    async def test_no_client(self):
        response = await self.skill.execute({"action": "quote", "symbol": "AAPL"}, None)

        self.assertEqual(response["result"], f"Error: {PROVIDER_MESSAGE}")
        self.assertEqual(
            response["metadata"]["error"],
            {"code": "PROVIDER_NOT_CONFIGURED", "message": PROVIDER_MESSAGE, "retriable": False},
        )

    async def test_validation(self):
        client = _market_client(return_value={})
        context = SkillContext(gateway_client=client)

        missing = await self.skill.execute({"action": "quote"}, context)
        bad_type = await self.skill.execute({"action": "quote", "symbol": "X", "type": "bond"}, context)
        bad_period = await self.skill.execute({"action": "analyze", "symbol": "X", "period": "2d"}, context)

        self.assertEqual(missing["metadata"]["error"], "MISSING_SYMBOL")
        self.assertEqual(missing["result"], 'Error: The "symbol" parameter is required for quote action.')
        self.assertEqual(bad_type["metadata"]["error"], "INVALID_TYPE")
        self.assertEqual(bad_period["metadata"]["error"], "INVALID_PERIOD")
        client.fetch.assert_not_awaited()

    async def test_cost_limit(self):
        client = _market_client(return_value=_history(100, 1))

        response = await self.skill.execute(
            {"action": "analyze", "symbol": "AAPL"},
            {"gatewayClient": client, "config": {"maxCostUsd": 0.01}},
        )

        self.assertFalse(response["metadata"]["success"])
        self.assertEqual(response["metadata"]["error"]["code"], "COST_LIMIT_EXCEEDED")
        self.assertFalse(response["metadata"]["error"]["retriable"])
        self.assertEqual(response["result"], "Error: Estimated cost $0.0500 exceeds limit $0.01.")
        client.fetch.assert_not_awaited()


class TestAnalyze(MarketAnalyzerTestCase):
    async def test_analyze(self):
        client = _market_client(return_value=_history(100, 0.5, count=250))

        response = await self.skill.execute(
            {"action": "analyze", "symbol": "msft", "period": "1y"}, SkillContext(gateway_client=client)
        )
        metadata = response["metadata"]
        result = response["result"]

        self.assertTrue(metadata["success"])
        self.assertEqual(metadata["dataPoints"], 250)
        self.assertAlmostEqual(metadata["currentPrice"], 224.5)
        self.assertIsNotNone(metadata["indicators"]["sma200"])
        self.assertEqual(metadata["indicators"]["rsi"], 100.0)
        self.assertIn(metadata["recommendation"], ("strong_buy", "buy", "hold", "sell", "strong_sell"))
        self.assertTrue(result.startswith("Technical Analysis: MSFT (STOCK) - 1y"))
        for section in ("--- Moving Averages ---", "--- Oscillators ---", "--- Bollinger Bands ---",
                        "--- Support / Resistance ---"):
            self.assertIn(section, result)
        self.assertIn(f"Recommendation: {metadata['recommendation'].upper()}", result)

    async def test_empty_history(self):
        client = _market_client(return_value={"prices": []})

        response = await self.skill.execute(
            {"action": "analyze", "symbol": "AAPL"}, SkillContext(gateway_client=client)
        )

        self.assertEqual(response["metadata"]["error"], "NO_DATA")

    async def test_timeout_not_retried(self):
        client = _market_client(handler=AbortError("aborted"))

        response = await self.skill.execute(
            {"action": "analyze", "symbol": "AAPL"}, SkillContext(gateway_client=client)
        )

        self.assertEqual(response["metadata"]["error"], "TIMEOUT")
        self.assertEqual(response["result"], "Error: Request timed out after 15000ms.")
        self.assertEqual(client.fetch.await_count, 1)

    async def test_network_error_after_retries(self):
        client = _market_client(handler=ConnectionError("connection reset"))

        response = await self.skill.execute(
            {"action": "quote", "symbol": "AAPL"}, SkillContext(gateway_client=client)
        )

        self.assertEqual(response["metadata"]["error"], "NETWORK_ERROR")
        self.assertIn("after 4 attempts", response["result"])
        self.assertEqual(client.fetch.await_count, 4)


class TestCompare(MarketAnalyzerTestCase):
    async def test_compare_ranks_by_change(self):
        histories = {"AAA": _history(100, 1), "BBB": _history(100, 2), "CCC": _history(100, -1)}

        async def fetch(endpoint, options):
            return histories[options["params"]["symbol"]]

        response = await self.skill.execute(
            {"action": "compare", "symbols": ["aaa", "bbb", "ccc"]},
            SkillContext(gateway_client=_market_client(handler=fetch)),
        )
        metadata = response["metadata"]

        self.assertEqual(metadata["ranking"], ["BBB", "AAA", "CCC"])
        self.assertAlmostEqual(metadata["comparisons"][0]["changePercent"], 59.0)
        self.assertEqual(metadata["comparisons"][0]["volume"], 1000)
        self.assertIn("[Rank: 1/3]", response["result"])

    async def test_compare_partial_failure(self):
        async def fetch(endpoint, options):
            if options["params"]["symbol"] == "BAD":
                raise AbortError()
            return _history(50, 1)

        response = await self.skill.execute(
            {"action": "compare", "symbols": ["GOOD", "BAD"]},
            SkillContext(gateway_client=_market_client(handler=fetch)),
        )
        metadata = response["metadata"]

        self.assertTrue(metadata["success"])
        errors = [c for c in metadata["comparisons"] if c.get("error")]
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0]["symbol"], "BAD")
        self.assertEqual(metadata["ranking"], ["GOOD"])
        self.assertIn("BAD: Error - Request timed out", response["result"])

    async def test_compare_short_and_zero_histories(self):
        async def fetch(endpoint, options):
            symbol = options["params"]["symbol"]
            return {"prices": [5.0]} if symbol == "ONE" else {"prices": [0, 3]}

        response = await self.skill.execute(
            {"action": "compare", "symbols": ["ONE", "ZERO"]},
            SkillContext(gateway_client=_market_client(handler=fetch)),
        )
        errors = [c["error"] for c in response["metadata"]["comparisons"]]

        self.assertEqual(errors, ["Insufficient data", "Invalid starting price"])
        self.assertEqual(response["metadata"]["ranking"], [])

    async def test_compare_needs_two_symbols(self):
        response = await self.skill.execute(
            {"action": "compare", "symbols": ["AAPL"]},
            SkillContext(gateway_client=_market_client(return_value={})),
        )
        self.assertEqual(response["metadata"]["error"], "INVALID_SYMBOLS")

    async def test_compare_collapses_repeated_symbols(self):
        client = _market_client(return_value=_history(10, 1))

        repeated = await self.skill.execute(
            {"action": "compare", "symbols": ["AAPL", "aapl", "MSFT"]}, SkillContext(gateway_client=client)
        )
        only_one = await self.skill.execute(
            {"action": "compare", "symbols": ["AAPL", " aapl "]}, SkillContext(gateway_client=client)
        )

        self.assertEqual([c["symbol"] for c in repeated["metadata"]["comparisons"]], ["AAPL", "MSFT"])
        self.assertEqual(client.fetch.await_count, 2)
        self.assertIn("[Rank: 2/2]", repeated["result"])
        self.assertEqual(only_one["metadata"]["error"], "INVALID_SYMBOLS")


class TestSequentialFetching(MarketAnalyzerTestCase):
    def _tracking_client(self, payload):
        state = {"in_flight": 0, "peak": 0}

        async def fetch(endpoint, options):
            state["in_flight"] += 1
            state["peak"] = max(state["peak"], state["in_flight"])
            await asyncio.sleep(0)
            state["in_flight"] -= 1
            return payload

        return _market_client(handler=fetch), state

    async def test_compare_fetches_one_symbol_at_a_time(self):
        client, state = self._tracking_client(_history(10, 1))

        response = await self.skill.execute(
            {"action": "compare", "symbols": ["A", "B", "C", "D"]}, SkillContext(gateway_client=client)
        )

        self.assertTrue(response["metadata"]["success"])
        self.assertEqual(client.fetch.await_count, 4)
        self.assertEqual(state["peak"], 1)

    async def test_alert_checks_one_symbol_at_a_time(self):
        for symbol in ("A", "B", "C"):
            await self.skill.execute({"action": "watchlist_add", "symbol": symbol, "targetPrice": 5}, None)
        client, state = self._tracking_client({"price": 10})

        response = await self.skill.execute({"action": "alert"}, SkillContext(gateway_client=client))

        self.assertEqual(response["metadata"]["checked"], 3)
        self.assertEqual(len(response["metadata"]["triggered"]), 3)
        self.assertEqual(state["peak"], 1)


class TestWatchlist(MarketAnalyzerTestCase):
    async def test_add_overwrites(self):
        await self.skill.execute({"action": "watchlist_add", "symbol": "aapl"}, None)
        response = await self.skill.execute(
            {"action": "watchlist_add", "symbol": "AAPL", "targetPrice": 200, "alertType": "sideways"}, None
        )

        self.assertEqual(len(self.skill.store), 1)
        self.assertEqual(response["metadata"]["entry"]["alertType"], "above")
        self.assertEqual(response["result"], "Added AAPL to watchlist. Alert when price goes above $200.")

    async def test_add_rejects_non_numeric_target(self):
        response = await self.skill.execute(
            {"action": "watchlist_add", "symbol": "AAPL", "targetPrice": "200"}, None
        )
        self.assertEqual(response["metadata"]["error"], "INVALID_INPUT")
        self.assertEqual(len(self.skill.store), 0)

    async def test_list(self):
        empty = await self.skill.execute({"action": "watchlist_list"}, None)
        await self.skill.execute({"action": "watchlist_add", "symbol": "ETH", "type": "crypto"}, None)
        listed = await self.skill.execute({"action": "watchlist_list"}, None)

        self.assertEqual(empty["result"], "Watchlist is empty.")
        self.assertEqual(listed["metadata"]["count"], 1)
        self.assertEqual(listed["metadata"]["entries"][0]["symbol"], "ETH")
        self.assertIn("ETH (crypto)", listed["result"])

    async def test_remove(self):
        await self.skill.execute({"action": "watchlist_add", "symbol": "AAPL"}, None)

        removed = await self.skill.execute({"action": "watchlist_remove", "symbol": "aapl"}, None)
        missing = await self.skill.execute({"action": "watchlist_remove", "symbol": "aapl"}, None)

        self.assertTrue(removed["metadata"]["success"])
        self.assertFalse(missing["metadata"]["success"])
        self.assertEqual(missing["metadata"]["error"], "NOT_FOUND")
        self.assertEqual(missing["result"], "Symbol AAPL is not in the watchlist.")

    async def test_close_clears_store(self):
        await self.skill.execute({"action": "watchlist_add", "symbol": "AAPL"}, None)
        self.skill.close()
        self.assertEqual(len(self.skill.store), 0)


class TestAlerts(MarketAnalyzerTestCase):
    async def test_no_alerts_configured(self):
        await self.skill.execute({"action": "watchlist_add", "symbol": "AAPL"}, None)

        response = await self.skill.execute({"action": "alert"}, None)

        self.assertTrue(response["metadata"]["success"])
        self.assertEqual(response["metadata"]["checked"], 0)
        self.assertIn("No alerts configured", response["result"])

    async def test_alerts(self):
        prices = {"AAPL": 210.0, "TSLA": 150.0, "NVDA": 400.0}

        async def fetch(endpoint, options):
            symbol = options["params"]["symbol"]
            if symbol == "NVDA":
                raise AbortError()
            return {"quote": {"price": prices[symbol]}}

        for params in (
            {"symbol": "AAPL", "targetPrice": 200, "alertType": "above"},
            {"symbol": "TSLA", "targetPrice": 140, "alertType": "below"},
            {"symbol": "NVDA", "targetPrice": 100},
            {"symbol": "MSFT"},
        ):
            await self.skill.execute({"action": "watchlist_add", **params}, None)

        response = await self.skill.execute(
            {"action": "alert"}, SkillContext(gateway_client=_market_client(handler=fetch))
        )
        metadata = response["metadata"]

        self.assertEqual(metadata["checked"], 3)
        self.assertEqual([t["symbol"] for t in metadata["triggered"]], ["AAPL"])
        self.assertEqual(metadata["errors"][0]["symbol"], "NVDA")
        self.assertIn("1 alert(s) triggered:", response["result"])
        self.assertIn("AAPL: $210 has gone above target $200", response["result"])


class TestFailures(MarketAnalyzerTestCase):
    async def test_invalid_action(self):
        response = await self.skill.execute({"action": "buy"}, None)
        self.assertEqual(response["metadata"]["error"], "INVALID_ACTION")

    async def test_store_failure_is_redacted(self):
        store = MagicMock()
        store.list_entries.side_effect = RuntimeError("backend token=abc123 rejected")
        skill = MarketAnalyzerSkill(store=store)

        response = await skill.execute({"action": "watchlist_list"}, None)

        self.assertEqual(response["metadata"]["error"], "OPERATION_FAILED")
        self.assertTrue(response["result"].startswith("Error during watchlist_list:"))
        self.assertIn("[REDACTED]", response["result"])
        self.assertNotIn("abc123", response["result"])


if __name__ == "__main__":
    unittest.main()
