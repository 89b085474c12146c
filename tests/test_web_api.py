from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from skillbox import web_api as web_api_module
from skillbox.config import Config
from skillbox.skills import MarketAnalyzerSkill
from skillbox.web_api import configure_api_dependencies, web_api


@pytest.fixture(autouse=True)
def reset_dependencies():
    configure_api_dependencies(market_skill=MarketAnalyzerSkill())
    yield
    configure_api_dependencies()


def test_healthz(monkeypatch):
    monkeypatch.setenv("WEB_API_TOKEN", "secret-token")
    client = TestClient(web_api)

    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "skills": ["guard-agent", "market-analyzer"]}


def test_guard_agent_route(monkeypatch):
    monkeypatch.delenv("WEB_API_TOKEN", raising=False)
    client = TestClient(web_api)

    response = client.post(
        "/api/skills/guard-agent",
        json={"params": {"action": "scan_url", "url": "javascript:alert(1)"}},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["metadata"]["success"] is True
    assert payload["metadata"]["threats"][0]["threat"] == "malicious_uri"


def test_error_envelope_is_http_200(monkeypatch):
    monkeypatch.delenv("WEB_API_TOKEN", raising=False)
    client = TestClient(web_api)

    response = client.post("/api/skills/guard-agent", json={"params": {"action": "nope"}})
    assert response.status_code == 200
    assert response.json()["metadata"]["error"] == "INVALID_ACTION"


def test_market_analyzer_uses_configured_gateway(monkeypatch):
    monkeypatch.delenv("WEB_API_TOKEN", raising=False)
    gateway = MagicMock()
    gateway.fetch = AsyncMock(return_value={"quote": {"price": 42}})
    configure_api_dependencies(gateway_client=gateway, config=Config(max_cost_usd=1.0))
    client = TestClient(web_api)

    response = client.post(
        "/api/skills/market-analyzer",
        json={"params": {"action": "quote", "symbol": "aapl"}},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["metadata"]["symbol"] == "AAPL"
    assert payload["metadata"]["price"] == 42
    gateway.fetch.assert_awaited_once()


def test_context_carries_call_config():
    configure_api_dependencies(gateway_client="gw", config=Config(max_cost_usd=0.5))

    context = web_api_module._context_for("market-analyzer")
    assert context.gateway_client == "gw"
    assert context.config == {"timeoutMs": 15000, "maxCostUsd": 0.5}


def test_requires_api_key_when_token_set(monkeypatch):
    monkeypatch.setenv("WEB_API_TOKEN", "secret-token")
    client = TestClient(web_api)
    body = {"params": {"action": "watchlist_list"}}

    assert client.post("/api/skills/market-analyzer", json=body).status_code == 401
    assert client.post(
        "/api/skills/market-analyzer", json=body, headers={"X-API-Key": "wrong"}
    ).status_code == 401

    response = client.post(
        "/api/skills/market-analyzer", json=body, headers={"X-API-Key": "secret-token"}
    )
    assert response.status_code == 200
    assert response.json()["result"] == "Watchlist is empty."
