"""Tests for client resolution, execution context and the HTTP gateway client."""

import asyncio

import httpx
import pytest

from skillbox.clients.http_gateway import HttpGatewayClient
from skillbox.clients.resolver import ClientPolicy, resolve_client
from skillbox.context import SkillContext
from skillbox.errors import AbortError, SkillError


class TestResolveClient:
    def test_none_context(self):
        assert resolve_client(None, ClientPolicy.GATEWAY_FIRST) is None

    def test_empty_context(self):
        assert resolve_client(SkillContext(), ClientPolicy.PROVIDER_FIRST) is None

    def test_gateway_first(self):
        context = SkillContext(provider_client="provider", gateway_client="gateway")
        resolved = resolve_client(context, ClientPolicy.GATEWAY_FIRST)
        assert (resolved.client, resolved.type) == ("gateway", "gateway")

    def test_provider_first(self):
        context = SkillContext(provider_client="provider", gateway_client="gateway")
        resolved = resolve_client(context, ClientPolicy.PROVIDER_FIRST)
        assert (resolved.client, resolved.type) == ("provider", "provider")

    def test_falls_back_to_other_slot(self):
        context = SkillContext(provider_client="provider")
        resolved = resolve_client(context, ClientPolicy.GATEWAY_FIRST)
        assert resolved.type == "provider"


class TestSkillContext:
    def test_coerce_camel_case_mapping(self):
        context = SkillContext.coerce({"gatewayClient": "g", "config": {"timeoutMs": 5}})
        assert context.gateway_client == "g"
        assert context.provider_client is None
        assert context.setting("timeoutMs") == 5

    def test_coerce_snake_case_mapping(self):
        assert SkillContext.coerce({"provider_client": "p"}).provider_client == "p"

    def test_coerce_passthrough_and_none(self):
        context = SkillContext()
        assert SkillContext.coerce(context) is context
        assert SkillContext.coerce(None).config == {}

    def test_coerce_rejects_other_types(self):
        with pytest.raises(TypeError):
            SkillContext.coerce("context")


def _gateway(handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpGatewayClient("https://gateway.test/v1/", api_key="k-123", http_client=http_client)


class TestHttpGatewayClient:
    def test_fetch_sends_query_and_auth(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"quote": {"price": 1.5}})

        result = asyncio.run(_gateway(handler).fetch("market-data/quote", {"params": {"symbol": "AAPL"}}))

        assert result == {"quote": {"price": 1.5}}
        assert seen["url"] == "https://gateway.test/v1/market-data/quote?symbol=AAPL"
        assert seen["auth"] == "Bearer k-123"

    def test_chat_posts_json(self):
        def handler(request):
            assert request.method == "POST"
            assert request.url.path == "/v1/chat/completions"
            return httpx.Response(200, json={"choices": []})

        assert asyncio.run(_gateway(handler).chat({"messages": []})) == {"choices": []}

    def test_http_error_is_upstream_error(self):
        def handler(request):
            return httpx.Response(503, json={"error": "down"})

        with pytest.raises(SkillError) as exc_info:
            asyncio.run(_gateway(handler).fetch("market-data/quote"))
        assert exc_info.value.code == "UPSTREAM_ERROR"
        assert exc_info.value.retriable is True

    def test_timeout_is_abort(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(AbortError):
            asyncio.run(_gateway(handler).fetch("market-data/quote"))

    def test_close_only_owned_client(self):
        async def scenario():
            gateway = HttpGatewayClient("https://gateway.test")
            gateway._ensure_client()
            assert gateway.own_client
            await gateway.close()
            return gateway.http_client

        assert asyncio.run(scenario()) is None
