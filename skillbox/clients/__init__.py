"""Injected client resolution and the HTTP gateway implementation."""

from .http_gateway import HttpGatewayClient
from .resolver import ClientPolicy, ResolvedClient, resolve_client

__all__ = ["ClientPolicy", "ResolvedClient", "resolve_client", "HttpGatewayClient"]
