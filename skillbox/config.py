"""Configuration management for skillbox."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _optional_float(raw: Optional[str]) -> Optional[float]:
    raw = (raw or "").strip()
    return float(raw) if raw else None


@dataclass
class Config:
    """Process-level defaults loaded from environment variables."""

    # Gateway (optional; without it only local actions work)
    gateway_base_url: Optional[str] = None
    gateway_api_key: Optional[str] = None

    # Deep analysis
    openai_model: Optional[str] = None
    max_tokens: int = 4096

    # Timeouts (milliseconds)
    market_timeout_ms: int = 15000
    scanner_timeout_ms: int = 30000

    # Budget
    max_cost_usd: Optional[float] = None

    # Network settings
    max_concurrent_requests: int = 10

    # Web API
    web_api_token: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls(
            gateway_base_url=os.getenv("GATEWAY_BASE_URL", "").strip() or None,
            gateway_api_key=os.getenv("GATEWAY_API_KEY", "").strip() or None,
            openai_model=os.getenv("OPENAI_MODEL", "").strip() or None,
            max_tokens=int(os.getenv("MAX_TOKENS", "4096")),
            market_timeout_ms=int(os.getenv("MARKET_TIMEOUT_MS", "15000")),
            scanner_timeout_ms=int(os.getenv("SCANNER_TIMEOUT_MS", "30000")),
            max_cost_usd=_optional_float(os.getenv("MAX_COST_USD")),
            max_concurrent_requests=int(os.getenv("MAX_CONCURRENT_REQUESTS", "10")),
            web_api_token=os.getenv("WEB_API_TOKEN", "").strip() or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )

    def as_call_config(self, skill: str) -> Dict[str, Any]:
        """
        Build the per-call ``context.config`` mapping for a skill.

        Args:
            skill: "guard-agent" or "market-analyzer"
        """
        if skill == "market-analyzer":
            call_config: Dict[str, Any] = {"timeoutMs": self.market_timeout_ms}
            if self.max_cost_usd is not None:
                call_config["maxCostUsd"] = self.max_cost_usd
            return call_config

        call_config = {"timeoutMs": self.scanner_timeout_ms, "maxTokens": self.max_tokens}
        if self.openai_model:
            call_config["model"] = self.openai_model
        return call_config
