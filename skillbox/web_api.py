"""Web API exposing the skills over HTTP (FastAPI)."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Header, HTTPException, status
from pydantic import BaseModel

from .config import Config
from .context import SkillContext
from .skills import GuardAgentSkill, MarketAnalyzerSkill

logger = logging.getLogger(__name__)

# Dependencies (replaced by the caller via configure_api_dependencies)
_guard_skill = GuardAgentSkill()
_market_skill = MarketAnalyzerSkill()
_gateway_client: Any = None
_config: Optional[Config] = None


def configure_api_dependencies(
    gateway_client: Any = None,
    config: Optional[Config] = None,
    guard_skill: Optional[GuardAgentSkill] = None,
    market_skill: Optional[MarketAnalyzerSkill] = None,
) -> None:
    """Configure API with the injected client, defaults and skill instances."""
    global _gateway_client, _config, _guard_skill, _market_skill

    _gateway_client = gateway_client
    _config = config
    if guard_skill is not None:
        _guard_skill = guard_skill
    if market_skill is not None:
        _market_skill = market_skill


def _context_for(skill: str) -> SkillContext:
    call_config = _config.as_call_config(skill) if _config is not None else {}
    return SkillContext(gateway_client=_gateway_client, config=call_config)


# ============== PYDANTIC MODELS ==============

class SkillRequest(BaseModel):
    params: Dict[str, Any]


# ============== FASTAPI APP ==============

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    _market_skill.close()
    if _gateway_client is not None and hasattr(_gateway_client, "close"):
        await _gateway_client.close()
    logger.info("Web API shutdown complete")


web_api = FastAPI(title="Skillbox API", lifespan=lifespan)


def _require_api_auth(x_api_key: Optional[str]) -> None:
    """Enforce API key auth when WEB_API_TOKEN is configured."""
    token = os.getenv("WEB_API_TOKEN", "").strip()
    if not token:
        return
    if not x_api_key or x_api_key != token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


@web_api.get("/healthz")
async def healthz():
    """Unauthenticated health probe endpoint."""
    return {"status": "ok", "skills": [GuardAgentSkill.name, MarketAnalyzerSkill.name]}


@web_api.post("/api/skills/guard-agent")
async def run_guard_agent(
    request: SkillRequest, x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")
):
    """Run one guard-agent action; the envelope is returned as-is."""
    _require_api_auth(x_api_key)
    return await _guard_skill.execute(request.params, _context_for(GuardAgentSkill.name))


@web_api.post("/api/skills/market-analyzer")
async def run_market_analyzer(
    request: SkillRequest, x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")
):
    """Run one market-analyzer action; the envelope is returned as-is."""
    _require_api_auth(x_api_key)
    return await _market_skill.execute(request.params, _context_for(MarketAnalyzerSkill.name))
