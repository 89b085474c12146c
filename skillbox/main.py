"""Command line entry point: run one skill action or serve the web API."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional

import uvicorn

from .clients.http_gateway import HttpGatewayClient
from .config import Config
from .context import SkillContext
from .skills import GuardAgentSkill, MarketAnalyzerSkill
from .web_api import configure_api_dependencies, web_api

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

SKILLS = {
    GuardAgentSkill.name: GuardAgentSkill,
    MarketAnalyzerSkill.name: MarketAnalyzerSkill,
}


def build_gateway_client(config: Config) -> Optional[HttpGatewayClient]:
    """Gateway client from configuration, or None when no base URL is set."""
    if not config.gateway_base_url:
        logger.info("GATEWAY_BASE_URL not set; only local actions will succeed")
        return None
    return HttpGatewayClient(
        base_url=config.gateway_base_url,
        api_key=config.gateway_api_key,
        max_concurrent_requests=config.max_concurrent_requests,
    )


async def run_skill(skill_name: str, params: Dict[str, Any], config: Config) -> Dict[str, Any]:
    """Execute a single action and release the skill's resources afterwards."""
    skill = SKILLS[skill_name]()
    gateway = build_gateway_client(config)
    context = SkillContext(gateway_client=gateway, config=config.as_call_config(skill_name))
    try:
        return await skill.execute(params, context)
    finally:
        if isinstance(skill, MarketAnalyzerSkill):
            skill.close()
        if gateway is not None:
            await gateway.close()


def serve(config: Config, host: str, port: int) -> None:
    """Start the FastAPI app under uvicorn."""
    configure_api_dependencies(gateway_client=build_gateway_client(config), config=config)
    logger.info("Serving skills API on %s:%d", host, port)
    uvicorn.run(web_api, host=host, port=port, log_level=config.log_level.lower())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skillbox", description="Security scanning and market analysis skills")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_cmd = subparsers.add_parser("run", help="Execute one skill action")
    run_cmd.add_argument("skill", choices=sorted(SKILLS))
    run_cmd.add_argument("params", help="JSON object with 'action' and its inputs")

    serve_cmd = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_cmd.add_argument("--host", default="0.0.0.0")
    serve_cmd.add_argument("--port", type=int, default=8001)
    return parser


def run(argv: Optional[list] = None) -> None:
    """Synchronous entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config.from_env()
    logging.getLogger().setLevel(config.log_level)

    if args.command == "serve":
        serve(config, args.host, args.port)
        return

    try:
        params = json.loads(args.params)
    except json.JSONDecodeError as exc:
        parser.error(f"params must be valid JSON: {exc}")
    if not isinstance(params, dict):
        parser.error("params must be a JSON object")

    try:
        response = asyncio.run(run_skill(args.skill, params, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    print(json.dumps(response, indent=2, default=str))
    if not response["metadata"].get("success"):
        sys.exit(1)


if __name__ == "__main__":
    run()
