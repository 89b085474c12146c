"""Market data fetches with budget gate, timeout and retry with backoff."""

import asyncio
import logging
import random
from typing import Any, Dict, Optional

from ..context import SkillContext
from ..domain.models import CostCheck
from ..errors import (
    AbortError,
    COST_LIMIT_EXCEEDED,
    NETWORK_ERROR,
    SkillError,
    TIMEOUT,
    error_response,
)
from ..redaction import redact_sensitive

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_BACKOFF_MS = 500
DEFAULT_TIMEOUT_MS = 15000
MAX_TIMEOUT_MS = 30000

# Pre-flight cost estimates (USD)
COST_PER_QUOTE = 0.01
COST_PER_ANALYZE = 0.05
COST_PER_COMPARE_SYMBOL = 0.02
COST_PER_ALERT_CHECK = 0.01

QUOTE_ENDPOINT = "market-data/quote"
HISTORICAL_ENDPOINT = "market-data/historical"


def _cost_limit(context: Optional[SkillContext]) -> Optional[float]:
    """Configured ``maxCostUsd`` as a float; numeric strings are accepted, anything else means no limit."""
    raw = context.setting("maxCostUsd") if context is not None else None
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError:
            pass
    logger.warning("Ignoring non-numeric maxCostUsd: %r", raw)
    return None


def check_cost_limit(
    context: Optional[SkillContext],
    estimated_cost: float,
    action: Optional[str] = None,
) -> CostCheck:
    """
    Compare an estimated cost against ``context.config['maxCostUsd']``.

    No limit configured means every cost is accepted.

    Returns:
        CostCheck; on rejection ``error`` holds a ready-made error envelope
    """
    max_cost = _cost_limit(context)
    if max_cost is None or estimated_cost <= max_cost:
        return CostCheck(ok=True)

    logger.info("Cost %.4f exceeds limit %.2f for %s", estimated_cost, max_cost, action)
    exc = SkillError(
        COST_LIMIT_EXCEEDED,
        f"Estimated cost ${estimated_cost:.4f} exceeds configured limit of ${max_cost:.2f}.",
        retriable=False,
    )
    return CostCheck(
        ok=False,
        error=error_response(
            f"Error: Estimated cost ${estimated_cost:.4f} exceeds limit ${max_cost:.2f}.",
            action,
            exc.to_dict(),
        ),
    )


def backoff_with_jitter(attempt: int) -> float:
    """
    Delay in ms before retry ``attempt`` (zero-indexed).

    base * 2^attempt plus up to 50% jitter, capped at MAX_TIMEOUT_MS.
    """
    base = BASE_BACKOFF_MS * (2 ** attempt)
    jitter = random.random() * base * 0.5
    return min(base + jitter, MAX_TIMEOUT_MS)


def resolve_timeout(context: Optional[SkillContext]) -> int:
    """Per-attempt timeout in ms from ``context.config['timeoutMs']``, capped."""
    configured = context.setting("timeoutMs") if context is not None else None
    if isinstance(configured, (int, float)) and not isinstance(configured, bool) and configured > 0:
        return int(min(configured, MAX_TIMEOUT_MS))
    return DEFAULT_TIMEOUT_MS


async def fetch_with_retry(
    client: Any,
    endpoint: str,
    options: Dict[str, Any],
    timeout_ms: int,
) -> Any:
    """
    Call ``client.fetch`` with a per-attempt timeout and bounded retries.

    A timed-out or aborted attempt fails immediately and is never retried.
    Any other exception is retried up to MAX_RETRIES times with backoff.

    Args:
        client: Object exposing ``async fetch(endpoint, options)``
        endpoint: Logical endpoint name
        options: Fetch options (``params`` etc.)
        timeout_ms: Timeout per attempt in ms

    Returns:
        Whatever the client returned

    Raises:
        SkillError: TIMEOUT on abort, NETWORK_ERROR after retries are exhausted
    """
    last_error: Optional[BaseException] = None
    last_detail = "unknown"

    for attempt in range(MAX_RETRIES + 1):
        if attempt > 0:
            delay_ms = backoff_with_jitter(attempt - 1)
            logger.warning(
                "Fetch %s failed on attempt %d: %s. Retrying in %.0f ms...",
                endpoint,
                attempt,
                last_detail,
                delay_ms,
            )
            await asyncio.sleep(delay_ms / 1000)

        logger.debug("Fetch attempt %d/%d: %s", attempt + 1, MAX_RETRIES + 1, endpoint)
        try:
            return await asyncio.wait_for(
                client.fetch(endpoint, dict(options)),
                timeout=timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, AbortError) as exc:
            logger.warning("Fetch %s timed out after %d ms", endpoint, timeout_ms)
            raise SkillError(TIMEOUT, f"Request timed out after {timeout_ms}ms.") from exc
        except Exception as exc:
            last_error = exc
            last_detail = redact_sensitive(str(exc)) or type(exc).__name__

    logger.error("Fetch %s failed after %d attempts: %s", endpoint, MAX_RETRIES + 1, last_detail)
    raise SkillError(
        NETWORK_ERROR,
        f"Network error after {MAX_RETRIES + 1} attempts: {last_detail}",
    ) from last_error
