"""Error taxonomy and response envelope helpers shared by all skills."""

from typing import Any, Dict, Optional

LAYER = "L2"

# Action / input validation
INVALID_ACTION = "INVALID_ACTION"
MISSING_INPUT = "MISSING_INPUT"
INVALID_INPUT = "INVALID_INPUT"
MISSING_SYMBOL = "MISSING_SYMBOL"
INVALID_TYPE = "INVALID_TYPE"
INVALID_PERIOD = "INVALID_PERIOD"
INVALID_SYMBOLS = "INVALID_SYMBOLS"

# Operator / budget
PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"
COST_LIMIT_EXCEEDED = "COST_LIMIT_EXCEEDED"

# External calls
TIMEOUT = "TIMEOUT"
NETWORK_ERROR = "NETWORK_ERROR"
UPSTREAM_ERROR = "UPSTREAM_ERROR"
GRAPHQL_ERROR = "GRAPHQL_ERROR"
FETCH_ERROR = "FETCH_ERROR"

# Empty results
NO_DATA = "NO_DATA"
NOT_FOUND = "NOT_FOUND"

OPERATION_FAILED = "OPERATION_FAILED"

RETRIABLE_CODES = frozenset({TIMEOUT, NETWORK_ERROR, UPSTREAM_ERROR, GRAPHQL_ERROR})


class AbortError(Exception):
    """Raised by injected clients when a call was cancelled (timed out)."""


class SkillError(Exception):
    """Structured failure carrying a taxonomy code."""

    def __init__(self, code: str, message: str, retriable: Optional[bool] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.retriable = code in RETRIABLE_CODES if retriable is None else retriable

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "retriable": self.retriable}


def success_response(result: str, action: str, **metadata: Any) -> Dict[str, Any]:
    """Build a successful ``{result, metadata}`` envelope."""
    return {
        "result": result,
        "metadata": {"success": True, "action": action, "layer": LAYER, **metadata},
    }


def error_response(
    result: str,
    action: Optional[str],
    error: Any,
    **metadata: Any,
) -> Dict[str, Any]:
    """
    Build a failed envelope.

    ``error`` is either a taxonomy code string or a structured
    ``{code, message, retriable}`` mapping.
    """
    return {
        "result": result,
        "metadata": {
            "success": False,
            "action": action,
            "layer": LAYER,
            "error": error,
            **metadata,
        },
    }


def structured_error_response(action: Optional[str], exc: SkillError) -> Dict[str, Any]:
    """Envelope for errors reported with the full ``{code, message, retriable}`` shape."""
    return error_response(f"Error: {exc.message}", action, exc.to_dict())
