"""Action dispatch shared by the skills."""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..context import SkillContext
from ..errors import (
    COST_LIMIT_EXCEEDED,
    INVALID_ACTION,
    OPERATION_FAILED,
    PROVIDER_NOT_CONFIGURED,
    SkillError,
    error_response,
    structured_error_response,
)

logger = logging.getLogger(__name__)

# Codes reported as {code, message, retriable} instead of a bare string
STRUCTURED_CODES = frozenset({PROVIDER_NOT_CONFIGURED, COST_LIMIT_EXCEEDED})


class Skill:
    """
    Base class for an action-dispatching skill.

    Subclasses set ``name`` and ``valid_actions`` and implement one
    ``_handle_<action>(params, context)`` coroutine per action. Handlers
    return an envelope or raise SkillError; anything else that escapes is
    reported as OPERATION_FAILED.
    """

    name = "skill"
    valid_actions: Tuple[str, ...] = ()
    failure_template = "Error during {action}: {detail}"

    @staticmethod
    def redact(text: Any) -> Any:
        return text

    async def execute(self, params: Optional[Mapping[str, Any]], context: Any = None) -> Dict[str, Any]:
        """
        Run one action.

        Args:
            params: Action name plus action-specific inputs
            context: SkillContext, mapping, or None

        Returns:
            ``{"result": str, "metadata": {...}}`` envelope; never raises
        """
        params = params or {}
        action = params.get("action")

        if not isinstance(action, str) or action not in self.valid_actions:
            return error_response(
                f'Error: Invalid action "{action}". Must be one of: {", ".join(self.valid_actions)}',
                action,
                INVALID_ACTION,
            )

        handler: Callable = getattr(self, f"_handle_{action}")
        logger.info("%s: executing %s", self.name, action)

        try:
            return await handler(params, SkillContext.coerce(context))
        except SkillError as exc:
            logger.info("%s: %s failed with %s", self.name, action, exc.code)
            if exc.code in STRUCTURED_CODES:
                return structured_error_response(action, exc)
            return error_response(self.redact(f"Error: {exc.message}"), action, exc.code)
        except Exception as exc:
            detail = self.redact(str(exc))
            logger.error("%s: %s raised %s: %s", self.name, action, type(exc).__name__, detail)
            return error_response(
                self.failure_template.format(action=action, detail=detail),
                action,
                OPERATION_FAILED,
                detail=detail,
            )
