"""Pick the injected client a skill should talk to."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from ..context import SkillContext

logger = logging.getLogger(__name__)


class ClientPolicy(Enum):
    """Preference order over the two client slots."""
    GATEWAY_FIRST = ("gateway", "provider")
    PROVIDER_FIRST = ("provider", "gateway")

    @property
    def order(self) -> Tuple[str, str]:
        return self.value


@dataclass(frozen=True)
class ResolvedClient:
    """Client selected for a call, with the slot it came from."""
    client: Any
    type: str


def resolve_client(context: Optional[SkillContext], policy: ClientPolicy) -> Optional[ResolvedClient]:
    """
    Return the first available client according to ``policy``.

    Returns:
        ResolvedClient, or None when neither slot is populated
    """
    if context is None:
        return None

    slots = {
        "gateway": context.gateway_client,
        "provider": context.provider_client,
    }
    for slot in policy.order:
        client = slots[slot]
        if client is not None:
            logger.debug("Resolved %s client (%s)", slot, policy.name)
            return ResolvedClient(client=client, type=slot)
    return None
