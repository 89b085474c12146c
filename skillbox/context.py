"""Execution context handed to every skill call."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass
class SkillContext:
    """
    Injected collaborators and per-call configuration.

    Attributes:
        provider_client: Direct provider client (optional)
        gateway_client: Platform gateway client (optional)
        config: Per-call settings (timeoutMs, maxCostUsd, maxTokens, model)
    """
    provider_client: Any = None
    gateway_client: Any = None
    config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> "SkillContext":
        """Accept None, a SkillContext, or a mapping with camelCase or snake_case keys."""
        if value is None:
            return cls()
        if isinstance(value, SkillContext):
            return value
        if isinstance(value, Mapping):
            return cls(
                provider_client=value.get("providerClient", value.get("provider_client")),
                gateway_client=value.get("gatewayClient", value.get("gateway_client")),
                config=dict(value.get("config") or {}),
            )
        raise TypeError(f"Unsupported context type: {type(value).__name__}")

    def setting(self, key: str, default: Optional[Any] = None) -> Any:
        """Read a per-call config value."""
        return self.config.get(key, default)
