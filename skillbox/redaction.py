"""Secret redaction for anything that leaves a skill (results, errors, logs)."""

import re
from typing import Any, List, Tuple

# Labelled redaction used by the security scanner
SECRET_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (
        re.compile(
            r"-----BEGIN\s+(?:RSA\s+)?PRIVATE\s+KEY-----"
            r"(?:[\s\S]*?-----END(?:\s+(?:RSA\s+)?PRIVATE\s+KEY-----)?)?"
        ),
        "[REDACTED_PRIVATE_KEY]",
    ),
    (
        re.compile(r"aws[_-]?access[_-]?key[_-]?id\s*[:=]\s*['\"]?[A-Z0-9]{16,}['\"]?", re.IGNORECASE),
        "[REDACTED_AWS_KEY]",
    ),
    (re.compile(r"\bAKIA[0-9A-Z]{16}\b"), "[REDACTED_AWS_KEY]"),
    (
        re.compile(
            r"(?:access[_-]?token|auth[_-]?token|bearer)\s*[:=]\s*['\"]?[a-zA-Z0-9_\-.]{8,}['\"]?",
            re.IGNORECASE,
        ),
        "[REDACTED_TOKEN]",
    ),
    (
        re.compile(r"(?:api[_-]?key|apikey)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{8,})['\"]?", re.IGNORECASE),
        "[REDACTED_API_KEY]",
    ),
    (
        re.compile(r"(?:password|passwd|pwd)\s*[:=]\s*['\"]?([^\s'\"]{4,})['\"]?", re.IGNORECASE),
        "[REDACTED_PASSWORD]",
    ),
    (
        re.compile(r"(?:secret|token)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{8,})['\"]?", re.IGNORECASE),
        "[REDACTED_SECRET]",
    ),
    (re.compile(r"(?:sk|pk)[-_][a-zA-Z0-9]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r"ghp_[a-zA-Z0-9]{36}"), "[REDACTED_GITHUB_TOKEN]"),
]

# Blanket redaction used by market data output
SENSITIVE_PATTERNS: List[re.Pattern] = [
    re.compile(r"(?:api[_-]?key|token|secret|password|authorization|bearer)\s*[:=]\s*\S+", re.IGNORECASE),
]


def redact_secrets(text: Any) -> Any:
    """
    Replace known secret shapes with labelled markers.

    Non-string values are returned unchanged.
    """
    if not isinstance(text, str):
        return text
    result = text
    for pattern, label in SECRET_PATTERNS:
        result = pattern.sub(label, result)
    return result


def redact_sensitive(text: Any) -> Any:
    """Replace ``key=value`` style credentials with ``[REDACTED]``."""
    if not isinstance(text, str):
        return text
    cleaned = text
    for pattern in SENSITIVE_PATTERNS:
        cleaned = pattern.sub("[REDACTED]", cleaned)
    return cleaned
