"""
Threat detection rule tables.

Every rule is data: an id, a compiled pattern, the category it reports, a
severity and a human description. Tables are built once at import time and
consumed by ``security.scanner``.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ..domain.models import Severity, ThreatCategory


@dataclass(frozen=True)
class ThreatRule:
    """One detection rule."""
    id: str
    pattern: re.Pattern
    category: str
    severity: str
    description: str


@dataclass(frozen=True)
class SettingRule:
    """Configuration key rule with the literal values considered unsafe."""
    id: str
    key: re.Pattern
    bad_values: Tuple[object, ...]
    description: str


def _table(
    prefix: str,
    category: ThreatCategory,
    default_severity: Severity,
    entries: Iterable[Tuple[str, int, str, Optional[Severity]]],
) -> Tuple[ThreatRule, ...]:
    rules = []
    for index, (regex, flags, description, severity) in enumerate(entries, start=1):
        rules.append(
            ThreatRule(
                id=f"{prefix}-{index:03d}",
                pattern=re.compile(regex, flags),
                category=category.value,
                severity=(severity or default_severity).value,
                description=description,
            )
        )
    return tuple(rules)


I = re.IGNORECASE

# ---------------------------------------------------------------------------
# Text scanning
# ---------------------------------------------------------------------------

SQL_INJECTION_RULES = _table("SQLI", ThreatCategory.SQL_INJECTION, Severity.HIGH, [
    (r"\b(?:SELECT|INSERT|UPDATE|DELETE|DROP|UNION|ALTER|CREATE|EXEC|EXECUTE)\s+", I, "SQL keyword detected", None),
    (r"'\s*(?:OR|AND)\s+['\"]?\d+['\"]?\s*=\s*['\"]?\d+", I, "SQL tautology pattern (OR 1=1)", None),
    (r"'\s*;\s*(?:DROP|DELETE|UPDATE|INSERT)\b", I, "SQL statement chaining via semicolon", None),
    (r"(?:--|#|/\*)\s*$", re.MULTILINE, "SQL comment used to truncate query", None),
    (r"\bUNION\s+(?:ALL\s+)?SELECT\b", I, "UNION SELECT injection", None),
    (r"'\s*OR\s+'[^']*'\s*=\s*'", I, "SQL string tautology", None),
    (r";\s*WAITFOR\s+DELAY\b", I, "Time-based SQL injection (WAITFOR)", None),
    (r";\s*BENCHMARK\s*\(", I, "Time-based SQL injection (BENCHMARK)", None),
])

XSS_RULES = _table("XSS", ThreatCategory.XSS, Severity.HIGH, [
    (r"<script[\s>]", I, "Script tag injection", None),
    (r"javascript\s*:", I, "JavaScript URI scheme", None),
    (r"on(?:load|error|click|mouseover|focus|blur|submit|change|input)\s*=", I, "Inline event handler injection", None),
    (r"<img[^>]+onerror\s*=", I, "Image onerror event injection", None),
    (r"<iframe[\s>]", I, "Iframe injection", None),
    (r"<svg[^>]*on\w+\s*=", I, "SVG event handler injection", None),
    (r"\beval\s*\(", I, "eval() call detected", None),
    (r"\bdocument\.(?:cookie|write|location)", I, "DOM manipulation detected", None),
])

COMMAND_INJECTION_RULES = _table("CMDI", ThreatCategory.COMMAND_INJECTION, Severity.CRITICAL, [
    (r";\s*(?:ls|cat|rm|wget|curl|bash|sh|python|perl|ruby|nc|netcat)\b", I, "Shell command chaining", None),
    (r"\|\s*(?:ls|cat|rm|wget|curl|bash|sh|python|perl|ruby)\b", I, "Pipe to shell command", None),
    (r"`[^`]*`", 0, "Backtick command substitution", None),
    (r"\$\([^)]+\)", 0, "Dollar-paren command substitution", None),
    (r"&&\s*(?:rm|wget|curl|bash|sh|python)\b", I, "AND-chained shell command", None),
    (r"\|\|\s*(?:rm|wget|curl|bash|sh|python)\b", I, "OR-chained shell command", None),
])

PATH_TRAVERSAL_RULES = _table("PATH", ThreatCategory.PATH_TRAVERSAL, Severity.HIGH, [
    (r"\.\.[/\\]", 0, "Directory traversal (../)", None),
    (r"%2e%2e[%2f%5c]", I, "URL-encoded directory traversal", None),
    (r"/etc/(?:passwd|shadow|hosts)", I, "Access to sensitive system files", None),
    (r"\\windows\\system32", I, "Access to Windows system directory", None),
])

SENSITIVE_DATA_RULES = _table("DATA", ThreatCategory.SENSITIVE_DATA_EXPOSURE, Severity.HIGH, [
    (r"(?:api[_-]?key|apikey)\s*[:=]\s*['\"]?[a-zA-Z0-9_\-]{16,}['\"]?", I, "API key exposure", Severity.HIGH),
    (r"(?:password|passwd|pwd)\s*[:=]\s*['\"]?[^\s'\"]{4,}['\"]?", I, "Password exposure", Severity.CRITICAL),
    (r"(?:secret[_-]?key|client[_-]?secret)\s*[:=]\s*['\"]?[a-zA-Z0-9_\-]{8,}['\"]?", I, "Secret key exposure", Severity.CRITICAL),
    (r"(?:access[_-]?token|auth[_-]?token|bearer)\s*[:=]\s*['\"]?[a-zA-Z0-9_\-.]{16,}['\"]?", I, "Access token exposure", Severity.HIGH),
    (r"(?:sk|pk)[-_][a-zA-Z0-9]{20,}", 0, "Stripe/OpenAI-style key exposure", Severity.CRITICAL),
    (r"ghp_[a-zA-Z0-9]{36}", 0, "GitHub personal access token", Severity.CRITICAL),
    (r"-----BEGIN\s+(?:RSA\s+)?PRIVATE\s+KEY-----[\s\S]*?-----END", 0, "Private key exposure", Severity.CRITICAL),
    (r"(?:aws[_-]?access[_-]?key[_-]?id)\s*[:=]\s*['\"]?[A-Z0-9]{16,}['\"]?", I, "AWS access key exposure", Severity.CRITICAL),
])

SOCIAL_ENGINEERING_RULES = _table("SOC", ThreatCategory.SOCIAL_ENGINEERING, Severity.MEDIUM, [
    (r"\b(?:urgent|immediately|right now|asap|time.sensitive)\b", I, "Urgency language detected", None),
    (r"\b(?:verify your|confirm your|update your)\s+(?:account|password|credentials|identity)\b", I, "Phishing verification request", None),
    (r"\b(?:click here|click this link|visit this url)\b", I, "Suspicious click prompt", None),
    (r"\b(?:account.{0,10}(?:suspend|lock|disable|compromis))", I, "Account threat language", None),
    (r"\b(?:won|winner|prize|congratulat|reward)\b", I, "Prize/reward bait language", None),
])

# Ordered as scan_text applies them
TEXT_RULE_TABLES = (
    SQL_INJECTION_RULES,
    XSS_RULES,
    COMMAND_INJECTION_RULES,
    PATH_TRAVERSAL_RULES,
    SENSITIVE_DATA_RULES,
    SOCIAL_ENGINEERING_RULES,
)

# ---------------------------------------------------------------------------
# Prompt injection
# ---------------------------------------------------------------------------

PROMPT_INJECTION_RULES = _table("PINJ", ThreatCategory.PROMPT_INJECTION, Severity.HIGH, [
    (r"\b(?:ignore|disregard|forget)\s+(?:all\s+)?(?:previous|above|prior|earlier)\s+(?:instructions?|prompts?|rules?|context)\b", I, "Instruction override attempt", Severity.CRITICAL),
    (r"\b(?:ignore|disregard|forget)\s+(?:everything|all)\s+(?:above|before|prior)\b", I, "Context erasure attempt", Severity.CRITICAL),
    (r"\bnew\s+(?:instruction|rule|directive)\s*:", I, "Injected instruction block", Severity.HIGH),
    (r"\byou\s+are\s+now\b", I, "Role hijacking attempt", Severity.HIGH),
    (r"\b(?:system\s*prompt|system\s*message|initial\s*prompt)\b", I, "System prompt reference", Severity.HIGH),
    (r"\b(?:reveal|show|display|print|output|tell me)\s+(?:your|the)\s+(?:system\s*prompt|instructions?|rules?|initial\s*prompt)\b", I, "System prompt extraction attempt", Severity.CRITICAL),
    (r"\bdo\s+(?:anything|whatever)\s+I\s+(?:say|ask|tell)\b", I, "Authority assertion", Severity.HIGH),
    (r"\bpretend\s+(?:you\s+are|to\s+be|you're)\b", I, "Identity manipulation", Severity.MEDIUM),
    (r"\b(?:jailbreak|DAN|developer\s+mode|god\s+mode)\b", I, "Known jailbreak keyword", Severity.CRITICAL),
    (r"\b(?:base64|btoa|atob|encode|decode)\s*\(", I, "Encoding function call (potential data exfiltration)", Severity.HIGH),
    (r"\b(?:translate|convert)\s+(?:to|into)\s+(?:base64|hex|binary|rot13)\b", I, "Encoding conversion request (potential data exfiltration)", Severity.MEDIUM),
    (r"\[\s*SYSTEM\s*\]", I, "Fake system tag injection", Severity.CRITICAL),
    (r"<\|(?:im_start|im_end|system|endoftext)\|>", I, "Chat template token injection", Severity.CRITICAL),
])

# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------

MALICIOUS_URI_RULES = _table("URI", ThreatCategory.MALICIOUS_URI, Severity.CRITICAL, [
    (r"^data:", I, "Data URI (potential code execution or data exfiltration)", None),
    (r"^javascript:", I, "JavaScript URI (code execution)", None),
    (r"^vbscript:", I, "VBScript URI (code execution)", None),
])

SSRF_RULES = _table("SSRF", ThreatCategory.SSRF, Severity.HIGH, [
    (r"^https?://(?:127\.\d+\.\d+\.\d+|0\.0\.0\.0|localhost)", I, "Loopback/localhost URL (SSRF risk)", None),
    (r"^https?://(?:10\.\d+\.\d+\.\d+|172\.(?:1[6-9]|2\d|3[01])\.\d+\.\d+|192\.168\.\d+\.\d+)", I, "Private IP range URL (SSRF risk)", None),
    (r"^https?://169\.254\.\d+\.\d+", I, "Link-local / cloud metadata URL (SSRF risk)", None),
    (r"^https?://\[::1\]", I, "IPv6 loopback (SSRF risk)", None),
])

IP_URL_PATTERN = re.compile(r"^https?://\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}", I)
IP_URL_DESCRIPTION = "IP-based URL detected (often associated with malicious content)"

URL_SCHEME_PATTERN = re.compile(r"^https?://", I)

# Cyrillic look-alikes commonly used in homograph attacks
CONFUSABLE_CHARS = re.compile(r"[\u0430\u0435\u043e\u0440\u0441\u0443\u0445\u04bb\u0501\u051b\u051d]")
HOMOGRAPH_DESCRIPTION = "Unicode confusable characters detected in domain (potential homograph/IDN attack)"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

SECRET_KEY_PATTERNS = (
    re.compile(
        r"(?:password|passwd|pwd|secret|token|api[_-]?key|apikey|access[_-]?key|"
        r"private[_-]?key|auth[_-]?token|client[_-]?secret)",
        I,
    ),
)

WEAK_PASSWORD_PATTERN = re.compile(r"(.{0,7}|password|123456|admin|root|test|default|changeme|qwerty)", I)

INSECURE_SETTINGS = (
    SettingRule("CFG-DEBUG", re.compile(r"debug", I), (True, "true", "1", "yes"),
                "Debug mode enabled in configuration"),
    SettingRule("CFG-TLS", re.compile(r"ssl|tls|https", I), (False, "false", "0", "no", "disabled"),
                "SSL/TLS disabled"),
    SettingRule("CFG-VERIFY", re.compile(r"verify[_-]?ssl|verify[_-]?cert|tls[_-]?verify", I),
                (False, "false", "0", "no"), "SSL certificate verification disabled"),
)

PERMISSIVE_SETTINGS = (
    SettingRule("CFG-CORS", re.compile(r"cors|origin", I), ("*",),
                "Wildcard CORS origin (overly permissive)"),
    SettingRule("CFG-PERM", re.compile(r"permissions?|role|access", I),
                ("*", "all", "admin", "root", "superuser"), "Overly permissive access setting"),
    SettingRule("CFG-HOSTS", re.compile(r"allowed[_-]?hosts?", I), ("*", "0.0.0.0"),
                "Overly permissive allowed hosts"),
)
