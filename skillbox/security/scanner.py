"""Pure, synchronous threat scanners over text, prompts, URLs and config mappings."""

import logging
from typing import Any, Iterable, List, Mapping, Optional

from ..domain.models import Severity, ThreatCategory, ThreatFinding
from ..redaction import redact_secrets
from .patterns import (
    CONFUSABLE_CHARS,
    HOMOGRAPH_DESCRIPTION,
    INSECURE_SETTINGS,
    IP_URL_DESCRIPTION,
    IP_URL_PATTERN,
    MALICIOUS_URI_RULES,
    PERMISSIVE_SETTINGS,
    PROMPT_INJECTION_RULES,
    SECRET_KEY_PATTERNS,
    SSRF_RULES,
    TEXT_RULE_TABLES,
    URL_SCHEME_PATTERN,
    WEAK_PASSWORD_PATTERN,
    ThreatRule,
)

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"


def _match_rules(text: str, rules: Iterable[ThreatRule], source: Optional[str] = None) -> List[ThreatFinding]:
    """Record the first match of every rule."""
    findings = []
    for rule in rules:
        match = rule.pattern.search(text)
        if not match:
            continue
        snippet = match.group(0)
        if rule.category == ThreatCategory.SENSITIVE_DATA_EXPOSURE.value:
            redacted = redact_secrets(snippet)
            snippet = redacted if redacted != snippet else REDACTED
        findings.append(
            ThreatFinding(
                threat=rule.category,
                severity=rule.severity,
                description=rule.description,
                location={"start": match.start(), "end": match.end(), "match": snippet},
                source=source,
            )
        )
    return findings


def scan_text(text: str) -> List[ThreatFinding]:
    """
    Scan free text for injection, traversal, secret exposure and social engineering.

    Args:
        text: Non-empty text to scan

    Returns:
        Findings in table order (empty list when clean)
    """
    findings: List[ThreatFinding] = []
    for table in TEXT_RULE_TABLES:
        findings.extend(_match_rules(text, table))
    logger.debug("scan_text: %d finding(s) over %d chars", len(findings), len(text))
    return findings


def scan_prompt_patterns(prompt: str) -> List[ThreatFinding]:
    """Regex phase of prompt scanning; findings are tagged ``source='regex'``."""
    return _match_rules(prompt, PROMPT_INJECTION_RULES, source="regex")


def extract_domain(url: str) -> str:
    """Strip the http(s) scheme and cut at the first ``/`` then ``:``."""
    if not URL_SCHEME_PATTERN.match(url):
        return url
    remainder = URL_SCHEME_PATTERN.sub("", url, count=1)
    return remainder.split("/")[0].split(":")[0]


def scan_url(url: str) -> List[ThreatFinding]:
    """Local URL safety checks: dangerous schemes, SSRF targets, bare IPs, homographs."""
    findings: List[ThreatFinding] = []

    for rule in MALICIOUS_URI_RULES + SSRF_RULES:
        if rule.pattern.search(url):
            findings.append(
                ThreatFinding(
                    threat=rule.category,
                    severity=rule.severity,
                    description=rule.description,
                    location={"url": url},
                )
            )

    if IP_URL_PATTERN.search(url):
        already_reported = any(f.threat == ThreatCategory.SSRF.value for f in findings)
        if not already_reported:
            findings.append(
                ThreatFinding(
                    threat=ThreatCategory.IP_BASED_URL.value,
                    severity=Severity.MEDIUM.value,
                    description=IP_URL_DESCRIPTION,
                    location={"url": url},
                )
            )

    domain = extract_domain(url)
    if CONFUSABLE_CHARS.search(domain):
        findings.append(
            ThreatFinding(
                threat=ThreatCategory.HOMOGRAPH_ATTACK.value,
                severity=Severity.HIGH.value,
                description=HOMOGRAPH_DESCRIPTION,
                location={"url": url, "domain": domain},
            )
        )

    return findings


def _stringify(value: Any) -> str:
    """Render a config value the way it reads in a JSON/YAML config."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    return str(value)


def _matches_insecure(value: Any, bad_values: Iterable[object]) -> bool:
    for bad in bad_values:
        if isinstance(bad, bool):
            if value is bad:
                return True
        elif _stringify(value).lower() == str(bad).lower():
            return True
    return False


def _matches_permissive(value: Any, bad_values: Iterable[object]) -> bool:
    for bad in bad_values:
        if isinstance(value, str) and value == bad:
            return True
        if isinstance(value, (list, tuple)) and bad in value:
            return True
    return False


def scan_config(config: Mapping[str, Any]) -> List[ThreatFinding]:
    """
    Walk a nested configuration mapping and report insecure entries.

    Lists are treated as leaf values: they are checked for permissive
    members but mappings inside them are not visited.
    """
    findings: List[ThreatFinding] = []

    def walk(node: Mapping[str, Any], path: str) -> None:
        for key, value in node.items():
            key = str(key)
            current_path = f"{path}.{key}" if path else key

            is_secret_key = any(p.search(key) for p in SECRET_KEY_PATTERNS)
            if is_secret_key and isinstance(value, str) and value:
                location = {"path": current_path, "key": key, "value": REDACTED}
                findings.append(
                    ThreatFinding(
                        threat=ThreatCategory.HARDCODED_SECRET.value,
                        severity=Severity.CRITICAL.value,
                        description=f'Hardcoded credential detected at "{current_path}"',
                        location=location,
                    )
                )
                if WEAK_PASSWORD_PATTERN.fullmatch(value):
                    findings.append(
                        ThreatFinding(
                            threat=ThreatCategory.WEAK_CREDENTIAL.value,
                            severity=Severity.CRITICAL.value,
                            description=f'Weak or default credential at "{current_path}"',
                            location=dict(location),
                        )
                    )

            for setting in INSECURE_SETTINGS:
                if setting.key.search(key) and _matches_insecure(value, setting.bad_values):
                    findings.append(
                        ThreatFinding(
                            threat=ThreatCategory.INSECURE_SETTING.value,
                            severity=Severity.HIGH.value,
                            description=f'{setting.description} at "{current_path}"',
                            location={"path": current_path, "key": key, "value": _stringify(value)},
                        )
                    )

            for setting in PERMISSIVE_SETTINGS:
                if setting.key.search(key) and _matches_permissive(value, setting.bad_values):
                    findings.append(
                        ThreatFinding(
                            threat=ThreatCategory.OVERLY_PERMISSIVE.value,
                            severity=Severity.HIGH.value,
                            description=f'{setting.description} at "{current_path}"',
                            location={"path": current_path, "key": key, "value": _stringify(value)},
                        )
                    )

            if isinstance(value, Mapping):
                walk(value, current_path)

    walk(config, "")
    return findings


def deduplicate_by_description(findings: Iterable[ThreatFinding]) -> List[ThreatFinding]:
    """Keep the first finding for each description."""
    seen = set()
    unique = []
    for finding in findings:
        if finding.description in seen:
            continue
        seen.add(finding.description)
        unique.append(finding)
    return unique
