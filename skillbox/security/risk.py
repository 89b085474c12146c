"""Risk scoring and remediation advice over a list of findings."""

from typing import Dict, Iterable, List, Tuple

from ..domain.models import RiskReport, ThreatCategory, ThreatFinding

SEVERITY_WEIGHTS: Dict[str, int] = {"critical": 25, "high": 15, "medium": 8, "low": 3}
UNKNOWN_SEVERITY_WEIGHT = 5
MAX_RISK_SCORE = 100

# (minimum score, level), checked top-down; a score of 0 is always NONE
RISK_LEVELS: Tuple[Tuple[int, str], ...] = (
    (70, "CRITICAL"),
    (40, "HIGH"),
    (20, "MEDIUM"),
    (1, "LOW"),
)

# Each advisory fires once if any of its categories is present
REMEDIATIONS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    ((ThreatCategory.SQL_INJECTION.value,),
     "Use parameterized queries or prepared statements to prevent SQL injection."),
    ((ThreatCategory.XSS.value,),
     "Sanitize and escape all user input before rendering in HTML. Use Content-Security-Policy headers."),
    ((ThreatCategory.COMMAND_INJECTION.value,),
     "Never pass user input directly to shell commands. Use allow-lists for permitted commands."),
    ((ThreatCategory.PATH_TRAVERSAL.value,),
     "Validate and sanitize file paths. Use canonical path resolution and deny traversal sequences."),
    ((ThreatCategory.SENSITIVE_DATA_EXPOSURE.value,),
     "Remove or rotate exposed credentials immediately. Use environment variables or secret managers."),
    ((ThreatCategory.SOCIAL_ENGINEERING.value,),
     "Educate users about social engineering tactics. Implement verification procedures."),
    ((ThreatCategory.PROMPT_INJECTION.value,),
     "Implement input validation for AI prompts. Use system-level guardrails and output filtering."),
    ((ThreatCategory.MALICIOUS_URI.value, ThreatCategory.SSRF.value),
     "Validate and sanitize URLs. Block internal/private IP ranges and dangerous URI schemes."),
    ((ThreatCategory.HOMOGRAPH_ATTACK.value,),
     "Use punycode normalization for domain validation. Warn users about IDN homograph attacks."),
    ((ThreatCategory.HARDCODED_SECRET.value, ThreatCategory.WEAK_CREDENTIAL.value),
     "Remove hardcoded secrets. Use a secrets manager or environment variables."),
    ((ThreatCategory.INSECURE_SETTING.value,),
     "Disable debug mode in production. Ensure SSL/TLS is enabled and certificates are verified."),
    ((ThreatCategory.OVERLY_PERMISSIVE.value,),
     "Apply the principle of least privilege. Restrict CORS origins, permissions, and allowed hosts."),
    ((ThreatCategory.IP_BASED_URL.value,),
     "Prefer domain-based URLs over IP-based ones. Validate against known-safe domains."),
)

NO_THREATS_ADVICE = "No threats detected. Continue monitoring for security issues."


def compute_risk_score(findings: Iterable[ThreatFinding]) -> int:
    raw = sum(SEVERITY_WEIGHTS.get(f.severity, UNKNOWN_SEVERITY_WEIGHT) for f in findings)
    return min(MAX_RISK_SCORE, raw)


def risk_level_for(score: int) -> str:
    if score <= 0:
        return "NONE"
    for threshold, level in RISK_LEVELS:
        if score >= threshold:
            return level
    return "LOW"


def remediations_for(threats_by_type: Dict[str, int]) -> List[str]:
    if not threats_by_type:
        return [NO_THREATS_ADVICE]
    return [
        advice
        for categories, advice in REMEDIATIONS
        if any(category in threats_by_type for category in categories)
    ]


def build_risk_report(findings: List[ThreatFinding]) -> RiskReport:
    """
    Aggregate findings into a scored report.

    The score is the capped sum of severity weights; it is recomputed on
    every call and never stored.
    """
    severity_counts = {"critical": 0, "high": 0, "medium": 0, "low": 0}
    threats_by_type: Dict[str, int] = {}
    for finding in findings:
        severity_counts[finding.severity] = severity_counts.get(finding.severity, 0) + 1
        threats_by_type[finding.threat] = threats_by_type.get(finding.threat, 0) + 1

    score = compute_risk_score(findings)
    return RiskReport(
        risk_score=score,
        risk_level=risk_level_for(score),
        total_threats=len(findings),
        severity_counts=severity_counts,
        threats_by_type=threats_by_type,
        remediations=remediations_for(threats_by_type),
    )
