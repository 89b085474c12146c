"""Guard agent: threat scanning for text, prompts, URLs and configuration."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..clients.resolver import ClientPolicy, resolve_client
from ..context import SkillContext
from ..domain.models import ThreatFinding
from ..errors import INVALID_INPUT, MISSING_INPUT, SkillError, success_response
from ..redaction import redact_secrets
from ..security import (
    build_risk_report,
    deduplicate_by_description,
    run_deep_analysis,
    scan_config,
    scan_prompt_patterns,
    scan_text,
    scan_url,
)
from ..services.formatters import format_findings, format_report
from .base import Skill

logger = logging.getLogger(__name__)

VALID_ACTIONS = ("scan_text", "scan_prompt", "scan_url", "scan_config", "report")

REGEX_ONLY = "regex_only"
REGEX_AND_LLM = "regex_and_llm"
REGEX_WITH_LLM_FALLBACK = "regex_with_llm_fallback"

REPORT_INPUTS = ("text", "prompt", "url", "config")


def _require_string(params: Mapping[str, Any], key: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value.strip():
        raise SkillError(
            MISSING_INPUT,
            f'The "{key}" parameter is required and must be a non-empty string.',
        )
    return value


def _require_mapping(params: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = params.get(key)
    if not isinstance(value, Mapping):
        raise SkillError(MISSING_INPUT, f'The "{key}" parameter is required and must be an object.')
    return value


def _findings_response(
    action: str,
    findings: List[ThreatFinding],
    header: str,
    clean_message: str,
    style: str = "category",
    **metadata: Any,
) -> Dict[str, Any]:
    if not findings:
        return success_response(clean_message, action, threatsFound=0, threats=[], **metadata)
    return success_response(
        format_findings(findings, header.format(count=len(findings)), style),
        action,
        threatsFound=len(findings),
        threats=[finding.to_dict() for finding in findings],
        **metadata,
    )


class GuardAgentSkill(Skill):
    """Security scanner skill."""

    name = "guard-agent"
    valid_actions = VALID_ACTIONS
    failure_template = "Error during {action} operation: {detail}"

    def __init__(self, client_policy: ClientPolicy = ClientPolicy.GATEWAY_FIRST):
        self.client_policy = client_policy

    @staticmethod
    def redact(text: Any) -> Any:
        return redact_secrets(text)

    # ==================== Scanners ====================

    async def analyze_prompt(
        self,
        prompt: str,
        context: SkillContext,
        deep_analysis: bool = True,
    ) -> Tuple[List[ThreatFinding], str, Optional[Dict[str, Any]]]:
        """
        Regex scan plus optional LLM deep analysis.

        A missing client leaves the scan in regex_only mode; a failed LLM
        call keeps the regex findings and switches to
        regex_with_llm_fallback. Neither case is an error.

        Returns:
            (deduplicated findings, analysis mode, deep analysis verdict)
        """
        findings = scan_prompt_patterns(prompt)
        mode = REGEX_ONLY
        verdict: Optional[Dict[str, Any]] = None

        resolved = resolve_client(context, self.client_policy) if deep_analysis else None
        if resolved is not None:
            mode = REGEX_AND_LLM
            try:
                llm_findings, verdict = await run_deep_analysis(resolved.client, prompt, context.config)
                findings.extend(llm_findings)
            except Exception as exc:
                message = redact_secrets(str(exc) or "LLM analysis failed")
                logger.warning("Deep analysis via %s client failed, using regex results: %s",
                               resolved.type, message)
                verdict = {"error": message, "fallback": True}
                mode = REGEX_WITH_LLM_FALLBACK

        return deduplicate_by_description(findings), mode, verdict

    # ==================== Actions ====================

    async def _handle_scan_text(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        findings = scan_text(_require_string(params, "text"))
        return _findings_response(
            "scan_text",
            findings,
            "Found {count} security threat(s):",
            "No security threats detected in the provided text.",
            style="position",
        )

    async def _handle_scan_prompt(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        prompt = _require_string(params, "prompt")
        deep_analysis = params.get("deepAnalysis", True) is not False
        findings, mode, verdict = await self.analyze_prompt(prompt, context, deep_analysis)
        return _findings_response(
            "scan_prompt",
            findings,
            "Found {count} prompt injection threat(s):",
            "No prompt injection threats detected.",
            style="source",
            analysisMode=mode,
            deepAnalysis=verdict,
        )

    async def _handle_scan_url(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        url = _require_string(params, "url")
        return _findings_response(
            "scan_url",
            scan_url(url),
            "Found {count} URL safety issue(s):",
            "URL appears safe. No threats detected.",
            url=url,
        )

    async def _handle_scan_config(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        config = _require_mapping(params, "config")
        return _findings_response(
            "scan_config",
            scan_config(config),
            "Found {count} configuration security issue(s):",
            "Configuration appears secure. No issues detected.",
        )

    async def _handle_report(self, params: Mapping[str, Any], context: SkillContext) -> Dict[str, Any]:
        """Run every scanner with an input and aggregate into a risk report."""
        inputs = params.get("inputs") or {}
        if not isinstance(inputs, Mapping):
            raise SkillError(INVALID_INPUT, 'The "inputs" parameter must be an object.')

        merged: Dict[str, Any] = {}
        for key in REPORT_INPUTS:
            value = inputs.get(key)
            if value is None or value == "":
                value = params.get(key)
            if value is not None and value != "":
                merged[key] = value

        if not merged:
            raise SkillError(
                MISSING_INPUT,
                "At least one input (text, prompt, url, or config) is required for the report action.",
            )
        for key, value in merged.items():
            expected = Mapping if key == "config" else str
            if not isinstance(value, expected):
                kind = "an object" if key == "config" else "a string"
                raise SkillError(INVALID_INPUT, f'The "{key}" input must be {kind}.')

        per_scan: Dict[str, List[ThreatFinding]] = {}
        if "text" in merged:
            per_scan["scan_text"] = scan_text(merged["text"])
        if "prompt" in merged:
            per_scan["scan_prompt"], _, _ = await self.analyze_prompt(merged["prompt"], context)
        if "url" in merged:
            per_scan["scan_url"] = scan_url(merged["url"])
        if "config" in merged:
            per_scan["scan_config"] = scan_config(merged["config"])

        all_findings = [finding for findings in per_scan.values() for finding in findings]
        report = build_risk_report(all_findings)
        scan_counts = {scan: len(findings) for scan, findings in per_scan.items()}
        logger.info("Report: score=%d level=%s threats=%d", report.risk_score, report.risk_level,
                    report.total_threats)

        return success_response(
            format_report(report, scan_counts),
            "report",
            riskScore=report.risk_score,
            riskLevel=report.risk_level,
            totalThreats=report.total_threats,
            severityCounts=report.severity_counts,
            threatsByType=report.threats_by_type,
            remediations=report.remediations,
            scanResults={scan: {"threatsFound": count} for scan, count in scan_counts.items()},
        )
