"""Pattern-based threat scanning and risk aggregation."""

from .deep_analysis import extract_json_object, run_deep_analysis
from .risk import build_risk_report
from .scanner import (
    deduplicate_by_description,
    scan_config,
    scan_prompt_patterns,
    scan_text,
    scan_url,
)

__all__ = [
    "scan_text",
    "scan_prompt_patterns",
    "scan_url",
    "scan_config",
    "deduplicate_by_description",
    "build_risk_report",
    "extract_json_object",
    "run_deep_analysis",
]
