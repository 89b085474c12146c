"""Unit tests for security.risk module."""

import unittest

from skillbox.domain.models import ThreatFinding
from skillbox.security.risk import (
    NO_THREATS_ADVICE,
    build_risk_report,
    compute_risk_score,
    risk_level_for,
)


def _finding(threat, severity):
    return ThreatFinding(threat=threat, severity=severity, description=f"{threat}-{severity}")


class TestRiskScore(unittest.TestCase):
    """Test severity-weighted scoring."""

    def test_weights(self):
        findings = [
            _finding("xss", "critical"),
            _finding("xss", "high"),
            _finding("xss", "medium"),
            _finding("xss", "low"),
        ]
        self.assertEqual(compute_risk_score(findings), 25 + 15 + 8 + 3)

    def test_unknown_severity_weighs_five(self):
        self.assertEqual(compute_risk_score([_finding("xss", "info")]), 5)

    def test_capped_at_100(self):
        self.assertEqual(compute_risk_score([_finding("ssrf", "critical")] * 5), 100)

    def test_levels(self):
        self.assertEqual(risk_level_for(0), "NONE")
        self.assertEqual(risk_level_for(3), "LOW")
        self.assertEqual(risk_level_for(19), "LOW")
        self.assertEqual(risk_level_for(20), "MEDIUM")
        self.assertEqual(risk_level_for(40), "HIGH")
        self.assertEqual(risk_level_for(69), "HIGH")
        self.assertEqual(risk_level_for(70), "CRITICAL")


class TestRiskReport(unittest.TestCase):
    """Test report aggregation."""

    def test_empty(self):
        report = build_risk_report([])
        self.assertEqual(report.risk_score, 0)
        self.assertEqual(report.risk_level, "NONE")
        self.assertEqual(report.total_threats, 0)
        self.assertEqual(report.severity_counts, {"critical": 0, "high": 0, "medium": 0, "low": 0})
        self.assertEqual(report.remediations, [NO_THREATS_ADVICE])

    def test_counts_and_shared_remediation(self):
        report = build_risk_report([
            _finding("ssrf", "high"),
            _finding("malicious_uri", "critical"),
            _finding("ssrf", "high"),
        ])
        self.assertEqual(report.risk_score, 55)
        self.assertEqual(report.risk_level, "HIGH")
        self.assertEqual(report.threats_by_type, {"ssrf": 2, "malicious_uri": 1})
        self.assertEqual(report.severity_counts["high"], 2)
        self.assertEqual(len(report.remediations), 1)
        self.assertIn("Block internal/private IP ranges", report.remediations[0])

    def test_remediations_follow_category_order(self):
        report = build_risk_report([_finding("xss", "high"), _finding("sql_injection", "high")])
        self.assertTrue(report.remediations[0].startswith("Use parameterized queries"))
        self.assertTrue(report.remediations[1].startswith("Sanitize and escape"))


if __name__ == "__main__":
    unittest.main()
