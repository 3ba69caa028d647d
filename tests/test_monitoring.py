"""Tests for monitoring policy derivation and risk assessment."""

from decimal import Decimal

import pytest

from trapforge.core.risk import assess_risk, risk_level
from trapforge.data.models.deployment import (
    AlertAction,
    ComplexityTier,
    DeploymentRequest,
    GeneratedArtifact,
    MonitoringTier,
    RiskLevel,
    SecurityTier,
)
from trapforge.monitoring import configure


def make_request(
    security=SecurityTier.BASIC,
    complexity=ComplexityTier.MEDIUM,
    monitoring=MonitoringTier.BASIC,
    requirements=(),
) -> DeploymentRequest:
    return DeploymentRequest(
        description="trap",
        complexity=complexity,
        security=security,
        network_id=560048,
        budget=Decimal("0.1"),
        monitoring_tier=monitoring,
        custom_requirements=tuple(requirements),
    )


def make_artifact(features, confidence=0.95) -> GeneratedArtifact:
    return GeneratedArtifact(
        source="pragma solidity ^0.8.19; contract T {}",
        name="T",
        description="t",
        security_features=list(features),
        confidence=confidence,
        backend="deterministic",
    )


class TestMonitoringPolicy:
    def test_starts_disabled(self):
        config, _ = configure(make_request())
        assert config.enabled is False

    def test_basic_tier(self):
        config, rules = configure(make_request())

        assert config.poll_interval == 30
        assert config.thresholds.resource_usage == 500_000
        assert config.thresholds.error_rate == 5
        assert [r.id for r in rules] == [
            "high_resource_usage",
            "suspicious_activity",
            "error_rate_spike",
        ]

    def test_higher_security_tightens_every_threshold(self):
        ordered = [
            configure(make_request(security=tier))[0]
            for tier in (SecurityTier.BASIC, SecurityTier.PREMIUM, SecurityTier.ENTERPRISE)
        ]
        for looser, tighter in zip(ordered, ordered[1:]):
            assert tighter.poll_interval <= looser.poll_interval
            assert tighter.thresholds.resource_usage <= looser.thresholds.resource_usage
            assert tighter.thresholds.transaction_volume <= looser.thresholds.transaction_volume
            assert tighter.thresholds.error_rate <= looser.thresholds.error_rate
            assert tighter.thresholds.suspicious_activity <= looser.thresholds.suspicious_activity

    @pytest.mark.parametrize(
        "tier,days",
        [(MonitoringTier.BASIC, 30), (MonitoringTier.ADVANCED, 60), (MonitoringTier.ENTERPRISE, 90)],
    )
    def test_log_retention_follows_monitoring_tier(self, tier, days):
        config, _ = configure(make_request(monitoring=tier))
        assert config.log_retention_days == days

    @pytest.mark.parametrize(
        "requirement",
        ["Whitelist only approved callers", "restrict withdrawals", "role based access control"],
    )
    def test_access_rule_added_on_request(self, requirement):
        _, rules = configure(make_request(requirements=[requirement]))

        access = [r for r in rules if r.id == "unauthorized_access"]
        assert len(access) == 1
        assert access[0].action == AlertAction.SHUTDOWN

    def test_no_access_rule_otherwise(self):
        _, rules = configure(make_request(requirements=["emit events for every call"]))
        assert "unauthorized_access" not in {r.id for r in rules}

    def test_same_request_same_policy(self):
        request = make_request(security=SecurityTier.PREMIUM, requirements=["allowlist"])
        first, second = configure(request), configure(request)

        assert first[0].to_dict() == second[0].to_dict()
        assert [r.to_dict() for r in first[1]] == [r.to_dict() for r in second[1]]


class TestRiskAssessment:
    @pytest.mark.parametrize(
        "score,level",
        [(10, RiskLevel.LOW), (29, RiskLevel.LOW), (30, RiskLevel.MEDIUM),
         (60, RiskLevel.HIGH), (80, RiskLevel.CRITICAL), (90, RiskLevel.CRITICAL)],
    )
    def test_levels(self, score, level):
        assert risk_level(score) == level

    def test_basic_medium_without_guard(self):
        risk = assess_risk(make_request(), make_artifact(["Access Control"]))

        assert risk.score == 70
        assert risk.level == RiskLevel.HIGH
        assert any("re-entrancy" in v for v in risk.vulnerabilities)

    def test_enterprise_simple_with_guard_is_clamped(self):
        risk = assess_risk(
            make_request(security=SecurityTier.ENTERPRISE, complexity=ComplexityTier.SIMPLE),
            make_artifact(["Reentrancy Guard", "Access Control", "Emergency Pause"]),
        )

        assert risk.score == 10
        assert risk.level == RiskLevel.LOW

    def test_score_stays_in_bounds(self):
        risk = assess_risk(
            make_request(security=SecurityTier.BASIC, complexity=ComplexityTier.ENTERPRISE),
            make_artifact([]),
        )
        assert risk.score == 85
        assert 10 <= risk.score <= 90

    def test_low_confidence_suggests_review(self):
        risk = assess_risk(make_request(), make_artifact([], confidence=0.85))
        assert any("Review the generated source" in m for m in risk.mitigations)
