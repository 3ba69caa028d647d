"""
Monitoring and alert policy derivation.

Pure functions of the accepted request. Higher security tiers poll more
often and alert on lower ceilings; the alert rule set is fixed apart from
the access rule, which is added only when the request asks for access
restriction.
"""

from typing import Dict, List, Tuple

from ..data.models.deployment import (
    AlertAction,
    AlertRule,
    AlertSeverity,
    DeploymentRequest,
    MonitoringConfig,
    MonitoringThresholds,
    MonitoringTier,
    SecurityTier,
)

# security tier -> (poll interval s, resource usage, tx volume, error rate %, suspicious tx)
TIER_POLICY: Dict[SecurityTier, Tuple[int, int, int, int, int]] = {
    SecurityTier.BASIC: (30, 500_000, 100, 5, 10),
    SecurityTier.PREMIUM: (15, 300_000, 75, 3, 10),
    SecurityTier.ENTERPRISE: (10, 200_000, 50, 1, 5),
}

LOG_RETENTION_DAYS: Dict[MonitoringTier, int] = {
    MonitoringTier.BASIC: 30,
    MonitoringTier.ADVANCED: 60,
    MonitoringTier.ENTERPRISE: 90,
}

ACCESS_RESTRICTION_TERMS = ("whitelist", "allowlist", "restrict", "authorized", "access control")


def _base_rules() -> List[AlertRule]:
    return [
        AlertRule(
            id="high_resource_usage",
            name="High Resource Usage",
            condition="resource_usage > threshold",
            severity=AlertSeverity.WARNING,
            action=AlertAction.NOTIFY,
            cooldown_seconds=300,
        ),
        AlertRule(
            id="suspicious_activity",
            name="Suspicious Activity Detected",
            condition="suspicious_transactions > threshold",
            severity=AlertSeverity.ERROR,
            action=AlertAction.PAUSE,
            cooldown_seconds=60,
        ),
        AlertRule(
            id="error_rate_spike",
            name="Error Rate Spike",
            condition="error_rate > threshold",
            severity=AlertSeverity.CRITICAL,
            action=AlertAction.SHUTDOWN,
            cooldown_seconds=30,
        ),
    ]


def requests_access_restriction(request: DeploymentRequest) -> bool:
    return any(
        term in requirement.lower()
        for requirement in request.custom_requirements
        for term in ACCESS_RESTRICTION_TERMS
    )


def configure(request: DeploymentRequest) -> Tuple[MonitoringConfig, List[AlertRule]]:
    """Derive the monitoring policy and alert rules for ``request``.

    Monitoring starts disabled; the pipeline enables it once the artifact
    is deployed and verified.
    """
    interval, resource_usage, volume, error_rate, suspicious = TIER_POLICY[request.security]
    config = MonitoringConfig(
        enabled=False,
        poll_interval=interval,
        thresholds=MonitoringThresholds(
            resource_usage=resource_usage,
            transaction_volume=volume,
            error_rate=error_rate,
            suspicious_activity=suspicious,
        ),
        log_retention_days=LOG_RETENTION_DAYS[request.monitoring_tier],
        metrics_collection=True,
    )

    rules = _base_rules()
    if requests_access_restriction(request):
        rules.append(
            AlertRule(
                id="unauthorized_access",
                name="Unauthorized Access Attempt",
                condition="access_from_unauthorized_address",
                severity=AlertSeverity.CRITICAL,
                action=AlertAction.SHUTDOWN,
                cooldown_seconds=0,
            )
        )
    return config, rules
