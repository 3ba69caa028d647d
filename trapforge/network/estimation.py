"""
Deployment cost estimation.

Two estimates exist: a request-level figure derived from the requested tiers,
shown before anything is built, and a per-unit figure for a compiled unit,
read from the network when possible and from a static table otherwise.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Tuple

from ..compiler.catalog import DEFAULT_UNIT
from ..data.models.deployment import (
    ComplexityTier,
    DeploymentRequest,
    MonitoringTier,
    SecurityTier,
)

WEI_PER_ETH = Decimal(10) ** 18
COST_QUANTUM = Decimal("0.000001")

BASE_REQUEST_COST = Decimal("0.001")

COMPLEXITY_MULTIPLIERS: Dict[ComplexityTier, Decimal] = {
    ComplexityTier.SIMPLE: Decimal("1.0"),
    ComplexityTier.MEDIUM: Decimal("1.5"),
    ComplexityTier.ADVANCED: Decimal("2.0"),
    ComplexityTier.ENTERPRISE: Decimal("3.0"),
}

SECURITY_MULTIPLIERS: Dict[SecurityTier, Decimal] = {
    SecurityTier.BASIC: Decimal("1.0"),
    SecurityTier.PREMIUM: Decimal("1.3"),
    SecurityTier.ENTERPRISE: Decimal("1.8"),
}

MONITORING_MULTIPLIERS: Dict[MonitoringTier, Decimal] = {
    MonitoringTier.BASIC: Decimal("1.0"),
    MonitoringTier.ADVANCED: Decimal("1.2"),
    MonitoringTier.ENTERPRISE: Decimal("1.5"),
}

# unit name -> (resource units, cost in ETH)
STATIC_ESTIMATES: Dict[str, Tuple[int, Decimal]] = {
    "AdvancedHoneypot": (800_000, Decimal("0.002")),
    "SecurityTrap": (600_000, Decimal("0.0015")),
    "DroseraRegistry": (1_000_000, Decimal("0.003")),
    "FlashLoanDefender": (900_000, Decimal("0.0025")),
    "MEVProtectionSuite": (1_100_000, Decimal("0.003")),
    "MultiSigVault": (700_000, Decimal("0.002")),
    "ReentrancyShield": (850_000, Decimal("0.002")),
}


@dataclass(frozen=True)
class CostEstimate:
    resource_units: int
    cost: str
    source: str


def format_eth(value: Decimal) -> str:
    """Render an ETH amount with fixed precision."""
    return str(value.quantize(COST_QUANTUM, rounding=ROUND_HALF_UP))


def wei_to_eth(wei: int) -> str:
    return format_eth(Decimal(wei) / WEI_PER_ETH)


def estimate_request_cost(request: DeploymentRequest) -> str:
    """Tier-based estimate; non-decreasing in every tier."""
    cost = (
        BASE_REQUEST_COST
        * COMPLEXITY_MULTIPLIERS[request.complexity]
        * SECURITY_MULTIPLIERS[request.security]
        * MONITORING_MULTIPLIERS[request.monitoring_tier]
    )
    return format_eth(cost)


def static_estimate(unit_name: str) -> CostEstimate:
    """Table lookup used when the network cannot be asked."""
    units, cost = STATIC_ESTIMATES.get(unit_name, STATIC_ESTIMATES[DEFAULT_UNIT])
    return CostEstimate(resource_units=units, cost=format_eth(cost), source="static")
