"""
Request gate for inbound deployment requests.

This module implements a pure, testable gate that validates and normalizes
an inbound request. It returns an immutable DeploymentRequest or raises a
ValidationError with a stable error code. Nothing is persisted and no
deployment exists until the gate has accepted the request.

Rules:
- description is trimmed and must be non-empty
- budget must be a positive number
- networkId must be the single supported network
- a networkId that is not a number is an unsupported network
- tier fields never reject: unknown, missing or non-string values fall back
  to defaults
- customRequirements are trimmed, empty and non-string entries dropped,
  order kept
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

import pydantic
from pydantic import BaseModel

from trapforge.config import SUPPORTED_CHAIN_ID, SUPPORTED_NETWORK_NAME
from trapforge.data.models.deployment import (
    ArtifactCategory,
    ComplexityTier,
    DeploymentRequest,
    MonitoringTier,
    SecurityTier,
)
from trapforge.errors import ValidationError
from trapforge.schemas.deployment_v1 import DeploymentRequestV1

E = TypeVar("E", bound=Enum)

NETWORK_FIELDS = ("networkId", "network_id")


class GateConfig(BaseModel):
    """Configuration for request evaluation."""

    supported_network_id: int = SUPPORTED_CHAIN_ID
    supported_network_name: str = SUPPORTED_NETWORK_NAME
    default_complexity: ComplexityTier = ComplexityTier.MEDIUM
    default_security: SecurityTier = SecurityTier.BASIC
    default_monitoring: MonitoringTier = MonitoringTier.BASIC
    default_category: ArtifactCategory = ArtifactCategory.CUSTOM


def _normalize_tier(raw: Any, enum_cls: Type[E], default: E) -> E:
    """Map a raw tier string onto its enum, case-insensitively.

    Unknown, missing or non-string values fall back to ``default``; tiers
    are never a reason to reject a request.
    """
    if not isinstance(raw, str):
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        return default


def _normalize_requirements(raw: Optional[List[Any]]) -> tuple:
    cleaned = (item.strip() for item in raw or () if isinstance(item, str))
    return tuple(item for item in cleaned if item)


def _validate_description(description: str) -> str:
    description = description.strip()
    if not description:
        raise ValidationError(
            code="EMPTY_DESCRIPTION",
            message="A description of the artifact to deploy is required",
        )
    return description


def _validate_budget(budget: Optional[Decimal]) -> Decimal:
    if budget is None or not budget.is_finite() or budget <= 0:
        raise ValidationError(
            code="INVALID_BUDGET",
            message=f"Budget must be a positive number, got {budget}",
        )
    return budget


def validate_network(network_id: Optional[int], config: Optional[GateConfig] = None) -> int:
    """Reject any network other than the supported one."""
    config = config or GateConfig()
    if network_id != config.supported_network_id:
        raise ValidationError(
            code="UNSUPPORTED_NETWORK",
            message=f"Only {config.supported_network_name} "
            f"({config.supported_network_id}) is supported",
        )
    return network_id


def parse_request(raw: Union[Mapping[str, Any], DeploymentRequestV1]) -> DeploymentRequestV1:
    """Parse the inbound JSON shape, mapping schema errors to ValidationError."""
    if isinstance(raw, DeploymentRequestV1):
        return raw
    try:
        return DeploymentRequestV1.model_validate(dict(raw))
    except pydantic.ValidationError as e:
        errors = e.errors()
        if any(err["loc"] and err["loc"][0] in NETWORK_FIELDS for err in errors):
            raise ValidationError(
                code="UNSUPPORTED_NETWORK",
                message="networkId is not a recognized network id",
            ) from e
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in errors})
        raise ValidationError(
            code="INVALID_REQUEST",
            message=f"Malformed request fields: {', '.join(fields)}",
        ) from e


def evaluate(
    raw: Union[Mapping[str, Any], DeploymentRequestV1],
    config: Optional[GateConfig] = None,
) -> DeploymentRequest:
    """
    Validate and normalize an inbound deployment request.

    This is a pure function: no persistence, no network access.

    Args:
        raw: The inbound request, either as decoded JSON or a parsed
             DeploymentRequestV1
        config: Optional gate configuration; defaults to the supported
                network and documented tier defaults

    Returns:
        An immutable DeploymentRequest with normalized values

    Raises:
        ValidationError: If the request is malformed, has an empty
            description, a non-positive budget or targets an unsupported
            network
    """
    config = config or GateConfig()
    request = parse_request(raw)

    description = _validate_description(request.description)
    budget = _validate_budget(request.budget)
    network_id = validate_network(request.network_id, config)

    return DeploymentRequest(
        description=description,
        complexity=_normalize_tier(
            request.complexity_tier, ComplexityTier, config.default_complexity
        ),
        security=_normalize_tier(
            request.security_tier, SecurityTier, config.default_security
        ),
        network_id=network_id,
        budget=budget,
        artifact_category=_normalize_tier(
            request.artifact_category, ArtifactCategory, config.default_category
        ),
        monitoring_tier=_normalize_tier(
            request.monitoring_tier, MonitoringTier, config.default_monitoring
        ),
        custom_requirements=_normalize_requirements(request.custom_requirements),
    )


def request_summary(request: DeploymentRequest) -> Dict[str, Any]:
    """Short, log-friendly view of a normalized request."""
    return {
        "complexity": request.complexity.value,
        "security": request.security.value,
        "monitoring": request.monitoring_tier.value,
        "category": request.artifact_category.value,
        "requirements": len(request.custom_requirements),
    }
