from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DeploymentRequestV1(BaseModel):
    """
    Inbound deployment request.

    Accepts the camelCase wire names (``complexityTier``, ``networkId``...)
    as well as the snake_case field names. Tier values and requirements are
    kept raw here; the request gate maps unknown or wrong-typed values to
    their defaults and drops non-string requirements.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str = ""
    complexity_tier: Optional[Any] = Field(default=None, alias="complexityTier")
    security_tier: Optional[Any] = Field(default=None, alias="securityTier")
    network_id: Optional[int] = Field(default=None, alias="networkId")
    budget: Optional[Decimal] = None
    artifact_category: Optional[Any] = Field(default=None, alias="artifactCategory")
    monitoring_tier: Optional[Any] = Field(default=None, alias="monitoringTier")
    custom_requirements: Optional[List[Any]] = Field(
        default_factory=list, alias="customRequirements"
    )


class NextUserActionV1(BaseModel):
    """The next pending step that asks something of the user."""

    model_config = ConfigDict(populate_by_name=True)

    step_number: int = Field(alias="stepNumber")
    title: str
    description: str
    action: str
    estimated_time: str = Field(alias="estimatedTime")


class DeploymentProgressV1(BaseModel):
    """Outbound progress snapshot of one deployment."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    completed_steps: int = Field(alias="completedSteps")
    total_steps: int = Field(alias="totalSteps")
    current_step: int = Field(alias="currentStep")
    estimated_time_remaining: str = Field(alias="estimatedTimeRemaining")
    next_user_action: Optional[NextUserActionV1] = Field(
        default=None, alias="nextUserAction"
    )

    def to_json_dict(self) -> Dict[str, Any]:
        """Render with wire names, omitting an absent next user action."""
        return self.model_dump(by_alias=True, exclude_none=True)
