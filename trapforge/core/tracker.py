"""
Pipeline state tracking.

The tracker is the only component that moves steps between states. Every
change is written through to the record store; a store failure is logged
and the in-memory aggregate stays authoritative for the running pipeline.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import structlog

from ..data.models.deployment import (
    Deployment,
    DeploymentStatus,
    PipelineStep,
    StepStatus,
)
from ..db.store import DeploymentStore
from ..errors import PersistenceError, StepTransitionError
from ..schemas.deployment_v1 import DeploymentProgressV1, NextUserActionV1

logger = structlog.get_logger()

AVERAGE_STEP_MINUTES = 25

ALLOWED_TRANSITIONS = {
    StepStatus.PENDING: {StepStatus.IN_PROGRESS},
    StepStatus.IN_PROGRESS: {StepStatus.COMPLETED, StepStatus.FAILED},
    StepStatus.COMPLETED: set(),
    StepStatus.FAILED: set(),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def derive_status(steps: List[PipelineStep]) -> DeploymentStatus:
    """Aggregate deployment status from its ordered step list."""
    if any(step.status == StepStatus.FAILED for step in steps):
        return DeploymentStatus.FAILED
    if steps and steps[-1].status == StepStatus.COMPLETED:
        return DeploymentStatus.DEPLOYED
    if not steps or steps[0].status != StepStatus.COMPLETED:
        return DeploymentStatus.ANALYZING
    return DeploymentStatus.DEPLOYING


def format_duration(minutes: int) -> str:
    """Render a duration the way progress reports show it."""
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'}"
    if minutes < 24 * 60:
        hours = math.ceil(minutes / 60)
        return f"{hours} hour{'' if hours == 1 else 's'}"
    days = math.ceil(minutes / (24 * 60))
    return f"{days} day{'' if days == 1 else 's'}"


class PipelineStateTracker:
    """Moves pipeline steps forward and keeps the stored record in sync."""

    def __init__(
        self,
        store: Optional[DeploymentStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.clock = clock

    def register(self, deployment: Deployment) -> None:
        """Create the stored record for a newly accepted deployment."""
        if self.store is None:
            return
        try:
            self.store.create(deployment.to_dict())
        except PersistenceError as e:
            logger.warning(
                "deployment_create_not_persisted",
                deployment_id=deployment.id,
                error=e.message,
            )

    def advance(
        self,
        deployment: Deployment,
        step_number: int,
        status: StepStatus,
        output: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> PipelineStep:
        """
        Move one step to ``status`` and recompute the deployment status.

        Args:
            deployment: The aggregate to update in place
            step_number: 1-based step number
            status: Target status; must be a legal successor of the current one
            output: Step output recorded on completion
            error: Failure reason recorded on failure

        Returns:
            The updated step

        Raises:
            StepTransitionError: If the step does not exist, the transition
                goes backwards, or an earlier step is not yet completed
        """
        try:
            step = deployment.get_step(step_number)
        except KeyError as e:
            raise StepTransitionError(message=str(e)) from e

        if status not in ALLOWED_TRANSITIONS[step.status]:
            raise StepTransitionError(
                message=f"Step {step_number} cannot move from "
                f"{step.status.value} to {status.value}",
            )

        if status == StepStatus.IN_PROGRESS:
            if deployment.status == DeploymentStatus.FAILED:
                raise StepTransitionError(
                    message=f"Deployment {deployment.id} has failed; "
                    f"step {step_number} cannot start",
                )
            blocking = [
                s.number
                for s in deployment.steps
                if s.number < step_number and s.status != StepStatus.COMPLETED
            ]
            if blocking:
                raise StepTransitionError(
                    message=f"Step {step_number} cannot start before steps {blocking} complete",
                )

        now = self.clock()
        step.status = status
        if status == StepStatus.IN_PROGRESS:
            step.started_at = now
        else:
            step.finished_at = now
            step.output = output
            step.error = error

        deployment.status = derive_status(deployment.steps)
        if deployment.is_terminal and deployment.completed_at is None:
            deployment.completed_at = now

        logger.info(
            "step_advanced",
            deployment_id=deployment.id,
            step=step_number,
            step_status=status.value,
            deployment_status=deployment.status.value,
        )
        self.save(deployment)
        return step

    def save(self, deployment: Deployment) -> bool:
        """Write the whole aggregate through to the store.

        Returns:
            True if the store accepted the write
        """
        if self.store is None:
            return False
        try:
            self.store.update(deployment.id, deployment.to_dict())
        except PersistenceError as e:
            logger.warning(
                "deployment_update_not_persisted",
                deployment_id=deployment.id,
                error=e.message,
            )
            return False
        return True

    def progress(self, deployment: Deployment) -> DeploymentProgressV1:
        """Summarize how far ``deployment`` has come."""
        steps = deployment.steps
        completed = sum(1 for s in steps if s.status == StepStatus.COMPLETED)
        current = next(
            (s.number for s in steps if s.status != StepStatus.COMPLETED), len(steps)
        )
        remaining = 0 if deployment.is_terminal else len(steps) - completed

        next_action = next(
            (
                s
                for s in steps
                if s.status == StepStatus.PENDING and s.requires_user_action
            ),
            None,
        )
        return DeploymentProgressV1(
            status=deployment.status.value,
            completed_steps=completed,
            total_steps=len(steps),
            current_step=current,
            estimated_time_remaining=format_duration(remaining * AVERAGE_STEP_MINUTES),
            next_user_action=(
                NextUserActionV1(
                    step_number=next_action.number,
                    title=next_action.title,
                    description=next_action.description,
                    action=next_action.action.value,
                    estimated_time=next_action.estimated_time,
                )
                if next_action and not deployment.is_terminal
                else None
            ),
        )
