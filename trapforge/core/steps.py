"""The fixed step plan every deployment runs through."""

from typing import List

from ..data.models.deployment import PipelineStep, StepAction

GENERATE = 1
COMPILE = 2
SUBMIT = 3
VERIFY = 4
PACKAGE = 5
MONITOR = 6

TOTAL_STEPS = 6


def build_steps(submission_cost: str) -> List[PipelineStep]:
    """Create the pending step list for a new deployment."""
    return [
        PipelineStep(
            number=GENERATE,
            title="Artifact Generation",
            description="Generate the trap contract source from the request",
            action=StepAction.VERIFY,
            estimated_time="5-10 minutes",
            estimated_cost="0.0001",
        ),
        PipelineStep(
            number=COMPILE,
            title="Compilation",
            description="Compile the selected or generated contract",
            action=StepAction.VERIFY,
            estimated_time="5-15 minutes",
        ),
        PipelineStep(
            number=SUBMIT,
            title="Contract Submission",
            description="Sign and submit the creation transaction with the deployer account",
            action=StepAction.SIGN,
            estimated_time="15-30 minutes",
            estimated_cost=submission_cost,
            requires_user_action=True,
        ),
        PipelineStep(
            number=VERIFY,
            title="Post-Deployment Verification",
            description="Confirm contract code exists at the deployed address",
            action=StepAction.VERIFY,
            estimated_time="5-10 minutes",
        ),
        PipelineStep(
            number=PACKAGE,
            title="Configuration Packaging",
            description="Render the settings and descriptor documents",
            action=StepAction.CONFIGURE,
            estimated_time="5-10 minutes",
        ),
        PipelineStep(
            number=MONITOR,
            title="Monitoring Setup",
            description="Activate monitoring and alert rules",
            action=StepAction.CONFIGURE,
            estimated_time="10-20 minutes",
            estimated_cost="0.0005",
        ),
    ]
