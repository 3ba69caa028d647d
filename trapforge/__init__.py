"""
TrapForge

Turns a natural-language description of a protective trap contract into a
deployed, monitored contract on the supported test network.
"""

import importlib.metadata

__version__ = importlib.metadata.version("trapforge")

from .core.runner import PipelineRunner, build_runner
from .core.tracker import PipelineStateTracker
from .data.models import Deployment, DeploymentRequest, DeploymentStatus, StepStatus
from .errors import TrapForgeError, ValidationError

__all__ = [
    "Deployment",
    "DeploymentRequest",
    "DeploymentStatus",
    "PipelineRunner",
    "PipelineStateTracker",
    "StepStatus",
    "TrapForgeError",
    "ValidationError",
    "build_runner",
]
