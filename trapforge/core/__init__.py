"""Pipeline orchestration: step plan, state tracking, risk and the runner."""

from .risk import assess_risk
from .runner import PipelineRunner, build_runner
from .tracker import PipelineStateTracker, derive_status

__all__ = [
    "PipelineRunner",
    "PipelineStateTracker",
    "assess_risk",
    "build_runner",
    "derive_status",
]
