"""Data models for deployments and their nested entities."""

from .deployment import (
    AlertAction,
    AlertRule,
    AlertSeverity,
    ArtifactCategory,
    CompiledUnit,
    ComplexityTier,
    Deployment,
    DeploymentRequest,
    DeploymentStatus,
    GeneratedArtifact,
    MonitoringConfig,
    MonitoringThresholds,
    MonitoringTier,
    PipelineStep,
    RiskAssessment,
    RiskLevel,
    SecurityTier,
    StepAction,
    StepStatus,
)

__all__ = [
    "AlertAction",
    "AlertRule",
    "AlertSeverity",
    "ArtifactCategory",
    "CompiledUnit",
    "ComplexityTier",
    "Deployment",
    "DeploymentRequest",
    "DeploymentStatus",
    "GeneratedArtifact",
    "MonitoringConfig",
    "MonitoringThresholds",
    "MonitoringTier",
    "PipelineStep",
    "RiskAssessment",
    "RiskLevel",
    "SecurityTier",
    "StepAction",
    "StepStatus",
]
