"""
Deployment aggregate and its nested entities.

The Deployment owns every nested entity. ``to_dict()`` produces the record
shape kept by persistence and ``from_dict()`` rebuilds the aggregate from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ComplexityTier(Enum):
    """How elaborate the generated artifact should be."""
    SIMPLE = "simple"
    MEDIUM = "medium"
    ADVANCED = "advanced"
    ENTERPRISE = "enterprise"


class SecurityTier(Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class MonitoringTier(Enum):
    BASIC = "basic"
    ADVANCED = "advanced"
    ENTERPRISE = "enterprise"


class ArtifactCategory(Enum):
    HONEYPOT = "honeypot"
    SANDBOX = "sandbox"
    MONITORING = "monitoring"
    CUSTOM = "custom"


class StepStatus(Enum):
    """Pipeline step status. Transitions only move forward."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class StepAction(Enum):
    SIGN = "sign"
    APPROVE = "approve"
    SUBMIT = "submit"
    VERIFY = "verify"
    CONFIGURE = "configure"


class DeploymentStatus(Enum):
    """Aggregate deployment status derived from the step list."""
    ANALYZING = "analyzing"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AlertAction(Enum):
    NOTIFY = "notify"
    PAUSE = "pause"
    SHUTDOWN = "shutdown"
    CUSTOM = "custom"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class DeploymentRequest:
    """A normalized, accepted deployment request. Never mutated."""

    description: str
    complexity: ComplexityTier
    security: SecurityTier
    network_id: int
    budget: Decimal
    artifact_category: ArtifactCategory = ArtifactCategory.CUSTOM
    monitoring_tier: MonitoringTier = MonitoringTier.BASIC
    custom_requirements: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "complexity": self.complexity.value,
            "security": self.security.value,
            "network_id": self.network_id,
            "budget": str(self.budget),
            "artifact_category": self.artifact_category.value,
            "monitoring_tier": self.monitoring_tier.value,
            "custom_requirements": list(self.custom_requirements),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRequest":
        return cls(
            description=data["description"],
            complexity=ComplexityTier(data["complexity"]),
            security=SecurityTier(data["security"]),
            network_id=int(data["network_id"]),
            budget=Decimal(data["budget"]),
            artifact_category=ArtifactCategory(data.get("artifact_category", "custom")),
            monitoring_tier=MonitoringTier(data.get("monitoring_tier", "basic")),
            custom_requirements=tuple(data.get("custom_requirements", [])),
        )


@dataclass
class GeneratedArtifact:
    """Contract source produced by one generation backend."""

    source: str
    name: str
    description: str
    security_features: List[str]
    confidence: float
    backend: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "name": self.name,
            "description": self.description,
            "security_features": list(self.security_features),
            "confidence": self.confidence,
            "backend": self.backend,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedArtifact":
        return cls(
            source=data["source"],
            name=data["name"],
            description=data.get("description", ""),
            security_features=list(data.get("security_features", [])),
            confidence=float(data.get("confidence", 0.0)),
            backend=data.get("backend", "unknown"),
        )


@dataclass(frozen=True)
class CompiledUnit:
    """One compiled contract read back from the toolchain output."""

    name: str
    interface: Tuple[Dict[str, Any], ...]
    bytecode: str
    compiler_version: str
    optimized: bool
    optimizer_runs: int
    warnings: Tuple[str, ...] = ()

    @property
    def constructor_inputs(self) -> List[Dict[str, Any]]:
        for entry in self.interface:
            if entry.get("type") == "constructor":
                return list(entry.get("inputs", []))
        return []

    @property
    def entry_points(self) -> List[str]:
        return [
            entry["name"]
            for entry in self.interface
            if entry.get("type") == "function" and "name" in entry
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "interface": list(self.interface),
            "bytecode": self.bytecode,
            "compiler_version": self.compiler_version,
            "optimized": self.optimized,
            "optimizer_runs": self.optimizer_runs,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompiledUnit":
        return cls(
            name=data["name"],
            interface=tuple(data.get("interface", [])),
            bytecode=data["bytecode"],
            compiler_version=data.get("compiler_version", ""),
            optimized=bool(data.get("optimized", False)),
            optimizer_runs=int(data.get("optimizer_runs", 0)),
            warnings=tuple(data.get("warnings", [])),
        )


@dataclass
class PipelineStep:
    """A single stage of the deployment pipeline."""

    number: int
    title: str
    description: str
    action: StepAction
    estimated_time: str
    estimated_cost: str = "0"
    requires_user_action: bool = False
    status: StepStatus = StepStatus.PENDING
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "description": self.description,
            "action": self.action.value,
            "estimated_time": self.estimated_time,
            "estimated_cost": self.estimated_cost,
            "requires_user_action": self.requires_user_action,
            "status": self.status.value,
            "output": self.output,
            "error": self.error,
            "started_at": _iso(self.started_at),
            "finished_at": _iso(self.finished_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineStep":
        return cls(
            number=int(data["number"]),
            title=data["title"],
            description=data.get("description", ""),
            action=StepAction(data["action"]),
            estimated_time=data.get("estimated_time", ""),
            estimated_cost=data.get("estimated_cost", "0"),
            requires_user_action=bool(data.get("requires_user_action", False)),
            status=StepStatus(data.get("status", "pending")),
            output=data.get("output"),
            error=data.get("error"),
            started_at=_parse_dt(data.get("started_at")),
            finished_at=_parse_dt(data.get("finished_at")),
        )


@dataclass
class RiskAssessment:
    level: RiskLevel
    score: int
    vulnerabilities: List[str] = field(default_factory=list)
    mitigations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "score": self.score,
            "vulnerabilities": list(self.vulnerabilities),
            "mitigations": list(self.mitigations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskAssessment":
        return cls(
            level=RiskLevel(data["level"]),
            score=int(data["score"]),
            vulnerabilities=list(data.get("vulnerabilities", [])),
            mitigations=list(data.get("mitigations", [])),
        )


@dataclass
class MonitoringThresholds:
    resource_usage: int
    transaction_volume: int
    error_rate: int
    suspicious_activity: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_usage": self.resource_usage,
            "transaction_volume": self.transaction_volume,
            "error_rate": self.error_rate,
            "suspicious_activity": self.suspicious_activity,
        }


@dataclass
class MonitoringConfig:
    """Monitoring policy for a deployed artifact."""

    enabled: bool
    poll_interval: int
    thresholds: MonitoringThresholds
    log_retention_days: int = 30
    metrics_collection: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "poll_interval": self.poll_interval,
            "thresholds": self.thresholds.to_dict(),
            "log_retention_days": self.log_retention_days,
            "metrics_collection": self.metrics_collection,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitoringConfig":
        return cls(
            enabled=bool(data["enabled"]),
            poll_interval=int(data["poll_interval"]),
            thresholds=MonitoringThresholds(**data["thresholds"]),
            log_retention_days=int(data.get("log_retention_days", 30)),
            metrics_collection=bool(data.get("metrics_collection", True)),
        )


@dataclass
class AlertRule:
    id: str
    name: str
    condition: str
    severity: AlertSeverity
    action: AlertAction
    enabled: bool = True
    cooldown_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "condition": self.condition,
            "severity": self.severity.value,
            "action": self.action.value,
            "enabled": self.enabled,
            "cooldown_seconds": self.cooldown_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlertRule":
        return cls(
            id=data["id"],
            name=data["name"],
            condition=data["condition"],
            severity=AlertSeverity(data["severity"]),
            action=AlertAction(data["action"]),
            enabled=bool(data.get("enabled", True)),
            cooldown_seconds=int(data.get("cooldown_seconds", 0)),
        )


@dataclass
class Deployment:
    """Aggregate root for one deployment request and its pipeline."""

    id: str
    user_id: str
    request: DeploymentRequest
    steps: List[PipelineStep]
    created_at: datetime
    status: DeploymentStatus = DeploymentStatus.ANALYZING
    artifact: Optional[GeneratedArtifact] = None
    compiled_unit: Optional[CompiledUnit] = None
    address: str = ""
    tx_id: str = ""
    estimated_cost: str = "0"
    actual_cost: str = ""
    completed_at: Optional[datetime] = None
    risk: Optional[RiskAssessment] = None
    monitoring: Optional[MonitoringConfig] = None
    alert_rules: List[AlertRule] = field(default_factory=list)
    output_dir: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status in (DeploymentStatus.DEPLOYED, DeploymentStatus.FAILED)

    def get_step(self, number: int) -> PipelineStep:
        for step in self.steps:
            if step.number == number:
                return step
        raise KeyError(f"Deployment {self.id} has no step {number}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "request": self.request.to_dict(),
            "status": self.status.value,
            "steps": [step.to_dict() for step in self.steps],
            "artifact": self.artifact.to_dict() if self.artifact else None,
            "compiled_unit": (
                self.compiled_unit.to_dict() if self.compiled_unit else None
            ),
            "address": self.address,
            "tx_id": self.tx_id,
            "estimated_cost": self.estimated_cost,
            "actual_cost": self.actual_cost,
            "created_at": _iso(self.created_at),
            "completed_at": _iso(self.completed_at),
            "risk": self.risk.to_dict() if self.risk else None,
            "monitoring": self.monitoring.to_dict() if self.monitoring else None,
            "alert_rules": [rule.to_dict() for rule in self.alert_rules],
            "output_dir": self.output_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Deployment":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            request=DeploymentRequest.from_dict(data["request"]),
            steps=[PipelineStep.from_dict(step) for step in data["steps"]],
            created_at=_parse_dt(data["created_at"]),
            status=DeploymentStatus(data.get("status", "analyzing")),
            artifact=(
                GeneratedArtifact.from_dict(data["artifact"])
                if data.get("artifact")
                else None
            ),
            compiled_unit=(
                CompiledUnit.from_dict(data["compiled_unit"])
                if data.get("compiled_unit")
                else None
            ),
            address=data.get("address", ""),
            tx_id=data.get("tx_id", ""),
            estimated_cost=data.get("estimated_cost", "0"),
            actual_cost=data.get("actual_cost", ""),
            completed_at=_parse_dt(data.get("completed_at")),
            risk=RiskAssessment.from_dict(data["risk"]) if data.get("risk") else None,
            monitoring=(
                MonitoringConfig.from_dict(data["monitoring"])
                if data.get("monitoring")
                else None
            ),
            alert_rules=[AlertRule.from_dict(r) for r in data.get("alert_rules", [])],
            output_dir=data.get("output_dir", ""),
        )
