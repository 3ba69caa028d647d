"""
Configuration packager.

Renders two documents for a deployment: a YAML settings document for
operators and a JSON descriptor for the monitoring network. Both are pure
functions of the deployment state so re-rendering an unchanged deployment
yields byte-identical output.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..config import NetworkConfig
from ..data.models.deployment import Deployment

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "deployment.yaml"
DESCRIPTOR_FILENAME = "trap.json"
DESCRIPTOR_VERSION = "1.0"


@dataclass(frozen=True)
class RenderedDocuments:
    settings: str
    descriptor: str


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class ConfigurationPackager:
    """Renders and writes the packaged documents of a deployment."""

    def __init__(self, network: NetworkConfig, output_root: str):
        self.network = network
        self.output_root = Path(output_root)

    def _address_url(self, address: str) -> Optional[str]:
        if not address:
            return None
        return f"{self.network.explorer_url.rstrip('/')}/address/{address}"

    def _unit_name(self, deployment: Deployment) -> str:
        if deployment.compiled_unit:
            return deployment.compiled_unit.name
        if deployment.artifact:
            return deployment.artifact.name
        return ""

    def settings_document(self, deployment: Deployment) -> Dict[str, Any]:
        unit = deployment.compiled_unit
        artifact = deployment.artifact
        monitoring = deployment.monitoring
        request = deployment.request
        return {
            "project": {
                "name": self._unit_name(deployment),
                "deployment_id": deployment.id,
                "owner": deployment.user_id,
                "created_at": _iso(deployment.created_at),
                "status": deployment.status.value,
            },
            "network": {
                "chain_id": self.network.chain_id,
                "name": self.network.name,
                "currency": self.network.currency,
                "explorer": self.network.explorer_url,
            },
            "compilation": {
                "compiler_version": unit.compiler_version if unit else None,
                "optimized": unit.optimized if unit else None,
                "optimizer_runs": unit.optimizer_runs if unit else None,
            },
            "contract": {
                "name": self._unit_name(deployment),
                "address": deployment.address or None,
                "tx_id": deployment.tx_id or None,
                "category": request.artifact_category.value,
                "generated_by": artifact.backend if artifact else None,
            },
            "monitoring": {
                "enabled": monitoring.enabled if monitoring else False,
                "poll_interval": monitoring.poll_interval if monitoring else None,
                "log_retention_days": monitoring.log_retention_days if monitoring else None,
                "metrics_collection": monitoring.metrics_collection if monitoring else False,
            },
            "thresholds": monitoring.thresholds.to_dict() if monitoring else {},
            "features": list(artifact.security_features) if artifact else [],
            "costs": {
                "budget": str(request.budget),
                "estimated": deployment.estimated_cost,
                "actual": deployment.actual_cost or None,
            },
            "risk": (
                {"level": deployment.risk.level.value, "score": deployment.risk.score}
                if deployment.risk
                else None
            ),
        }

    def descriptor_document(self, deployment: Deployment) -> Dict[str, Any]:
        unit = deployment.compiled_unit
        artifact = deployment.artifact
        return {
            "version": DESCRIPTOR_VERSION,
            "deployment": {
                "id": deployment.id,
                "status": deployment.status.value,
                "created_at": _iso(deployment.created_at),
                "completed_at": _iso(deployment.completed_at),
            },
            "network": {
                "chain_id": self.network.chain_id,
                "name": self.network.name,
                "address_url": self._address_url(deployment.address),
            },
            "unit": {
                "name": self._unit_name(deployment),
                "address": deployment.address or None,
                "tx_id": deployment.tx_id or None,
                "compiler_version": unit.compiler_version if unit else None,
                "entry_points": unit.entry_points if unit else [],
            },
            "security": {
                "features": list(artifact.security_features) if artifact else [],
                "risk": deployment.risk.to_dict() if deployment.risk else None,
            },
            "monitoring": deployment.monitoring.to_dict() if deployment.monitoring else None,
            "alerts": [rule.to_dict() for rule in deployment.alert_rules],
            "steps": [
                {"number": s.number, "title": s.title, "status": s.status.value}
                for s in deployment.steps
            ],
            "generation": (
                {
                    "backend": artifact.backend,
                    "confidence": artifact.confidence,
                    "name": artifact.name,
                }
                if artifact
                else None
            ),
        }

    def render(self, deployment: Deployment) -> RenderedDocuments:
        """Render both documents without touching the filesystem."""
        settings = yaml.safe_dump(
            self.settings_document(deployment),
            sort_keys=False,
            default_flow_style=False,
        )
        descriptor = json.dumps(
            self.descriptor_document(deployment), indent=2, sort_keys=True
        )
        return RenderedDocuments(settings=settings, descriptor=descriptor + "\n")

    def write(self, deployment: Deployment) -> Dict[str, str]:
        """Render and write both documents under ``<output_root>/<id>/``."""
        documents = self.render(deployment)
        target = self.output_root / deployment.id
        target.mkdir(parents=True, exist_ok=True)

        settings_path = target / SETTINGS_FILENAME
        descriptor_path = target / DESCRIPTOR_FILENAME
        settings_path.write_text(documents.settings, encoding="utf-8")
        descriptor_path.write_text(documents.descriptor, encoding="utf-8")
        logger.info(f"Packaged deployment {deployment.id} into {target}")
        return {
            "settings_path": str(settings_path),
            "descriptor_path": str(descriptor_path),
        }
