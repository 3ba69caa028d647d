"""
Deterministic local generator, the last link of the generation chain.

Template selection is a data table evaluated top to bottom; the final row
matches every request so the generator always produces an artifact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from string import Template
from typing import List, Optional, Sequence, Tuple

from ..data.models.deployment import DeploymentRequest, GeneratedArtifact
from ..errors import BackendError
from . import templates
from .base import FALLBACK_CONFIDENCE, GenerationBackend
from .features import detect_security_features

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateChoice:
    """One row of the selection table."""

    keywords: Tuple[str, ...]
    contract_name: str
    purpose: str
    template: Template

    def matches(self, text: str) -> bool:
        # An empty keyword tuple is the catch-all row.
        return not self.keywords or any(keyword in text for keyword in self.keywords)


TEMPLATE_TABLE: List[TemplateChoice] = [
    TemplateChoice(
        keywords=("honeypot", "capture", "fund", "bait"),
        contract_name="FundCaptureTrap",
        purpose="Lures hostile callers and captures the funds they send.",
        template=templates.FUND_CAPTURE,
    ),
    TemplateChoice(
        keywords=("flash loan", "flashloan", "flow", "volume", "drain"),
        contract_name="FlowWatcherTrap",
        purpose="Watches value flowing through a block and halts on abnormal spikes.",
        template=templates.FLOW_WATCHER,
    ),
    TemplateChoice(
        keywords=("mev", "sandwich", "front-run", "frontrun"),
        contract_name="MevShieldTrap",
        purpose="Pauses protected operations when ordering manipulation is reported.",
        template=templates.GUARD,
    ),
    TemplateChoice(
        keywords=("reentrancy", "re-entrancy", "state protection"),
        contract_name="ReentrancyShieldTrap",
        purpose="Guards balance-changing calls against re-entrant execution.",
        template=templates.GUARD,
    ),
    TemplateChoice(
        keywords=("multi-sig", "multisig", "vault"),
        contract_name="VaultGuardTrap",
        purpose="Restricts vault operations to an authorized set of operators.",
        template=templates.GUARD,
    ),
    TemplateChoice(
        keywords=(),
        contract_name="SecurityTrap",
        purpose="General purpose protective trap with pause and access control.",
        template=templates.GUARD,
    ),
]


def select_template(
    description: str, table: Sequence[TemplateChoice] = TEMPLATE_TABLE
) -> Optional[TemplateChoice]:
    """Return the first table row whose keywords appear in ``description``."""
    text = description.lower()
    for choice in table:
        if choice.matches(text):
            return choice
    return None


class DeterministicGenerator(GenerationBackend):
    """Renders a fixed template chosen from the request vocabulary."""

    def __init__(self, table: Sequence[TemplateChoice] = TEMPLATE_TABLE):
        self.table = list(table)

    @property
    def name(self) -> str:
        return "deterministic"

    async def generate(self, request: DeploymentRequest) -> GeneratedArtifact:
        choice = select_template(request.description, self.table)
        if choice is None:
            raise BackendError(
                code="NO_TEMPLATE",
                message="Template table has no row matching the request",
            )

        source = choice.template.substitute(
            name=choice.contract_name, purpose=choice.purpose
        )
        logger.info(f"Rendered local template {choice.contract_name}")
        return GeneratedArtifact(
            source=source,
            name=choice.contract_name,
            description=choice.purpose,
            security_features=detect_security_features(source),
            confidence=FALLBACK_CONFIDENCE,
            backend=self.name,
        )
