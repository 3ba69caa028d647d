"""
Generation backend interface and the strict payload contract.

A backend either returns a fully populated GeneratedArtifact or raises
BackendError. Partially populated results never leave this package.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict

from pydantic import BaseModel, constr, model_validator

from ..data.models.deployment import DeploymentRequest, GeneratedArtifact
from ..errors import BackendError

REMOTE_CONFIDENCE = 0.85
FALLBACK_CONFIDENCE = 0.95

SYSTEM_PROMPT = (
    "You are a smart contract security engineer. You write self-contained "
    "Solidity ^0.8.19 contracts that protect on-chain assets."
)

_JSON_FENCE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_ERROR_ECHO_PREFIXES = ("error", "i'm sorry", "i am sorry", "sorry", "i cannot", "i can't")


class GenerationPayload(BaseModel):
    """Fields a remote backend must return. All are required and non-empty."""

    name: constr(strip_whitespace=True, min_length=1, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    description: constr(strip_whitespace=True, min_length=1)
    source: constr(strip_whitespace=True, min_length=1)

    @model_validator(mode="after")
    def check_source_declares_contract(self) -> "GenerationPayload":
        if "pragma solidity" not in self.source:
            raise ValueError("source has no pragma solidity directive")
        if not re.search(rf"\bcontract\s+{re.escape(self.name)}\b", self.source):
            raise ValueError(f"source does not declare contract {self.name}")
        return self


def build_prompt(request: DeploymentRequest) -> str:
    """Render the user prompt sent to every remote backend."""
    requirements = "\n".join(f"- {item}" for item in request.custom_requirements)
    return (
        f"Write a protective trap contract for this request:\n"
        f"{request.description}\n\n"
        f"Category: {request.artifact_category.value}\n"
        f"Complexity: {request.complexity.value}\n"
        f"Security level: {request.security.value}\n"
        f"Additional requirements:\n{requirements or '- none'}\n\n"
        "Respond with a single JSON object and nothing else, with keys "
        '"name" (the contract identifier), "description" (one sentence) and '
        '"source" (the complete Solidity file).'
    )


def _extract_json(text: str) -> Dict[str, Any]:
    match = _JSON_FENCE.search(text)
    if match:
        candidate = match.group(1)
    else:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise BackendError(code="MALFORMED_PAYLOAD", message="No JSON object in response")
        candidate = text[start : end + 1]
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise BackendError(code="MALFORMED_PAYLOAD", message=f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise BackendError(code="MALFORMED_PAYLOAD", message="Response JSON is not an object")
    return data


def parse_generation_payload(text: str) -> GenerationPayload:
    """Extract and validate a backend response.

    Raises:
        BackendError: If the text is empty, echoes an error, carries no
            JSON object or is missing any required field
    """
    stripped = (text or "").strip()
    if not stripped:
        raise BackendError(code="EMPTY_RESPONSE", message="Backend returned no content")
    if stripped.lower().startswith(_ERROR_ECHO_PREFIXES):
        raise BackendError(code="ERROR_ECHO", message=stripped[:200])

    data = _extract_json(stripped)
    try:
        return GenerationPayload.model_validate(data)
    except ValueError as e:
        raise BackendError(code="MALFORMED_PAYLOAD", message=str(e)) from e


class GenerationBackend(ABC):
    """Abstract base class for one link of the generation chain."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier recorded on the generated artifact."""
        pass

    @property
    def available(self) -> bool:
        """False when the backend lacks credentials and must be skipped."""
        return True

    @abstractmethod
    async def generate(self, request: DeploymentRequest) -> GeneratedArtifact:
        """Produce an artifact for ``request`` or raise BackendError."""
        pass
