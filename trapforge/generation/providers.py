"""
Remote generation backends.

Each backend is a single bounded HTTP call to a provider's public REST API.
Credentials come from the immutable ProviderCredential handed in at
construction; backends never read the environment themselves.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple

import httpx

from ..config import ProviderCredential
from ..data.models.deployment import DeploymentRequest, GeneratedArtifact
from ..errors import BackendError
from .base import (
    REMOTE_CONFIDENCE,
    SYSTEM_PROMPT,
    GenerationBackend,
    build_prompt,
    parse_generation_payload,
)
from .features import detect_security_features

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 4000


class RemoteBackend(GenerationBackend):
    """Shared request/response handling for HTTP generation providers."""

    def __init__(
        self,
        credential: ProviderCredential,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credential = credential
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def name(self) -> str:
        return self.credential.name

    @property
    def available(self) -> bool:
        return self.credential.configured

    @property
    def api_key(self) -> str:
        return self.credential.api_key.get_secret_value() if self.credential.api_key else ""

    @abstractmethod
    def build_request(self, prompt: str) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, json body) for one completion call."""
        pass

    @abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> str:
        """Pull the completion text out of the provider's response body."""
        pass

    async def generate(self, request: DeploymentRequest) -> GeneratedArtifact:
        if not self.available:
            raise BackendError(code="NOT_CONFIGURED", message=f"{self.name} has no credential")

        url, headers, body = self.build_request(build_prompt(request))
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport
        ) as client:
            try:
                response = await client.post(url, headers=headers, json=body)
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise BackendError(
                    code="BACKEND_TIMEOUT",
                    message=f"{self.name} timed out after {self.timeout_seconds}s",
                ) from e
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                raise BackendError(
                    code="RATE_LIMITED" if status == 429 else "BACKEND_HTTP_ERROR",
                    message=f"{self.name} returned HTTP {status}",
                ) from e
            except httpx.RequestError as e:
                raise BackendError(
                    code="BACKEND_UNREACHABLE", message=f"{self.name} request failed: {e}"
                ) from e

        try:
            text = self.extract_text(response.json())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise BackendError(
                code="MALFORMED_RESPONSE",
                message=f"{self.name} response has an unexpected shape: {e}",
            ) from e

        payload = parse_generation_payload(text)
        logger.info(f"Backend {self.name} generated contract {payload.name}")
        return GeneratedArtifact(
            source=payload.source,
            name=payload.name,
            description=payload.description,
            security_features=detect_security_features(payload.source),
            confidence=REMOTE_CONFIDENCE,
            backend=self.name,
        )


class OpenAIBackend(RemoteBackend):
    def build_request(self, prompt: str):
        return (
            f"{self.credential.base_url}/chat/completions",
            {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            {
                "model": self.credential.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": 0.2,
                "max_tokens": MAX_OUTPUT_TOKENS,
            },
        )

    def extract_text(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]


class AnthropicBackend(RemoteBackend):
    API_VERSION = "2023-06-01"

    def build_request(self, prompt: str):
        return (
            f"{self.credential.base_url}/messages",
            {
                "x-api-key": self.api_key,
                "anthropic-version": self.API_VERSION,
                "Content-Type": "application/json",
            },
            {
                "model": self.credential.model,
                "max_tokens": MAX_OUTPUT_TOKENS,
                "system": SYSTEM_PROMPT,
                "messages": [{"role": "user", "content": prompt}],
            },
        )

    def extract_text(self, data: Dict[str, Any]) -> str:
        return "".join(
            block["text"] for block in data["content"] if block.get("type") == "text"
        )


class GeminiBackend(RemoteBackend):
    def build_request(self, prompt: str):
        return (
            f"{self.credential.base_url}/models/{self.credential.model}:generateContent",
            {
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json",
            },
            {
                "contents": [{"parts": [{"text": f"{SYSTEM_PROMPT}\n\n{prompt}"}]}],
                "generationConfig": {
                    "temperature": 0.2,
                    "maxOutputTokens": MAX_OUTPUT_TOKENS,
                },
            },
        )

    def extract_text(self, data: Dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]
