"""
Ordered fallback chain over generation backends.

Remote backends are tried once each, in order, with no backoff. Backends
without credentials are skipped. The deterministic generator closes the
chain, so callers always receive an artifact.
"""

from __future__ import annotations

from typing import Optional, Sequence

import httpx
import structlog

from ..config import ProviderCredentials
from ..data.models.deployment import DeploymentRequest, GeneratedArtifact
from ..errors import BackendError, GenerationExhausted
from .base import GenerationBackend
from .local import DeterministicGenerator
from .providers import AnthropicBackend, GeminiBackend, OpenAIBackend

logger = structlog.get_logger()


class GenerationChain:
    """Tries each backend in turn until one yields a valid artifact."""

    def __init__(
        self,
        backends: Sequence[GenerationBackend],
        fallback: Optional[GenerationBackend] = None,
    ):
        self.backends = list(backends)
        self.fallback = fallback or DeterministicGenerator()

    async def generate(self, request: DeploymentRequest) -> GeneratedArtifact:
        """Return the first valid artifact.

        Raises:
            GenerationExhausted: Only when the deterministic generator itself
                is misconfigured and produces nothing
        """
        for backend in self.backends:
            if not backend.available:
                logger.debug("generation_backend_skipped", backend=backend.name)
                continue
            try:
                artifact = await backend.generate(request)
            except BackendError as e:
                logger.warning(
                    "generation_backend_failed",
                    backend=backend.name,
                    code=e.code,
                    error=e.message,
                )
                continue
            except Exception:
                logger.exception("generation_backend_crashed", backend=backend.name)
                continue
            logger.info("generation_backend_succeeded", backend=backend.name)
            return artifact

        try:
            artifact = await self.fallback.generate(request)
        except BackendError as e:
            raise GenerationExhausted(
                message=f"All generation backends failed; fallback: {e.message}"
            ) from e
        logger.info("generation_fallback_used", backend=self.fallback.name)
        return artifact


def build_generation_chain(
    credentials: ProviderCredentials,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> GenerationChain:
    """Assemble the default provider order: OpenAI, Anthropic, Gemini, local."""
    timeout = credentials.timeout_seconds
    return GenerationChain(
        backends=[
            OpenAIBackend(credentials.openai, timeout, transport),
            AnthropicBackend(credentials.anthropic, timeout, transport),
            GeminiBackend(credentials.gemini, timeout, transport),
        ],
        fallback=DeterministicGenerator(),
    )
