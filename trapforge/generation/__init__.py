"""Contract generation: remote providers with a deterministic fallback."""

from .base import GenerationBackend, parse_generation_payload
from .chain import GenerationChain, build_generation_chain
from .features import detect_security_features
from .local import DeterministicGenerator, select_template

__all__ = [
    "DeterministicGenerator",
    "GenerationBackend",
    "GenerationChain",
    "build_generation_chain",
    "detect_security_features",
    "parse_generation_payload",
    "select_template",
]
