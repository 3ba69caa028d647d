"""
Error taxonomy for the deployment pipeline.

Every error carries a stable ``code`` for programmatic handling and renders
to a JSON-friendly dict the same way across the package.
"""

from typing import Any, Dict, Optional


class TrapForgeError(Exception):
    """
    Base class for pipeline errors.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
    """

    kind = "pipeline_error"
    default_code = "PIPELINE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code or self.default_code
        self.message = message
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": self.kind,
            "code": self.code,
            "message": self.message,
        }


class ValidationError(TrapForgeError):
    """Inbound request rejected before any deployment is created."""

    kind = "validation_error"
    default_code = "INVALID_REQUEST"


class BackendError(TrapForgeError):
    """A single generation backend failed; the chain moves on."""

    kind = "backend_error"
    default_code = "BACKEND_FAILED"


class GenerationExhausted(TrapForgeError):
    """Every generation backend failed, including the local generator."""

    kind = "generation_exhausted"
    default_code = "GENERATION_EXHAUSTED"


class CompilationError(TrapForgeError):
    """The toolchain reported errors, timed out or could not be started."""

    kind = "compilation_error"
    default_code = "COMPILATION_FAILED"

    def __init__(self, message: str, code: Optional[str] = None, diagnostics=None):
        super().__init__(message, code)
        self.diagnostics = list(diagnostics or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["diagnostics"] = self.diagnostics
        return data


class SubmissionError(TrapForgeError):
    """Submitting or verifying a compiled unit on the network failed."""

    kind = "submission_error"
    default_code = "SUBMISSION_FAILED"


class NotInitialized(SubmissionError):
    """No submission credential is configured."""

    default_code = "NOT_INITIALIZED"


class PersistenceError(TrapForgeError):
    """The record store rejected a read or write."""

    kind = "persistence_error"
    default_code = "PERSISTENCE_FAILED"


class NotificationError(TrapForgeError):
    kind = "notification_error"
    default_code = "NOTIFICATION_FAILED"


class StepTransitionError(TrapForgeError):
    """A pipeline step was moved against its allowed transitions."""

    kind = "step_transition_error"
    default_code = "ILLEGAL_TRANSITION"
