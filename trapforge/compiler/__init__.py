"""Contract compilation through the external toolchain."""

from .catalog import DEFAULT_UNIT, resolve_unit, select_unit
from .toolchain import ArtifactCompiler, split_diagnostics

__all__ = [
    "ArtifactCompiler",
    "DEFAULT_UNIT",
    "resolve_unit",
    "select_unit",
    "split_diagnostics",
]
