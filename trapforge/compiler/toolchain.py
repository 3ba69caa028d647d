"""
Artifact compiler backed by an external toolchain process.

The toolchain (Hardhat by default) compiles every contract in its project
and writes one JSON descriptor per unit under
``<artifacts>/**/<Name>.sol/<Name>.json``. The compiler clears stale
output, runs the toolchain with a timeout, separates real errors from
warnings and reads the descriptors back.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..config import ToolchainConfig
from ..data.models.deployment import CompiledUnit
from ..errors import CompilationError

logger = logging.getLogger(__name__)

# solc/Hardhat diagnostics: "ParserError: ...", "TypeError: ...", "Error HH600: ..."
_ERROR_LINE = re.compile(r"\b[A-Za-z]*Error\b(?:\s+HH\d+)?:")
_WARNING_LINE = re.compile(r"\bWarning\b(?:\s*\([0-9]+\))?:")

GENERATED_SUBDIR = "generated"


def split_diagnostics(*streams: str) -> Tuple[List[str], List[str]]:
    """Split toolchain output into (error lines, warning lines)."""
    errors: List[str] = []
    warnings: List[str] = []
    for stream in streams:
        for line in (stream or "").splitlines():
            line = line.strip()
            if not line:
                continue
            if _ERROR_LINE.search(line):
                errors.append(line)
            elif _WARNING_LINE.search(line):
                warnings.append(line)
    return errors, warnings


class ArtifactCompiler:
    """Runs the toolchain and turns its output into CompiledUnits."""

    def __init__(
        self,
        config: ToolchainConfig,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.config = config
        self.runner = runner
        self.project_root = Path(config.project_root)
        self.artifacts_path = self.project_root / config.artifacts_dir
        self.contracts_path = self.project_root / config.contracts_dir
        # One toolchain run at a time: runs share the project and artifacts tree.
        self._lock = threading.RLock()

    def compile_all(self) -> List[CompiledUnit]:
        """Compile the whole project and return every deployable unit.

        Raises:
            CompilationError: On non-zero exit, error diagnostics, timeout or
                a missing toolchain executable
        """
        with self._lock:
            return self._compile_all()

    def _compile_all(self) -> List[CompiledUnit]:
        self._clear_artifacts()
        logger.info(f"Running toolchain: {' '.join(self.config.command)}")

        try:
            completed = self.runner(
                self.config.command,
                cwd=str(self.project_root),
                capture_output=True,
                text=True,
                timeout=self.config.timeout_seconds,
            )
        except subprocess.TimeoutExpired as e:
            raise CompilationError(
                code="COMPILE_TIMEOUT",
                message=f"Toolchain did not finish within {self.config.timeout_seconds}s",
            ) from e
        except OSError as e:
            raise CompilationError(
                code="TOOLCHAIN_UNAVAILABLE",
                message=f"Could not start toolchain: {e}",
            ) from e

        errors, warnings = split_diagnostics(completed.stdout, completed.stderr)
        if completed.returncode != 0 or errors:
            diagnostics = errors or (completed.stderr or "").strip().splitlines()[-10:]
            summary = f": {diagnostics[0]}" if diagnostics else ""
            raise CompilationError(
                message=f"Toolchain exited with code {completed.returncode}{summary}",
                diagnostics=diagnostics,
            )
        for warning in warnings:
            logger.warning(f"Compiler warning: {warning}")

        units = self._read_units(tuple(warnings))
        logger.info(f"Compiled {len(units)} unit(s)")
        return units

    def compile_one(self, name: str) -> Optional[CompiledUnit]:
        """Compile the project and return the unit called ``name``, if any."""
        for unit in self.compile_all():
            if unit.name == name:
                return unit
        return None

    def compile_source(self, name: str, source: str) -> CompiledUnit:
        """Build a generated contract that is not part of the catalog.

        The source is written into the project's contracts directory for the
        duration of one compile and removed afterwards.
        """
        target = self.contracts_path / GENERATED_SUBDIR / f"{name}.sol"
        with self._lock:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source, encoding="utf-8")
            try:
                unit = self.compile_one(name)
            finally:
                target.unlink(missing_ok=True)

        if unit is None:
            raise CompilationError(
                code="UNIT_NOT_PRODUCED",
                message=f"Toolchain produced no deployable unit named {name}",
            )
        return unit

    def _clear_artifacts(self) -> None:
        if self.artifacts_path.exists():
            shutil.rmtree(self.artifacts_path)

    def _read_units(self, warnings: Tuple[str, ...]) -> List[CompiledUnit]:
        units: List[CompiledUnit] = []
        if not self.artifacts_path.exists():
            return units

        for path in sorted(self.artifacts_path.rglob("*.json")):
            if path.name.endswith(".dbg.json") or not path.parent.name.endswith(".sol"):
                continue
            unit = self._parse_descriptor(path, warnings)
            if unit is not None:
                units.append(unit)
        return units

    def _parse_descriptor(
        self, path: Path, warnings: Tuple[str, ...]
    ) -> Optional[CompiledUnit]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            name = data.get("contractName") or path.stem
            interface = data["abi"]
            bytecode = data["bytecode"]
            if not isinstance(interface, list) or not isinstance(bytecode, str):
                raise ValueError("abi must be a list and bytecode a string")
        except (OSError, ValueError, KeyError, AttributeError) as e:
            logger.warning(f"Skipping unreadable descriptor {path}: {e}")
            return None

        if bytecode in ("", "0x"):
            # Interfaces and abstract contracts have nothing to deploy.
            logger.debug(f"Skipping non-deployable unit {name}")
            return None

        return CompiledUnit(
            name=name,
            interface=tuple(interface),
            bytecode=bytecode,
            compiler_version=data.get("compilerVersion", self.config.compiler_version),
            optimized=bool(data.get("optimization", self.config.optimizer_enabled)),
            optimizer_runs=int(data.get("runs", self.config.optimizer_runs)),
            warnings=warnings,
        )
