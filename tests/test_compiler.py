"""Tests for the toolchain-backed artifact compiler and catalog selection."""

import subprocess
from pathlib import Path

import pytest

from trapforge.compiler import ArtifactCompiler, resolve_unit, select_unit, split_diagnostics
from trapforge.compiler.catalog import DEFAULT_UNIT
from trapforge.data.models.deployment import CompiledUnit
from trapforge.errors import CompilationError


def unit(name: str) -> CompiledUnit:
    return CompiledUnit(
        name=name,
        interface=(),
        bytecode="0x6080",
        compiler_version="0.8.19",
        optimized=True,
        optimizer_runs=200,
    )


class TestSplitDiagnostics:
    def test_errors_and_warnings_are_separated(self):
        stdout = "Compiling 3 files\nWarning: Unused local variable.\n"
        stderr = "ParserError: Expected ';' but got '}'\nError HH600: Compilation failed\n"

        errors, warnings = split_diagnostics(stdout, stderr)

        assert errors == [
            "ParserError: Expected ';' but got '}'",
            "Error HH600: Compilation failed",
        ]
        assert warnings == ["Warning: Unused local variable."]

    def test_plain_output_has_no_diagnostics(self):
        assert split_diagnostics("Compiled 2 Solidity files successfully", "") == ([], [])

    def test_none_streams_are_tolerated(self):
        assert split_diagnostics(None, None) == ([], [])


class TestCompileAll:
    """Compiling the project through the external toolchain."""

    def test_reads_every_deployable_unit(self, compiler, fake_toolchain, toolchain_config):
        units = compiler.compile_all()

        assert sorted(u.name for u in units) == ["AdvancedHoneypot", "SecurityTrap"]
        command, cwd = fake_toolchain.invocations[0]
        assert command == ["npx", "hardhat", "compile"]
        assert cwd == toolchain_config.project_root

    def test_unit_carries_interface_and_bytecode(self, compiler):
        compiled = {u.name: u for u in compiler.compile_all()}["SecurityTrap"]

        assert compiled.bytecode.startswith("0x6080")
        assert compiled.constructor_inputs == []
        assert compiled.entry_points == ["setPaused"]
        assert compiled.compiler_version == "0.8.19"

    def test_warnings_do_not_fail_the_build(self, compiler, fake_toolchain):
        fake_toolchain.stdout = "Warning: SPDX license identifier not provided\nCompiled"
        units = compiler.compile_all()

        assert units
        assert all(
            u.warnings == ("Warning: SPDX license identifier not provided",) for u in units
        )

    def test_stale_artifacts_are_cleared(self, compiler, fake_toolchain, toolchain_config):
        compiler.compile_all()
        fake_toolchain.units = ["SecurityTrap"]

        assert [u.name for u in compiler.compile_all()] == ["SecurityTrap"]

    def test_non_zero_exit_fails_with_diagnostics(self, compiler, fake_toolchain):
        fake_toolchain.returncode = 1
        fake_toolchain.stderr = "DeclarationError: Undeclared identifier.\n"

        with pytest.raises(CompilationError) as exc_info:
            compiler.compile_all()

        assert exc_info.value.diagnostics == ["DeclarationError: Undeclared identifier."]
        assert exc_info.value.to_dict()["diagnostics"] == exc_info.value.diagnostics

    def test_error_lines_fail_even_with_zero_exit(self, compiler, fake_toolchain):
        fake_toolchain.stdout = "TypeError: Invalid type for argument"
        with pytest.raises(CompilationError):
            compiler.compile_all()

    def test_timeout(self, compiler, fake_toolchain):
        fake_toolchain.exception = subprocess.TimeoutExpired(cmd="npx", timeout=60)
        with pytest.raises(CompilationError) as exc_info:
            compiler.compile_all()
        assert exc_info.value.code == "COMPILE_TIMEOUT"

    def test_missing_toolchain(self, compiler, fake_toolchain):
        fake_toolchain.exception = FileNotFoundError("npx")
        with pytest.raises(CompilationError) as exc_info:
            compiler.compile_all()
        assert exc_info.value.code == "TOOLCHAIN_UNAVAILABLE"

    def test_unreadable_and_empty_descriptors_are_skipped(
        self, toolchain_config, fake_toolchain
    ):
        root = Path(toolchain_config.project_root)

        def runner(command, cwd, capture_output, text, timeout):
            result = fake_toolchain(command, cwd, capture_output, text, timeout)
            broken = root / "artifacts" / "contracts" / "Broken.sol" / "Broken.json"
            broken.parent.mkdir(parents=True)
            broken.write_text("{not json")
            iface = root / "artifacts" / "contracts" / "ITrap.sol" / "ITrap.json"
            iface.parent.mkdir(parents=True)
            iface.write_text('{"contractName": "ITrap", "abi": [], "bytecode": "0x"}')
            return result

        units = ArtifactCompiler(toolchain_config, runner=runner).compile_all()
        assert sorted(u.name for u in units) == ["AdvancedHoneypot", "SecurityTrap"]


class TestCompileOneAndSource:
    def test_compile_one_returns_named_unit(self, compiler):
        assert compiler.compile_one("AdvancedHoneypot").name == "AdvancedHoneypot"

    def test_compile_one_missing_returns_none(self, compiler):
        assert compiler.compile_one("Nope") is None

    def test_compile_source_builds_and_cleans_up(self, compiler, toolchain_config):
        compiled = compiler.compile_source("FundCaptureTrap", "pragma solidity ^0.8.19;")

        assert compiled.name == "FundCaptureTrap"
        generated = Path(toolchain_config.project_root) / "contracts" / "generated"
        assert not (generated / "FundCaptureTrap.sol").exists()

    def test_compile_source_cleans_up_on_failure(self, compiler, fake_toolchain, toolchain_config):
        fake_toolchain.returncode = 1
        with pytest.raises(CompilationError):
            compiler.compile_source("FundCaptureTrap", "pragma solidity ^0.8.19;")
        generated = Path(toolchain_config.project_root) / "contracts" / "generated"
        assert not (generated / "FundCaptureTrap.sol").exists()

    def test_compile_source_without_output_unit(self, toolchain_config):
        def runner(command, cwd, capture_output, text, timeout):
            return subprocess.CompletedProcess(command, 0, "", "")

        compiler = ArtifactCompiler(toolchain_config, runner=runner)
        with pytest.raises(CompilationError) as exc_info:
            compiler.compile_source("FundCaptureTrap", "pragma solidity ^0.8.19;")
        assert exc_info.value.code == "UNIT_NOT_PRODUCED"


class TestCatalog:
    @pytest.mark.parametrize(
        "description,expected",
        [
            ("A honeypot for attackers", "AdvancedHoneypot"),
            ("flash loan attack prevention", "FlashLoanDefender"),
            ("stop MEV bots", "MEVProtectionSuite"),
            ("reentrancy protection", "ReentrancyShield"),
            ("multisig treasury", "MultiSigVault"),
            ("a registry of traps", "DroseraRegistry"),
            ("generic watcher", DEFAULT_UNIT),
        ],
    )
    def test_select_unit(self, description, expected):
        assert select_unit(description) == expected

    def test_resolve_prefers_selected_unit(self):
        units = [unit("SecurityTrap"), unit("AdvancedHoneypot")]
        assert resolve_unit("AdvancedHoneypot", units).name == "AdvancedHoneypot"

    def test_resolve_falls_back_to_default_unit(self):
        assert resolve_unit("MultiSigVault", [unit("SecurityTrap")]).name == "SecurityTrap"

    def test_resolve_without_catalog(self):
        assert resolve_unit("MultiSigVault", [unit("Other")]) is None
