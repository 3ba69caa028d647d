"""Test configuration and fixtures."""

import json
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from trapforge.compiler import ArtifactCompiler
from trapforge.config import NetworkConfig, SubmissionCredential, ToolchainConfig
from trapforge.core.runner import PipelineRunner
from trapforge.core.tracker import PipelineStateTracker
from trapforge.db import models  # noqa: F401
from trapforge.db.base import Base
from trapforge.db.services import SqlDeploymentStore
from trapforge.errors import NotificationError
from trapforge.generation import DeterministicGenerator, GenerationChain
from trapforge.network import Submitter
from trapforge.notify import Notifier
from trapforge.packaging import ConfigurationPackager

DEPLOYER = "0x" + "d" * 40
CONTRACT_ADDRESS = "0x" + "c" * 40
TX_HASH = "0x" + "ab" * 32
RUNTIME_CODE = "0x6080604052348015600f57600080fd5b50"


class FakeChain:
    """JSON-RPC node double served through httpx.MockTransport."""

    def __init__(self):
        self.calls: List[str] = []
        self.sent: List[Dict[str, Any]] = []
        self.receipt: Optional[Dict[str, Any]] = {
            "status": "0x1",
            "contractAddress": CONTRACT_ADDRESS,
            "gasUsed": hex(600_000),
            "effectiveGasPrice": hex(2_000_000_000),
        }
        self.pending_polls = 0
        self.transaction = {"gasPrice": hex(3_000_000_000)}
        self.code = RUNTIME_CODE
        self.gas_estimate = 650_000
        self.gas_price = 1_000_000_000
        self.errors: Dict[str, str] = {}
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append(method)
        if method in self.errors:
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": body["id"],
                    "error": {"code": -32000, "message": self.errors[method]},
                },
            )
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "result": self.result(method, body["params"])},
        )

    def result(self, method: str, params: List[Any]) -> Any:
        if method == "eth_sendTransaction":
            self.sent.append(params[0])
            return TX_HASH
        if method == "eth_getTransactionReceipt":
            if self.pending_polls > 0:
                self.pending_polls -= 1
                return None
            return self.receipt
        if method == "eth_getTransactionByHash":
            return self.transaction
        if method == "eth_getCode":
            return self.code
        if method == "eth_estimateGas":
            if isinstance(self.gas_estimate, str):
                return self.gas_estimate
            return hex(self.gas_estimate)
        if method == "eth_gasPrice":
            return hex(self.gas_price)
        if method == "eth_chainId":
            return hex(560048)
        raise AssertionError(f"Unexpected RPC method {method}")


def write_descriptor(root: Path, name: str, subdir: str = "contracts") -> Path:
    """Write a Hardhat-style descriptor (plus its debug file) for ``name``."""
    path = root / "artifacts" / subdir / f"{name}.sol" / f"{name}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(
            {
                "contractName": name,
                "abi": [
                    {"type": "constructor", "inputs": []},
                    {
                        "type": "function",
                        "name": "setPaused",
                        "inputs": [{"name": "state", "type": "bool"}],
                    },
                ],
                "bytecode": "0x60806040523480156100105760",
            }
        )
    )
    (path.parent / f"{name}.dbg.json").write_text(json.dumps({"buildInfo": "../build-info/x.json"}))
    return path


class FakeToolchain:
    """Stands in for the compiler process and writes descriptors like Hardhat."""

    def __init__(self, root: Path):
        self.root = root
        self.units: List[str] = ["SecurityTrap", "AdvancedHoneypot"]
        self.returncode = 0
        self.stdout = "Compiled 2 Solidity files successfully"
        self.stderr = ""
        self.exception: Optional[BaseException] = None
        self.invocations: List[Tuple[List[str], str]] = []

    def __call__(self, command, cwd, capture_output, text, timeout):
        self.invocations.append((list(command), cwd))
        if self.exception is not None:
            raise self.exception
        if self.returncode == 0:
            for name in self.units:
                write_descriptor(self.root, name)
            generated = Path(cwd) / "contracts" / "generated"
            if generated.exists():
                for source in generated.glob("*.sol"):
                    write_descriptor(self.root, source.stem, subdir="contracts/generated")
        return subprocess.CompletedProcess(command, self.returncode, self.stdout, self.stderr)


class RecordingNotifier(Notifier):
    """Collects notifications; raises on delivery when ``fail`` is set."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, Dict[str, Any]]] = []

    async def notify(self, user_id: str, payload: Dict[str, Any]) -> None:
        if self.fail:
            raise NotificationError(message="transport down")
        self.sent.append((user_id, payload))


@pytest.fixture
def make_raw_request() -> Callable[..., Dict[str, Any]]:
    """Factory for valid inbound request JSON with optional overrides."""

    def _make(**overrides) -> Dict[str, Any]:
        raw = {
            "description": "A honeypot that can capture funds from attackers",
            "complexityTier": "medium",
            "securityTier": "premium",
            "networkId": 560048,
            "budget": "0.05",
            "artifactCategory": "honeypot",
            "monitoringTier": "basic",
            "customRequirements": [],
        }
        raw.update(overrides)
        return raw

    return _make


@pytest.fixture
def network_config() -> NetworkConfig:
    return NetworkConfig(
        rpc_url="http://rpc.test",
        explorer_url="https://explorer.test",
        inclusion_timeout_seconds=1.0,
        receipt_poll_interval_seconds=0.0,
    )


@pytest.fixture
def credential() -> SubmissionCredential:
    return SubmissionCredential(account=DEPLOYER, signer_url="http://rpc.test")


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def toolchain_config(tmp_path) -> ToolchainConfig:
    project = tmp_path / "project"
    project.mkdir()
    return ToolchainConfig(command=["npx", "hardhat", "compile"], project_root=str(project))


@pytest.fixture
def fake_toolchain(toolchain_config) -> FakeToolchain:
    return FakeToolchain(Path(toolchain_config.project_root))


@pytest.fixture
def compiler(toolchain_config, fake_toolchain) -> ArtifactCompiler:
    return ArtifactCompiler(toolchain_config, runner=fake_toolchain)


@pytest_asyncio.fixture
async def submitter(network_config, credential, fake_chain):
    sub = Submitter(network_config, credential, transport=fake_chain.transport)
    yield sub
    await sub.close()


@pytest.fixture
def store():
    """SQL store backed by an in-memory SQLite database."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield SqlDeploymentStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def make_runner(tmp_path, compiler, network_config, credential, fake_chain, store, notifier):
    """Factory for a runner wired to the fakes; overrides replace collaborators."""
    created: List[PipelineRunner] = []

    def _make(**overrides) -> PipelineRunner:
        submitter = overrides.pop("submitter", None) or Submitter(
            network_config,
            overrides.pop("credential", credential),
            transport=fake_chain.transport,
        )
        kwargs = {
            "generator": GenerationChain([], DeterministicGenerator()),
            "compiler": compiler,
            "submitter": submitter,
            "packager": ConfigurationPackager(network_config, str(tmp_path / "out")),
            "tracker": PipelineStateTracker(overrides.pop("store", store)),
            "notifier": notifier,
        }
        kwargs.update(overrides)
        runner = PipelineRunner(**kwargs)
        created.append(runner)
        return runner

    yield _make

    for runner in created:
        if runner.is_running:
            await runner.stop()
        await runner.submitter.close()
