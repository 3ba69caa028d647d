"""End-to-end tests for the deployment pipeline runner."""

import json
from pathlib import Path

import pytest

from trapforge.core.steps import COMPILE, GENERATE, MONITOR, SUBMIT
from trapforge.data.models.deployment import DeploymentStatus, StepStatus
from trapforge.db.store import DeploymentStore
from trapforge.errors import PersistenceError, ValidationError

from conftest import CONTRACT_ADDRESS, TX_HASH, RecordingNotifier


class UnavailableStore(DeploymentStore):
    def create(self, record):
        raise PersistenceError(message="store offline")

    def update(self, deployment_id, fields):
        raise PersistenceError(message="store offline")

    def get(self, deployment_id):
        raise PersistenceError(message="store offline")

    def list_by_user(self, user_id):
        raise PersistenceError(message="store offline")


async def run_to_end(runner, raw, user_id="user-1", workers=1):
    await runner.start(workers)
    deployment = await runner.submit(raw, user_id)
    await runner.join()
    return deployment


class TestHappyPath:
    """A honeypot request with a working catalog and network."""

    @pytest.mark.asyncio
    async def test_deploys_catalog_unit(self, make_runner, make_raw_request, notifier, store):
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        assert deployment.status == DeploymentStatus.DEPLOYED
        assert all(s.status == StepStatus.COMPLETED for s in deployment.steps)
        assert deployment.address == CONTRACT_ADDRESS
        assert deployment.tx_id == TX_HASH
        assert deployment.actual_cost == "0.001200"
        assert deployment.estimated_cost == "0.001950"
        assert deployment.completed_at is not None

        compile_output = deployment.get_step(COMPILE).output
        assert compile_output["mode"] == "catalog"
        assert compile_output["unit"] == "AdvancedHoneypot"
        assert deployment.get_step(SUBMIT).output["within_budget"] is True

        stored = store.get(deployment.id)
        assert stored["status"] == "deployed"
        assert stored["address"] == CONTRACT_ADDRESS

        assert len(notifier.sent) == 1
        user_id, payload = notifier.sent[0]
        assert user_id == "user-1"
        assert payload["type"] == "success"
        assert payload["data"]["address"] == CONTRACT_ADDRESS

    @pytest.mark.asyncio
    async def test_terminal_deployment_leaves_the_cache(self, make_runner, make_raw_request):
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        assert deployment.id not in runner.deployments
        reloaded = runner.get_deployment(deployment.id)
        assert reloaded.status == DeploymentStatus.DEPLOYED
        assert reloaded.address == CONTRACT_ADDRESS

    @pytest.mark.asyncio
    async def test_packaged_documents_show_monitoring_enabled(self, make_runner, make_raw_request):
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        descriptor = json.loads(
            Path(deployment.get_step(MONITOR).output["descriptor_path"]).read_text()
        )
        assert deployment.monitoring.enabled is True
        assert descriptor["monitoring"]["enabled"] is True
        assert descriptor["unit"]["address"] == CONTRACT_ADDRESS
        assert Path(deployment.output_dir).is_dir()

        rendered = runner.packager.render(deployment)
        output = deployment.get_step(MONITOR).output
        assert Path(output["descriptor_path"]).read_text() == rendered.descriptor
        assert Path(output["settings_path"]).read_text() == rendered.settings
        assert descriptor["deployment"]["status"] == "deployed"
        assert descriptor["deployment"]["completed_at"] is not None
        assert {s["status"] for s in descriptor["steps"]} == {"completed"}

    @pytest.mark.asyncio
    async def test_progress_after_completion(self, make_runner, make_raw_request):
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        progress = runner.get_progress(deployment.id)
        assert progress.status == "deployed"
        assert progress.completed_steps == 6
        assert progress.estimated_time_remaining == "0 minutes"
        assert progress.next_user_action is None

    @pytest.mark.asyncio
    async def test_missing_catalog_unit_uses_default(self, make_runner, make_raw_request):
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request(description="multisig vault guard"))

        output = deployment.get_step(COMPILE).output
        assert output["selected"] == "MultiSigVault"
        assert output["unit"] == "SecurityTrap"
        assert output["mode"] == "default"

    @pytest.mark.asyncio
    async def test_over_budget_is_flagged_not_failed(self, make_runner, make_raw_request):
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request(budget="0.0001"))

        assert deployment.status == DeploymentStatus.DEPLOYED
        assert deployment.get_step(SUBMIT).output["within_budget"] is False
        assert deployment.get_step(SUBMIT).output["estimate"]["within_budget"] is False

    @pytest.mark.asyncio
    async def test_concurrent_deployments(self, make_runner, make_raw_request):
        runner = make_runner()
        await runner.start(workers=3)
        first = await runner.submit(make_raw_request(), "user-1")
        second = await runner.submit(make_raw_request(description="stop mev bots"), "user-2")
        await runner.join()

        assert first.status == DeploymentStatus.DEPLOYED
        assert second.status == DeploymentStatus.DEPLOYED
        assert first.id != second.id


class TestSubmissionEstimate:
    """The unit is priced before the creation transaction is sent."""

    @pytest.mark.asyncio
    async def test_network_estimate_is_recorded(self, make_runner, make_raw_request, fake_chain):
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        step = deployment.get_step(SUBMIT)
        assert step.output["estimate"] == {
            "cost": "0.000650",
            "resource_units": 650_000,
            "source": "network",
            "within_budget": True,
        }
        assert step.estimated_cost == "0.000650"
        assert fake_chain.calls.index("eth_estimateGas") < fake_chain.calls.index(
            "eth_sendTransaction"
        )

    @pytest.mark.asyncio
    async def test_static_estimate_when_node_cannot_estimate(
        self, make_runner, make_raw_request, fake_chain, store
    ):
        fake_chain.errors["eth_estimateGas"] = "execution reverted"
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        estimate = deployment.get_step(SUBMIT).output["estimate"]
        assert estimate["source"] == "static"
        assert estimate["cost"] == "0.002000"
        assert deployment.status == DeploymentStatus.DEPLOYED
        stored_steps = store.get(deployment.id)["steps"]
        assert stored_steps[SUBMIT - 1]["estimated_cost"] == "0.002000"


class TestManualBuild:
    @pytest.mark.asyncio
    async def test_generated_source_is_built_when_catalog_is_empty(
        self, make_runner, make_raw_request, fake_toolchain
    ):
        fake_toolchain.units = []
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        output = deployment.get_step(COMPILE).output
        assert output["mode"] == "manual_build"
        assert output["unit"] == "FundCaptureTrap"
        assert deployment.compiled_unit.name == "FundCaptureTrap"
        assert deployment.status == DeploymentStatus.DEPLOYED


class TestFailures:
    """A failing step stops the pipeline and notifies the user."""

    @pytest.mark.asyncio
    async def test_compile_failure(self, make_runner, make_raw_request, fake_toolchain, notifier):
        fake_toolchain.returncode = 1
        fake_toolchain.stderr = "ParserError: Expected ';'"
        runner = make_runner()

        deployment = await run_to_end(runner, make_raw_request())

        assert deployment.status == DeploymentStatus.FAILED
        assert deployment.get_step(GENERATE).status == StepStatus.COMPLETED
        assert deployment.get_step(COMPILE).status == StepStatus.FAILED
        assert "ParserError" in deployment.get_step(COMPILE).error
        assert all(
            s.status == StepStatus.PENDING for s in deployment.steps if s.number > COMPILE
        )

        _, payload = notifier.sent[0]
        assert payload["type"] == "error"
        assert payload["data"]["failedStep"] == COMPILE

    @pytest.mark.asyncio
    async def test_missing_deployer_credential(self, make_runner, make_raw_request, fake_chain):
        runner = make_runner(credential=None)
        deployment = await run_to_end(runner, make_raw_request())

        assert deployment.status == DeploymentStatus.FAILED
        assert deployment.get_step(SUBMIT).status == StepStatus.FAILED
        assert "eth_sendTransaction" not in fake_chain.calls

    @pytest.mark.asyncio
    async def test_reverted_submission(self, make_runner, make_raw_request, fake_chain):
        fake_chain.receipt["status"] = "0x0"
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        assert deployment.get_step(SUBMIT).status == StepStatus.FAILED
        assert deployment.address == ""

    @pytest.mark.asyncio
    async def test_rejected_request_creates_nothing(self, make_runner, make_raw_request, store):
        runner = make_runner()
        with pytest.raises(ValidationError):
            await runner.submit(make_raw_request(networkId=1), "user-1")

        assert runner.deployments == {}
        assert store.list_by_user("user-1") == []
        assert runner.queue.empty()


class TestDegradedCollaborators:
    @pytest.mark.asyncio
    async def test_store_outage_does_not_stop_the_pipeline(self, make_runner, make_raw_request):
        runner = make_runner(store=UnavailableStore())
        deployment = await run_to_end(runner, make_raw_request())

        assert deployment.status == DeploymentStatus.DEPLOYED
        assert runner.get_deployment(deployment.id) is deployment
        assert deployment.id in runner.deployments

    @pytest.mark.asyncio
    async def test_notifier_failure_is_swallowed(self, make_runner, make_raw_request):
        failing = RecordingNotifier(fail=True)
        runner = make_runner(notifier=failing)
        deployment = await run_to_end(runner, make_raw_request())

        assert deployment.status == DeploymentStatus.DEPLOYED
        assert failing.sent == []


class TestResume:
    """Unfinished deployments are picked up from the store after a restart."""

    @pytest.mark.asyncio
    async def test_pending_deployment_runs_to_completion(self, make_runner, make_raw_request, store):
        created = make_runner().create_deployment(make_raw_request(), "user-1")

        runner = make_runner()
        assert await runner.resume([created.id]) == [created.id]
        await runner.start()
        await runner.join()

        assert runner.get_deployment(created.id).status == DeploymentStatus.DEPLOYED
        assert store.get(created.id)["status"] == "deployed"

    @pytest.mark.asyncio
    async def test_interrupted_step_is_failed(self, make_runner, make_raw_request, store, notifier):
        first = make_runner()
        created = first.create_deployment(make_raw_request(), "user-1")
        first.tracker.advance(created, GENERATE, StepStatus.IN_PROGRESS)

        runner = make_runner()
        assert await runner.resume([created.id]) == []
        await runner.join()

        resumed = runner.get_deployment(created.id)
        assert resumed.status == DeploymentStatus.FAILED
        assert resumed.get_step(GENERATE).status == StepStatus.FAILED
        assert store.get(created.id)["status"] == "failed"
        assert notifier.sent[0][1]["type"] == "error"

    @pytest.mark.asyncio
    async def test_terminal_and_unknown_deployments_are_skipped(
        self, make_runner, make_raw_request
    ):
        runner = make_runner()
        deployment = await run_to_end(runner, make_raw_request())

        assert await make_runner().resume([deployment.id, "01UNKNOWN000000000000000000"]) == []
