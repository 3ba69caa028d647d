"""
Deployment pipeline runner.

Deployments advance through a step-indexed state machine. Work items are
``(deployment_id, step_number)`` pairs on an asyncio queue consumed by a
pool of worker coroutines; finishing a step enqueues the next one, so a
deployment never has two stages running at once while separate deployments
progress concurrently.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
)

import structlog
from ulid import ULID

from ..compiler import ArtifactCompiler, resolve_unit, select_unit
from ..config import Settings
from ..data.models.deployment import Deployment, DeploymentStatus, StepStatus
from ..db.store import DeploymentStore
from ..errors import CompilationError, PersistenceError, SubmissionError, TrapForgeError
from ..generation import GenerationChain, build_generation_chain
from ..monitoring import configure
from ..network import Submitter, estimate_request_cost
from ..notify import LogNotifier, Notifier, build_notification
from ..packaging import ConfigurationPackager
from ..policy.request_gate import GateConfig, evaluate, request_summary
from ..schemas.deployment_v1 import DeploymentProgressV1
from . import steps
from .risk import assess_risk
from .tracker import PipelineStateTracker, utcnow

logger = structlog.get_logger()

StepHandler = Callable[[Deployment], Awaitable[Dict[str, Any]]]


class PipelineRunner:
    """
    Runs deployments through generation, compilation, submission,
    verification, packaging and monitoring setup.
    """

    def __init__(
        self,
        generator: GenerationChain,
        compiler: ArtifactCompiler,
        submitter: Submitter,
        packager: ConfigurationPackager,
        tracker: Optional[PipelineStateTracker] = None,
        notifier: Optional[Notifier] = None,
        gate_config: Optional[GateConfig] = None,
        constructor_args: Sequence[Any] = (),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.generator = generator
        self.compiler = compiler
        self.submitter = submitter
        self.packager = packager
        self.tracker = tracker or PipelineStateTracker(clock=clock)
        self.notifier = notifier or LogNotifier()
        self.gate_config = gate_config or GateConfig()
        self.constructor_args = list(constructor_args)
        self.clock = clock

        self.queue: asyncio.Queue = asyncio.Queue()
        self.deployments: Dict[str, Deployment] = {}
        self.workers: List[asyncio.Task] = []
        self.is_running = False
        self._notifications: Set[asyncio.Task] = set()
        self._handlers: Dict[int, StepHandler] = {
            steps.GENERATE: self._generate,
            steps.COMPILE: self._compile,
            steps.SUBMIT: self._submit,
            steps.VERIFY: self._verify,
            steps.PACKAGE: self._package,
            steps.MONITOR: self._monitor,
        }

    @property
    def store(self) -> Optional[DeploymentStore]:
        return self.tracker.store

    async def start(self, workers: int = 1) -> None:
        """Start the worker pool."""
        self.is_running = True
        for index in range(workers):
            self.workers.append(asyncio.create_task(self._worker(index)))
        logger.info("runner_started", workers=workers)

    async def stop(self) -> None:
        """Stop the workers. Stages already running are cancelled."""
        self.is_running = False
        for task in self.workers:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self.workers, return_exceptions=True)
        self.workers.clear()
        logger.info("runner_stopped")

    async def join(self) -> None:
        """Wait until every queued step and pending notification has finished."""
        await self.queue.join()
        if self._notifications:
            await asyncio.gather(*list(self._notifications), return_exceptions=True)

    def create_deployment(self, raw: Mapping[str, Any], user_id: str) -> Deployment:
        """
        Validate a request and create its deployment without scheduling it.

        Raises:
            ValidationError: If the request is rejected; nothing is created
        """
        request = evaluate(raw, self.gate_config)
        estimated_cost = estimate_request_cost(request)
        monitoring, alert_rules = configure(request)

        deployment = Deployment(
            id=str(ULID()),
            user_id=user_id,
            request=request,
            steps=steps.build_steps(estimated_cost),
            created_at=self.clock(),
            estimated_cost=estimated_cost,
            monitoring=monitoring,
            alert_rules=alert_rules,
        )
        self.deployments[deployment.id] = deployment
        self.tracker.register(deployment)
        logger.info(
            "deployment_created",
            deployment_id=deployment.id,
            user_id=user_id,
            estimated_cost=estimated_cost,
            **request_summary(request),
        )
        return deployment

    async def submit(self, raw: Mapping[str, Any], user_id: str) -> Deployment:
        """Accept a request and queue its first step."""
        deployment = self.create_deployment(raw, user_id)
        await self.queue.put((deployment.id, steps.GENERATE))
        return deployment

    async def resume(self, deployment_ids: Iterable[str]) -> List[str]:
        """
        Re-queue unfinished deployments after a restart.

        Steps left in progress by the previous process cannot be re-run, so
        they are marked failed; otherwise the first pending step is queued.

        Returns:
            Ids of the deployments that were queued again
        """
        resumed = []
        for deployment_id in deployment_ids:
            deployment = self._load(deployment_id, use_cache=False)
            if deployment is None or deployment.is_terminal:
                continue

            interrupted = [s for s in deployment.steps if s.status == StepStatus.IN_PROGRESS]
            if interrupted:
                self.tracker.advance(
                    deployment,
                    interrupted[0].number,
                    StepStatus.FAILED,
                    error="Interrupted by a restart before the step finished",
                )
                self._finish(deployment)
                continue

            pending = next(
                (s for s in deployment.steps if s.status == StepStatus.PENDING), None
            )
            if pending is not None:
                await self.queue.put((deployment.id, pending.number))
                resumed.append(deployment.id)
                logger.info("deployment_resumed", deployment_id=deployment.id, step=pending.number)
        return resumed

    def get_deployment(self, deployment_id: str) -> Optional[Deployment]:
        return self._load(deployment_id)

    def get_progress(self, deployment_id: str) -> Optional[DeploymentProgressV1]:
        deployment = self._load(deployment_id)
        if deployment is None:
            return None
        return self.tracker.progress(deployment)

    async def run_step(self, deployment_id: str, step_number: int) -> None:
        """Execute one step and queue its successor on success."""
        deployment = self._load(deployment_id)
        if deployment is None:
            logger.error("deployment_not_found", deployment_id=deployment_id)
            return
        if deployment.is_terminal:
            return

        log = logger.bind(deployment_id=deployment_id, step=step_number)
        handler = self._handlers[step_number]
        self.tracker.advance(deployment, step_number, StepStatus.IN_PROGRESS)
        log.info("step_start")

        try:
            output = await handler(deployment)
        except TrapForgeError as e:
            log.warning("step_failed", code=e.code, error=e.message)
            self.tracker.advance(deployment, step_number, StepStatus.FAILED, error=str(e))
            self._finish(deployment)
            return
        except Exception as e:
            log.exception("step_crashed")
            self.tracker.advance(
                deployment, step_number, StepStatus.FAILED, error=f"Unexpected error: {e}"
            )
            self._finish(deployment)
            return

        self.tracker.advance(deployment, step_number, StepStatus.COMPLETED, output=output)
        log.info("step_complete")
        if step_number < steps.TOTAL_STEPS:
            await self.queue.put((deployment_id, step_number + 1))
        else:
            self._finish(deployment)

    async def _worker(self, index: int) -> None:
        while self.is_running:
            try:
                deployment_id, step_number = await asyncio.wait_for(
                    self.queue.get(), timeout=1.0
                )
            except asyncio.TimeoutError:
                continue

            try:
                await self.run_step(deployment_id, step_number)
            except Exception:
                logger.exception(
                    "worker_error", worker=index, deployment_id=deployment_id, step=step_number
                )
            finally:
                self.queue.task_done()

    def _load(self, deployment_id: str, use_cache: bool = True) -> Optional[Deployment]:
        if use_cache and deployment_id in self.deployments:
            return self.deployments[deployment_id]
        if self.store is None:
            return self.deployments.get(deployment_id)
        try:
            record = self.store.get(deployment_id)
        except PersistenceError as e:
            logger.warning("deployment_load_failed", deployment_id=deployment_id, error=e.message)
            return self.deployments.get(deployment_id)
        if record is None:
            return None
        deployment = Deployment.from_dict(record)
        self.deployments[deployment_id] = deployment
        return deployment

    async def _generate(self, deployment: Deployment) -> Dict[str, Any]:
        artifact = await self.generator.generate(deployment.request)
        deployment.artifact = artifact
        deployment.risk = assess_risk(deployment.request, artifact)
        return {
            "contract_name": artifact.name,
            "backend": artifact.backend,
            "confidence": artifact.confidence,
            "security_features": list(artifact.security_features),
            "risk_level": deployment.risk.level.value,
        }

    async def _compile(self, deployment: Deployment) -> Dict[str, Any]:
        artifact = deployment.artifact
        if artifact is None:
            raise CompilationError(code="NO_ARTIFACT", message="Nothing was generated to compile")

        selected = select_unit(deployment.request.description)
        units = await asyncio.to_thread(self.compiler.compile_all)
        unit = resolve_unit(selected, units)
        if unit is not None:
            mode = "catalog" if unit.name == selected else "default"
        else:
            logger.info(
                "catalog_unavailable",
                deployment_id=deployment.id,
                selected=selected,
                compiled=len(units),
            )
            unit = await asyncio.to_thread(
                self.compiler.compile_source, artifact.name, artifact.source
            )
            mode = "manual_build"

        deployment.compiled_unit = unit
        return {
            "unit": unit.name,
            "selected": selected,
            "mode": mode,
            "compiler_version": unit.compiler_version,
            "warnings": list(unit.warnings),
        }

    async def _submit(self, deployment: Deployment) -> Dict[str, Any]:
        unit = deployment.compiled_unit
        if unit is None:
            raise SubmissionError(code="NO_COMPILED_UNIT", message="No compiled unit to submit")

        budget = deployment.request.budget
        estimate = await self.submitter.estimate(unit, self.constructor_args)
        deployment.get_step(steps.SUBMIT).estimated_cost = estimate.cost
        estimate_within_budget = Decimal(estimate.cost) <= budget
        if not estimate_within_budget:
            logger.warning(
                "deployment_estimate_over_budget",
                deployment_id=deployment.id,
                estimate=estimate.cost,
                source=estimate.source,
                budget=str(budget),
            )
        self.tracker.save(deployment)

        result = await self.submitter.submit(
            unit, self.constructor_args, deployment.request.network_id
        )
        deployment.address = result.address
        deployment.tx_id = result.tx_id
        deployment.actual_cost = result.cost

        output = result.to_dict()
        output["estimate"] = {
            "cost": estimate.cost,
            "resource_units": estimate.resource_units,
            "source": estimate.source,
            "within_budget": estimate_within_budget,
        }
        output["within_budget"] = Decimal(result.cost) <= budget
        if not output["within_budget"]:
            logger.warning(
                "deployment_over_budget",
                deployment_id=deployment.id,
                cost=result.cost,
                budget=str(budget),
            )
        return output

    async def _verify(self, deployment: Deployment) -> Dict[str, Any]:
        code_size = await self.submitter.verify(deployment.address)
        return {"address": deployment.address, "code_size": code_size}

    async def _package(self, deployment: Deployment) -> Dict[str, Any]:
        paths = self.packager.write(deployment)
        deployment.output_dir = str(self.packager.output_root / deployment.id)
        return paths

    async def _monitor(self, deployment: Deployment) -> Dict[str, Any]:
        if deployment.monitoring is None:
            deployment.monitoring, deployment.alert_rules = configure(deployment.request)
        deployment.monitoring.enabled = True
        paths = self.packager.write(deployment)
        return {
            "enabled": True,
            "poll_interval": deployment.monitoring.poll_interval,
            "alert_rules": [rule.id for rule in deployment.alert_rules if rule.enabled],
            **paths,
        }

    def _finish(self, deployment: Deployment) -> None:
        """
        Settle a terminal deployment.

        Packaged documents are re-rendered from the final state, the
        deployment leaves the in-memory cache once the store holds that
        state, and the notification is emitted without waiting for delivery.
        """
        if deployment.output_dir:
            self._repackage(deployment)
        if self.tracker.save(deployment):
            self.deployments.pop(deployment.id, None)

        name = deployment.compiled_unit.name if deployment.compiled_unit else "Trap"
        data = {
            "deploymentId": deployment.id,
            "status": deployment.status.value,
            "address": deployment.address or None,
            "txId": deployment.tx_id or None,
            "actualCost": deployment.actual_cost or None,
        }
        if deployment.status == DeploymentStatus.DEPLOYED:
            payload = build_notification(
                "success",
                "Deployment Complete",
                f"{name} is deployed at {deployment.address}",
                data,
            )
        else:
            failed = next(
                (s for s in deployment.steps if s.status == StepStatus.FAILED), None
            )
            reason = (
                f"Step {failed.number} ({failed.title}) failed: {failed.error}"
                if failed
                else "Deployment failed"
            )
            data["failedStep"] = failed.number if failed else None
            payload = build_notification("error", "Deployment Failed", reason, data)

        task = asyncio.create_task(self._deliver(deployment.user_id, payload))
        self._notifications.add(task)
        task.add_done_callback(self._notifications.discard)

    def _repackage(self, deployment: Deployment) -> None:
        try:
            self.packager.write(deployment)
        except OSError as e:
            logger.warning("repackage_failed", deployment_id=deployment.id, error=str(e))

    async def _deliver(self, user_id: str, payload: Dict[str, Any]) -> None:
        try:
            await self.notifier.notify(user_id, payload)
        except Exception as e:
            logger.warning("notification_failed", user_id=user_id, error=str(e))


def build_runner(
    settings: Settings,
    store: Optional[DeploymentStore] = None,
    notifier: Optional[Notifier] = None,
) -> PipelineRunner:
    """Wire a runner from application settings."""
    network = settings.network_config()
    return PipelineRunner(
        generator=build_generation_chain(settings.provider_credentials()),
        compiler=ArtifactCompiler(settings.toolchain_config()),
        submitter=Submitter(network, settings.submission_credential()),
        packager=ConfigurationPackager(network, settings.output_root),
        tracker=PipelineStateTracker(store),
        notifier=notifier,
        gate_config=GateConfig(
            supported_network_id=network.chain_id,
            supported_network_name=network.name,
        ),
    )
