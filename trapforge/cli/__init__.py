"""
Command Line Interface for TrapForge.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..core.runner import build_runner
from ..core.tracker import PipelineStateTracker
from ..data.models.deployment import Deployment, DeploymentStatus
from ..db import SqlDeploymentStore, get_engine, get_session_local, init_database
from ..errors import PersistenceError, ValidationError
from ..logs import configure_logging
from ..packaging import ConfigurationPackager

app = typer.Typer(help="TrapForge - deploy monitored trap contracts from a description")
console = Console()

STATUS_EMOJI = {
    "pending": "⏳",
    "in_progress": "🟡",
    "completed": "✅",
    "failed": "❌",
}


def _store() -> SqlDeploymentStore:
    return SqlDeploymentStore(get_session_local())


def _steps_table(deployment: Deployment) -> Table:
    table = Table(
        title=f"Deployment {deployment.id}", show_header=True, header_style="bold magenta"
    )
    table.add_column("#", style="cyan")
    table.add_column("Step", style="yellow")
    table.add_column("Status", style="green")
    table.add_column("Details")
    for step in deployment.steps:
        details = step.error or ""
        if step.output and not details:
            details = ", ".join(
                f"{key}={value}"
                for key, value in step.output.items()
                if isinstance(value, (str, int, float, bool))
            )
        table.add_row(
            str(step.number),
            step.title,
            f"{STATUS_EMOJI.get(step.status.value, '❓')} {step.status.value}",
            details,
        )
    return table


@app.callback()
def main() -> None:
    configure_logging(get_settings())


@app.command()
def init_db():
    """Create the database tables."""
    init_database(get_engine())
    console.print("✅ Database initialized")


@app.command()
def deploy(
    request_file: Path = typer.Argument(..., help="JSON file with the deployment request"),
    user: str = typer.Option(..., help="Id of the user the deployment belongs to"),
    workers: Optional[int] = typer.Option(None, help="Number of pipeline workers"),
):
    """Run a deployment request through the whole pipeline."""
    try:
        raw = json.loads(request_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"❌ Cannot read request: {e}")
        raise typer.Exit(code=1)

    rprint(Panel.fit("🪤 Starting deployment", style="bold blue"))
    runner = build_runner(get_settings(), store=_store())

    async def run() -> Deployment:
        await runner.start(workers or get_settings().pipeline_workers)
        try:
            deployment = await runner.submit(raw, user)
            await runner.join()
            return deployment
        finally:
            await runner.stop()
            await runner.submitter.close()

    try:
        deployment = asyncio.run(run())
    except ValidationError as e:
        console.print(f"❌ {e.code}: {e.message}")
        raise typer.Exit(code=2)

    console.print(_steps_table(deployment))
    if deployment.address:
        console.print(f"🚀 Deployed at {deployment.address} (cost {deployment.actual_cost} ETH)")
    if deployment.status == DeploymentStatus.FAILED:
        raise typer.Exit(code=1)


@app.command()
def progress(deployment_id: str = typer.Argument(..., help="Deployment id")):
    """Show the progress of a deployment."""
    try:
        record = _store().get(deployment_id)
    except PersistenceError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    if record is None:
        console.print(f"❌ Deployment {deployment_id} not found")
        raise typer.Exit(code=1)

    deployment = Deployment.from_dict(record)
    snapshot = PipelineStateTracker().progress(deployment)
    console.print(_steps_table(deployment))
    console.print_json(json.dumps(snapshot.to_json_dict()))


@app.command("list")
def list_deployments(user: str = typer.Option(..., help="User id")):
    """List a user's deployments."""
    try:
        records = _store().list_by_user(user)
    except PersistenceError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    if not records:
        console.print("No deployments found")
        return

    table = Table(title=f"Deployments of {user}", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="yellow")
    table.add_column("Status", style="green")
    table.add_column("Address", style="blue")
    table.add_column("Created")
    for record in records:
        table.add_row(
            record["id"],
            record["status"],
            record.get("address") or "-",
            record.get("created_at") or "",
        )
    console.print(table)


@app.command()
def resume(
    workers: Optional[int] = typer.Option(None, help="Number of pipeline workers"),
):
    """Continue deployments left unfinished by a previous run."""
    store = _store()
    ids = [record["id"] for record in store.list_unfinished()]
    if not ids:
        console.print("Nothing to resume")
        return

    runner = build_runner(get_settings(), store=store)

    async def run():
        await runner.start(workers or get_settings().pipeline_workers)
        try:
            resumed = await runner.resume(ids)
            await runner.join()
            return resumed
        finally:
            await runner.stop()
            await runner.submitter.close()

    resumed = asyncio.run(run())
    console.print(f"✅ Resumed {len(resumed)} of {len(ids)} deployment(s)")


@app.command()
def render(
    deployment_id: str = typer.Argument(..., help="Deployment id"),
    output: Optional[Path] = typer.Option(None, help="Directory to write the documents to"),
):
    """Re-render the packaged documents of a deployment."""
    try:
        record = _store().get(deployment_id)
    except PersistenceError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    if record is None:
        console.print(f"❌ Deployment {deployment_id} not found")
        raise typer.Exit(code=1)

    settings = get_settings()
    packager = ConfigurationPackager(
        settings.network_config(), str(output or settings.output_root)
    )
    paths = packager.write(Deployment.from_dict(record))
    for path in paths.values():
        console.print(f"📄 {path}")


if __name__ == "__main__":
    app()
