import logging
import signal
from typing import Optional

import typer
from kubernetes.config import ConfigException

from nodepoolctl import registry
from nodepoolctl.modules.nodepool import (
    AccessError,
    ConfigurationError,
    KubernetesClusterAPI,
    NodePoolLifecycle,
    OperationOutcome,
    Timer,
)
from nodepoolctl.utils.kube import get_api_client

logger = logging.getLogger(__name__)

app = typer.Typer(help="Create, drain and inspect node pools")


CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_cancel_handlers(timer: Timer) -> None:
    """Make SIGINT and SIGTERM cancel the running operation.

    The first signal cancels the timer so the operation reports how far it
    got. The handler that was installed before is then restored, so a second
    signal interrupts the process.
    """
    previous = {signum: signal.getsignal(signum) for signum in CANCEL_SIGNALS}

    def _cancel(signum, frame):
        logger.warning("received signal %s, cancelling; send it again to abort", signum)
        timer.cancel()
        signal.signal(signum, previous[signum])

    for signum in CANCEL_SIGNALS:
        signal.signal(signum, _cancel)


def make_lifecycle(kubeconfig: Optional[str] = None) -> NodePoolLifecycle:
    """Build a lifecycle bound to the configured cluster."""
    timer = Timer()
    try:
        api_client = get_api_client(kubeconfig)
    except (ConfigurationError, FileNotFoundError, ConfigException) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    install_cancel_handlers(timer)
    return NodePoolLifecycle(KubernetesClusterAPI(api_client), timer=timer)


def report(outcome: OperationOutcome, action: str) -> None:
    if outcome.success:
        typer.echo(f"✅ Node pool '{outcome.pool}' {action}.")
        return
    typer.echo(f"❌ {outcome.reason}", err=True)
    if outcome.failed_node:
        phase = outcome.phase.value if outcome.phase else action
        typer.echo(f"   stopped at node {outcome.failed_node} during {phase}", err=True)
    note = outcome.progress
    if note:
        typer.echo(f"   {note}", err=True)
    raise typer.Exit(code=1)


@app.command("create")
def create_cmd(
    name: Optional[str] = typer.Option(None, "--name", help="Node pool name"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Node pool YAML file"),
    selector_key: Optional[str] = typer.Option(None, help="Label key selecting the pool's nodes"),
    selector_value: Optional[str] = typer.Option(None, help="Label value, defaults to the pool name"),
    min_ready_nodes: Optional[int] = typer.Option(None, min=1, help="Ready nodes to wait for"),
    ready_timeout: Optional[str] = typer.Option(None, help="Maximum wait for ready nodes, e.g. 300s"),
    drain_timeout: Optional[str] = typer.Option(None, help="Drain timeout per node, e.g. 300s"),
    drain_wait: Optional[str] = typer.Option(None, help="Pause after each node drain, e.g. 60s"),
    kubeconfig: Optional[str] = typer.Option(None, help="Path to kubeconfig"),
):
    """Wait for a new node pool to have enough ready nodes, then record it."""
    try:
        spec = registry.resolve_spec(
            name, file,
            node_selector_key=selector_key,
            node_selector_value=selector_value,
            min_ready_nodes=min_ready_nodes,
            ready_timeout=ready_timeout,
            drain_timeout=drain_timeout,
            drain_wait=drain_wait,
        )
    except ConfigurationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    logger.debug("node pool settings: %s", spec.to_state())
    typer.echo(f"⏳ Waiting for {spec.min_ready_nodes} ready nodes in node pool "
               f"'{spec.node_pool_name}' ({spec.node_selector_key}={spec.selector_value})...")

    outcome = make_lifecycle(kubeconfig).create(spec)
    registry.register_pool(spec.node_pool_name, spec.to_state(), ready=outcome.success)
    report(outcome, "is ready")


@app.command("delete")
def delete_cmd(
    name: Optional[str] = typer.Option(None, "--name", help="Node pool name"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Node pool YAML file"),
    selector_key: Optional[str] = typer.Option(None, help="Label key selecting the pool's nodes"),
    selector_value: Optional[str] = typer.Option(None, help="Label value, defaults to the pool name"),
    drain_timeout: Optional[str] = typer.Option(None, help="Drain timeout per node, e.g. 300s"),
    drain_wait: Optional[str] = typer.Option(None, help="Pause after each node drain, e.g. 60s"),
    kubeconfig: Optional[str] = typer.Option(None, help="Path to kubeconfig"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Cordon every node of a pool, then drain them one at a time."""
    try:
        spec = registry.resolve_spec(
            name, file,
            node_selector_key=selector_key,
            node_selector_value=selector_value,
            drain_timeout=drain_timeout,
            drain_wait=drain_wait,
        )
    except ConfigurationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    if not yes:
        confirm = typer.confirm(
            f"Are you sure you want to drain every node of node pool '{spec.node_pool_name}'?",
            default=False,
        )
        if not confirm:
            typer.echo("❌ Deletion cancelled.")
            raise typer.Exit()

    typer.echo(f"🧹 Draining node pool '{spec.node_pool_name}' "
               f"(drain timeout {spec.drain_timeout}, wait {spec.drain_wait})...")
    outcome = make_lifecycle(kubeconfig).delete(spec)
    if outcome.success:
        registry.remove_pool(spec.node_pool_name)
        for node in outcome.drained:
            typer.echo(f"   drained {node}")
    report(outcome, "drained")


@app.command("status")
def status_cmd(
    name: Optional[str] = typer.Option(None, "--name", help="Node pool name"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Node pool YAML file"),
    selector_key: Optional[str] = typer.Option(None, help="Label key selecting the pool's nodes"),
    selector_value: Optional[str] = typer.Option(None, help="Label value, defaults to the pool name"),
    kubeconfig: Optional[str] = typer.Option(None, help="Path to kubeconfig"),
):
    """Show the nodes of a pool with their readiness."""
    try:
        spec = registry.resolve_spec(name, file, node_selector_key=selector_key,
                                     node_selector_value=selector_value)
        status = make_lifecycle(kubeconfig).status(spec)
    except (ConfigurationError, AccessError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"🔍 {status.pool} ({status.label_selector}): "
               f"{status.ready_count}/{len(status.nodes)} nodes ready")
    for node in status.nodes:
        flags = " SchedulingDisabled" if node.unschedulable else ""
        typer.echo(f"   {node.name}  Ready={node.ready_condition.value}{flags}")


@app.command("uncordon")
def uncordon_cmd(
    name: Optional[str] = typer.Option(None, "--name", help="Node pool name"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="Node pool YAML file"),
    selector_key: Optional[str] = typer.Option(None, help="Label key selecting the pool's nodes"),
    selector_value: Optional[str] = typer.Option(None, help="Label value, defaults to the pool name"),
    kubeconfig: Optional[str] = typer.Option(None, help="Path to kubeconfig"),
):
    """Mark the cordoned nodes of a pool schedulable again."""
    try:
        spec = registry.resolve_spec(name, file, node_selector_key=selector_key,
                                     node_selector_value=selector_value)
    except ConfigurationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    outcome = make_lifecycle(kubeconfig).uncordon(spec)
    for node in outcome.uncordoned:
        typer.echo(f"   uncordoned {node}")
    report(outcome, "uncordoned")


@app.command("list")
def list_cmd():
    """List all registered node pools."""
    pools = registry.load_registry()
    if not pools:
        typer.echo("🔍 No node pools registered.")
        return
    for name, entry in pools.items():
        state = "ready" if entry.get("ready") else "not ready"
        settings = entry["settings"]
        typer.echo(f"{name}: {settings['node_selector_key']}={settings['node_selector_value']} ({state})")


@app.command("get")
def get_cmd(name: str = typer.Option(..., "--name", help="Node pool name")):
    """Show the recorded settings of a node pool."""
    entry = registry.get_pool(name)
    if entry is None:
        typer.echo(f"❌ Node pool '{name}' not found.")
        raise typer.Exit(code=1)
    for key, value in entry["settings"].items():
        typer.echo(f"{key}: {value}")
    typer.echo(f"ready: {entry['ready']}")
    typer.echo(f"last_updated: {entry['last_updated']}")
