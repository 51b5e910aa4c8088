import signal

import pytest
from typer.testing import CliRunner

from nodepoolctl import registry
from nodepoolctl.cli import app
from nodepoolctl.commands import nodepool as nodepool_cmd
from nodepoolctl.config import Config
from nodepoolctl.modules.nodepool import NodePoolLifecycle, Timer
from nodepoolctl.tests.fakes import FakeClock, FakeClusterAPI, make_node, make_pod

runner = CliRunner()


@pytest.fixture
def cluster(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, "REGISTRY_PATH", str(tmp_path / "registry.json"))
    api = FakeClusterAPI(
        [make_node("n1"), make_node("n2", ready=False)],
        pods={"n1": [make_pod("web")]},
    )
    monkeypatch.setattr(
        nodepool_cmd, "make_lifecycle",
        lambda kubeconfig=None: NodePoolLifecycle(api, timer=FakeClock(), poll_interval=1.0),
    )
    return api


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "nodepool" in result.output


def test_nodepool_commands_exist():
    result = runner.invoke(app, ["nodepool", "--help"])
    for command in ("create", "delete", "status", "uncordon", "list", "get"):
        assert command in result.output


def test_create_registers_the_pool(cluster):
    result = runner.invoke(app, ["nodepool", "create", "--name", "pool-a"])

    assert result.exit_code == 0, result.output
    assert "✅ Node pool 'pool-a' is ready." in result.output
    assert registry.get_pool("pool-a")["ready"] is True


def test_create_timeout_exits_non_zero(cluster):
    result = runner.invoke(app, [
        "nodepool", "create", "--name", "pool-a", "--min-ready-nodes", "2", "--ready-timeout", "3s",
    ])

    assert result.exit_code == 1
    assert "could not find 2 ready nodes in node pool pool-a" in result.output
    assert "ready nodes: 1/2" in result.output
    assert registry.get_pool("pool-a")["ready"] is False


def test_create_rejects_bad_duration(cluster):
    result = runner.invoke(app, ["nodepool", "create", "--name", "pool-a", "--drain-wait", "later"])

    assert result.exit_code == 1
    assert "drain_wait" in result.output
    assert registry.get_pool("pool-a") is None


def test_create_from_file(cluster, tmp_path):
    pool_yaml = tmp_path / "pool.yaml"
    pool_yaml.write_text("node_pool_name: pool-a\nmin_ready_nodes: 1\n")

    result = runner.invoke(app, ["nodepool", "create", "-f", str(pool_yaml)])

    assert result.exit_code == 0, result.output
    assert registry.get_pool("pool-a") is not None


def test_status(cluster):
    result = runner.invoke(app, ["nodepool", "status", "--name", "pool-a"])

    assert result.exit_code == 0, result.output
    assert "1/2 nodes ready" in result.output
    assert "n2  Ready=False" in result.output


def test_delete_drains_and_unregisters(cluster):
    runner.invoke(app, ["nodepool", "create", "--name", "pool-a", "--drain-wait", "0s"])

    result = runner.invoke(app, ["nodepool", "delete", "--name", "pool-a", "--yes"])

    assert result.exit_code == 0, result.output
    assert "drained n1" in result.output
    assert "drained n2" in result.output
    assert registry.get_pool("pool-a") is None
    assert cluster.verbs("evict") == [("evict", "default/web")]


def test_delete_asks_for_confirmation(cluster):
    result = runner.invoke(app, ["nodepool", "delete", "--name", "pool-a"], input="n\n")

    assert "Deletion cancelled" in result.output
    assert cluster.verbs("cordon") == []


def test_delete_failure_reports_progress(cluster):
    cluster.evict_errors["default/web"] = 500

    result = runner.invoke(app, ["nodepool", "delete", "--name", "pool-a", "--yes"])

    assert result.exit_code == 1
    assert "stopped at node n1 during drain" in result.output
    assert "cordoned: [n1, n2]" in result.output


def test_uncordon(cluster):
    runner.invoke(app, ["nodepool", "delete", "--name", "pool-a", "--yes", "--drain-wait", "0s"])

    result = runner.invoke(app, ["nodepool", "uncordon", "--name", "pool-a"])

    assert result.exit_code == 0, result.output
    assert "uncordoned n1" in result.output
    assert not cluster.nodes["n1"].unschedulable


def test_list_and_get(cluster):
    assert "No node pools registered" in runner.invoke(app, ["nodepool", "list"]).output

    runner.invoke(app, ["nodepool", "create", "--name", "pool-a"])

    listing = runner.invoke(app, ["nodepool", "list"]).output
    assert "pool-a: cloud.google.com/gke-nodepool=pool-a (ready)" in listing

    details = runner.invoke(app, ["nodepool", "get", "--name", "pool-a"])
    assert "min_ready_nodes: 1" in details.output
    assert "ready: True" in details.output

    missing = runner.invoke(app, ["nodepool", "get", "--name", "pool-b"])
    assert missing.exit_code == 1


@pytest.fixture
def saved_signal_handlers():
    saved = {signum: signal.getsignal(signum) for signum in nodepool_cmd.CANCEL_SIGNALS}
    yield saved
    for signum, handler in saved.items():
        signal.signal(signum, handler)


def test_first_sigint_cancels_and_second_interrupts(saved_signal_handlers):
    signal.signal(signal.SIGINT, signal.default_int_handler)
    timer = Timer()
    nodepool_cmd.install_cancel_handlers(timer)

    handler = signal.getsignal(signal.SIGINT)
    handler(signal.SIGINT, None)

    assert timer.cancel_event.is_set()
    assert signal.getsignal(signal.SIGINT) is signal.default_int_handler
    with pytest.raises(KeyboardInterrupt):
        signal.getsignal(signal.SIGINT)(signal.SIGINT, None)


def test_sigterm_restores_its_own_handler(saved_signal_handlers):
    timer = Timer()
    nodepool_cmd.install_cancel_handlers(timer)

    signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)

    assert timer.cancel_event.is_set()
    assert signal.getsignal(signal.SIGTERM) == saved_signal_handlers[signal.SIGTERM]
    assert signal.getsignal(signal.SIGINT) is not saved_signal_handlers[signal.SIGINT]
