import pytest

from nodepoolctl.modules.nodepool import ClusterAPIError, DrainError, Drainer, OperationCancelled
from nodepoolctl.tests.fakes import FakeClock, FakeClusterAPI, make_node, make_pod


def make_drainer(api, clock, events=None, **kwargs):
    observer = events.append if events is not None else None
    return Drainer(api, timer=clock, observer=observer, poll_interval=1.0,
                   eviction_retry_interval=5.0, **kwargs)


def test_evicts_pods_and_leaves_daemon_and_mirror_pods():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [
        make_pod("web"),
        make_pod("fluentd", namespace="kube-system", owner="DaemonSet"),
        make_pod("kube-proxy", namespace="kube-system", owner="Node", mirror=True),
    ]})
    events = []

    removed = make_drainer(api, FakeClock(), events).drain("n1", timeout=30)

    assert removed == ["default/web"]
    assert api.verbs("evict") == [("evict", "default/web")]
    assert [pod.name for pod in api.pods["n1"]] == ["fluentd", "kube-proxy"]
    assert [(e.node, e.pod, e.success) for e in events] == [("n1", "web", True)]


def test_pods_with_local_storage_are_evicted():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("cache", local_storage=True)]})

    removed = make_drainer(api, FakeClock()).drain("n1", timeout=30)

    assert removed == ["default/cache"]
    assert api.pods["n1"] == []


def test_no_grace_period_override():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web")]})

    make_drainer(api, FakeClock()).drain("n1", timeout=30)

    assert api.grace_periods == [None]


def test_empty_node_drains_immediately():
    api = FakeClusterAPI([make_node("n1")])
    clock = FakeClock()

    assert make_drainer(api, clock).drain("n1", timeout=30) == []
    assert clock.sleeps == []


def test_waits_for_pods_to_terminate():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web")]})
    api.stuck.add("default/web")
    clock = FakeClock()
    clock.at(3, lambda: api.delete_pod("default/web"))
    events = []

    removed = make_drainer(api, clock, events).drain("n1", timeout=30)

    assert removed == ["default/web"]
    assert clock.now() == 3
    assert [e.success for e in events] == [True]


def test_recreated_pod_counts_as_gone():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("db-0", uid="old")]})
    api.stuck.add("default/db-0")
    clock = FakeClock()
    clock.at(2, lambda: api.pods.update({"n1": [make_pod("db-0", uid="new")]}))

    assert make_drainer(api, clock).drain("n1", timeout=30) == ["default/db-0"]


def test_timeout_with_pods_remaining():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web"), make_pod("api")]})
    api.stuck.add("default/web")
    clock = FakeClock()
    events = []

    with pytest.raises(DrainError) as excinfo:
        make_drainer(api, clock, events).drain("n1", timeout=3)

    assert excinfo.value.node == "n1"
    assert excinfo.value.remaining_pods == ["default/web"]
    assert "drain did not complete within 3s" in str(excinfo.value)
    assert "default/web" in str(excinfo.value)
    assert clock.now() == 3
    assert [(e.pod, e.success) for e in events] == [("api", True), ("web", False)]


def test_zero_timeout_waits_without_limit():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web")]})
    api.stuck.add("default/web")
    clock = FakeClock()
    clock.at(1000, lambda: api.delete_pod("default/web"))

    removed = Drainer(api, timer=clock, poll_interval=100).drain("n1", timeout=0)

    assert removed == ["default/web"]
    assert clock.now() == 1000


def test_disruption_budget_rejection_is_retried():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web")]})
    api.evict_errors["default/web"] = [429, 429]
    clock = FakeClock()

    removed = make_drainer(api, clock).drain("n1", timeout=30)

    assert removed == ["default/web"]
    assert clock.sleeps == [5.0, 5.0]
    assert len(api.verbs("evict")) == 3


def test_disruption_budget_rejection_until_timeout():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web")]})
    api.evict_errors["default/web"] = 429
    clock = FakeClock()
    events = []

    with pytest.raises(DrainError) as excinfo:
        make_drainer(api, clock, events).drain("n1", timeout=12)

    assert clock.sleeps == [5.0, 5.0, 2.0]
    assert excinfo.value.remaining_pods == ["default/web"]
    assert [e.success for e in events] == [False]


def test_eviction_error_fails_immediately():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web"), make_pod("api")]})
    api.evict_errors["default/web"] = 500
    events = []

    with pytest.raises(DrainError) as excinfo:
        make_drainer(api, FakeClock(), events).drain("n1", timeout=30)

    assert "error when evicting pod default/web" in str(excinfo.value)
    assert excinfo.value.remaining_pods == ["default/web", "default/api"]
    assert api.verbs("evict") == [("evict", "default/web")]
    assert [(e.pod, e.success) for e in events] == [("web", False)]


def test_already_deleted_pod_is_a_success():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web")]})
    api.evict_errors["default/web"] = [404]
    events = []

    removed = make_drainer(api, FakeClock(), events).drain("n1", timeout=30)

    assert removed == ["default/web"]
    assert [e.success for e in events] == [True]


def test_listing_pods_fails():
    api = FakeClusterAPI([make_node("n1")])
    api.pods_error = ClusterAPIError("connection refused")

    with pytest.raises(DrainError) as excinfo:
        make_drainer(api, FakeClock()).drain("n1", timeout=30)

    assert "could not list pods" in str(excinfo.value)


def test_observer_errors_do_not_affect_the_drain():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web")]})

    def broken(event):
        raise RuntimeError("log sink down")

    removed = Drainer(api, timer=FakeClock(), observer=broken).drain("n1", timeout=30)

    assert removed == ["default/web"]


def test_cancel_between_evictions():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web"), make_pod("api"), make_pod("db")]})
    api.stuck.add("default/web")
    clock = FakeClock()
    api.hooks[("evict", "default/web")] = clock.cancel
    events = []

    with pytest.raises(OperationCancelled):
        make_drainer(api, clock, events).drain("n1", timeout=30)

    assert api.verbs("evict") == [("evict", "default/web")]
    assert [(e.pod, e.success, e.error) for e in events] == [("web", False, "operation cancelled")]


def test_eviction_error_reports_pods_already_evicted():
    api = FakeClusterAPI([make_node("n1")], pods={"n1": [make_pod("web"), make_pod("api")]})
    api.evict_errors["default/api"] = 500
    events = []

    with pytest.raises(DrainError) as excinfo:
        make_drainer(api, FakeClock(), events).drain("n1", timeout=30)

    assert excinfo.value.remaining_pods == ["default/web", "default/api"]
    assert [(e.pod, e.success) for e in events] == [("api", False), ("web", False)]
