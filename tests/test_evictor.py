import pytest
from conftest import FakeCluster, make_task

from rebalancer import db
from rebalancer.aws_ops import ApiError
from rebalancer.evictor import DuplicateEvictor


def test_stops_later_duplicate_and_leaves_single_task_alone(runtime):
    cluster = FakeCluster(
        hosts=["A", "B"],
        tasks=[make_task("t1", "A"), make_task("t2", "A"), make_task("t3", "B")],
    )
    result = DuplicateEvictor(cluster, runtime).evict_duplicates()

    assert cluster.stopped == ["t2"]
    assert result.stopped == ["t2"]
    assert result.discrepancies == {"A": 2}


def test_registry_reflects_live_tasks_of_the_pass(runtime):
    runtime.registry.sync([make_task("gone", "A")])
    cluster = FakeCluster(hosts=["A", "B"], tasks=[make_task("t1", "A"), make_task("t3", "B")])

    result = DuplicateEvictor(cluster, runtime).evict_duplicates()

    assert runtime.registry.arns() == {"t1", "t3"}
    assert result.registered == ["t1", "t3"]
    assert result.deregistered == ["gone"]


def test_never_stops_more_than_excess(runtime):
    tasks = [make_task(f"t{i}", host) for i, host in enumerate(["A", "A", "A", "B", "C", "C"])]
    cluster = FakeCluster(hosts=["A", "B", "C", "D"], tasks=tasks)

    result = DuplicateEvictor(cluster, runtime).evict_duplicates()

    hosts_with_tasks = 3
    assert len(result.stopped) == len(tasks) - hosts_with_tasks
    assert result.stopped == ["t1", "t2", "t5"]
    # first task per host survives
    assert {t.arn for t in cluster.tasks} == {"t0", "t3", "t4"}
    assert result.discrepancies == {"A": 3, "C": 2, "D": 0}


def test_empty_host_is_reported_but_nothing_stopped(runtime):
    cluster = FakeCluster(hosts=["A", "B"], tasks=[make_task("t1", "A")])
    result = DuplicateEvictor(cluster, runtime).evict_duplicates()
    assert cluster.stopped == []
    assert result.discrepancies == {"B": 0}


def test_no_tasks_skips_describe(runtime):
    cluster = FakeCluster(hosts=["A"])
    DuplicateEvictor(cluster, runtime).evict_duplicates()
    assert "describe_tasks" not in cluster.calls


def test_tasks_without_host_are_ignored(runtime):
    cluster = FakeCluster(hosts=["A"], tasks=[make_task("t1", None), make_task("t2", None), make_task("t3", "A")])
    result = DuplicateEvictor(cluster, runtime).evict_duplicates()
    assert result.stopped == []
    assert runtime.registry.arns() == {"t1", "t2", "t3"}


def test_host_missing_from_inventory_counts_from_zero(runtime):
    cluster = FakeCluster(hosts=[], tasks=[make_task("t1", "late"), make_task("t2", "late")])
    result = DuplicateEvictor(cluster, runtime).evict_duplicates()
    assert result.stopped == ["t2"]
    assert result.discrepancies == {"late": 2}


def test_api_error_propagates(runtime):
    cluster = FakeCluster(hosts=["A"], tasks=[make_task("t1", "A"), make_task("t2", "A")])
    cluster.fail_on.add("stop_task")
    with pytest.raises(ApiError):
        DuplicateEvictor(cluster, runtime).evict_duplicates()


def test_stop_is_recorded_in_event_log(runtime):
    cluster = FakeCluster(hosts=["A"], tasks=[make_task("t1", "A"), make_task("t2", "A")])
    DuplicateEvictor(cluster, runtime).evict_duplicates()

    messages = [e["message"] for e in db.latest_events(50)]
    assert "Stopping t2" in messages
    assert any(m.startswith("Instance A has multiple tasks") for m in messages)
