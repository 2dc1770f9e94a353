import os
import sys

import pytest

# Ensure project root is importable (so `import cli` and `import rebalancer` work without installing)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from rebalancer import db  # noqa: E402
from rebalancer.aws_ops import ApiError  # noqa: E402
from rebalancer.models import LoopParameters, ReconciliationConfig, Task  # noqa: E402
from rebalancer.runtime import RuntimeState  # noqa: E402
from rebalancer.settings import Settings  # noqa: E402


def make_task(arn: str, host: str | None) -> Task:
    return Task(
        arn=arn,
        container_instance_arn=host,
        desired_status="RUNNING",
        last_status="RUNNING",
        health_status="HEALTHY",
        task_definition_arn="arn:aws:ecs:eu-west-1:1:task-definition/web:7",
    )


class FakeCluster:
    """In-memory ClusterAPI. Records every call in ``calls``."""

    def __init__(self, hosts=None, tasks=None, desired=0, host_count=None):
        self.hosts = list(hosts or [])
        self.tasks = list(tasks or [])
        self.desired = desired
        self.host_count = host_count
        self.stopped: list[str] = []
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    def _call(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail_on:
            raise ApiError(op, "boom")

    def list_container_instances(self):
        self._call("list_container_instances")
        return list(self.hosts)

    def list_tasks(self, desired_status="RUNNING"):
        self._call("list_tasks")
        return [t.arn for t in self.tasks if t.desired_status == desired_status]

    def describe_tasks(self, arns):
        self._call("describe_tasks")
        by_arn = {t.arn: t for t in self.tasks}
        return [by_arn[a] for a in arns if a in by_arn]

    def stop_task(self, arn, reason):
        self._call("stop_task")
        self.stopped.append(arn)
        self.tasks = [t for t in self.tasks if t.arn != arn]

    def registered_host_count(self):
        self._call("registered_host_count")
        return len(self.hosts) if self.host_count is None else self.host_count

    def desired_count(self):
        self._call("desired_count")
        return self.desired

    def update_desired_count(self, desired_count):
        self._call("update_desired_count")
        self.desired = desired_count


class FakeDeployments:
    def __init__(self, ids=None):
        self.ids = list(ids or [])
        self.calls = 0
        self.fail = False
        self.statuses = None

    def list_deployments(self, statuses=()):
        self.calls += 1
        self.statuses = tuple(statuses)
        if self.fail:
            raise ApiError("ListDeployments", "AccessDenied")
        return list(self.ids)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def event_log(tmp_path, monkeypatch):
    """Point the event log at an isolated sqlite file for every test."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "events.db")))
    db.init_db()
    return db


@pytest.fixture
def config():
    return ReconciliationConfig(
        cluster="prod-cluster",
        service="web",
        deployment_application="web-app",
        deployment_group="web-group",
    )


@pytest.fixture
def params():
    return LoopParameters(poll_interval_s=5, cooldown_s=100, settle_s=60)


@pytest.fixture
def runtime(config):
    return RuntimeState(config)


@pytest.fixture
def clock():
    return FakeClock()
