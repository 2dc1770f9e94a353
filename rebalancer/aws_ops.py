from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Protocol, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .models import Task

# DescribeTasks accepts at most this many task arns per call.
DESCRIBE_TASKS_BATCH = 100

IN_PROGRESS_STATUSES = ("Created", "Queued", "InProgress")


class ApiError(Exception):
    """An ECS/CodeDeploy/STS call failed. The loop treats this as fatal."""

    def __init__(self, operation: str, detail: str):
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail


class ClusterAPI(Protocol):
    def list_container_instances(self) -> list[str]: ...

    def list_tasks(self, desired_status: str = "RUNNING") -> list[str]: ...

    def describe_tasks(self, arns: Sequence[str]) -> list[Task]: ...

    def stop_task(self, arn: str, reason: str) -> None: ...

    def registered_host_count(self) -> int: ...

    def desired_count(self) -> int: ...

    def update_desired_count(self, desired_count: int) -> None: ...


class DeploymentAPI(Protocol):
    def list_deployments(self, statuses: Sequence[str] = IN_PROGRESS_STATUSES) -> list[str]: ...


@contextmanager
def _api_call(operation: str) -> Iterator[None]:
    try:
        yield
    except ClientError as e:
        err = e.response.get("Error", {})
        raise ApiError(operation, f"{err.get('Code', 'ClientError')}: {err.get('Message', e)}") from e
    except BotoCoreError as e:
        raise ApiError(operation, f"{type(e).__name__}: {e}") from e


def _raise_on_failures(operation: str, payload: dict[str, Any]) -> None:
    failures = payload.get("failures") or []
    if failures:
        f = failures[0]
        raise ApiError(operation, f"{f.get('arn', '?')}: {f.get('reason', 'unknown failure')}")


def make_session(region: str | None = None) -> boto3.Session:
    return boto3.Session(region_name=region) if region else boto3.Session()


def caller_identity(session: boto3.Session) -> dict[str, str]:
    """Resolve the credentials the process runs with (STS GetCallerIdentity)."""
    with _api_call("GetCallerIdentity"):
        out = session.client("sts").get_caller_identity()
    return {"account": out.get("Account", ""), "arn": out.get("Arn", ""), "user_id": out.get("UserId", "")}


class EcsClusterAPI:
    """ClusterAPI backed by boto3's ECS client, scoped to one cluster and service."""

    def __init__(self, cluster: str, service: str, client: Any = None, session: boto3.Session | None = None):
        self.cluster = cluster
        self.service = service
        self._ecs = client or (session or make_session()).client("ecs")

    def list_container_instances(self) -> list[str]:
        arns: list[str] = []
        with _api_call("ListContainerInstances"):
            for page in self._ecs.get_paginator("list_container_instances").paginate(cluster=self.cluster):
                arns.extend(page.get("containerInstanceArns", []))
        return arns

    def list_tasks(self, desired_status: str = "RUNNING") -> list[str]:
        arns: list[str] = []
        with _api_call("ListTasks"):
            pages = self._ecs.get_paginator("list_tasks").paginate(
                cluster=self.cluster, serviceName=self.service, desiredStatus=desired_status
            )
            for page in pages:
                arns.extend(page.get("taskArns", []))
        return arns

    def describe_tasks(self, arns: Sequence[str]) -> list[Task]:
        """Describe tasks, returned in the order of ``arns``."""
        position = {arn: i for i, arn in enumerate(arns)}
        tasks: list[Task] = []
        for start in range(0, len(arns), DESCRIBE_TASKS_BATCH):
            batch = list(arns[start : start + DESCRIBE_TASKS_BATCH])
            with _api_call("DescribeTasks"):
                out = self._ecs.describe_tasks(cluster=self.cluster, tasks=batch)
            # A task stopped between ListTasks and DescribeTasks comes back as MISSING; skip it.
            tasks.extend(Task.from_api(t) for t in out.get("tasks", []))
        tasks.sort(key=lambda t: position.get(t.arn, len(position)))
        return tasks

    def stop_task(self, arn: str, reason: str) -> None:
        with _api_call("StopTask"):
            self._ecs.stop_task(cluster=self.cluster, task=arn, reason=reason)

    def registered_host_count(self) -> int:
        with _api_call("DescribeClusters"):
            out = self._ecs.describe_clusters(clusters=[self.cluster])
        _raise_on_failures("DescribeClusters", out)
        clusters = out.get("clusters", [])
        if not clusters:
            raise ApiError("DescribeClusters", f"cluster '{self.cluster}' not found")
        return int(clusters[0].get("registeredContainerInstancesCount", 0))

    def desired_count(self) -> int:
        with _api_call("DescribeServices"):
            out = self._ecs.describe_services(cluster=self.cluster, services=[self.service])
        _raise_on_failures("DescribeServices", out)
        services = out.get("services", [])
        if not services:
            raise ApiError("DescribeServices", f"service '{self.service}' not found in '{self.cluster}'")
        return int(services[0].get("desiredCount", 0))

    def update_desired_count(self, desired_count: int) -> None:
        with _api_call("UpdateService"):
            self._ecs.update_service(cluster=self.cluster, service=self.service, desiredCount=int(desired_count))


class CodeDeployAPI:
    """DeploymentAPI backed by boto3's CodeDeploy client."""

    def __init__(self, application: str, group: str, client: Any = None, session: boto3.Session | None = None):
        self.application = application
        self.group = group
        self._cd = client or (session or make_session()).client("codedeploy")

    def list_deployments(self, statuses: Sequence[str] = IN_PROGRESS_STATUSES) -> list[str]:
        ids: list[str] = []
        with _api_call("ListDeployments"):
            pages = self._cd.get_paginator("list_deployments").paginate(
                applicationName=self.application,
                deploymentGroupName=self.group,
                includeOnlyStatuses=list(statuses),
            )
            for page in pages:
                ids.extend(page.get("deployments", []))
        return ids
