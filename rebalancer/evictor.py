from __future__ import annotations

from . import db
from .aws_ops import ClusterAPI
from .models import PassResult
from .runtime import RuntimeState

STOP_REASON = "service-rebalancer: duplicate task on container instance"


class DuplicateEvictor:
    """Stops every task beyond the first on a container instance.

    "First" is the order ListTasks returned the tasks in. ECS does not promise
    any particular order there, so which duplicate survives is best-effort.
    """

    def __init__(self, cluster: ClusterAPI, runtime: RuntimeState):
        self.cluster = cluster
        self.runtime = runtime

    def evict_duplicates(self) -> PassResult:
        cfg = self.runtime.config
        result = PassResult()

        hosts: dict[str, int] = {arn: 0 for arn in self.cluster.list_container_instances()}

        arns = self.cluster.list_tasks(desired_status="RUNNING")
        tasks = self.cluster.describe_tasks(arns) if arns else []

        with self.runtime.lock:
            added, removed = self.runtime.registry.sync(tasks)
        new = set(added)
        for task in tasks:
            if task.arn in new:
                db.log_event(
                    "INFO",
                    f"Registering task {task.arn} {task.task_definition_arn} {task.desired_status} {task.health_status}",
                    cluster=cfg.cluster,
                    service=cfg.service,
                )
        for arn in removed:
            db.log_event("INFO", f"Deregistering task {arn}", cluster=cfg.cluster, service=cfg.service)
        result.registered, result.deregistered = added, removed

        for task in tasks:
            host = task.container_instance_arn
            if not host:
                continue
            hosts[host] = hosts.get(host, 0) + 1
            if hosts[host] > 1:
                db.log_event("WARN", f"Instance {host} has multiple tasks", cluster=cfg.cluster, service=cfg.service)
                db.log_event("INFO", f"Stopping {task.arn}", cluster=cfg.cluster, service=cfg.service)
                self.cluster.stop_task(task.arn, STOP_REASON)
                result.stopped.append(task.arn)

        for host, count in hosts.items():
            if count != 1:
                result.discrepancies[host] = count
                db.log_event("INFO", f"Instance {host} with {count} tasks", cluster=cfg.cluster, service=cfg.service)

        return result
