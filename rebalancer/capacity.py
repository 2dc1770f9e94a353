from __future__ import annotations

from . import db
from .aws_ops import ClusterAPI
from .runtime import RuntimeState


class CapacitySynchronizer:
    """Keeps the service's desired count equal to the cluster's host count.

    The service runs one task per container instance, so host count is the
    source of truth and desired count follows it, never the reverse.
    """

    def __init__(self, cluster: ClusterAPI, runtime: RuntimeState):
        self.cluster = cluster
        self.runtime = runtime

    def sync_capacity(self) -> bool:
        """Returns True if an UpdateService call was issued."""
        cfg = self.runtime.config
        capacity = self.cluster.registered_host_count()
        if capacity != self.runtime.current_capacity:
            db.log_event("INFO", f"Cluster capacity is {capacity}", cluster=cfg.cluster)
            with self.runtime.lock:
                self.runtime.current_capacity = capacity

        desired = self.cluster.desired_count()
        if desired == capacity:
            return False

        db.log_event(
            "INFO",
            f"Updating desired count {desired} -> {capacity}",
            cluster=cfg.cluster,
            service=cfg.service,
        )
        self.cluster.update_desired_count(capacity)
        return True
