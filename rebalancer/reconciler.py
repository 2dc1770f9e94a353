from __future__ import annotations

import time
from typing import Callable

from . import db
from .aws_ops import ClusterAPI, DeploymentAPI
from .capacity import CapacitySynchronizer
from .evictor import DuplicateEvictor
from .gate import DeploymentGate
from .models import LoopParameters
from .runtime import ACTING, COOLING_DOWN, IDLE, RuntimeState


class Reconciler:
    """Poll-act-sleep loop that keeps the service aligned with cluster capacity.

    Each tick:
      1) ask the deployment gate; a rollout in progress restarts the cooldown
      2) while the cooldown runs, do nothing
      3) otherwise sync capacity (pausing ``settle_s`` after a change) and
         stop duplicate tasks

    The first corrective action happens no earlier than one poll interval
    after start, so a rollout already underway gets noticed first.
    """

    def __init__(
        self,
        runtime: RuntimeState,
        gate: DeploymentGate,
        capacity: CapacitySynchronizer,
        evictor: DuplicateEvictor,
        params: LoopParameters,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.runtime = runtime
        self.gate = gate
        self.capacity = capacity
        self.evictor = evictor
        self.params = params
        self.clock = clock
        self.sleep = sleep
        self._stop = False
        self.runtime.start_cooldown(self.clock() + params.poll_interval_s)

    def stop(self) -> None:
        self._stop = True

    def run_forever(self) -> None:
        """Tick until stopped. Any failure is logged and re-raised: the caller exits."""
        cfg = self.runtime.config
        db.log_event("INFO", "Reconciler started", cluster=cfg.cluster, service=cfg.service)
        while not self._stop:
            try:
                self.tick()
            except Exception as e:
                db.log_event(
                    "ERROR",
                    f"Reconciler aborted: {type(e).__name__}: {e}",
                    cluster=cfg.cluster,
                    service=cfg.service,
                )
                raise
            self.sleep(self.params.poll_interval_s)

    def tick(self) -> bool:
        """Run one evaluation. Returns True if a reconciliation pass ran."""
        with self.runtime.lock:
            self.runtime.ticks += 1

        if self.gate.has_deployment_in_progress():
            self.runtime.start_cooldown(self.clock() + self.params.cooldown_s)
            return False

        remaining = self.runtime.cooldown_until - self.clock()
        if remaining > 0:
            db.log_event("DEBUG", f"Skipping - cooldown {remaining:.1f}s left")
            self.runtime.set_state(COOLING_DOWN)
            return False

        self.runtime.set_state(ACTING)
        if self.capacity.sync_capacity():
            # Give ECS time to place or drain tasks before counting them.
            self.sleep(self.params.settle_s)
        result = self.evictor.evict_duplicates()
        self.runtime.record_pass(result, self.clock())
        self.runtime.set_state(IDLE)
        return True


def build_reconciler(
    runtime: RuntimeState,
    cluster: ClusterAPI,
    deployments: DeploymentAPI,
    params: LoopParameters,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
) -> Reconciler:
    cfg = runtime.config
    return Reconciler(
        runtime=runtime,
        gate=DeploymentGate(deployments, cfg.deployment_application, cfg.deployment_group),
        capacity=CapacitySynchronizer(cluster, runtime),
        evictor=DuplicateEvictor(cluster, runtime),
        params=params,
        clock=clock,
        sleep=sleep,
    )
