from __future__ import annotations

from dataclasses import asdict
from threading import Lock
from typing import Any

from .models import PassResult, ReconciliationConfig
from .registry import TaskRegistry

IDLE = "idle"
COOLING_DOWN = "cooling_down"
ACTING = "acting"


class RuntimeState:
    """In-memory state owned by the reconciler.

    Only the reconciler thread mutates it; the status API reads through
    ``snapshot()``.
    """

    def __init__(self, config: ReconciliationConfig) -> None:
        self.lock = Lock()
        self.config = config
        self.registry = TaskRegistry()
        self.state: str = COOLING_DOWN
        self.cooldown_until: float = 0.0  # epoch seconds
        self.current_capacity: int | None = None
        self.ticks: int = 0
        self.last_pass: PassResult | None = None
        self.last_pass_at: float | None = None

    def set_state(self, state: str) -> None:
        with self.lock:
            self.state = state

    def start_cooldown(self, until: float) -> None:
        with self.lock:
            self.cooldown_until = until
            self.state = COOLING_DOWN

    def record_pass(self, result: PassResult, at: float) -> None:
        with self.lock:
            self.last_pass = result
            self.last_pass_at = at

    def snapshot(self, now: float) -> dict[str, Any]:
        with self.lock:
            return {
                "cluster": self.config.cluster,
                "service": self.config.service,
                "deployment_application": self.config.deployment_application,
                "deployment_group": self.config.deployment_group,
                "state": self.state,
                "cooldown_until": self.cooldown_until,
                "cooldown_remaining_s": round(max(0.0, self.cooldown_until - now), 2),
                "current_capacity": self.current_capacity,
                "ticks": self.ticks,
                "registered_tasks": len(self.registry),
                "last_pass": asdict(self.last_pass) if self.last_pass else None,
                "last_pass_at": self.last_pass_at,
            }

    def registry_snapshot(self) -> list[dict[str, Any]]:
        with self.lock:
            return [asdict(t) for t in self.registry.tasks()]
