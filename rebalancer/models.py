from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ReconciliationConfig:
    cluster: str
    service: str
    deployment_application: str
    deployment_group: str

    def validate(self) -> None:
        missing = [name for name, value in self.__dict__.items() if not (value or "").strip()]
        if missing:
            raise ConfigError(f"Missing required setting(s): {', '.join(missing)}")


@dataclass(frozen=True)
class LoopParameters:
    poll_interval_s: int = 5
    cooldown_s: int = 100
    settle_s: int = 60

    def validate(self) -> None:
        if self.poll_interval_s < 1:
            raise ConfigError("poll interval must be at least 1 second.")
        if self.cooldown_s < 0 or self.settle_s < 0:
            raise ConfigError("cooldown and settle durations cannot be negative.")


@dataclass(frozen=True)
class Task:
    """Read-only view of an ECS task as returned by DescribeTasks."""

    arn: str
    container_instance_arn: str | None
    desired_status: str
    last_status: str | None = None
    health_status: str | None = None
    task_definition_arn: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Task":
        return cls(
            arn=raw["taskArn"],
            container_instance_arn=raw.get("containerInstanceArn"),
            desired_status=raw.get("desiredStatus", ""),
            last_status=raw.get("lastStatus"),
            health_status=raw.get("healthStatus"),
            task_definition_arn=raw.get("taskDefinitionArn"),
        )


@dataclass
class PassResult:
    stopped: list[str] = field(default_factory=list)
    discrepancies: dict[str, int] = field(default_factory=dict)  # host arn -> task count
    registered: list[str] = field(default_factory=list)
    deregistered: list[str] = field(default_factory=list)
