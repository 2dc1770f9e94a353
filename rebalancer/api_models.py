from __future__ import annotations

from pydantic import BaseModel, Field


class PassSummary(BaseModel):
    stopped: list[str] = Field(default_factory=list, description="Task arns stopped as duplicates")
    discrepancies: dict[str, int] = Field(default_factory=dict, description="Instance arn -> task count, for counts != 1")
    registered: list[str] = Field(default_factory=list)
    deregistered: list[str] = Field(default_factory=list)


class StatusResponse(BaseModel):
    cluster: str
    service: str
    deployment_application: str
    deployment_group: str
    state: str = Field(..., description="idle|cooling_down|acting")
    cooldown_until: float
    cooldown_remaining_s: float
    current_capacity: int | None = None
    ticks: int
    registered_tasks: int
    last_pass: PassSummary | None = None
    last_pass_at: float | None = None


class TaskView(BaseModel):
    arn: str
    container_instance_arn: str | None = None
    desired_status: str
    last_status: str | None = None
    health_status: str | None = None
    task_definition_arn: str | None = None


class EventView(BaseModel):
    id: int
    ts: str
    level: str
    cluster: str | None = None
    service: str | None = None
    message: str
