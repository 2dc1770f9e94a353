from __future__ import annotations

from . import db
from .aws_ops import IN_PROGRESS_STATUSES, DeploymentAPI


class DeploymentGate:
    """Answers whether a rollout is underway for the configured deployment group."""

    def __init__(self, deployments: DeploymentAPI, application: str, group: str):
        self.deployments = deployments
        self.application = application
        self.group = group

    def has_deployment_in_progress(self) -> bool:
        ids = self.deployments.list_deployments(IN_PROGRESS_STATUSES)
        for deployment_id in ids:
            db.log_event("DEBUG", f"Deployment in progress {self.application} {self.group} {deployment_id}")
        return len(ids) > 0
