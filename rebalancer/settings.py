from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("RBL_DB_PATH", "rebalancer.db")
    poll_interval_s: int = _env_int("RBL_POLL_INTERVAL_S", 5)
    cooldown_s: int = _env_int("RBL_COOLDOWN_S", 100)
    settle_s: int = _env_int("RBL_SETTLE_S", 60)
    log_level: str = os.getenv("RBL_LOG_LEVEL", "DEBUG")

    # Target
    cluster: str = os.getenv("RBL_CLUSTER", "")
    service: str = os.getenv("RBL_SERVICE", "")
    deployment_application: str = os.getenv("RBL_DEPLOYMENT_APPLICATION", "")
    deployment_group: str = os.getenv("RBL_DEPLOYMENT_GROUP", "")
    aws_region: str | None = os.getenv("RBL_AWS_REGION")

    # Status API (port 0 keeps it off)
    api_host: str = os.getenv("RBL_API_HOST", "127.0.0.1")
    api_port: int = _env_int("RBL_API_PORT", 0)


settings = Settings()
