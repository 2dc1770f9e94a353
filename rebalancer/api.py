from __future__ import annotations

import time
from typing import Callable

from fastapi import FastAPI, Query

from . import db
from .api_models import EventView, StatusResponse, TaskView
from .runtime import RuntimeState


def create_app(runtime: RuntimeState, clock: Callable[[], float] = time.time) -> FastAPI:
    """Read-only status API for a running reconciler."""
    app = FastAPI(title="Service Rebalancer")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/status", response_model=StatusResponse)
    def status() -> dict:
        return runtime.snapshot(clock())

    @app.get("/tasks", response_model=list[TaskView])
    def tasks() -> list[dict]:
        return runtime.registry_snapshot()

    @app.get("/events", response_model=list[EventView])
    def events(limit: int = Query(50, ge=1, le=500)) -> list[dict]:
        return db.latest_events(limit)

    return app
