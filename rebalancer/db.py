from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any

from .settings import settings

logger = logging.getLogger("rebalancer")


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is an existing directory (a common result of
    bind-mounting a path that did not exist yet), the DB file goes inside it.
    """

    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "rebalancer.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              cluster TEXT,
              service TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, cluster: str | None = None, service: str | None = None) -> None:
    """Record an event and echo it on the ``rebalancer`` logger.

    DEBUG events only go to the logger; the table keeps what an operator
    would want to read back later.
    """
    level = level.upper()
    scope = " ".join(x for x in (cluster, service) if x)
    logger.log(logging.getLevelName(level), "%s%s", f"[{scope}] " if scope else "", message)
    if level == "DEBUG":
        return
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, cluster, service, message) VALUES (?, ?, ?, ?, ?)",
            (utc_now(), level, cluster, service, message),
        )


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
