from __future__ import annotations

import argparse
import json
import logging
import sys
from threading import Thread

import requests
import uvicorn

from rebalancer import aws_ops, db
from rebalancer.api import create_app
from rebalancer.models import ConfigError, LoopParameters, ReconciliationConfig
from rebalancer.reconciler import build_reconciler
from rebalancer.runtime import RuntimeState
from rebalancer.settings import settings


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def configure_logging(level: str) -> None:
    """Log to stdout; ``level`` applies to the rebalancer logger only, SDKs stay at WARNING."""
    logging.basicConfig(
        stream=sys.stdout,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger().setLevel(logging.WARNING)
    logging.getLogger("rebalancer").setLevel(level.upper())


def _start_api(runtime, host: str, port: int) -> None:
    server = uvicorn.Server(uvicorn.Config(create_app(runtime), host=host, port=port, log_level="warning"))
    db.log_event("INFO", f"Starting status API on http://{host}:{port}")
    Thread(target=server.run, daemon=True).start()


def run(args: argparse.Namespace) -> int:
    config = ReconciliationConfig(
        cluster=args.cluster,
        service=args.service,
        deployment_application=args.deployment_application,
        deployment_group=args.deployment_group,
    )
    params = LoopParameters(poll_interval_s=args.poll_interval, cooldown_s=args.cooldown, settle_s=args.settle)
    try:
        config.validate()
        params.validate()
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    configure_logging(args.log_level)
    db.init_db()

    session = aws_ops.make_session(args.region)
    try:
        identity = aws_ops.caller_identity(session)
    except aws_ops.ApiError as e:
        db.log_event("ERROR", str(e))
        return 1
    db.log_event("INFO", f"Running as {identity['arn']} (account {identity['account']})")

    runtime = RuntimeState(config)
    reconciler = build_reconciler(
        runtime,
        cluster=aws_ops.EcsClusterAPI(config.cluster, config.service, session=session),
        deployments=aws_ops.CodeDeployAPI(config.deployment_application, config.deployment_group, session=session),
        params=params,
    )

    if args.api_port:
        _start_api(runtime, args.api_host, args.api_port)

    try:
        reconciler.run_forever()
    except aws_ops.ApiError:
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="ECS Service Rebalancer")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_run = sub.add_parser("run", help="Run the reconcile loop in the foreground")
    s_run.add_argument("--cluster", default=settings.cluster)
    s_run.add_argument("--service", default=settings.service)
    s_run.add_argument("--deployment-application", default=settings.deployment_application)
    s_run.add_argument("--deployment-group", default=settings.deployment_group)
    s_run.add_argument("--poll-interval", type=int, default=settings.poll_interval_s, help="Seconds between ticks")
    s_run.add_argument("--cooldown", type=int, default=settings.cooldown_s, help="Seconds to hold off after a deployment")
    s_run.add_argument("--settle", type=int, default=settings.settle_s, help="Seconds to wait after a capacity change")
    s_run.add_argument("--region", default=settings.aws_region)
    s_run.add_argument("--api-host", default=settings.api_host)
    s_run.add_argument("--api-port", type=int, default=settings.api_port, help="Serve the status API (0 = off)")
    s_run.add_argument("--log-level", default=settings.log_level)

    for name, help_text in (("status", "Show loop status"), ("tasks", "Show registered tasks")):
        s = sub.add_parser(name, help=help_text)
        s.add_argument("--api", default=f"http://{settings.api_host}:{settings.api_port or 8000}", help="API base URL")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--api", default=f"http://{settings.api_host}:{settings.api_port or 8000}", help="API base URL")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    if args.cmd == "run":
        return run(args)

    base = args.api.rstrip("/")

    if args.cmd == "status":
        _print(requests.get(f"{base}/status", timeout=10).json())
        return 0

    if args.cmd == "tasks":
        _print(requests.get(f"{base}/tasks", timeout=10).json())
        return 0

    if args.cmd == "events":
        _print(requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10).json())
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
