from __future__ import annotations

import argparse
import sys
from typing import List

from frontdoor.sdk.errors import FrontdoorError
from frontdoor.sdk.launch import LaunchSession
from frontdoor.sdk.poller import SessionPoller

from .common import (
    add_common_arguments,
    dump,
    gateway_client,
    load_cli_config,
    report_error,
    run_async,
    start_telemetry,
)


def cmd_status(argv: List[str]) -> int:
    """Inspect a launch session, optionally following it to a terminal state."""
    parser = argparse.ArgumentParser(
        prog="frontdoor status",
        description="Inspect or watch a launch session",
    )
    parser.add_argument("session_id", help="Launch session id")
    parser.add_argument("--watch", "-w", action="store_true", help="Poll until ready/failed/expired")
    parser.add_argument("--origin", default=None, help="Origin used to resolve relative URLs")
    add_common_arguments(parser)
    args = parser.parse_args(argv)
    cfg = load_cli_config(args.config)
    origin = args.origin or cfg.identity.origin or cfg.gateway.url

    async def _single() -> dict:
        async with gateway_client(cfg, args.gateway_url) as client:
            status = await client.get_session(args.session_id)
        return status.model_dump()

    async def _watch() -> LaunchSession | None:
        async with gateway_client(cfg, args.gateway_url) as client:
            poller = SessionPoller(
                client,
                LaunchSession(session_id=args.session_id, challenge_message=""),
                origin=origin,
                interactive=True,
                max_consecutive_failures=cfg.polling.max_consecutive_failures,
                navigator=print,
                on_update=lambda s: print(f"[{s.progress:3d}%] {s.status}", file=sys.stderr),
            )
            return await poller.run()

    try:
        if not args.watch:
            print(dump(run_async(_single()), as_json=args.json).rstrip("\n"))
            return 0
        start_telemetry(cfg)
        session = run_async(_watch())
    except FrontdoorError as exc:
        return report_error(exc)
    if session is None or session.status != "ready":
        return 1
    return 0
