from __future__ import annotations

import argparse
import sys
import webbrowser
from typing import List

from frontdoor.sdk.errors import FrontdoorError
from frontdoor.sdk.orchestrator import Launchpad
from frontdoor.sdk.wallet import JsonRpcWalletTransport

from .common import (
    add_common_arguments,
    gateway_client,
    load_cli_config,
    read_mapping_file,
    report_error,
    run_async,
    start_telemetry,
)


def cmd_launch(argv: List[str]) -> int:
    """Run the full connect → authenticate → launch → poll flow."""
    parser = argparse.ArgumentParser(
        prog="frontdoor launch",
        description="Launch a runtime profile and follow provisioning",
    )
    parser.add_argument("profile", help="Profile file (YAML or JSON), or '-' for stdin")
    parser.add_argument("--objective", default=None, help="Objective for the onboarding handshake")
    parser.add_argument("--origin", default=None, help="Override identity.origin")
    parser.add_argument("--no-wait", action="store_true", help="Return once verification is accepted")
    parser.add_argument("--open", action="store_true", help="Open the instance URL in a browser")
    add_common_arguments(parser)
    args = parser.parse_args(argv)
    cfg = load_cli_config(args.config)
    if args.origin:
        cfg.identity.origin = args.origin
    if not cfg.wallet.rpc_url:
        print("wallet.rpc_url is not configured; no wallet to sign with.", file=sys.stderr)
        return 2
    raw = read_mapping_file(args.profile)
    start_telemetry(cfg)

    def _navigate(url: str) -> None:
        print(url)
        if args.open:
            webbrowser.open(url)

    async def _run():
        async with gateway_client(cfg, args.gateway_url) as gateway, JsonRpcWalletTransport(
            cfg.wallet.rpc_url, timeout=cfg.wallet.timeout_seconds
        ) as wallet:
            pad = Launchpad.from_config(
                cfg,
                gateway=gateway,
                wallet_transport=wallet,
                navigator=_navigate,
                on_progress=lambda label, value: print(f"[{value:3d}%] {label}", file=sys.stderr),
            )
            await pad.connect()
            session = await pad.launch(raw, objective=args.objective)
            print(f"session: {session.session_id}", file=sys.stderr)
            if args.no_wait:
                if pad.poller is not None:
                    await pad.poller.stop()
                return session
            return await pad.wait()

    try:
        session = run_async(_run())
    except FrontdoorError as exc:
        return report_error(exc)
    if session is None:
        return 1
    if session.status not in {"ready", "verified"}:
        print(f"Session {session.session_id} ended as {session.status}: {session.error or session.detail or ''}", file=sys.stderr)
        return 1
    return 0
