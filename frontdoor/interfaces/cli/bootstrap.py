from __future__ import annotations

import argparse
import sys
from typing import List
from urllib.parse import urlsplit

from frontdoor.sdk.drafts import environment_label
from frontdoor.sdk.errors import FrontdoorError

from .common import add_common_arguments, dump, gateway_client, load_cli_config, report_error, run_async


def cmd_bootstrap(argv: List[str]) -> int:
    """Show what the gateway requires before a launch."""
    parser = argparse.ArgumentParser(
        prog="frontdoor bootstrap",
        description="Show the gateway's frontdoor capabilities",
    )
    add_common_arguments(parser)
    args = parser.parse_args(argv)
    cfg = load_cli_config(args.config)

    async def _run() -> dict:
        async with gateway_client(cfg, args.gateway_url) as client:
            bootstrap = await client.get_bootstrap()
        return bootstrap.model_dump()

    try:
        payload = run_async(_run())
    except FrontdoorError as exc:
        return report_error(exc)

    payload["environment"] = environment_label(urlsplit(cfg.gateway.url).hostname)
    print(dump(payload, as_json=args.json).rstrip("\n"))
    if not payload.get("enabled"):
        print("Frontdoor flow is not enabled.", file=sys.stderr)
        return 1
    return 0
