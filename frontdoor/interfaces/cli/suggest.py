from __future__ import annotations

import argparse
import sys
from typing import List

from frontdoor.sdk.addresses import normalize_address
from frontdoor.sdk.drafts import derive_runtime_decision, normalize_draft
from frontdoor.sdk.errors import FrontdoorError

from .common import add_common_arguments, dump, gateway_client, load_cli_config, report_error, run_async


def cmd_suggest(argv: List[str]) -> int:
    """Ask the gateway to draft a runtime profile from a free-text intent."""
    parser = argparse.ArgumentParser(
        prog="frontdoor suggest",
        description="Draft a runtime profile from an intent",
    )
    parser.add_argument("intent", help="What the agent should do")
    parser.add_argument("--wallet", required=True, help="Wallet address the profile is for")
    parser.add_argument("--gateway-auth-key", default=None, help="Reuse an existing auth key")
    parser.add_argument("--output", "-o", default=None, help="Write the draft to a file")
    add_common_arguments(parser)
    args = parser.parse_args(argv)
    cfg = load_cli_config(args.config)

    try:
        wallet = normalize_address(args.wallet)
    except FrontdoorError as exc:
        return report_error(exc)

    async def _run():
        async with gateway_client(cfg, args.gateway_url) as client:
            return await client.suggest_config(
                wallet_address=wallet,
                intent=args.intent,
                gateway_auth_key=args.gateway_auth_key,
            )

    try:
        suggestion = run_async(_run())
    except FrontdoorError as exc:
        return report_error(exc)

    draft = normalize_draft(
        suggestion.config, wallet_address=wallet, gateway_auth_key=args.gateway_auth_key
    )
    decision = derive_runtime_decision(args.intent, draft)
    for note in [*suggestion.assumptions, *suggestion.warnings]:
        print(f"note: {note}", file=sys.stderr)
    print(f"runtime: {decision.title} ({decision.reason})", file=sys.stderr)
    if "accept_terms" not in draft:
        print("Set accept_terms: true after reviewing the draft.", file=sys.stderr)

    text = dump(draft, as_json=args.json)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(text)
    else:
        print(text.rstrip("\n"))
    return 0
