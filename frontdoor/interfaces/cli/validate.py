from __future__ import annotations

import argparse
from typing import List

from frontdoor.sdk.drafts import mask_key
from frontdoor.sdk.errors import ValidationError
from frontdoor.sdk.validation import validate

from .common import dump, read_mapping_file, report_error


def cmd_validate(argv: List[str]) -> int:
    """Validate a runtime profile file without contacting the gateway."""
    parser = argparse.ArgumentParser(
        prog="frontdoor validate",
        description="Validate a runtime profile (YAML or JSON)",
    )
    parser.add_argument("profile", help="Profile file, or '-' for stdin")
    parser.add_argument("--wallet", default=None, help="Connected wallet address")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of YAML")
    args = parser.parse_args(argv)

    raw = read_mapping_file(args.profile)
    try:
        config = validate(raw, args.wallet)
    except ValidationError as exc:
        return report_error(exc)

    payload = config.to_payload()
    payload["gateway_auth_key"] = mask_key(config.gateway_auth_key)
    if config.eigencloud_auth_key:
        payload["eigencloud_auth_key"] = mask_key(config.eigencloud_auth_key)
    print(dump(payload, as_json=args.json).rstrip("\n"))
    return 0
