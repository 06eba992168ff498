"""Top level command line interface for frontdoor.

Commands:
  bootstrap  Show the gateway's frontdoor capabilities
  validate   Validate a runtime profile file
  suggest    Ask the gateway to draft a profile from an intent
  launch     Connect, authenticate, launch and follow provisioning
  status     Inspect or watch a launch session
"""

from __future__ import annotations

from frontdoor.interfaces.cli.main import main

__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
