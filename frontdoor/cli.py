from __future__ import annotations

import sys

from frontdoor.interfaces.cli import main

__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
