"""Gate for navigations driven by server-supplied URLs."""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit

ALLOWED_SCHEMES = frozenset({"http", "https"})


def sanitize(raw: str | None, origin: str) -> str | None:
    """Resolve ``raw`` against ``origin`` and return it if it is http(s).

    Returns ``None`` for empty input, unparsable URLs and any other scheme
    (``javascript:``, ``data:``, ...).
    """

    text = str(raw or "").strip()
    if not text:
        return None
    try:
        resolved = urljoin(origin, text)
        parts = urlsplit(resolved)
        # Accessing .port validates it.
        parts.port
    except ValueError:
        return None
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.netloc:
        return None
    return resolved


__all__ = ["ALLOWED_SCHEMES", "sanitize"]
