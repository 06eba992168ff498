"""Active configuration for SDK components.

``pin_config_file`` fixes the file the CLI was pointed at.  Without a pin
the first ``frontdoor.yml``/``frontdoor.yaml`` in the working directory is
used, and defaults plus environment overrides when there is none.  The
result is cached until :func:`reload`.
"""

from __future__ import annotations

import logging

from frontdoor.foundation.config import UnifiedConfig, find_config_file, load_config

logger = logging.getLogger(__name__)

_pinned_path: str | None = None
_active: UnifiedConfig | None = None


def pin_config_file(path: str | None) -> None:
    global _pinned_path, _active
    _pinned_path = path
    _active = None


def get_unified_config() -> UnifiedConfig:
    global _active
    if _active is None:
        path = _pinned_path or find_config_file()
        if path:
            logger.debug("Loading frontdoor config from %s", path)
        _active = load_config(path)
    return _active


def reload() -> UnifiedConfig:
    global _active
    _active = None
    return get_unified_config()


__all__ = ["get_unified_config", "pin_config_file", "reload"]
