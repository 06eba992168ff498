"""Foundation layer for shared infrastructure modules."""

from . import config, metrics_factory

__all__ = ["config", "metrics_factory"]
