"""API routers."""

from . import health, metrics

__all__ = ["health", "metrics"]
