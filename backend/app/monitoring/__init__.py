"""Monitoring helpers and metric registry for the session service."""

from . import metrics, registry

__all__ = ["metrics", "registry"]
