"""Exports for status API routers."""

from . import (  # noqa: F401
    activity,
    admin,
    fleet,
    github,
    metrics,
    status,
    system,
    tools,
)

__all__ = [
    "activity",
    "admin",
    "fleet",
    "github",
    "metrics",
    "status",
    "system",
    "tools",
]
