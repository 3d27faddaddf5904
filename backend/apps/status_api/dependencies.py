"""Request-scoped accessors for objects the app factory puts on ``app.state``."""

from __future__ import annotations

from fastapi import Request

from backend.apps.status_api.perf.metrics.reconciler import MetricsReconciler
from backend.core.github import GitHubSource
from backend.core.kv_store import KVStore
from backend.core.settings import Settings


def get_store(request: Request) -> KVStore:
    return request.app.state.kv_store


def get_github(request: Request) -> GitHubSource:
    return request.app.state.github


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_reconciler(request: Request) -> MetricsReconciler:
    return request.app.state.metrics


__all__ = [
    "get_app_settings",
    "get_github",
    "get_reconciler",
    "get_store",
]
