from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from backend.core.env import load_env


DEFAULT_GITHUB_API_BASE = "https://api.github.com"
DEFAULT_GITHUB_OWNER = "clankamode"
DEFAULT_REGISTRY_REPO = "assistant-tool-registry"
DEFAULT_CHANGELOG_REPO = "clankamode/meta-runner"


@dataclass(frozen=True)
class Settings:
    environment: str  # development, production, staging, test
    host: str
    port: int
    redis_url: str
    github_api_base: str
    github_token: str
    github_owner: str
    registry_repo: str
    changelog_repo: str
    admin_key: str
    admin_token: str
    rate_limit_enabled: bool
    rate_limit_per_minute: int
    trust_proxy_headers: bool
    cors_allow_origins: tuple[str, ...]
    http_timeout_seconds: float
    presence_ttl_seconds: int
    metrics_enabled: bool
    log_level: str
    log_json: bool
    log_file: str

    @property
    def has_github_token(self) -> bool:
        return bool(self.github_token)


def _get_int(name: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _get_float(name: str, default: float, *, minimum: Optional[float] = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _get_csv(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or default


load_env()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    if environment not in {"development", "production", "staging", "test"}:
        environment = "development"

    # Public read paths are only throttled outside the test suite unless asked for.
    rate_limit_enabled = _get_bool("RATE_LIMIT_ENABLED", default=environment != "test")

    metrics_raw = os.getenv("METRICS_ENABLED")
    if metrics_raw is None:
        metrics_enabled = environment != "production"
    else:
        metrics_enabled = _get_bool("METRICS_ENABLED")

    return Settings(
        environment=environment,
        host=_get_str("HOST", "0.0.0.0") or "0.0.0.0",
        port=_get_int("PORT", 8000, minimum=1),
        redis_url=_get_str("REDIS_URL"),
        github_api_base=_get_str("GITHUB_API_BASE", DEFAULT_GITHUB_API_BASE).rstrip("/"),
        github_token=_get_str("GITHUB_TOKEN"),
        github_owner=_get_str("GITHUB_OWNER", DEFAULT_GITHUB_OWNER) or DEFAULT_GITHUB_OWNER,
        registry_repo=_get_str("REGISTRY_REPO", DEFAULT_REGISTRY_REPO) or DEFAULT_REGISTRY_REPO,
        changelog_repo=_get_str("CHANGELOG_REPO", DEFAULT_CHANGELOG_REPO) or DEFAULT_CHANGELOG_REPO,
        admin_key=_get_str("ADMIN_KEY"),
        admin_token=_get_str("ADMIN_TOKEN"),
        rate_limit_enabled=rate_limit_enabled,
        rate_limit_per_minute=_get_int("RATE_LIMIT_PER_MINUTE", 60, minimum=1),
        trust_proxy_headers=_get_bool("TRUST_PROXY_HEADERS", default=True),
        cors_allow_origins=_get_csv("CORS_ALLOW_ORIGINS", ("*",)),
        http_timeout_seconds=_get_float("HTTP_TIMEOUT_SECONDS", 10.0, minimum=0.1),
        presence_ttl_seconds=_get_int("PRESENCE_TTL_SECONDS", 1800, minimum=1),
        metrics_enabled=metrics_enabled,
        log_level=_get_str("LOG_LEVEL", "INFO").upper() or "INFO",
        log_json=_get_bool("LOG_JSON", default=False),
        log_file=_get_str("LOG_FILE"),
    )


__all__ = ["Settings", "get_settings"]
