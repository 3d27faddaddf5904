import base64
import dataclasses
import json
import os

import pytest
import pytest_asyncio
from fakeredis import aioredis as fakeredis_aioredis
from httpx import ASGITransport, AsyncClient

TEST_ENV = {
    "ENVIRONMENT": "test",
    "REDIS_URL": "",
    "GITHUB_TOKEN": "",
    "GITHUB_OWNER": "clankamode",
    "ADMIN_KEY": "test-admin-key",
    "ADMIN_TOKEN": "test-admin-token",
    "RATE_LIMIT_ENABLED": "false",
    "METRICS_ENABLED": "true",
    "LOG_JSON": "false",
    "LOG_FILE": "",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value

from backend.core import settings as settings_module  # noqa: E402
from backend.core.github import FakeGitHubClient  # noqa: E402
from backend.core.kv_store import InMemoryKVStore  # noqa: E402


REGISTRY_PATH = "/repos/clankamode/assistant-tool-registry/contents/registry.json"
REGISTRY = [
    {"repo": "clankamode/ci-watch", "criticality": "critical", "tier": "ops", "description": "Watches CI"},
    {"repo": "clankamode/meta-runner", "criticality": "medium", "tier": "core"},
    {"repo": "clankamode/policy-kit", "criticality": "high", "tier": "policy"},
]


def contents_payload(text: str) -> dict:
    """GitHub contents API shape for ``text``."""
    return {"content": base64.b64encode(text.encode()).decode(), "encoding": "base64"}


def runs_payload(*conclusions: str) -> dict:
    return {
        "workflow_runs": [
            {"conclusion": c, "status": "completed", "name": "ci", "updated_at": "2025-06-15T10:00:00Z"}
            for c in conclusions
        ]
    }


@pytest.fixture
def fleet_github():
    """Fake GitHub serving a three-repo registry, CI runs and account feeds."""
    return FakeGitHubClient(
        {
            REGISTRY_PATH: contents_payload(json.dumps(REGISTRY)),
            "/repos/clankamode/ci-watch/actions/runs": runs_payload("success", "failure"),
            "/repos/clankamode/meta-runner/actions/runs": runs_payload("success"),
            "/repos/clankamode/policy-kit/actions/runs": runs_payload("in_progress"),
            "/repos/clankamode/ci-watch/contents/TASKS.md": contents_payload("## 🟡 Next\n- [ ] **Add retries**\n"),
            "/users/clankamode": {"public_repos": 3},
            "/users/clankamode/repos": [{"name": "ci-watch", "stargazers_count": 5, "pushed_at": "2025-06-15T00:00:00Z"}],
            "/users/clankamode/events": [
                {
                    "type": "PushEvent",
                    "repo": {"name": "clankamode/ci-watch"},
                    "payload": {"commits": [{"message": "fix: retry"}]},
                    "created_at": "2025-06-15T09:00:00Z",
                }
            ],
            "/repos/clankamode/meta-runner/commits": [
                {"sha": "abc123", "commit": {"message": "release", "author": {"name": "Dev", "date": "2025-06-14T00:00:00Z"}}}
            ],
        }
    )


@pytest.fixture(scope="session", autouse=True)
def _set_test_env():
    """Force deterministic env for tests and reset cached settings."""
    for key, value in TEST_ENV.items():
        os.environ[key] = value
    settings_module.get_settings.cache_clear()
    yield
    settings_module.get_settings.cache_clear()

@pytest.fixture
def settings():
    settings_module.get_settings.cache_clear()
    return settings_module.get_settings()

@pytest.fixture
def store():
    return InMemoryKVStore()

@pytest.fixture
def github():
    return FakeGitHubClient()

@pytest.fixture
def make_app(settings, store, github):
    """Build an app over the shared store and fake GitHub; keyword args override settings."""
    from backend.apps.status_api.app import create_app

    def _make(**overrides):
        app_settings = dataclasses.replace(settings, **overrides) if overrides else settings
        return create_app(settings=app_settings, kv_store=store, github_client=github)

    return _make

@pytest_asyncio.fixture
async def client(make_app):
    app = make_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as http:
        yield http

@pytest.fixture
def fake_redis():
    """Provide a fake Redis client for tests that need it."""
    return fakeredis_aioredis.FakeRedis(decode_responses=True)
