import base64
import json

import pytest

from backend.apps.status_api.perf.cache import keys
from backend.apps.status_api.services.fleet_health import FleetHealthUnavailable, load_fleet_health
from backend.apps.status_api.services.fleet_score import load_fleet_score
from backend.apps.status_api.services.fleet_trend import load_fleet_trend
from backend.apps.status_api.services.registry import build_fleet_summary, build_projects, load_registry
from backend.apps.status_api.services.repo_tasks import load_fleet_tasks, tasks_path
from backend.core.github import FakeGitHubClient
from backend.core.result import UpstreamError
from backend.domain.fleet.models import Severity

NOW = 1_750_000_000_000
REGISTRY_PATH = "/repos/clankamode/assistant-tool-registry/contents/registry.json"
REGISTRY = [
    {"repo": "clankamode/ci-watch", "criticality": "critical", "tier": "ops"},
    {"repo": "clankamode/meta-runner", "criticality": "medium", "tier": "core", "description": "Runs meta"},
]

CI_WATCH_DOWN = {"/repos/clankamode/ci-watch/actions/runs": UpstreamError("github", "boom", status=500)}


def _contents(payload) -> dict:
    raw = payload if isinstance(payload, str) else json.dumps(payload)
    return {"content": base64.b64encode(raw.encode()).decode(), "encoding": "base64"}


def _runs(*conclusions):
    return {
        "workflow_runs": [
            {"conclusion": c, "status": "completed", "name": "ci", "updated_at": "2025-06-15T10:00:00Z"}
            for c in conclusions
        ]
    }


def _github(token=True, overrides=None):
    responses = {
        REGISTRY_PATH: _contents(REGISTRY),
        "/repos/clankamode/ci-watch/actions/runs": _runs("success", "success", "failure"),
        "/repos/clankamode/meta-runner/actions/runs": _runs("failure", "success", "success"),
    }
    responses.update(overrides or {})
    return FakeGitHubClient(responses, token=token)


@pytest.mark.asyncio
async def test_registry_is_cached_after_first_load(store, settings):
    github = _github()
    first = await load_registry(store, github, settings)
    second = await load_registry(store, github, settings)
    assert [e.repo for e in first.value] == ["clankamode/ci-watch", "clankamode/meta-runner"]
    assert (first.cached, second.cached) == (False, True)
    assert github.calls_for(REGISTRY_PATH) == 1


@pytest.mark.asyncio
async def test_registry_without_upstream_or_cache_is_empty(store, settings):
    loaded = await load_registry(store, FakeGitHubClient(), settings)
    assert loaded.value == []
    assert loaded.source == "default"


def test_fleet_summary_and_projects(settings):
    from backend.domain.fleet.registry import extract_registry_entries

    entries = extract_registry_entries(REGISTRY)
    summary = build_fleet_summary(entries, generated_at="2025-06-15T00:00:00.000Z")
    assert summary["totalRepos"] == 2
    assert summary["tiers"]["ops"] == ["clankamode/ci-watch"]
    assert summary["byCriticality"]["critical"] == ["clankamode/ci-watch"]
    assert summary["byCriticality"]["high"] == []

    projects = build_projects(entries, now=NOW)
    assert [p["name"] for p in projects] == ["ci-watch", "meta-runner"]
    assert projects[1]["description"] == "Runs meta"
    assert projects[0]["url"] == "https://github.com/clankamode/ci-watch"
    assert projects[0]["last_updated"] == "2025-06-15"


@pytest.mark.asyncio
async def test_fleet_health_aggregates_latest_runs(store, settings):
    github = _github()
    snapshot = await load_fleet_health(store, github, settings, now=NOW)
    assert snapshot.status is Severity.RED
    assert [(r.repo, r.conclusion) for r in snapshot.repos] == [
        ("clankamode/ci-watch", "success"),
        ("clankamode/meta-runner", "failure"),
    ]
    assert await store.get_json(keys.FLEET_HEALTH) == snapshot.to_dict()

    calls = len(github.calls)
    again = await load_fleet_health(store, github, settings, now=NOW + 1000)
    assert again == snapshot
    assert len(github.calls) == calls


@pytest.mark.asyncio
async def test_fleet_health_without_token_is_unknown(store, settings):
    github = _github(token=False)
    snapshot = await load_fleet_health(store, github, settings, now=NOW)
    assert snapshot.status is Severity.UNKNOWN
    assert {r.conclusion for r in snapshot.repos} == {"unknown"}
    assert github.calls_for("/repos/clankamode/ci-watch/actions/runs") == 0


@pytest.mark.asyncio
async def test_fleet_health_serves_old_snapshot_when_refresh_fails(store, settings):
    first = await load_fleet_health(store, _github(), settings, now=NOW)
    for entry in REGISTRY:
        await store.delete(keys.ci_run(entry["repo"]))

    failing = _github(overrides=CI_WATCH_DOWN)
    later = NOW + 10 * 60 * 1000
    assert await load_fleet_health(store, failing, settings, now=later) == first

    await store.delete(keys.FLEET_HEALTH)
    assert await load_fleet_health(store, failing, settings, now=later) == first


@pytest.mark.asyncio
async def test_fleet_health_without_any_snapshot_is_unavailable(store, settings):
    failing = _github(overrides=CI_WATCH_DOWN)
    with pytest.raises(FleetHealthUnavailable):
        await load_fleet_health(store, failing, settings, now=NOW)
    with pytest.raises(FleetHealthUnavailable):
        await load_fleet_score(store, failing, settings, now=NOW)


@pytest.mark.asyncio
async def test_fleet_score_from_snapshot(store, settings):
    score = await load_fleet_score(store, _github(), settings, now=NOW)
    # critical green (3 * 100) + medium red (1 * 0) over weight 4
    assert score["score"] == 75
    assert score["grade"] == "B"
    assert score["breakdown"] == {"RED": 1, "YELLOW": 0, "GREEN": 1, "UNKNOWN": 0}


@pytest.mark.asyncio
async def test_fleet_trend_per_repo(store, settings):
    trend = await load_fleet_trend(store, _github(), settings, now=NOW)
    assert trend["generatedAt"] == "2025-06-15T15:06:40.000Z"
    assert trend["totalRepos"] == 2
    by_repo = {record["repo"]: record for record in trend["repos"]}
    assert by_repo["clankamode/ci-watch"]["last5"] == ["success", "success", "failure"]
    assert by_repo["clankamode/ci-watch"]["direction"] == "up"
    assert by_repo["clankamode/meta-runner"]["direction"] == "down"


@pytest.mark.asyncio
async def test_fleet_trend_without_token_has_no_data(store, settings):
    trend = await load_fleet_trend(store, _github(token=False), settings, now=NOW)
    assert {record["direction"] for record in trend["repos"]} == {"unknown"}


@pytest.mark.asyncio
async def test_fleet_tasks_parses_tasks_md(store, settings):
    markdown = "\n".join(
        [
            "# Tasks",
            "- [ ] **Ignored before any heading**",
            "## 🔴 Now",
            "- [ ] **Fix flaky CI**",
            "- [x] **Already done**",
            "## 🟢 Later",
            "- [ ] **Write docs**",
        ]
    )
    github = _github(overrides={tasks_path("clankamode/ci-watch", "clankamode"): _contents(markdown)})
    tasks = await load_fleet_tasks(store, github, settings)
    assert tasks == [
        {
            "repo": "clankamode/ci-watch",
            "tasks": [
                {"priority": "red", "text": "Fix flaky CI", "done": False},
                {"priority": "green", "text": "Write docs", "done": False},
            ],
        },
        {"repo": "clankamode/meta-runner", "tasks": []},
    ]
