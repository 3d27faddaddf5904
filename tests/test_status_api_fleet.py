import pytest
from httpx import ASGITransport, AsyncClient

from backend.apps.status_api.app import create_app
from backend.core.github import FakeGitHubClient
from backend.core.result import UpstreamError


@pytest.fixture
def github(fleet_github):
    return fleet_github


@pytest.mark.asyncio
async def test_fleet_summary(client):
    resp = await client.get("/fleet/summary")
    assert resp.status_code == 200
    body = resp.json()
    assert body["totalRepos"] == 3
    assert body["source"] == "registry"
    assert body["tiers"]["policy"] == ["clankamode/policy-kit"]
    assert body["byCriticality"]["medium"] == ["clankamode/meta-runner"]


@pytest.mark.asyncio
async def test_fleet_health_and_score(client):
    health = (await client.get("/fleet/health")).json()
    assert health["status"] == "YELLOW"
    assert [repo["conclusion"] for repo in health["repos"]] == ["success", "success", "in_progress"]
    assert health["repos"][0]["lastRun"] == "2025-06-15T10:00:00Z"

    score = (await client.get("/fleet/score")).json()
    assert score["score"] == 83
    assert score["grade"] == "B"
    assert score["checkedAt"] == health["checkedAt"]


@pytest.mark.asyncio
async def test_fleet_health_unavailable_without_any_snapshot(client, github):
    github.responses["/repos/clankamode/ci-watch/actions/runs"] = UpstreamError("github", "down", status=502)
    resp = await client.get("/fleet/health")
    assert resp.status_code == 503
    assert resp.json() == {"error": "Service Unavailable"}
    assert (await client.get("/fleet/score")).status_code == 503


@pytest.mark.asyncio
async def test_fleet_trend(client):
    body = (await client.get("/fleet/trend")).json()
    assert body["totalRepos"] == 3
    by_repo = {record["repo"]: record for record in body["repos"]}
    assert by_repo["clankamode/ci-watch"] == {
        "repo": "clankamode/ci-watch",
        "criticality": "critical",
        "last5": ["success", "failure"],
        "direction": "up",
    }
    assert by_repo["clankamode/meta-runner"]["direction"] == "flat"


@pytest.mark.asyncio
async def test_tools_listing_is_cached_on_second_call(client, github):
    first = (await client.get("/tools")).json()
    second = (await client.get("/tools")).json()
    assert first["count"] == 3
    assert first["tools"][0] == {
        "repo": "clankamode/ci-watch",
        "criticality": "critical",
        "tier": "ops",
        "description": "Watches CI",
    }
    assert (first["cached"], second["cached"]) == (False, True)


@pytest.mark.asyncio
async def test_tools_search(client):
    body = (await client.get("/tools/search", params={"q": "watches"})).json()
    assert body["query"] == "watches"
    assert [tool["repo"] for tool in body["tools"]] == ["clankamode/ci-watch"]

    resp = await client.get("/tools/search", params={"q": "   "})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing query parameter: q"}
    assert (await client.get("/tools/search")).status_code == 400


@pytest.mark.asyncio
async def test_single_tool_lookup(client):
    body = (await client.get("/tools/clankamode/policy-kit")).json()
    assert body["tool"]["tier"] == "policy"
    assert body["tool"]["description"] == "policy tool - high criticality"

    resp = await client.get("/tools/clankamode/missing")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Tool Not Found"}


@pytest.mark.asyncio
async def test_projects(client):
    body = (await client.get("/projects")).json()
    assert body["source"] == "registry"
    assert body["cached"] is True
    assert [project["name"] for project in body["projects"]] == ["ci-watch", "meta-runner"]


@pytest.mark.asyncio
async def test_repo_tasks(client):
    body = (await client.get("/tasks")).json()
    assert body[0] == {
        "repo": "clankamode/ci-watch",
        "tasks": [{"priority": "yellow", "text": "Add retries", "done": False}],
    }
    assert body[1] == {"repo": "clankamode/meta-runner", "tasks": []}


@pytest.mark.asyncio
async def test_github_feeds(client):
    stats = (await client.get("/github/stats")).json()
    assert stats["repoCount"] == 3
    assert stats["totalStars"] == 5
    assert stats["lastPushedRepo"] == "ci-watch"

    events = (await client.get("/github/events")).json()
    assert events["events"] == [
        {"type": "PUSH", "repo": "ci-watch", "message": "fix: retry", "timestamp": "2025-06-15T09:00:00Z"}
    ]

    changelog = (await client.get("/changelog")).json()
    assert changelog["commits"] == [
        {"sha": "abc123", "message": "release", "author": "Dev", "date": "2025-06-14T00:00:00Z"}
    ]
    assert changelog["cached"] is False


@pytest.mark.asyncio
async def test_changelog_without_token(settings, store):
    app = create_app(settings=settings, kv_store=store, github_client=FakeGitHubClient(token=False))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        body = (await client.get("/changelog")).json()
    assert body["commits"] == []
    assert body["error"] == "no token"
