import base64
import json

import pytest

from backend.domain.fleet.health import aggregate_status, build_repo_health, severity_for
from backend.domain.fleet.models import (
    FleetHealthSnapshot,
    FleetRepoHealth,
    RegistryEntry,
    Severity,
    WorkflowRun,
)
from backend.domain.fleet.registry import (
    decode_contents,
    extract_registry_entries,
    find_entry,
    normalize_registry_entry,
    search_entries,
)
from backend.domain.fleet.score import compute_fleet_score, grade_for
from backend.domain.fleet.trend import normalize_conclusions, trend_direction


def _entry(repo, criticality="high", tier="core"):
    return {"repo": repo, "criticality": criticality, "tier": tier}


def test_registry_dedupes_case_insensitively_and_sorts_by_repo():
    payload = [
        _entry("clankamode/zeta"),
        _entry("clankamode/alpha", criticality="critical"),
        _entry("ClankaMode/Alpha", criticality="medium"),
        _entry("clankamode/mid"),
    ]
    entries = extract_registry_entries(payload)
    assert [e.repo for e in entries] == ["clankamode/alpha", "clankamode/mid", "clankamode/zeta"]
    # first occurrence wins
    assert entries[0].criticality == "critical"


@pytest.mark.parametrize("key", ["tools", "registry", "entries"])
def test_registry_accepts_nested_sources(key):
    entries = extract_registry_entries({key: [_entry("clankamode/a")]})
    assert [e.repo for e in entries] == ["clankamode/a"]


def test_registry_drops_invalid_entries_and_defaults_description():
    payload = [
        _entry("no-slash"),
        _entry("clankamode/bad-tier", tier="galaxy"),
        _entry("clankamode/bad-crit", criticality="low"),
        "not a dict",
        _entry("clankamode/ok", criticality="medium", tier="ops"),
    ]
    entries = extract_registry_entries(payload)
    assert len(entries) == 1
    assert entries[0].description == "ops tool - medium criticality"


def test_normalize_registry_entry_keeps_description():
    entry = normalize_registry_entry({**_entry("o/r"), "description": "  Runs things  "})
    assert entry == RegistryEntry(repo="o/r", criticality="high", tier="core", description="Runs things")


def test_decode_contents_reads_base64_json():
    content = base64.b64encode(json.dumps([_entry("o/r")]).encode()).decode()
    wrapped = "\n".join(content[i : i + 20] for i in range(0, len(content), 20))
    assert decode_contents(wrapped) == [_entry("o/r")]
    with pytest.raises(ValueError):
        decode_contents(base64.b64encode(b"{not json").decode())


def test_find_and_search_entries():
    entries = extract_registry_entries(
        [
            {**_entry("clankamode/ci-watch", tier="ops"), "description": "Watches CI"},
            _entry("clankamode/policy-kit", criticality="critical", tier="policy"),
        ]
    )
    assert find_entry(entries, "CLANKAMODE/CI-WATCH").repo == "clankamode/ci-watch"
    assert find_entry(entries, "clankamode/missing") is None
    assert [e.repo for e in search_entries(entries, "watches")] == ["clankamode/ci-watch"]
    assert [e.repo for e in search_entries(entries, "CRITICAL")] == ["clankamode/policy-kit"]
    assert search_entries(entries, "   ") == []


@pytest.mark.parametrize(
    "conclusion,expected",
    [
        ("success", Severity.GREEN),
        (None, Severity.UNKNOWN),
        ("null", Severity.UNKNOWN),
        ("unknown", Severity.UNKNOWN),
        ("failure", Severity.RED),
        ("timed_out", Severity.RED),
        ("startup_failure", Severity.RED),
        ("in_progress", Severity.YELLOW),
        ("neutral", Severity.YELLOW),
    ],
)
def test_severity_table(conclusion, expected):
    assert severity_for(conclusion) is expected


@pytest.mark.parametrize(
    "conclusions,expected",
    [
        (["success", "failure"], Severity.RED),
        (["success", "success"], Severity.GREEN),
        ([], Severity.UNKNOWN),
        (["success", "in_progress"], Severity.YELLOW),
        (["unknown", "success"], Severity.GREEN),
    ],
)
def test_aggregate_status(conclusions, expected):
    assert aggregate_status(conclusions) is expected


def test_aggregate_status_stops_at_first_red():
    seen = []

    def conclusions():
        for item in ["success", "failure", "success"]:
            seen.append(item)
            yield item

    assert aggregate_status(conclusions()) is Severity.RED
    assert seen == ["success", "failure"]


def test_build_repo_health_without_token_is_unknown():
    entry = RegistryEntry("o/r", "high", "core", "d")
    run = WorkflowRun.from_payload({"conclusion": "success", "updated_at": "2026-01-01T00:00:00Z"})
    assert build_repo_health(entry, run, has_token=False).conclusion == "unknown"
    health = build_repo_health(entry, run, has_token=True)
    assert health.conclusion == "success"
    assert health.last_run == "2026-01-01T00:00:00Z"


def test_workflow_run_effective_conclusion():
    assert WorkflowRun.from_payload({"conclusion": None, "status": "in_progress"}).effective_conclusion() == "in_progress"
    assert WorkflowRun.from_payload({"conclusion": None, "status": "completed"}).effective_conclusion() == "null"
    assert WorkflowRun.empty().effective_conclusion() == "null"
    assert WorkflowRun.from_payload({"conclusion": "FAILURE"}).effective_conclusion() == "failure"


def test_snapshot_round_trip_rejects_drift():
    snapshot = FleetHealthSnapshot(
        status=Severity.YELLOW,
        repos=[FleetRepoHealth("o/r", "high", None, "in_progress")],
        checked_at="2026-01-01T00:00:00.000Z",
    )
    assert FleetHealthSnapshot.from_dict(snapshot.to_dict()) == snapshot
    drifted = snapshot.to_dict()
    drifted["status"] = "PURPLE"
    assert FleetHealthSnapshot.from_dict(drifted) is None
    drifted = snapshot.to_dict()
    drifted["repos"] = [{"repo": "o/r"}]
    assert FleetHealthSnapshot.from_dict(drifted) is None


def test_snapshot_freshness():
    snapshot = FleetHealthSnapshot(status=Severity.GREEN, checked_at="2026-01-01T00:00:00.000Z")
    checked = snapshot.checked_at_ms()
    assert snapshot.is_fresh(checked + 299_999, 300)
    assert not snapshot.is_fresh(checked + 300_000, 300)


@pytest.mark.parametrize(
    "conclusions,expected",
    [
        (["success", "success", "failure", "failure", "failure"], "up"),
        (["failure", "failure", "failure", "success", "success"], "down"),
        (["success"], "flat"),
        ([], "unknown"),
        (["success", "failure", "success"], "down"),
        (["failure", "success", "failure"], "up"),
        (["success", "success"], "flat"),
    ],
)
def test_trend_direction(conclusions, expected):
    assert trend_direction(conclusions) == expected


def test_normalize_conclusions():
    assert normalize_conclusions({"not": "a list"}) is None
    assert normalize_conclusions([" Success ", 3, "", "failure", "a", "b", "c"]) == ["success", "failure", "a"]


def test_fleet_score_weights_by_criticality():
    snapshot = FleetHealthSnapshot(
        status=Severity.RED,
        repos=[
            FleetRepoHealth("o/a", "critical", None, "success"),
            FleetRepoHealth("o/b", "medium", None, "failure"),
            FleetRepoHealth("o/c", "high", None, "unknown"),
        ],
        checked_at="2026-01-01T00:00:00.000Z",
    )
    score = compute_fleet_score(snapshot).to_dict()
    assert score["score"] == 75
    assert score["grade"] == "B"
    assert score["status"] == "RED"
    assert score["scoredRepos"] == 2
    assert score["totalRepos"] == 3
    assert score["breakdown"] == {"RED": 1, "YELLOW": 0, "GREEN": 1, "UNKNOWN": 1}


def test_fleet_score_without_scored_repos():
    snapshot = FleetHealthSnapshot(status=Severity.UNKNOWN, checked_at="x")
    score = compute_fleet_score(snapshot)
    assert score.score is None
    assert score.grade == "N/A"
    assert grade_for(24) == "F"
    assert grade_for(90) == "A"
