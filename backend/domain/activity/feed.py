"""Normalization of GitHub account activity: events, commits and stats."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

EVENT_TYPES = {
    "PushEvent": "PUSH",
    "CreateEvent": "CREATE",
    "PullRequestEvent": "PR",
    "IssuesEvent": "ISSUE",
}
MAX_EVENTS = 15
MESSAGE_MAX_LEN = 100
CHANGELOG_LIMIT = 10


def truncate_message(message: str, max_len: int = MESSAGE_MAX_LEN) -> str:
    if len(message) <= max_len:
        return message
    if max_len <= 3:
        return "." * max_len
    return f"{message[: max_len - 3]}..."


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _event_message(kind: str, payload: dict[str, Any]) -> str:
    action = _str(payload.get("action"))
    if kind == "PushEvent":
        commits = payload.get("commits")
        first = _dict(commits[0]) if isinstance(commits, list) and commits else {}
        message = _str(first.get("message"), "push") or "push"
        return message.split("\n", 1)[0]
    if kind == "PullRequestEvent":
        pr = _dict(payload.get("pull_request"))
        return f"{action} PR #{pr.get('number')}: {_str(pr.get('title'))}"
    if kind == "IssuesEvent":
        issue = _dict(payload.get("issue"))
        return f"{action} issue #{issue.get('number')}: {_str(issue.get('title'))}"
    return f"created {_str(payload.get('ref_type'))} {_str(payload.get('ref'))}".strip()


def normalize_events(raw: Any, *, owner: str) -> list[dict[str, str]]:
    """Keep push/create/PR/issue events, newest first as returned, at most MAX_EVENTS."""
    if not isinstance(raw, list):
        return []
    prefix = f"{owner}/"
    events: list[dict[str, str]] = []
    for item in raw:
        item = _dict(item)
        kind = item.get("type")
        if kind not in EVENT_TYPES:
            continue
        repo = _str(_dict(item.get("repo")).get("name"))
        if repo.startswith(prefix):
            repo = repo[len(prefix):]
        events.append(
            {
                "type": EVENT_TYPES[kind],
                "repo": repo,
                "message": truncate_message(_event_message(kind, _dict(item.get("payload")))),
                "timestamp": _str(item.get("created_at")),
            }
        )
        if len(events) >= MAX_EVENTS:
            break
    return events


def parse_cached_events(raw: Any) -> Optional[list[dict[str, str]]]:
    if not isinstance(raw, list):
        return None
    fields = ("type", "repo", "message", "timestamp")
    return [
        {field: item[field] for field in fields}
        for item in raw
        if isinstance(item, dict) and all(isinstance(item.get(field), str) for field in fields)
    ]


@dataclass(frozen=True)
class ChangelogEntry:
    sha: str
    message: str
    author: str
    date: str

    def to_dict(self) -> dict[str, str]:
        return {"sha": self.sha, "message": self.message, "author": self.author, "date": self.date}


def normalize_changelog_entry(item: Any, *, now_iso: str) -> Optional[ChangelogEntry]:
    """Accept a cached entry or a raw GitHub commit object."""
    if not isinstance(item, dict):
        return None
    sha = _str(item.get("sha")).strip()
    direct = (_str(item.get("message")), _str(item.get("author")), _str(item.get("date")))
    if sha and all(direct):
        return ChangelogEntry(sha, *direct)
    if not sha:
        return None

    commit = _dict(item.get("commit"))
    commit_author = _dict(commit.get("author"))
    login = _dict(item.get("author")).get("login")
    if isinstance(login, str):
        author = login
    else:
        author = _str(commit_author.get("name"), "unknown")
    date = commit_author.get("date")
    if not isinstance(date, str):
        date = _dict(commit.get("committer")).get("date")
    return ChangelogEntry(
        sha=sha,
        message=_str(commit.get("message")),
        author=author,
        date=date if isinstance(date, str) else now_iso,
    )


def normalize_changelog(raw: Any, *, now_iso: str) -> Optional[list[ChangelogEntry]]:
    if not isinstance(raw, list):
        return None
    entries = (normalize_changelog_entry(item, now_iso=now_iso) for item in raw[:CHANGELOG_LIMIT])
    return [entry for entry in entries if entry is not None]


def build_github_stats(user: Any, repos: Any, *, now_iso: str) -> dict[str, Any]:
    repo_list = [item for item in repos if isinstance(item, dict)] if isinstance(repos, list) else []
    public_repos = _dict(user).get("public_repos")
    if isinstance(public_repos, int) and not isinstance(public_repos, bool):
        repo_count = public_repos
    else:
        repo_count = len(repo_list)

    total_stars = 0
    last_pushed_at: Optional[str] = None
    last_pushed_repo: Optional[str] = None
    for repo in repo_list:
        stars = repo.get("stargazers_count")
        if isinstance(stars, int) and not isinstance(stars, bool):
            total_stars += stars
        pushed_at = repo.get("pushed_at")
        if isinstance(pushed_at, str) and (last_pushed_at is None or pushed_at > last_pushed_at):
            last_pushed_at = pushed_at
            last_pushed_repo = _str(repo.get("name")) or None

    return {
        "repoCount": repo_count,
        "totalStars": total_stars,
        "lastPushedAt": last_pushed_at,
        "lastPushedRepo": last_pushed_repo,
        "cachedAt": now_iso,
    }


__all__ = [
    "CHANGELOG_LIMIT",
    "ChangelogEntry",
    "build_github_stats",
    "normalize_changelog",
    "normalize_changelog_entry",
    "normalize_events",
    "parse_cached_events",
    "truncate_message",
]
