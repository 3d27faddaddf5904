"""Open-task extraction from a repository's TASKS.md."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

PRIORITY_MARKERS = (("🔴", "red"), ("🟡", "yellow"), ("🟢", "green"))
_OPEN_TASK_RE = re.compile(r"^\s*-\s\[\s\]\s\*\*(.+?)\*\*\s*$")


@dataclass(frozen=True)
class RepoTask:
    priority: str
    text: str
    done: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"priority": self.priority, "text": self.text, "done": self.done}


def _priority_of(line: str) -> Optional[str]:
    for marker, priority in PRIORITY_MARKERS:
        if marker in line:
            return priority
    return None


def parse_open_tasks(markdown: str) -> list[RepoTask]:
    """Unchecked bold items (``- [ ] **title**``) under a coloured priority heading."""
    tasks: list[RepoTask] = []
    current: Optional[str] = None
    for line in markdown.splitlines():
        priority = _priority_of(line)
        if priority is not None:
            current = priority
            continue
        match = _OPEN_TASK_RE.match(line)
        if match and current:
            tasks.append(RepoTask(priority=current, text=match.group(1).strip()))
    return tasks


__all__ = ["RepoTask", "parse_open_tasks"]
