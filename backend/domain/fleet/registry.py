"""Tool registry parsing.

The registry is a JSON document kept in a GitHub repository. Its shape has
drifted over time, so the parser accepts a bare list or a list nested under
``tools``, ``registry`` or ``entries``, and drops anything it cannot read.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Iterable, Optional

from .models import CRITICALITIES, TIERS, RegistryEntry

_SOURCE_KEYS = ("tools", "registry", "entries")


def normalize_registry_entry(item: Any) -> Optional[RegistryEntry]:
    if not isinstance(item, dict):
        return None
    repo = item.get("repo")
    repo = repo.strip() if isinstance(repo, str) else ""
    if not repo or "/" not in repo:
        return None
    criticality = item.get("criticality")
    tier = item.get("tier")
    if criticality not in CRITICALITIES or tier not in TIERS:
        return None
    description = item.get("description")
    if isinstance(description, str) and description.strip():
        description = description.strip()
    else:
        description = f"{tier} tool - {criticality} criticality"
    return RegistryEntry(repo=repo, criticality=criticality, tier=tier, description=description)


def _registry_source(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in _SOURCE_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def dedupe_and_sort(entries: Iterable[RegistryEntry]) -> list[RegistryEntry]:
    """First occurrence of a repo wins (case-insensitive); result is sorted by repo."""
    seen: set[str] = set()
    unique: list[RegistryEntry] = []
    for entry in entries:
        identity = entry.repo.lower()
        if identity in seen:
            continue
        seen.add(identity)
        unique.append(entry)
    unique.sort(key=lambda entry: entry.repo)
    return unique


def extract_registry_entries(payload: Any) -> list[RegistryEntry]:
    normalized = (normalize_registry_entry(item) for item in _registry_source(payload))
    return dedupe_and_sort(entry for entry in normalized if entry is not None)


def decode_contents(content: str) -> Any:
    """Decode a GitHub contents API ``content`` field (base64 JSON).

    Raises ValueError when the payload is not valid base64 or JSON.
    """
    try:
        raw = base64.b64decode(content.replace("\n", ""), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid base64 content: {exc}") from exc
    return json.loads(raw.decode("utf-8"))


def decode_text_contents(content: str) -> str:
    try:
        return base64.b64decode(content.replace("\n", "")).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid base64 content: {exc}") from exc


def find_entry(entries: Iterable[RegistryEntry], repo: str) -> Optional[RegistryEntry]:
    wanted = repo.strip().lower()
    for entry in entries:
        if entry.repo.lower() == wanted:
            return entry
    return None


def search_entries(entries: Iterable[RegistryEntry], query: str) -> list[RegistryEntry]:
    """Case-insensitive substring match over repo, description, tier and criticality."""
    needle = query.strip().lower()
    if not needle:
        return []
    return [
        entry
        for entry in entries
        if any(
            needle in field.lower()
            for field in (entry.repo, entry.description, entry.tier, entry.criticality)
        )
    ]


__all__ = [
    "decode_contents",
    "decode_text_contents",
    "dedupe_and_sort",
    "extract_registry_entries",
    "find_entry",
    "normalize_registry_entry",
    "search_entries",
]
