from __future__ import annotations

from typing import Any, Mapping, Optional

from backend.core.result import Failure, Result, Success, UpstreamError


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient.

    ``responses`` maps an API path (without query string) to either a JSON
    payload or an ``UpstreamError``; unknown paths fail with a 404.
    """

    name = "github-fake"

    def __init__(
        self,
        responses: Optional[Mapping[str, Any]] = None,
        *,
        token: bool = True,
        owner: str = "clankamode",
    ) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.owner = owner
        self._token = token
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def has_token(self) -> bool:
        return self._token

    def calls_for(self, path: str) -> int:
        return sum(1 for called, _ in self.calls if called == path)

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Result[Any, UpstreamError]:
        path = "/" + path.lstrip("/")
        self.calls.append((path, dict(params or {})))
        if path not in self.responses:
            return Failure(UpstreamError(self.name, f"no fixture for {path}", status=404))
        payload = self.responses[path]
        if isinstance(payload, UpstreamError):
            return Failure(payload)
        return Success(payload)


__all__ = ["FakeGitHubClient"]
