from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from backend.core.result import Result, UpstreamError


class GitHubError(RuntimeError):
    """Raised when a GitHub call fails (network, non-2xx, invalid JSON)."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class GitHubSource(Protocol):
    owner: str

    @property
    def has_token(self) -> bool:
        """True when an API credential is configured."""

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Result[Any, UpstreamError]:
        """GET ``path`` relative to the API base and decode the JSON body."""
