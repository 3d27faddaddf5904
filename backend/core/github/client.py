from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping, Optional

import aiohttp

from backend.core.result import Failure, Result, Success, UpstreamError
from backend.core.settings import Settings

from .base import GitHubError

logger = logging.getLogger(__name__)

USER_AGENT = "fleet-status-api/1.0"
ACCEPT = "application/vnd.github.v3+json"


class GitHubClient:
    """Thin REST client; one attempt per call, failures come back as Failure."""

    name = "github"

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.github_api_base.rstrip("/")
        self._token = settings.github_token
        self._timeout_seconds = settings.http_timeout_seconds
        self.owner = settings.github_owner

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT, "Accept": ACCEPT}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(self, path: str, params: Optional[Mapping[str, Any]]) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        timeout = aiohttp.ClientTimeout(total=float(self._timeout_seconds))
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=self._headers(), params=params) as resp:
                raw = await resp.text()
                if resp.status >= 400:
                    raise GitHubError(f"GitHub HTTP {resp.status} for {path}: {raw[:500]}", status=resp.status)
                try:
                    return json.loads(raw)
                except ValueError as exc:
                    raise GitHubError(f"Invalid JSON from GitHub for {path}: {exc}") from exc

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Result[Any, UpstreamError]:
        try:
            payload = await self._request(path, params)
        except GitHubError as exc:
            logger.warning("github.request.failed", extra={"path": path, "status": exc.status})
            return Failure(UpstreamError(self.name, str(exc), status=exc.status))
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("github.request.unreachable", extra={"path": path, "error": repr(exc)})
            return Failure(UpstreamError(self.name, f"network error: {exc!r}"))
        return Success(payload)


__all__ = ["GitHubClient"]
