import dataclasses
import json

import aiohttp
import pytest

from backend.core.github import GitHubClient


class _DummyResponse:
    def __init__(self, *, status: int, raw: str) -> None:
        self.status = status
        self._raw = raw

    async def text(self) -> str:
        return self._raw

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


def _install_dummy_client_session(monkeypatch, *, capture: dict, status: int = 200, raw: str = "{}") -> None:
    class _DummySession:
        def __init__(self, *, timeout: aiohttp.ClientTimeout) -> None:
            capture["timeout"] = timeout

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb) -> bool:
            return False

        def get(self, url, *, headers=None, params=None):
            capture["url"] = url
            capture["headers"] = headers
            capture["params"] = params
            return _DummyResponse(status=status, raw=raw)

    monkeypatch.setattr(aiohttp, "ClientSession", lambda *, timeout: _DummySession(timeout=timeout))


def _client(settings, **overrides):
    return GitHubClient(dataclasses.replace(settings, **overrides))


@pytest.mark.asyncio
async def test_get_json_sends_auth_and_decodes_body(monkeypatch, settings):
    capture: dict = {}
    _install_dummy_client_session(monkeypatch, capture=capture, raw=json.dumps({"login": "clankamode"}))
    client = _client(settings, github_token="ghp_test", http_timeout_seconds=3.0)

    result = await client.get_json("/users/clankamode", params={"per_page": 1})

    assert result.is_success()
    assert result.unwrap() == {"login": "clankamode"}
    assert capture["url"] == "https://api.github.com/users/clankamode"
    assert capture["params"] == {"per_page": 1}
    assert capture["headers"]["Authorization"] == "Bearer ghp_test"
    assert capture["headers"]["Accept"] == "application/vnd.github.v3+json"
    assert capture["timeout"].total == 3.0
    assert client.has_token


@pytest.mark.asyncio
async def test_get_json_without_token_omits_authorization(monkeypatch, settings):
    capture: dict = {}
    _install_dummy_client_session(monkeypatch, capture=capture, raw="[]")
    client = _client(settings, github_token="")

    result = await client.get_json("users/clankamode/events")

    assert result.unwrap() == []
    assert "Authorization" not in capture["headers"]
    assert not client.has_token


@pytest.mark.asyncio
async def test_http_error_becomes_failure(monkeypatch, settings):
    _install_dummy_client_session(monkeypatch, capture={}, status=403, raw='{"message": "rate limited"}')
    result = await _client(settings).get_json("/users/clankamode")

    assert result.is_failure()
    assert result.error.status == 403
    assert "rate limited" in result.error.message


@pytest.mark.asyncio
async def test_invalid_json_becomes_failure(monkeypatch, settings):
    _install_dummy_client_session(monkeypatch, capture={}, raw="<html>")
    result = await _client(settings).get_json("/users/clankamode")

    assert result.is_failure()
    assert result.error.status is None
    assert "Invalid JSON" in result.error.message


@pytest.mark.asyncio
async def test_network_error_becomes_failure(monkeypatch, settings):
    class _FailingSession:
        def __init__(self, *, timeout):
            pass

        async def __aenter__(self):
            raise aiohttp.ClientConnectionError("connection refused")

        async def __aexit__(self, exc_type, exc, tb) -> bool:
            return False

    monkeypatch.setattr(aiohttp, "ClientSession", lambda *, timeout: _FailingSession(timeout=timeout))
    result = await _client(settings).get_json("/users/clankamode")

    assert result.is_failure()
    assert "network error" in result.error.message
