"""GitHub REST access used by the upstream-backed datasets.

- ``GitHubClient``: aiohttp client against the REST API.
- ``FakeGitHubClient``: canned responses for tests and offline development.
- ``GitHubSource``: Protocol both implement.
"""

from .base import GitHubError, GitHubSource
from .client import GitHubClient
from .fake import FakeGitHubClient

__all__ = ["FakeGitHubClient", "GitHubClient", "GitHubError", "GitHubSource"]
