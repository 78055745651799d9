"""Shared test fixtures."""

import json
import subprocess
from pathlib import Path

import httpx
import pytest

from mirrorall.crawler.models import RepositoryDescriptor


class FakeGit:
    """Stand-in for ``subprocess.run`` that records git invocations.

    Clones create a minimal bare layout so a later run sees a valid mirror.
    ``fail`` maps a git sub-command ("clone", "fetch") to an exit code.
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.fail: dict[str, int] = {}

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        action = "clone" if cmd[1] == "clone" else cmd[3]

        if action in self.fail:
            return subprocess.CompletedProcess(
                cmd, self.fail[action], stdout="", stderr=f"fatal: {action} broke\n"
            )

        if action == "clone":
            target = Path(cmd[-1])
            (target / "objects").mkdir(parents=True)
            (target / "HEAD").write_text("ref: refs/heads/main\n")

        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


@pytest.fixture
def fake_git(monkeypatch):
    """Patch git invocations in the mirror module with a recorder."""
    git = FakeGit()
    monkeypatch.setattr("mirrorall.crawler.repo_manager.subprocess.run", git)
    return git


@pytest.fixture
def sample_repos():
    """Three repositories sized 100, 200 and 300 KB."""
    return [
        RepositoryDescriptor(full_name="acme/alpha", name="alpha", size_kb=100),
        RepositoryDescriptor(full_name="acme/beta", name="beta", size_kb=200),
        RepositoryDescriptor(full_name="acme/gamma", name="gamma", size_kb=300),
    ]


@pytest.fixture
def paged_api():
    """Factory for an httpx client serving the given pages, then an empty one.

    Returns ``(client, requests)`` where ``requests`` records every request.
    """

    def _make(pages: list[list[dict]], status_code: int = 200):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if status_code != 200:
                return httpx.Response(status_code, json={"message": "nope"})
            page = int(request.url.params["page"])
            body = pages[page - 1] if page <= len(pages) else []
            return httpx.Response(200, content=json.dumps(body))

        client = httpx.Client(transport=httpx.MockTransport(handler))
        return client, requests

    return _make
