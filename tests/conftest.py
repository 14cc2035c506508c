"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import secrets
import typing as typ

import pytest
import pytest_asyncio

from ghaction.auth import AuthenticationCoordinator, EnvironmentProvider
from ghaction.workflows import GitHubAPIConfig, WorkflowClient
from tests.helpers.fakes import API_URL, FakeClock, FakeGitHub

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@pytest.fixture
def token() -> str:
    """Return a throwaway bearer token."""
    return f"ghp_{secrets.token_hex(8)}"


@pytest.fixture
def fake_clock() -> FakeClock:
    """Return a clock whose sleeps complete instantly."""
    return FakeClock()


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Return an empty GitHub HTTP fake."""
    return FakeGitHub()


@pytest.fixture
def coordinator(token: str, fake_clock: FakeClock) -> AuthenticationCoordinator:
    """Return a coordinator that resolves ``token`` from a fake environment."""
    provider = EnvironmentProvider(environ={"GITHUB_TOKEN": token}, clock=fake_clock)
    return AuthenticationCoordinator([provider], clock=fake_clock)


@pytest_asyncio.fixture
async def workflow_client(
    coordinator: AuthenticationCoordinator, fake_github: FakeGitHub
) -> cabc.AsyncIterator[WorkflowClient]:
    """Yield a workflow client whose requests are served by ``fake_github``."""
    http_client = fake_github.client()
    client = WorkflowClient(
        coordinator, GitHubAPIConfig(api_url=API_URL), http_client=http_client
    )
    try:
        yield client
    finally:
        await client.aclose()
        await http_client.aclose()
