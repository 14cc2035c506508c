"""Factories for workflow clients and dispatchers from environment configuration."""

from __future__ import annotations

import typing as typ

from .client import WorkflowClient
from .config import GitHubAPIConfig, WatchConfig
from .dispatch import WorkflowDispatcher

if typ.TYPE_CHECKING:
    import httpx

    from ghaction.auth.coordinator import AuthenticationCoordinator
    from ghaction.common.clock import Clock


def create_workflow_client(
    coordinator: AuthenticationCoordinator,
    config: GitHubAPIConfig | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> WorkflowClient:
    """Create a :class:`WorkflowClient` bound to ``coordinator``.

    ``config`` defaults to :meth:`GitHubAPIConfig.from_env`, which reads
    ``GHACTIONTRIGGER_API_URL`` and ``GHACTIONTRIGGER_TIMEOUT_S``.

    Raises
    ------
    WorkflowConfigError
        If the environment holds an invalid timeout.

    """
    return WorkflowClient(
        coordinator, config or GitHubAPIConfig.from_env(), http_client=http_client
    )


def create_dispatcher(
    client: WorkflowClient,
    config: WatchConfig | None = None,
    *,
    clock: Clock | None = None,
) -> WorkflowDispatcher:
    """Create a :class:`WorkflowDispatcher` using ``WatchConfig.from_env``.

    Raises
    ------
    WorkflowConfigError
        If a ``GHACTIONTRIGGER_*`` polling variable is invalid.

    """
    return WorkflowDispatcher(
        client, config=config or WatchConfig.from_env(), clock=clock
    )
