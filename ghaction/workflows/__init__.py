"""Dispatch GitHub Actions workflows and follow their runs.

Public API:

- :class:`WorkflowClient`: REST requests for dispatching workflows and reading
  runs and jobs
- :class:`RunMatcher`: locate the run created by a dispatch
- :class:`RunWatcher`: poll a run, and its jobs, until completion
- :class:`WorkflowDispatcher`: dispatch, locate and follow in one call
- :func:`create_workflow_client` / :func:`create_dispatcher`: construction
  from ``GHACTIONTRIGGER_*`` environment variables

Examples
--------
>>> from ghaction.auth import create_coordinator
>>> from ghaction.workflows import (
...     WorkflowIdentifier, create_dispatcher, create_workflow_client
... )
>>> async with create_workflow_client(create_coordinator()) as client:
...     result = await create_dispatcher(client).dispatch(
...         WorkflowIdentifier.from_slug("octo/reef", "ci.yml"), "main", wait=True
...     )

"""

from __future__ import annotations

from .client import WorkflowClient
from .config import GitHubAPIConfig, WatchConfig
from .dispatch import DispatchResult, WorkflowDispatcher, parse_workflow_inputs
from .errors import (
    InvalidInputError,
    InvalidRefError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RateLimitedError,
    RepositoryNotFoundError,
    RunFailedError,
    RunNotFoundError,
    WorkflowConfigError,
    WorkflowDispatchNotEnabledError,
    WorkflowError,
    WorkflowHTTPError,
    WorkflowNetworkError,
    WorkflowNotFoundError,
    WorkflowResponseError,
    WorkflowTimeoutError,
)
from .factory import create_dispatcher, create_workflow_client
from .matcher import RunMatcher
from .models import (
    WorkflowIdentifier,
    WorkflowInfo,
    WorkflowJob,
    WorkflowJobConclusion,
    WorkflowJobStatus,
    WorkflowRun,
    WorkflowRunConclusion,
    WorkflowRunsFilter,
    WorkflowRunStatus,
    WorkflowStep,
)
from .observability import ErrorCategory, WorkflowEventLogger, categorize_error
from .watcher import RunWatcher, WatchResult, conclusion_from_jobs

__all__ = [
    "DispatchResult",
    "ErrorCategory",
    "GitHubAPIConfig",
    "InvalidInputError",
    "InvalidRefError",
    "NotAuthenticatedError",
    "PermissionDeniedError",
    "RateLimitedError",
    "RepositoryNotFoundError",
    "RunFailedError",
    "RunMatcher",
    "RunNotFoundError",
    "RunWatcher",
    "WatchConfig",
    "WatchResult",
    "WorkflowClient",
    "WorkflowConfigError",
    "WorkflowDispatchNotEnabledError",
    "WorkflowDispatcher",
    "WorkflowError",
    "WorkflowEventLogger",
    "WorkflowHTTPError",
    "WorkflowIdentifier",
    "WorkflowInfo",
    "WorkflowJob",
    "WorkflowJobConclusion",
    "WorkflowJobStatus",
    "WorkflowNetworkError",
    "WorkflowNotFoundError",
    "WorkflowResponseError",
    "WorkflowRun",
    "WorkflowRunConclusion",
    "WorkflowRunStatus",
    "WorkflowRunsFilter",
    "WorkflowStep",
    "WorkflowTimeoutError",
    "categorize_error",
    "conclusion_from_jobs",
    "create_dispatcher",
    "create_workflow_client",
    "parse_workflow_inputs",
]
