"""Structured log events for workflow dispatch and run tracking.

Events are emitted as ``[event.type] key=value`` lines so log aggregators can
parse dispatch outcomes, run matches and watch results without access to the
Python objects involved. Tokens never appear in these events.
"""

from __future__ import annotations

import enum
import typing as typ

from ghaction.auth.errors import AuthenticationError, AuthNetworkError
from ghaction.logging import get_logger, log_error, log_info, log_warning

from .errors import (
    InvalidInputError,
    InvalidRefError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RateLimitedError,
    RepositoryNotFoundError,
    RunNotFoundError,
    WorkflowConfigError,
    WorkflowDispatchNotEnabledError,
    WorkflowHTTPError,
    WorkflowNetworkError,
    WorkflowNotFoundError,
    WorkflowResponseError,
    WorkflowTimeoutError,
)

if typ.TYPE_CHECKING:
    from .models import WorkflowIdentifier, WorkflowRun, WorkflowRunConclusion

logger = get_logger(__name__)

# HTTP status code threshold for server errors (5xx)
_HTTP_SERVER_ERROR_THRESHOLD = 500


class WorkflowEventType(enum.StrEnum):
    """Structured log event types for workflow operations."""

    DISPATCH_ACCEPTED = "workflow.dispatch.accepted"
    DISPATCH_FAILED = "workflow.dispatch.failed"
    RUN_MATCHED = "workflow.run.matched"
    RUN_NOT_FOUND = "workflow.run.not_found"
    RUN_COMPLETED = "workflow.run.completed"
    RUN_COMPLETED_BY_JOBS = "workflow.run.completed_by_jobs"
    RUN_TIMED_OUT = "workflow.run.timed_out"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (WorkflowNetworkError, ErrorCategory.TRANSIENT),
    (AuthNetworkError, ErrorCategory.TRANSIENT),
    (WorkflowTimeoutError, ErrorCategory.TRANSIENT),
    (RateLimitedError, ErrorCategory.RATE_LIMITED),
    (NotAuthenticatedError, ErrorCategory.AUTHENTICATION),
    (PermissionDeniedError, ErrorCategory.AUTHENTICATION),
    (AuthenticationError, ErrorCategory.AUTHENTICATION),
    (WorkflowResponseError, ErrorCategory.SCHEMA_DRIFT),
    (WorkflowConfigError, ErrorCategory.CONFIGURATION),
    (InvalidInputError, ErrorCategory.CLIENT_ERROR),
    (InvalidRefError, ErrorCategory.CLIENT_ERROR),
    (WorkflowNotFoundError, ErrorCategory.CLIENT_ERROR),
    (RepositoryNotFoundError, ErrorCategory.CLIENT_ERROR),
    (RunNotFoundError, ErrorCategory.CLIENT_ERROR),
    (WorkflowDispatchNotEnabledError, ErrorCategory.CLIENT_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Returns:
        ErrorCategory indicating the type of failure for alert routing.

    """
    if isinstance(exc, WorkflowHTTPError):
        if exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


def _conclusion_label(conclusion: WorkflowRunConclusion | None) -> str:
    return conclusion.value if conclusion is not None else "none"


class WorkflowEventLogger:
    """Emit structured workflow events through femtologging.

    Events are emitted at INFO level for progress, WARNING when a run cannot
    be located, and ERROR for failures.
    """

    def log_dispatch_accepted(self, workflow: WorkflowIdentifier, ref: str) -> None:
        """Log that GitHub accepted a dispatch."""
        log_info(
            logger,
            "[%s] repo_slug=%s workflow=%s ref=%s",
            WorkflowEventType.DISPATCH_ACCEPTED,
            workflow.full_repo,
            workflow.workflow_id,
            ref,
        )

    def log_dispatch_failed(
        self, workflow: WorkflowIdentifier, ref: str, error: BaseException
    ) -> None:
        """Log a rejected or failed dispatch with error categorization."""
        log_error(
            logger,
            "[%s] repo_slug=%s workflow=%s ref=%s error_type=%s "
            "error_category=%s error_message=%s",
            WorkflowEventType.DISPATCH_FAILED,
            workflow.full_repo,
            workflow.workflow_id,
            ref,
            type(error).__name__,
            categorize_error(error),
            str(error),
        )

    def log_run_matched(self, workflow: WorkflowIdentifier, run: WorkflowRun) -> None:
        """Log that the run created by a dispatch was located."""
        log_info(
            logger,
            "[%s] repo_slug=%s workflow=%s run_id=%d run_number=%d url=%s",
            WorkflowEventType.RUN_MATCHED,
            workflow.full_repo,
            workflow.workflow_id,
            run.id,
            run.run_number,
            run.html_url,
        )

    def log_run_not_found(
        self, workflow: WorkflowIdentifier, ref: str, timeout_s: float
    ) -> None:
        """Log that no matching run appeared before the deadline."""
        log_warning(
            logger,
            "[%s] repo_slug=%s workflow=%s ref=%s timeout_seconds=%.1f",
            WorkflowEventType.RUN_NOT_FOUND,
            workflow.full_repo,
            workflow.workflow_id,
            ref,
            timeout_s,
        )

    def log_run_completed(
        self,
        repo_slug: str,
        run_id: int,
        conclusion: WorkflowRunConclusion | None,
        *,
        completed_by_jobs: bool = False,
    ) -> None:
        """Log that a followed run finished."""
        event = (
            WorkflowEventType.RUN_COMPLETED_BY_JOBS
            if completed_by_jobs
            else WorkflowEventType.RUN_COMPLETED
        )
        log_info(
            logger,
            "[%s] repo_slug=%s run_id=%d conclusion=%s",
            event,
            repo_slug,
            run_id,
            _conclusion_label(conclusion),
        )

    def log_run_timed_out(self, repo_slug: str, run_id: int, timeout_s: float) -> None:
        """Log that a followed run outlived its deadline."""
        log_error(
            logger,
            "[%s] repo_slug=%s run_id=%d timeout_seconds=%.1f",
            WorkflowEventType.RUN_TIMED_OUT,
            repo_slug,
            run_id,
            timeout_s,
        )
