"""Errors raised by workflow dispatch and run tracking."""

from __future__ import annotations

import datetime as dt
import math
import typing as typ

if typ.TYPE_CHECKING:
    from .models import WorkflowRunConclusion


class WorkflowError(RuntimeError):
    """Base class for workflow operation failures."""


class NotAuthenticatedError(WorkflowError):
    """Raised when no credentials resolve or GitHub answers 401."""

    def __init__(self) -> None:
        """Initialise with guidance on how to authenticate."""
        super().__init__(
            "Not authenticated. Log in with the device flow, store a personal "
            "access token, or set GITHUB_TOKEN."
        )


class WorkflowNotFoundError(WorkflowError):
    """Raised when the workflow does not exist in the repository."""

    def __init__(self, workflow: str, repo: str) -> None:
        """Record the missing workflow and its repository."""
        self.workflow = workflow
        self.repo = repo
        super().__init__(f"Workflow {workflow!r} not found in repository {repo!r}")


class RepositoryNotFoundError(WorkflowError):
    """Raised when the repository does not exist or is not visible."""

    def __init__(self, owner: str, repo: str) -> None:
        """Record the repository that could not be reached."""
        self.owner = owner
        self.repo = repo
        super().__init__(f"Repository '{owner}/{repo}' not found or not accessible")


class RunNotFoundError(WorkflowError):
    """Raised when a run id does not exist in the repository."""

    def __init__(self, run_id: int, repo: str) -> None:
        """Record the missing run."""
        self.run_id = run_id
        self.repo = repo
        super().__init__(f"Workflow run {run_id} not found in repository {repo!r}")


class PermissionDeniedError(WorkflowError):
    """Raised on HTTP 403 without rate-limit information."""

    def __init__(self) -> None:
        """Initialise with a hint about token scopes."""
        super().__init__(
            "Permission denied. Ensure the token has the 'repo' or 'workflow' scope."
        )


class WorkflowDispatchNotEnabledError(WorkflowError):
    """Raised when the workflow has no ``workflow_dispatch`` trigger."""

    def __init__(self, workflow: str) -> None:
        """Record the workflow lacking the trigger."""
        self.workflow = workflow
        super().__init__(
            f"Workflow {workflow!r} does not have a 'workflow_dispatch' trigger"
        )


class InvalidRefError(WorkflowError):
    """Raised when GitHub rejects the git reference of a dispatch."""

    def __init__(self, ref: str) -> None:
        """Record the rejected reference."""
        self.ref = ref
        super().__init__(
            f"Invalid git reference {ref!r}; expected a branch, tag, or SHA"
        )


class RateLimitedError(WorkflowError):
    """Raised when GitHub's API rate limit is exhausted."""

    def __init__(self, reset_at: dt.datetime | None = None) -> None:
        """Record when the limit resets, when GitHub said so."""
        self.reset_at = reset_at
        msg = "GitHub API rate limit exceeded"
        if reset_at is not None:
            msg = f"{msg}; resets at {reset_at.isoformat()}"
        super().__init__(msg)

    @classmethod
    def from_reset_header(cls, value: str | None) -> RateLimitedError | None:
        """Build an error from ``X-RateLimit-Reset``; ``None`` if unusable."""
        if value is None:
            return None
        try:
            timestamp = float(value)
        except ValueError:
            return None
        if not math.isfinite(timestamp):
            return None
        try:
            reset_at = dt.datetime.fromtimestamp(timestamp, tz=dt.UTC)
        except (ValueError, OverflowError, OSError):
            return None
        return cls(reset_at)


class WorkflowNetworkError(WorkflowError):
    """Raised when a request fails below HTTP."""

    @classmethod
    def from_exception(cls, exc: BaseException) -> WorkflowNetworkError:
        """Wrap a transport exception."""
        return cls(f"Network error: {exc}")


class WorkflowHTTPError(WorkflowError):
    """Raised for HTTP failures without a more specific mapping."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        """Record the status code and GitHub's error message."""
        self.status_code = status_code
        self.message = message
        text = f"HTTP error {status_code}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


class InvalidInputError(WorkflowError):
    """Raised when a caller-supplied value cannot be used."""

    def __init__(self, key: str, reason: str) -> None:
        """Record which input was rejected and why."""
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid input {key!r}: {reason}")


class WorkflowTimeoutError(WorkflowError):
    """Raised when a run does not complete before the deadline."""

    def __init__(self, reason: str) -> None:
        """Record what timed out."""
        self.reason = reason
        super().__init__(f"Timed out: {reason}")

    @classmethod
    def run_incomplete(cls, run_id: int, timeout_s: float) -> WorkflowTimeoutError:
        """Return an error for a run still running at the deadline."""
        return cls(f"workflow run {run_id} did not complete within {timeout_s:g}s")


class RunFailedError(WorkflowError):
    """Raised when a followed run ends without success."""

    def __init__(
        self, run_id: int, conclusion: WorkflowRunConclusion | None
    ) -> None:
        """Record the run and its conclusion."""
        self.run_id = run_id
        self.conclusion = conclusion
        label = conclusion.value if conclusion is not None else "unknown"
        super().__init__(f"Workflow run {run_id} failed with conclusion: {label}")


class WorkflowResponseError(WorkflowError):
    """Raised when a successful response body cannot be decoded."""

    @classmethod
    def undecodable(cls, what: str, detail: str) -> WorkflowResponseError:
        """Return an error for a payload that does not match its schema."""
        return cls(f"GitHub {what} response could not be decoded: {detail}")


class WorkflowConfigError(WorkflowError):
    """Raised when workflow client or watch configuration is invalid."""

    @classmethod
    def invalid_number(cls, name: str, value: str) -> WorkflowConfigError:
        """Return an error for a non-positive or non-numeric setting."""
        return cls(f"{name} must be a positive number, got {value!r}")
