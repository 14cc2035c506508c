"""GitHub Actions workflow, run and job structures."""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003
import enum
import typing as typ

import msgspec

from ghaction.common.slug import parse_repo_slug, repo_slug

from .errors import InvalidInputError


class WorkflowRunStatus(enum.StrEnum):
    """Lifecycle status of a workflow run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WAITING = "waiting"
    REQUESTED = "requested"
    PENDING = "pending"


class WorkflowRunConclusion(enum.StrEnum):
    """Outcome of a completed workflow run."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    NEUTRAL = "neutral"
    STARTUP_FAILURE = "startup_failure"


class WorkflowJobStatus(enum.StrEnum):
    """Status of a job or step; ``unknown`` absorbs values GitHub adds later."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WAITING = "waiting"
    REQUESTED = "requested"
    PENDING = "pending"
    UNKNOWN = "unknown"


class WorkflowJobConclusion(enum.StrEnum):
    """Outcome of a job or step; ``unknown`` absorbs unrecognised values."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    NEUTRAL = "neutral"
    STARTUP_FAILURE = "startup_failure"
    UNKNOWN = "unknown"


@dataclasses.dataclass(frozen=True, slots=True)
class WorkflowIdentifier:
    """Names a workflow within a repository.

    Attributes
    ----------
    owner
        Repository owner (user or organisation).
    repo
        Repository name.
    workflow_id
        Workflow file name (``ci.yml``) or numeric id.

    """

    owner: str
    repo: str
    workflow_id: str

    def __post_init__(self) -> None:
        """Reject empty components."""
        for key in ("owner", "repo", "workflow_id"):
            if not getattr(self, key).strip():
                raise InvalidInputError(key, "must not be empty")

    @property
    def full_repo(self) -> str:
        """Repository slug in ``owner/repo`` form."""
        return repo_slug(self.owner, self.repo)

    @classmethod
    def from_slug(cls, slug: str, workflow_id: str) -> WorkflowIdentifier:
        """Build an identifier from an ``owner/repo`` slug.

        Raises
        ------
        InvalidInputError
            If ``slug`` is malformed or ``workflow_id`` is empty.

        """
        try:
            owner, repo = parse_repo_slug(slug)
        except ValueError as exc:
            raise InvalidInputError("repository", str(exc)) from exc
        return cls(owner=owner, repo=repo, workflow_id=workflow_id)


class WorkflowInfo(msgspec.Struct, kw_only=True, frozen=True):
    """A workflow defined in a repository."""

    id: int
    name: str
    path: str
    state: str


class WorkflowRun(msgspec.Struct, kw_only=True, frozen=True):
    """One execution of a workflow.

    GitHub is expected to report ``conclusion`` only once ``status`` is
    ``completed``, but the pairing is not enforced when decoding.
    """

    id: int
    workflow_id: int
    head_sha: str
    status: WorkflowRunStatus
    created_at: dt.datetime
    updated_at: dt.datetime
    html_url: str
    event: str
    run_number: int
    run_attempt: int = 1
    name: str | None = None
    head_branch: str | None = None
    conclusion: WorkflowRunConclusion | None = None
    run_started_at: dt.datetime | None = None

    @property
    def is_completed(self) -> bool:
        """Return ``True`` once GitHub reports the run as completed."""
        return self.status is WorkflowRunStatus.COMPLETED


class WorkflowStep(msgspec.Struct, kw_only=True, frozen=True):
    """A step within a job; ``number`` is 1-based."""

    name: str
    status: WorkflowJobStatus
    number: int
    conclusion: WorkflowJobConclusion | None = None
    started_at: dt.datetime | None = None
    completed_at: dt.datetime | None = None


class WorkflowJob(msgspec.Struct, kw_only=True, frozen=True):
    """A job within a workflow run."""

    id: int
    run_id: int
    name: str
    status: WorkflowJobStatus
    conclusion: WorkflowJobConclusion | None = None
    started_at: dt.datetime | None = None
    completed_at: dt.datetime | None = None
    steps: tuple[WorkflowStep, ...] = ()
    html_url: str | None = None

    @property
    def is_finished(self) -> bool:
        """Return ``True`` when the job is completed and has a conclusion."""
        return (
            self.status is WorkflowJobStatus.COMPLETED and self.conclusion is not None
        )


class WorkflowListResponse(msgspec.Struct, kw_only=True, frozen=True):
    """Payload of ``GET /repos/{owner}/{repo}/actions/workflows``."""

    total_count: int
    workflows: tuple[WorkflowInfo, ...] = ()


class WorkflowRunsListResponse(msgspec.Struct, kw_only=True, frozen=True):
    """Payload of ``GET /repos/{owner}/{repo}/actions/runs``."""

    total_count: int
    workflow_runs: tuple[WorkflowRun, ...] = ()


class WorkflowJobsListResponse(msgspec.Struct, kw_only=True, frozen=True):
    """Payload of ``GET /repos/{owner}/{repo}/actions/runs/{id}/jobs``."""

    total_count: int
    jobs: tuple[WorkflowJob, ...] = ()


class WorkflowDispatchRequest(
    msgspec.Struct, kw_only=True, frozen=True, omit_defaults=True
):
    """Body of a ``workflow_dispatch`` request."""

    ref: str
    inputs: dict[str, str] | None = None


class GitHubErrorResponse(msgspec.Struct, kw_only=True, frozen=True):
    """Error body returned by the REST API."""

    message: str | None = None
    documentation_url: str | None = None


class WorkflowRunsFilter(msgspec.Struct, kw_only=True, frozen=True):
    """Query options for listing workflow runs."""

    workflow_id: str | None = None
    branch: str | None = None
    event: str | None = None
    status: WorkflowRunStatus | None = None
    per_page: int | None = None
    page: int | None = None

    def query_params(self) -> dict[str, str]:
        """Return the set options as query-string parameters."""
        params: dict[str, str] = {}
        for field in self.__struct_fields__:
            value = getattr(self, field)
            if value is not None:
                params[field] = str(value)
        return params


_JOB_STATUSES = frozenset(WorkflowJobStatus)
_JOB_CONCLUSIONS = frozenset(WorkflowJobConclusion)


def _normalise_state(entry: dict[str, typ.Any]) -> None:
    status = entry.get("status")
    if isinstance(status, str) and status not in _JOB_STATUSES:
        entry["status"] = WorkflowJobStatus.UNKNOWN.value
    conclusion = entry.get("conclusion")
    if isinstance(conclusion, str) and conclusion not in _JOB_CONCLUSIONS:
        entry["conclusion"] = WorkflowJobConclusion.UNKNOWN.value


def decode_jobs(payload: bytes) -> WorkflowJobsListResponse:
    """Decode a jobs listing, mapping unrecognised states to ``unknown``.

    Raises
    ------
    msgspec.DecodeError
        If ``payload`` is not JSON.
    msgspec.ValidationError
        If the payload does not match the jobs schema.

    """
    raw = msgspec.json.decode(payload)
    if isinstance(raw, dict):
        for job in raw.get("jobs") or ():
            if not isinstance(job, dict):
                continue
            _normalise_state(job)
            if job.get("steps") is None:
                job.pop("steps", None)
            for step in job.get("steps") or ():
                if isinstance(step, dict):
                    _normalise_state(step)
    return msgspec.convert(raw, type=WorkflowJobsListResponse)
