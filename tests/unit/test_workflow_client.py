"""Unit tests for the GitHub Actions REST client."""

from __future__ import annotations

import datetime as dt

import httpx
import pytest

from ghaction.auth import AuthenticationCoordinator, EnvironmentProvider
from ghaction.workflows import (
    GitHubAPIConfig,
    InvalidRefError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RateLimitedError,
    RepositoryNotFoundError,
    RunNotFoundError,
    WorkflowClient,
    WorkflowDispatchNotEnabledError,
    WorkflowHTTPError,
    WorkflowIdentifier,
    WorkflowJobStatus,
    WorkflowNetworkError,
    WorkflowNotFoundError,
    WorkflowResponseError,
    WorkflowRunsFilter,
    WorkflowRunStatus,
)
from tests.helpers.fakes import (
    API_URL,
    FakeGitHub,
    Reply,
    job_payload,
    jobs_payload,
    run_payload,
    runs_payload,
)

_WORKFLOW = WorkflowIdentifier(owner="octo", repo="reef", workflow_id="ci.yml")
_DISPATCH_PATH = "/repos/octo/reef/actions/workflows/ci.yml/dispatches"
_RUNS_PATH = "/repos/octo/reef/actions/runs"


class TestTrigger:
    """Tests for workflow_dispatch requests."""

    @pytest.mark.asyncio
    async def test_dispatch_sends_ref_inputs_and_headers(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub, token: str
    ) -> None:
        """A 204 answer is success; the body carries ref and inputs."""
        fake_github.on("POST", _DISPATCH_PATH, Reply(status_code=204))

        await workflow_client.trigger(_WORKFLOW, "main", {"environment": "prod"})

        (request,) = fake_github.calls("POST", _DISPATCH_PATH)
        assert request.json() == {"ref": "main", "inputs": {"environment": "prod"}}
        assert request.headers["authorization"] == f"Bearer {token}"
        assert request.headers["accept"] == "application/vnd.github+json"
        assert request.headers["x-github-api-version"] == "2022-11-28"
        assert request.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_dispatch_without_inputs_omits_field(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """No inputs means no inputs key."""
        fake_github.on("POST", _DISPATCH_PATH, Reply(status_code=204))

        await workflow_client.trigger(_WORKFLOW, "v1.2.0")

        (request,) = fake_github.calls("POST", _DISPATCH_PATH)
        assert request.json() == {"ref": "v1.2.0"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("reply", "exc_type"),
        [
            (Reply(status_code=401, payload={"message": "Bad"}), NotAuthenticatedError),
            (Reply(status_code=403, payload={"message": "No"}), PermissionDeniedError),
            (
                Reply(status_code=404, payload={"message": "Workflow does not exist"}),
                WorkflowNotFoundError,
            ),
            (
                Reply(status_code=404, payload={"message": "Not Found"}),
                RepositoryNotFoundError,
            ),
            (
                Reply(
                    status_code=422,
                    payload={
                        "message": "Workflow does not have 'workflow_dispatch' trigger"
                    },
                ),
                WorkflowDispatchNotEnabledError,
            ),
            (
                Reply(status_code=422, payload={"message": "No ref found for: nope"}),
                InvalidRefError,
            ),
            (
                Reply(status_code=422, payload={"message": "Unexpected inputs"}),
                WorkflowHTTPError,
            ),
            (Reply(status_code=429), RateLimitedError),
            (Reply(status_code=500, raw=b"oops"), WorkflowHTTPError),
        ],
        ids=[
            "401",
            "403",
            "404-workflow",
            "404-repository",
            "422-not-dispatchable",
            "422-bad-ref",
            "422-other",
            "429",
            "500",
        ],
    )
    async def test_dispatch_failures_are_classified(
        self,
        workflow_client: WorkflowClient,
        fake_github: FakeGitHub,
        reply: Reply,
        exc_type: type[Exception],
    ) -> None:
        """Each error status maps to a dedicated exception."""
        fake_github.on("POST", _DISPATCH_PATH, reply)

        with pytest.raises(exc_type):
            await workflow_client.trigger(_WORKFLOW, "nope")

    @pytest.mark.asyncio
    async def test_unexpected_success_status_is_an_error(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """Only 204 counts as an accepted dispatch."""
        fake_github.on("POST", _DISPATCH_PATH, Reply(status_code=200, payload={}))

        with pytest.raises(WorkflowHTTPError) as excinfo:
            await workflow_client.trigger(_WORKFLOW, "main")
        assert excinfo.value.status_code == 200


class TestReads:
    """Tests for workflow, run and job reads."""

    @pytest.mark.asyncio
    async def test_list_workflows(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """Workflows decode from the listing payload."""
        fake_github.on(
            "GET",
            "/repos/octo/reef/actions/workflows",
            Reply(
                payload={
                    "total_count": 1,
                    "workflows": [
                        {
                            "id": 42,
                            "name": "CI",
                            "path": ".github/workflows/ci.yml",
                            "state": "active",
                        }
                    ],
                }
            ),
        )

        (workflow,) = await workflow_client.list_workflows("octo", "reef")

        assert workflow.id == 42
        assert workflow.path == ".github/workflows/ci.yml"

    @pytest.mark.asyncio
    async def test_list_runs_passes_filter(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """Filters become query parameters."""
        fake_github.on("GET", _RUNS_PATH, Reply(payload=runs_payload(run_payload(2))))

        runs = await workflow_client.list_runs(
            "octo", "reef", WorkflowRunsFilter(branch="main", per_page=20)
        )

        assert [run.id for run in runs] == [2]
        (request,) = fake_github.calls("GET", _RUNS_PATH)
        assert request.params == {"branch": "main", "per_page": "20"}

    @pytest.mark.asyncio
    async def test_get_run(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """A single run decodes with its status."""
        fake_github.on(
            "GET", f"{_RUNS_PATH}/9", Reply(payload=run_payload(9, status="queued"))
        )

        run = await workflow_client.get_run("octo", "reef", 9)

        assert run.id == 9
        assert run.status is WorkflowRunStatus.QUEUED

    @pytest.mark.asyncio
    async def test_get_run_not_found(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """404 on a run raises RunNotFoundError."""
        fake_github.on(
            "GET", f"{_RUNS_PATH}/9", Reply(status_code=404, payload={"message": "x"})
        )

        with pytest.raises(RunNotFoundError) as excinfo:
            await workflow_client.get_run("octo", "reef", 9)
        assert excinfo.value.run_id == 9
        assert excinfo.value.repo == "octo/reef"

    @pytest.mark.asyncio
    async def test_get_jobs(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """Jobs decode, including unrecognised states."""
        fake_github.on(
            "GET",
            f"{_RUNS_PATH}/9/jobs",
            Reply(
                payload=jobs_payload(
                    job_payload(1, run_id=9, status="completed", conclusion="success"),
                    job_payload(2, run_id=9, status="hibernating"),
                )
            ),
        )

        first, second = await workflow_client.get_jobs("octo", "reef", 9)

        assert first.is_finished
        assert second.status is WorkflowJobStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_missing_repository_on_listing(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """404 on a listing names the repository."""
        fake_github.on("GET", _RUNS_PATH, Reply(status_code=404))

        with pytest.raises(RepositoryNotFoundError):
            await workflow_client.list_runs("octo", "reef")

    @pytest.mark.asyncio
    async def test_rate_limit_reset_header(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """A 403 carrying X-RateLimit-Reset is a rate limit, not a denial."""
        fake_github.on(
            "GET",
            _RUNS_PATH,
            Reply(status_code=403, headers={"X-RateLimit-Reset": "4070908800"}),
        )

        with pytest.raises(RateLimitedError) as excinfo:
            await workflow_client.list_runs("octo", "reef")
        assert excinfo.value.reset_at == dt.datetime(2099, 1, 1, tzinfo=dt.UTC)

    @pytest.mark.asyncio
    async def test_plain_forbidden_is_permission_denied(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """A 403 without rate-limit headers is a permission problem."""
        fake_github.on("GET", _RUNS_PATH, Reply(status_code=403))

        with pytest.raises(PermissionDeniedError):
            await workflow_client.list_runs("octo", "reef")

    @pytest.mark.asyncio
    async def test_too_many_requests_without_reset(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """A bare 429 is rate limited with an unknown reset time."""
        fake_github.on("GET", _RUNS_PATH, Reply(status_code=429))

        with pytest.raises(RateLimitedError) as excinfo:
            await workflow_client.list_runs("octo", "reef")
        assert excinfo.value.reset_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reset", ["nan", "inf", "-inf", "1e300", "soon"])
    @pytest.mark.parametrize(
        ("status_code", "exc_type"),
        [(403, PermissionDeniedError), (429, RateLimitedError)],
    )
    async def test_unusable_reset_header_is_ignored(
        self,
        workflow_client: WorkflowClient,
        fake_github: FakeGitHub,
        reset: str,
        status_code: int,
        exc_type: type[Exception],
    ) -> None:
        """Reset values that are not a representable time fall back cleanly."""
        fake_github.on(
            "GET",
            f"{_RUNS_PATH}/9",
            Reply(status_code=status_code, headers={"X-RateLimit-Reset": reset}),
        )

        with pytest.raises(exc_type) as excinfo:
            await workflow_client.get_run("octo", "reef", 9)
        assert getattr(excinfo.value, "reset_at", None) is None

    @pytest.mark.asyncio
    async def test_undecodable_body(
        self, workflow_client: WorkflowClient, fake_github: FakeGitHub
    ) -> None:
        """A 200 whose body does not match the schema is a response error."""
        fake_github.on("GET", f"{_RUNS_PATH}/9", Reply(payload={"id": "nine"}))

        with pytest.raises(WorkflowResponseError):
            await workflow_client.get_run("octo", "reef", 9)


@pytest.mark.asyncio
async def test_missing_credentials_raise_not_authenticated(
    fake_github: FakeGitHub,
) -> None:
    """Requests are not sent when no credential resolves."""
    coordinator = AuthenticationCoordinator([EnvironmentProvider(environ={})])

    async with fake_github.client() as http_client:
        client = WorkflowClient(
            coordinator, GitHubAPIConfig(api_url=API_URL), http_client=http_client
        )
        with pytest.raises(NotAuthenticatedError):
            await client.get_run("octo", "reef", 1)

    assert fake_github.requests == []


@pytest.mark.asyncio
async def test_transport_failure_is_network_error(
    coordinator: AuthenticationCoordinator,
) -> None:
    """Connection failures surface as WorkflowNetworkError."""

    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(_refuse)) as http:
        client = WorkflowClient(
            coordinator, GitHubAPIConfig(api_url=API_URL), http_client=http
        )
        with pytest.raises(WorkflowNetworkError):
            await client.list_workflows("octo", "reef")


@pytest.mark.asyncio
async def test_injected_client_is_left_open(
    coordinator: AuthenticationCoordinator, fake_github: FakeGitHub
) -> None:
    """aclose only closes clients the WorkflowClient created."""
    async with fake_github.client() as http_client:
        async with WorkflowClient(coordinator, http_client=http_client):
            pass
        assert not http_client.is_closed
