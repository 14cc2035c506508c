"""GitHub Actions REST client for dispatching and inspecting workflow runs."""

from __future__ import annotations

import typing as typ

import httpx
import msgspec

from ghaction.auth.errors import AuthenticationError
from ghaction.logging import get_logger, log_debug

from .config import GitHubAPIConfig
from .errors import (
    InvalidRefError,
    NotAuthenticatedError,
    PermissionDeniedError,
    RateLimitedError,
    RepositoryNotFoundError,
    RunNotFoundError,
    WorkflowDispatchNotEnabledError,
    WorkflowError,
    WorkflowHTTPError,
    WorkflowNetworkError,
    WorkflowNotFoundError,
    WorkflowResponseError,
)
from .models import (
    GitHubErrorResponse,
    WorkflowDispatchRequest,
    WorkflowInfo,
    WorkflowJob,
    WorkflowListResponse,
    WorkflowRun,
    WorkflowRunsListResponse,
    decode_jobs,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import types

    from ghaction.auth.coordinator import AuthenticationCoordinator

    from .models import WorkflowIdentifier, WorkflowRunsFilter

logger = get_logger(__name__)

_HTTP_OK = 200
_HTTP_NO_CONTENT = 204
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404
_HTTP_UNPROCESSABLE = 422
_HTTP_TOO_MANY_REQUESTS = 429

_T = typ.TypeVar("_T")


def _error_message(response: httpx.Response) -> str | None:
    """Return GitHub's ``message`` field, if the body carries one."""
    try:
        return msgspec.json.decode(response.content, type=GitHubErrorResponse).message
    except msgspec.DecodeError:
        return None


def _mentions(message: str | None, *needles: str) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return any(needle in lowered for needle in needles)


def _dispatch_error(
    response: httpx.Response, workflow: WorkflowIdentifier, ref: str
) -> WorkflowError:
    status = response.status_code
    if status == _HTTP_UNAUTHORIZED:
        return NotAuthenticatedError()
    if status == _HTTP_FORBIDDEN:
        return PermissionDeniedError()

    message = _error_message(response)
    if status == _HTTP_NOT_FOUND:
        if _mentions(message, "workflow"):
            return WorkflowNotFoundError(workflow.workflow_id, workflow.full_repo)
        return RepositoryNotFoundError(workflow.owner, workflow.repo)
    if status == _HTTP_UNPROCESSABLE:
        if _mentions(message, "workflow_dispatch", "event type"):
            return WorkflowDispatchNotEnabledError(workflow.workflow_id)
        if _mentions(message, "ref", "branch"):
            return InvalidRefError(ref)
        return WorkflowHTTPError(status, message)
    if status == _HTTP_TOO_MANY_REQUESTS:
        return RateLimitedError(None)
    return WorkflowHTTPError(status, message)


def _read_error(
    response: httpx.Response, not_found: cabc.Callable[[], WorkflowError]
) -> WorkflowError:
    status = response.status_code
    if status == _HTTP_UNAUTHORIZED:
        return NotAuthenticatedError()
    if status in {_HTTP_FORBIDDEN, _HTTP_TOO_MANY_REQUESTS}:
        limited = RateLimitedError.from_reset_header(
            response.headers.get("X-RateLimit-Reset")
        )
        if limited is not None:
            return limited
        if status == _HTTP_TOO_MANY_REQUESTS:
            return RateLimitedError(None)
        return PermissionDeniedError()
    if status == _HTTP_NOT_FOUND:
        return not_found()
    return WorkflowHTTPError(status, _error_message(response))


class WorkflowClient:
    """Dispatch workflows and read run state through the GitHub REST API.

    Each request resolves credentials through the coordinator, so a token
    obtained or revoked mid-session takes effect on the next call.

    Parameters
    ----------
    coordinator
        Source of the bearer token.
    config
        API base URL, version header and timeout.
    http_client
        Optional shared client. A client created here is closed by
        :meth:`aclose`; an injected one is left to its owner.

    """

    def __init__(
        self,
        coordinator: AuthenticationCoordinator,
        config: GitHubAPIConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with its credential source and transport."""
        self._coordinator = coordinator
        self._config = config or GitHubAPIConfig()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self._config.timeout_s,
            headers={"User-Agent": self._config.user_agent},
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> typ.Self:
        """Return the client for use as an async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Close owned resources on exit."""
        await self.aclose()

    def _url(self, path: str) -> str:
        return f"{self._config.api_url.rstrip('/')}{path}"

    async def _headers(self) -> dict[str, str]:
        try:
            credentials = await self._coordinator.get_credentials()
        except AuthenticationError as exc:
            raise NotAuthenticatedError from exc
        return {
            "Authorization": credentials.authorization_header,
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self._config.api_version,
        }

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        headers = await self._headers()
        if content is not None:
            headers["Content-Type"] = "application/json"
        try:
            response = await self._client.request(
                method,
                self._url(path),
                params=params,
                content=content,
                headers=headers,
            )
        except httpx.RequestError as exc:
            raise WorkflowNetworkError.from_exception(exc) from exc
        log_debug(logger, "%s %s -> %d", method, path, response.status_code)
        return response

    async def _get(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        not_found: cabc.Callable[[], WorkflowError],
        decode: cabc.Callable[[bytes], _T],
        what: str,
    ) -> _T:
        response = await self._send("GET", path, params=params)
        if response.status_code != _HTTP_OK:
            raise _read_error(response, not_found)
        try:
            return decode(response.content)
        except msgspec.DecodeError as exc:
            raise WorkflowResponseError.undecodable(what, str(exc)) from exc

    async def trigger(
        self,
        workflow: WorkflowIdentifier,
        ref: str,
        inputs: cabc.Mapping[str, str] | None = None,
    ) -> None:
        """Fire a ``workflow_dispatch`` event.

        A successful dispatch returns no run id; use
        :class:`~ghaction.workflows.matcher.RunMatcher` to locate the run.

        Raises
        ------
        NotAuthenticatedError
            If no credentials resolve or GitHub answers 401.
        PermissionDeniedError
            On 403.
        WorkflowNotFoundError, RepositoryNotFoundError
            On 404, depending on GitHub's message.
        WorkflowDispatchNotEnabledError, InvalidRefError
            On 422, depending on GitHub's message.
        RateLimitedError
            On 429.
        WorkflowHTTPError
            For any other non-204 status.
        WorkflowNetworkError
            If the request fails below HTTP.

        """
        body = msgspec.json.encode(
            WorkflowDispatchRequest(
                ref=ref, inputs=dict(inputs) if inputs is not None else None
            )
        )
        path = (
            f"/repos/{workflow.owner}/{workflow.repo}/actions/workflows/"
            f"{workflow.workflow_id}/dispatches"
        )
        response = await self._send("POST", path, content=body)
        if response.status_code != _HTTP_NO_CONTENT:
            raise _dispatch_error(response, workflow, ref)

    async def list_workflows(self, owner: str, repo: str) -> list[WorkflowInfo]:
        """Return the workflows defined in ``owner/repo``."""
        payload = await self._get(
            f"/repos/{owner}/{repo}/actions/workflows",
            not_found=lambda: RepositoryNotFoundError(owner, repo),
            decode=lambda body: msgspec.json.decode(body, type=WorkflowListResponse),
            what="workflow list",
        )
        return list(payload.workflows)

    async def list_runs(
        self,
        owner: str,
        repo: str,
        filter: WorkflowRunsFilter | None = None,  # noqa: A002
    ) -> list[WorkflowRun]:
        """Return runs for ``owner/repo``, newest first."""
        payload = await self._get(
            f"/repos/{owner}/{repo}/actions/runs",
            params=filter.query_params() if filter is not None else None,
            not_found=lambda: RepositoryNotFoundError(owner, repo),
            decode=lambda body: msgspec.json.decode(
                body, type=WorkflowRunsListResponse
            ),
            what="workflow run list",
        )
        return list(payload.workflow_runs)

    async def get_run(self, owner: str, repo: str, run_id: int) -> WorkflowRun:
        """Return one workflow run.

        Raises
        ------
        RunNotFoundError
            If GitHub answers 404.

        """
        return await self._get(
            f"/repos/{owner}/{repo}/actions/runs/{run_id}",
            not_found=lambda: RunNotFoundError(run_id, f"{owner}/{repo}"),
            decode=lambda body: msgspec.json.decode(body, type=WorkflowRun),
            what="workflow run",
        )

    async def get_jobs(self, owner: str, repo: str, run_id: int) -> list[WorkflowJob]:
        """Return the jobs of a workflow run.

        Unrecognised job or step states decode as ``unknown``.
        """
        payload = await self._get(
            f"/repos/{owner}/{repo}/actions/runs/{run_id}/jobs",
            not_found=lambda: RunNotFoundError(run_id, f"{owner}/{repo}"),
            decode=decode_jobs,
            what="workflow jobs",
        )
        return list(payload.jobs)
