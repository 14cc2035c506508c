"""Dispatch a workflow and, optionally, follow the run it creates."""

from __future__ import annotations

import dataclasses
import typing as typ

from .config import WatchConfig
from .errors import InvalidInputError, RunFailedError, WorkflowError
from .matcher import RunMatcher
from .models import WorkflowRunsFilter
from .observability import WorkflowEventLogger
from .watcher import RunWatcher

if typ.TYPE_CHECKING:
    import asyncio
    import collections.abc as cabc

    from ghaction.common.clock import Clock

    from .client import WorkflowClient
    from .models import (
        WorkflowIdentifier,
        WorkflowJob,
        WorkflowRun,
        WorkflowRunConclusion,
    )
    from .watcher import WatchResult

# Runs listed before dispatching; any of them is excluded from matching.
EXISTING_RUNS_PAGE_SIZE = 30


def parse_workflow_inputs(pairs: cabc.Iterable[str]) -> dict[str, str]:
    """Parse ``key=value`` strings into a workflow inputs mapping.

    The value may itself contain ``=``; later keys override earlier ones.

    Raises
    ------
    InvalidInputError
        If a pair has no ``=`` or an empty key.

    Examples
    --------
    >>> parse_workflow_inputs(["env=prod", "query=a=b"])
    {'env': 'prod', 'query': 'a=b'}

    """
    inputs: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep:
            raise InvalidInputError(pair, "expected key=value")
        if not key:
            raise InvalidInputError(pair, "input name must not be empty")
        inputs[key] = value
    return inputs


@dataclasses.dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of :meth:`WorkflowDispatcher.dispatch`.

    ``run`` is ``None`` when the dispatch was not followed, or when the
    created run could not be located in time. ``watch`` is set only when the
    run was followed to completion.
    """

    workflow: WorkflowIdentifier
    ref: str
    run: WorkflowRun | None = None
    watch: WatchResult | None = None

    @property
    def conclusion(self) -> WorkflowRunConclusion | None:
        """Final conclusion of the followed run, if any."""
        return self.watch.conclusion if self.watch is not None else None


class WorkflowDispatcher:
    """Trigger a workflow and follow the resulting run.

    Parameters
    ----------
    client
        REST client used for every request.
    config
        Polling cadence for locating and following the run.
    clock
        Time source shared by the matcher and the watcher.
    events
        Structured event logger.

    """

    def __init__(
        self,
        client: WorkflowClient,
        *,
        config: WatchConfig | None = None,
        clock: Clock | None = None,
        events: WorkflowEventLogger | None = None,
    ) -> None:
        """Compose the matcher and watcher around ``client``."""
        self._client = client
        self._config = config or WatchConfig()
        self._events = events or WorkflowEventLogger()
        self._matcher = RunMatcher(
            client, clock=clock, poll_interval_s=self._config.match_poll_interval_s
        )
        self._watcher = RunWatcher(
            client, config=self._config, clock=clock, events=self._events
        )

    @property
    def watcher(self) -> RunWatcher:
        """Watcher used to follow dispatched runs."""
        return self._watcher

    async def _existing_run_ids(self, workflow: WorkflowIdentifier) -> frozenset[int]:
        runs = await self._client.list_runs(
            workflow.owner,
            workflow.repo,
            WorkflowRunsFilter(per_page=EXISTING_RUNS_PAGE_SIZE),
        )
        return frozenset(run.id for run in runs)

    async def dispatch(  # noqa: PLR0913
        self,
        workflow: WorkflowIdentifier,
        ref: str,
        inputs: cabc.Mapping[str, str] | None = None,
        *,
        wait: bool = False,
        raise_on_failure: bool = False,
        on_run_status: cabc.Callable[[WorkflowRun], None] | None = None,
        on_job_update: cabc.Callable[[WorkflowJob], None] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DispatchResult:
        """Dispatch ``workflow`` on ``ref`` and optionally wait for its run.

        When ``wait`` is set, the ids of the most recent runs are captured
        before dispatching so that the matcher cannot pick up an older run on
        the same branch. Failing to locate the new run is not an error; the
        result then carries ``run=None``.

        Raises
        ------
        WorkflowError
            Any failure from the dispatch request or from following the run.
        RunFailedError
            With ``raise_on_failure``, when the followed run does not succeed.

        """
        existing: frozenset[int] = frozenset()
        if wait:
            existing = await self._existing_run_ids(workflow)

        try:
            await self._client.trigger(workflow, ref, inputs)
        except WorkflowError as exc:
            self._events.log_dispatch_failed(workflow, ref, exc)
            raise
        self._events.log_dispatch_accepted(workflow, ref)

        if not wait:
            return DispatchResult(workflow=workflow, ref=ref)

        run = await self._matcher.find_recent_run(
            workflow,
            ref,
            existing,
            self._config.match_timeout_s,
            cancel_event=cancel_event,
        )
        if run is None:
            self._events.log_run_not_found(workflow, ref, self._config.match_timeout_s)
            return DispatchResult(workflow=workflow, ref=ref)
        self._events.log_run_matched(workflow, run)

        watched = await self._watcher.watch(
            workflow.owner,
            workflow.repo,
            run.id,
            on_run_status=on_run_status,
            on_job_update=on_job_update,
            cancel_event=cancel_event,
        )
        if raise_on_failure and not watched.succeeded:
            raise RunFailedError(watched.run.id, watched.conclusion)
        return DispatchResult(
            workflow=workflow, ref=ref, run=watched.run, watch=watched
        )
