"""Follow a workflow run until it completes.

Two loops are offered. :meth:`RunWatcher.wait_for_completion` polls the run
alone. :meth:`RunWatcher.watch` also polls the run's jobs, reports job state
transitions, and guards against the run object lagging behind its jobs: when
every job has finished but the run still reports otherwise for
``stale_threshold`` consecutive polls, the run is treated as complete with a
conclusion derived from its jobs.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from ghaction.common.clock import Clock, SystemClock, check_cancelled
from ghaction.common.slug import repo_slug
from ghaction.logging import get_logger, log_debug

from .config import WatchConfig
from .errors import WorkflowTimeoutError
from .models import WorkflowJobConclusion, WorkflowRunConclusion
from .observability import WorkflowEventLogger

if typ.TYPE_CHECKING:
    import asyncio
    import collections.abc as cabc

    from .client import WorkflowClient
    from .models import WorkflowJob, WorkflowJobStatus, WorkflowRun

logger = get_logger(__name__)

DEFAULT_WAIT_POLL_INTERVAL_S = 10.0
DEFAULT_WAIT_TIMEOUT_S = 3600.0

# Most severe first; the first conclusion any job reports wins.
_CONCLUSION_PRECEDENCE: tuple[WorkflowRunConclusion, ...] = (
    WorkflowRunConclusion.FAILURE,
    WorkflowRunConclusion.STARTUP_FAILURE,
    WorkflowRunConclusion.TIMED_OUT,
    WorkflowRunConclusion.CANCELLED,
    WorkflowRunConclusion.ACTION_REQUIRED,
    WorkflowRunConclusion.STALE,
)


@dataclasses.dataclass(frozen=True, slots=True)
class WatchResult:
    """Outcome of :meth:`RunWatcher.watch`.

    Attributes
    ----------
    run
        Last run snapshot fetched.
    jobs
        Jobs as of the last poll.
    completed_by_jobs
        ``True`` when the run was treated as complete because its jobs had all
        finished while the run object still lagged.
    conclusion
        The run's conclusion, or the job-derived one when
        ``completed_by_jobs`` is set.

    """

    run: WorkflowRun
    jobs: tuple[WorkflowJob, ...]
    completed_by_jobs: bool
    conclusion: WorkflowRunConclusion | None

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the final conclusion is ``success``."""
        return self.conclusion is WorkflowRunConclusion.SUCCESS


def all_jobs_finished(jobs: cabc.Sequence[WorkflowJob]) -> bool:
    """Return ``True`` when there are jobs and all have finished."""
    return bool(jobs) and all(job.is_finished for job in jobs)


def conclusion_from_jobs(
    jobs: cabc.Sequence[WorkflowJob],
) -> WorkflowRunConclusion | None:
    """Derive a run conclusion from finished jobs.

    Returns ``None`` when a job is unfinished or reports a conclusion this
    library does not recognise. Otherwise the most severe job conclusion
    wins; runs whose jobs were all skipped are ``skipped`` and everything
    else is ``success``.

    Examples
    --------
    >>> conclusion_from_jobs([])
    >>> conclusion_from_jobs([job_ok, job_failed])
    <WorkflowRunConclusion.FAILURE: 'failure'>

    """
    if not all_jobs_finished(jobs):
        return None
    seen = {typ.cast("WorkflowJobConclusion", job.conclusion) for job in jobs}
    if WorkflowJobConclusion.UNKNOWN in seen:
        return None
    for candidate in _CONCLUSION_PRECEDENCE:
        if candidate.value in seen:
            return candidate
    if seen == {WorkflowJobConclusion.SKIPPED}:
        return WorkflowRunConclusion.SKIPPED
    return WorkflowRunConclusion.SUCCESS


class RunWatcher:
    """Poll a workflow run, and optionally its jobs, until completion.

    Parameters
    ----------
    client
        Client used to fetch the run and its jobs.
    config
        Default poll interval, timeout and stale threshold for :meth:`watch`.
    clock
        Time source for deadlines and sleeps.
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
        """Bind the watcher to its client and polling settings."""
        self._client = client
        self._config = config or WatchConfig()
        self._clock = clock or SystemClock()
        self._events = events or WorkflowEventLogger()

    async def wait_for_completion(  # noqa: PLR0913
        self,
        owner: str,
        repo: str,
        run_id: int,
        poll_interval: float = DEFAULT_WAIT_POLL_INTERVAL_S,
        timeout: float = DEFAULT_WAIT_TIMEOUT_S,
        on_update: cabc.Callable[[WorkflowRun], None] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> WorkflowRun:
        """Poll the run until GitHub reports it completed.

        ``on_update`` receives every snapshot, including the final one.

        Raises
        ------
        WorkflowTimeoutError
            If the run is still incomplete when ``timeout`` elapses.

        """
        deadline = self._clock.monotonic() + timeout
        while self._clock.monotonic() < deadline:
            check_cancelled(cancel_event)
            run = await self._client.get_run(owner, repo, run_id)
            if on_update is not None:
                on_update(run)
            if run.is_completed:
                self._events.log_run_completed(
                    repo_slug(owner, repo), run_id, run.conclusion
                )
                return run
            await self._clock.sleep(poll_interval)

        self._events.log_run_timed_out(repo_slug(owner, repo), run_id, timeout)
        raise WorkflowTimeoutError.run_incomplete(run_id, timeout)

    async def watch(  # noqa: PLR0913
        self,
        owner: str,
        repo: str,
        run_id: int,
        poll_interval: float | None = None,
        timeout: float | None = None,
        on_run_status: cabc.Callable[[WorkflowRun], None] | None = None,
        on_job_update: cabc.Callable[[WorkflowJob], None] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> WatchResult:
        """Follow the run and its jobs until completion.

        ``on_run_status`` fires when the run's status changes and
        ``on_job_update`` when a job's ``(status, conclusion)`` pair changes.
        Poll interval and timeout default to the watcher's
        :class:`~ghaction.workflows.config.WatchConfig`.

        Raises
        ------
        WorkflowTimeoutError
            If neither the run nor its jobs finish before ``timeout``.

        """
        interval = (
            poll_interval if poll_interval is not None else self._config.poll_interval_s
        )
        limit = timeout if timeout is not None else self._config.timeout_s
        slug = repo_slug(owner, repo)
        deadline = self._clock.monotonic() + limit
        tracker = _JobTransitionTracker()
        last_status = None
        stale_count = 0

        while self._clock.monotonic() < deadline:
            check_cancelled(cancel_event)
            run = await self._client.get_run(owner, repo, run_id)
            if run.status != last_status:
                last_status = run.status
                if on_run_status is not None:
                    on_run_status(run)

            jobs = tuple(await self._client.get_jobs(owner, repo, run_id))
            for job in tracker.changed(jobs):
                if on_job_update is not None:
                    on_job_update(job)

            if run.is_completed:
                return self._finish(slug, run, jobs)

            if all_jobs_finished(jobs):
                latest = await self._client.get_run(owner, repo, run_id)
                if latest.is_completed:
                    return self._finish(slug, latest, jobs)
                stale_count += 1
                log_debug(
                    logger,
                    "Run %d lags its finished jobs (%d/%d)",
                    run_id,
                    stale_count,
                    self._config.stale_threshold,
                )
                if stale_count >= self._config.stale_threshold:
                    return self._finish(slug, latest, jobs, completed_by_jobs=True)
            else:
                stale_count = 0

            await self._clock.sleep(interval)

        self._events.log_run_timed_out(slug, run_id, limit)
        raise WorkflowTimeoutError.run_incomplete(run_id, limit)

    def _finish(
        self,
        slug: str,
        run: WorkflowRun,
        jobs: tuple[WorkflowJob, ...],
        *,
        completed_by_jobs: bool = False,
    ) -> WatchResult:
        conclusion = conclusion_from_jobs(jobs) if completed_by_jobs else run.conclusion
        self._events.log_run_completed(
            slug, run.id, conclusion, completed_by_jobs=completed_by_jobs
        )
        return WatchResult(
            run=run,
            jobs=jobs,
            completed_by_jobs=completed_by_jobs,
            conclusion=conclusion,
        )


class _JobTransitionTracker:
    """Remember each job's last ``(status, conclusion)`` pair."""

    def __init__(self) -> None:
        self._seen: dict[
            int, tuple[WorkflowJobStatus, WorkflowJobConclusion | None]
        ] = {}

    def changed(self, jobs: cabc.Iterable[WorkflowJob]) -> list[WorkflowJob]:
        """Return the jobs whose state differs from the previous poll."""
        changed: list[WorkflowJob] = []
        for job in jobs:
            state = (job.status, job.conclusion)
            if self._seen.get(job.id) != state:
                self._seen[job.id] = state
                changed.append(job)
        return changed
