"""Locate the run created by a ``workflow_dispatch`` call.

GitHub's dispatch endpoint answers 204 without a run id, so the run has to be
found afterwards by listing recent runs. The listing is not filtered by event
because unfiltered listings return sooner; candidates are filtered locally.
"""

from __future__ import annotations

import typing as typ

from ghaction.common.clock import Clock, SystemClock, check_cancelled
from ghaction.logging import get_logger, log_debug

from .models import WorkflowRunsFilter

if typ.TYPE_CHECKING:
    import asyncio
    import collections.abc as cabc

    from .client import WorkflowClient
    from .models import WorkflowIdentifier, WorkflowRun

logger = get_logger(__name__)

DISPATCH_EVENT = "workflow_dispatch"
RECENT_RUNS_PAGE_SIZE = 20
DEFAULT_MATCH_TIMEOUT_S = 60.0
DEFAULT_MATCH_POLL_INTERVAL_S = 2.0


def select_dispatched_run(
    runs: cabc.Iterable[WorkflowRun],
    ref: str,
    exclude_run_ids: cabc.Container[int] = (),
) -> WorkflowRun | None:
    """Return the first dispatched run on ``ref`` not in ``exclude_run_ids``."""
    for run in runs:
        if (
            run.head_branch == ref
            and run.event == DISPATCH_EVENT
            and run.id not in exclude_run_ids
        ):
            return run
    return None


class RunMatcher:
    """Poll recent runs until the one created by a dispatch appears.

    Parameters
    ----------
    client
        Client used to list runs.
    clock
        Time source for the deadline and the sleeps between listings.
    poll_interval_s
        Delay between listings.

    """

    def __init__(
        self,
        client: WorkflowClient,
        *,
        clock: Clock | None = None,
        poll_interval_s: float = DEFAULT_MATCH_POLL_INTERVAL_S,
    ) -> None:
        """Bind the matcher to its client and clock."""
        self._client = client
        self._clock = clock or SystemClock()
        self._poll_interval_s = poll_interval_s

    async def find_recent_run(
        self,
        workflow: WorkflowIdentifier,
        ref: str,
        exclude_run_ids: cabc.Collection[int] = (),
        timeout: float = DEFAULT_MATCH_TIMEOUT_S,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> WorkflowRun | None:
        """Return the newest dispatched run on ``ref``, or ``None`` on timeout.

        Runs whose ids are in ``exclude_run_ids`` are never returned, even
        when they match; callers pass the ids that existed before dispatching.
        A ``None`` result is a soft failure: the dispatch itself succeeded.
        """
        excluded = frozenset(exclude_run_ids)
        run_filter = WorkflowRunsFilter(per_page=RECENT_RUNS_PAGE_SIZE)
        deadline = self._clock.monotonic() + timeout
        attempts = 0

        while self._clock.monotonic() < deadline:
            check_cancelled(cancel_event)
            attempts += 1
            runs = await self._client.list_runs(
                workflow.owner, workflow.repo, run_filter
            )
            match = select_dispatched_run(runs, ref, excluded)
            if match is not None:
                log_debug(
                    logger, "Matched run %d after %d listings", match.id, attempts
                )
                return match
            await self._clock.sleep(self._poll_interval_s)

        log_debug(logger, "No dispatched run on %s after %d listings", ref, attempts)
        return None
