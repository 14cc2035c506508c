"""Unit tests for dispatching workflows and following their runs."""

from __future__ import annotations

import pytest

from ghaction.workflows import (
    InvalidInputError,
    RunFailedError,
    WatchConfig,
    WorkflowClient,
    WorkflowDispatcher,
    WorkflowIdentifier,
    WorkflowNotFoundError,
    WorkflowRunConclusion,
    parse_workflow_inputs,
)
from tests.helpers.fakes import (
    FakeClock,
    FakeGitHub,
    Reply,
    job_payload,
    jobs_payload,
    run_payload,
    runs_payload,
)
from tests.helpers.femtologging_capture import capture_femto_logs

_WORKFLOW = WorkflowIdentifier(owner="octo", repo="reef", workflow_id="ci.yml")
_DISPATCH_PATH = "/repos/octo/reef/actions/workflows/ci.yml/dispatches"
_RUNS_PATH = "/repos/octo/reef/actions/runs"


class TestParseWorkflowInputs:
    """Tests for key=value input parsing."""

    def test_values_may_contain_separator(self) -> None:
        """Only the first '=' separates key and value."""
        assert parse_workflow_inputs(["env=prod", "query=a=b", "empty="]) == {
            "env": "prod",
            "query": "a=b",
            "empty": "",
        }

    def test_later_keys_override(self) -> None:
        """Repeated keys keep the last value."""
        assert parse_workflow_inputs(["env=dev", " env =prod"]) == {"env": "prod"}

    @pytest.mark.parametrize(
        ("pair", "reason"),
        [
            ("no-separator", "expected key=value"),
            ("=value", "input name must not be empty"),
            ("  =value", "input name must not be empty"),
        ],
    )
    def test_malformed_pairs(self, pair: str, reason: str) -> None:
        """Missing separators and empty names are rejected."""
        with pytest.raises(InvalidInputError) as excinfo:
            parse_workflow_inputs([pair])
        assert excinfo.value.key == pair
        assert excinfo.value.reason == reason


@pytest.fixture
def dispatcher(
    workflow_client: WorkflowClient, fake_clock: FakeClock
) -> WorkflowDispatcher:
    """Return a dispatcher with a short match window."""
    config = WatchConfig(match_timeout_s=6.0, match_poll_interval_s=2.0)
    return WorkflowDispatcher(workflow_client, config=config, clock=fake_clock)


@pytest.mark.asyncio
async def test_fire_and_forget(
    dispatcher: WorkflowDispatcher, fake_github: FakeGitHub
) -> None:
    """Without wait only the dispatch request is sent."""
    fake_github.on("POST", _DISPATCH_PATH, Reply(status_code=204))

    with capture_femto_logs("ghaction.workflows.observability") as capture:
        result = await dispatcher.dispatch(_WORKFLOW, "main", {"env": "prod"})
        capture.wait_for_count(1)

    assert result.run is None
    assert result.conclusion is None
    assert [request.method for request in fake_github.requests] == ["POST"]
    assert capture.records[0].message == (
        "[workflow.dispatch.accepted] repo_slug=octo/reef workflow=ci.yml ref=main"
    )


@pytest.mark.asyncio
async def test_wait_follows_new_run(
    dispatcher: WorkflowDispatcher, fake_github: FakeGitHub
) -> None:
    """Runs listed before dispatching are never matched."""
    fake_github.on(
        "GET",
        _RUNS_PATH,
        Reply(payload=runs_payload(run_payload(10))),
        Reply(payload=runs_payload(run_payload(10))),
        Reply(payload=runs_payload(run_payload(11), run_payload(10))),
    )
    fake_github.on("POST", _DISPATCH_PATH, Reply(status_code=204))
    fake_github.on(
        "GET",
        f"{_RUNS_PATH}/11",
        Reply(payload=run_payload(11, status="completed", conclusion="success")),
    )
    fake_github.on(
        "GET",
        f"{_RUNS_PATH}/11/jobs",
        Reply(
            payload=jobs_payload(
                job_payload(1, run_id=11, status="completed", conclusion="success")
            )
        ),
    )

    result = await dispatcher.dispatch(_WORKFLOW, "main", wait=True)

    assert result.run is not None
    assert result.run.id == 11
    assert result.conclusion is WorkflowRunConclusion.SUCCESS
    snapshot, *_ = fake_github.calls("GET", _RUNS_PATH)
    assert snapshot.params == {"per_page": "30"}
    assert fake_github.requests[1].method == "POST"


@pytest.mark.asyncio
async def test_missing_run_is_soft_failure(
    dispatcher: WorkflowDispatcher, fake_github: FakeGitHub, fake_clock: FakeClock
) -> None:
    """The dispatch still succeeds when its run never shows up."""
    fake_github.on("GET", _RUNS_PATH, Reply(payload=runs_payload(run_payload(10))))
    fake_github.on("POST", _DISPATCH_PATH, Reply(status_code=204))

    with capture_femto_logs("ghaction.workflows.observability") as capture:
        result = await dispatcher.dispatch(_WORKFLOW, "main", wait=True)
        capture.wait_for_count(2)

    assert result.run is None
    assert result.watch is None
    assert fake_clock.sleeps == [2.0, 2.0, 2.0]
    warning = capture.records[-1]
    assert warning.level == "WARN"
    assert warning.message.startswith("[workflow.run.not_found]")
    assert "timeout_seconds=6.0" in warning.message


@pytest.mark.asyncio
async def test_raise_on_failure(
    dispatcher: WorkflowDispatcher, fake_github: FakeGitHub
) -> None:
    """Unsuccessful runs raise RunFailedError when asked to."""
    fake_github.on(
        "GET",
        _RUNS_PATH,
        Reply(payload=runs_payload()),
        Reply(payload=runs_payload(run_payload(12))),
    )
    fake_github.on("POST", _DISPATCH_PATH, Reply(status_code=204))
    fake_github.on(
        "GET",
        f"{_RUNS_PATH}/12",
        Reply(payload=run_payload(12, status="completed", conclusion="failure")),
    )
    fake_github.on("GET", f"{_RUNS_PATH}/12/jobs", Reply(payload=jobs_payload()))

    with pytest.raises(RunFailedError) as excinfo:
        await dispatcher.dispatch(_WORKFLOW, "main", wait=True, raise_on_failure=True)

    assert excinfo.value.run_id == 12
    assert excinfo.value.conclusion is WorkflowRunConclusion.FAILURE


@pytest.mark.asyncio
async def test_rejected_dispatch_is_logged_and_raised(
    dispatcher: WorkflowDispatcher, fake_github: FakeGitHub
) -> None:
    """Dispatch failures propagate after a categorised error event."""
    fake_github.on(
        "POST",
        _DISPATCH_PATH,
        Reply(status_code=404, payload={"message": "Workflow not found"}),
    )

    with capture_femto_logs("ghaction.workflows.observability") as capture:
        with pytest.raises(WorkflowNotFoundError):
            await dispatcher.dispatch(_WORKFLOW, "main")
        capture.wait_for_count(1)

    (record,) = capture.records
    assert record.level == "ERROR"
    assert "[workflow.dispatch.failed]" in record.message
    assert "error_type=WorkflowNotFoundError" in record.message
    assert "error_category=client_error" in record.message
