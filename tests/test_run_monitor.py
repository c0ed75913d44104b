"""
Run Monitor Tests
=================
Existence policy, dispatch, run correlation, and the completion state machine.
"""
import asyncio
import logging
import re

import httpx
import pytest

from actions_runner.agents.run_monitor import RunMonitor, generate_correlation_token
from actions_runner.core.exceptions import (
    DispatchFailedError,
    GithubApiError,
    WaitTimeoutError,
)
from actions_runner.services.github_client import GithubApiClient
from conftest import make_run


@pytest.fixture
def monitor(mock_client):
    return RunMonitor(mock_client, polling_interval=0)


# -----------------------------------------------------------------------
# Existence waiters
# -----------------------------------------------------------------------
class TestExistenceWaiters:
    def test_commit_404_is_retried(self, monitor, mock_client):
        mock_client.get_commit_status.side_effect = [404, 404, 200]
        asyncio.run(monitor.wait_for_commit("abc1234", timeout=5))
        assert mock_client.get_commit_status.await_count == 3

    def test_commit_422_is_retried(self, monitor, mock_client):
        mock_client.get_commit_status.side_effect = [422, 200]
        asyncio.run(monitor.wait_for_commit("abc1234", timeout=5))
        assert mock_client.get_commit_status.await_count == 2

    def test_commit_200_ends_immediately(self, monitor, mock_client):
        mock_client.get_commit_status.return_value = 200
        asyncio.run(monitor.wait_for_commit("abc1234", timeout=5))
        mock_client.get_commit_status.assert_awaited_once_with("abc1234", 200, 404, 422)

    def test_commit_500_aborts_without_retry(self, monitor, mock_client):
        mock_client.get_commit_status.return_value = 500
        with pytest.raises(GithubApiError) as exc_info:
            asyncio.run(monitor.wait_for_commit("abc1234", timeout=60))
        assert exc_info.value.status == 500
        assert mock_client.get_commit_status.await_count == 1

    def test_branch_404_is_retried(self, monitor, mock_client):
        mock_client.get_branch_status.side_effect = [404, 200]
        asyncio.run(monitor.wait_for_branch("main", timeout=5))
        assert mock_client.get_branch_status.await_count == 2

    def test_branch_422_is_fatal(self, monitor, mock_client):
        mock_client.get_branch_status.return_value = 422
        with pytest.raises(GithubApiError):
            asyncio.run(monitor.wait_for_branch("main", timeout=60))
        assert mock_client.get_branch_status.await_count == 1

    def test_branch_403_is_fatal(self, monitor, mock_client):
        mock_client.get_branch_status.return_value = 403
        with pytest.raises(GithubApiError):
            asyncio.run(monitor.wait_for_branch("main", timeout=60))

    def test_missing_branch_times_out(self, monitor, mock_client):
        mock_client.get_branch_status.return_value = 404
        with pytest.raises(WaitTimeoutError, match='branch "main"'):
            asyncio.run(monitor.wait_for_branch("main", timeout=0.05))

    def test_transport_error_propagates(self, monitor, mock_client):
        mock_client.get_commit_status.side_effect = GithubApiError('get commit "x"', detail="reset")
        with pytest.raises(GithubApiError):
            asyncio.run(monitor.wait_for_commit("x", timeout=60))
        assert mock_client.get_commit_status.await_count == 1

    def test_forbidden_branch_error_carries_github_message(self):
        def handler(request):
            return httpx.Response(403, json={"message": "Must have admin rights to Repository."})

        async def run_test():
            client = GithubApiClient(
                "t", "owner", "repo",
                base_url="https://api.github.test",
                transport=httpx.MockTransport(handler),
            )
            async with client:
                await RunMonitor(client, polling_interval=0).wait_for_branch("main", timeout=60)

        with pytest.raises(GithubApiError) as exc_info:
            asyncio.run(run_test())
        assert exc_info.value.status == 403
        assert "Must have admin rights" in str(exc_info.value)


# -----------------------------------------------------------------------
# Dispatch
# -----------------------------------------------------------------------
class TestDispatch:
    def test_correlation_token_shape(self):
        token = generate_correlation_token()
        assert len(token) == 21
        assert re.fullmatch(r"[A-Za-z0-9_-]+", token)
        assert generate_correlation_token() != token

    def test_trigger_returns_token_sent_to_api(self, monitor, mock_client):
        mock_client.create_dispatch_event.return_value = 204
        token = asyncio.run(monitor.trigger_workflow("build.yml", "main"))
        mock_client.create_dispatch_event.assert_awaited_once_with("build.yml", "main", token)

    def test_trigger_non_204_fails(self, monitor, mock_client):
        mock_client.create_dispatch_event.return_value = 200
        with pytest.raises(DispatchFailedError) as exc_info:
            asyncio.run(monitor.trigger_workflow("build.yml", "main"))
        assert exc_info.value.status == 200


# -----------------------------------------------------------------------
# Correlation
# -----------------------------------------------------------------------
class TestFindRun:
    def test_substring_match_returns_first(self, monitor, mock_client):
        runs = [make_run(id=1, name="foo-abc123-bar"), make_run(id=2, name="foo-xyz999-bar")]
        mock_client.list_workflow_runs.return_value = runs
        run = asyncio.run(monitor.find_run("main", "abc123"))
        assert run.id == 1
        mock_client.list_workflow_runs.assert_awaited_once_with("main")

    def test_no_match_returns_none(self, monitor, mock_client):
        mock_client.list_workflow_runs.return_value = [make_run(name="foo-xyz999-bar")]
        assert asyncio.run(monitor.find_run("main", "abc123")) is None

    def test_unnamed_runs_are_ignored(self, monitor, mock_client):
        mock_client.list_workflow_runs.return_value = [make_run(name=None)]
        assert asyncio.run(monitor.find_run("main", "abc123")) is None

    def test_duplicate_match_warns_and_takes_first(self, mock_client, caplog):
        monitor = RunMonitor(mock_client, logging.getLogger("test.monitor"), polling_interval=0)
        mock_client.list_workflow_runs.return_value = [
            make_run(id=7, name="run abc123"),
            make_run(id=8, name="rerun abc123"),
        ]
        with caplog.at_level(logging.WARNING, logger="test.monitor"):
            run = asyncio.run(monitor.find_run("main", "abc123"))
        assert run.id == 7
        assert "Found 2 workflow runs" in caplog.text


# -----------------------------------------------------------------------
# Creation & completion waiters
# -----------------------------------------------------------------------
class TestRunWaiters:
    def test_creation_returns_run_whatever_its_status(self, monitor, mock_client):
        mock_client.list_workflow_runs.side_effect = [
            [],
            [make_run(name="Build abc123", status="queued", conclusion=None)],
        ]
        run = asyncio.run(monitor.wait_for_run_creation("main", "abc123", timeout=5))
        assert run.status == "queued"
        assert mock_client.list_workflow_runs.await_count == 2

    def test_creation_timeout(self, monitor, mock_client):
        mock_client.list_workflow_runs.return_value = []
        with pytest.raises(WaitTimeoutError, match="workflow run creation"):
            asyncio.run(monitor.wait_for_run_creation("main", "abc123", timeout=0.05))

    @pytest.mark.parametrize("status", ["queued", "requested", "waiting", "pending", "in_progress"])
    def test_in_progress_statuses_are_not_terminal(self, status):
        assert make_run(status=status).is_terminal is False

    @pytest.mark.parametrize("status", ["completed", "cancelled", "skipped", "some_future_status"])
    def test_other_statuses_are_terminal(self, status):
        assert make_run(status=status).is_terminal is True

    def test_completion_polls_until_terminal(self, monitor, mock_client):
        mock_client.list_workflow_runs.side_effect = [
            [make_run(name="Build abc123", status="queued", conclusion=None, run_started_at=None)],
            [make_run(name="Build abc123", status="in_progress", conclusion=None)],
            [make_run(name="Build abc123", status="completed", conclusion="failure")],
        ]
        run = asyncio.run(monitor.wait_for_run_completion("main", "abc123", timeout=5))
        assert run.status == "completed"
        assert run.conclusion == "failure"
        assert mock_client.list_workflow_runs.await_count == 3

    def test_unknown_status_ends_wait(self, monitor, mock_client):
        mock_client.list_workflow_runs.return_value = [
            make_run(name="Build abc123", status="brand_new_state", conclusion=None)
        ]
        run = asyncio.run(monitor.wait_for_run_completion("main", "abc123", timeout=5))
        assert run.status == "brand_new_state"

    def test_disappearing_run_keeps_polling(self, monitor, mock_client):
        mock_client.list_workflow_runs.side_effect = [
            [make_run(name="Build abc123", status="in_progress", conclusion=None)],
            [],
            [make_run(name="Build abc123", status="completed", conclusion="success")],
        ]
        run = asyncio.run(monitor.wait_for_run_completion("main", "abc123", timeout=5))
        assert run.conclusion == "success"

    def test_completion_timeout(self, monitor, mock_client):
        mock_client.list_workflow_runs.return_value = [
            make_run(name="Build abc123", status="in_progress", conclusion=None)
        ]
        with pytest.raises(WaitTimeoutError, match="workflow run completion"):
            asyncio.run(monitor.wait_for_run_completion("main", "abc123", timeout=0.05))
