"""
Run Monitor Agent
=================
Waits for the commit and branch to appear, dispatches the workflow and
follows the resulting run until it reaches a terminal status.

Correlation:
    The dispatch endpoint answers 204 with no body, so the run it creates has
    to be found afterwards. Each dispatch carries a fresh random token as the
    `id` input, the workflow's run-name embeds it, and find_run scans the
    recently created runs of the branch for a name containing the token.

Existence policy:
    200 = exists, 404 = not yet (retry), 422 on a commit = not yet (a SHA the
    API cannot resolve yet). Anything else is fatal straight away so that
    permission and configuration errors are not hidden behind a timeout.
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from actions_runner.core.constants import (
    CORRELATION_TOKEN_ALPHABET,
    CORRELATION_TOKEN_LENGTH,
)
from actions_runner.core.exceptions import DispatchFailedError, GithubApiError
from actions_runner.models.workflow_run import WorkflowRun
from actions_runner.services.github_client import GithubApiClient
from actions_runner.utils.polling import poll_until

_HTTP_OK = 200
_HTTP_NO_CONTENT = 204
_HTTP_NOT_FOUND = 404
_HTTP_UNPROCESSABLE = 422

_COMMIT_STATUSES = (_HTTP_OK, _HTTP_NOT_FOUND, _HTTP_UNPROCESSABLE)
_BRANCH_STATUSES = (_HTTP_OK, _HTTP_NOT_FOUND)


def generate_correlation_token(length: int = CORRELATION_TOKEN_LENGTH) -> str:
    """Return a URL-safe random token used to recognise a dispatched run."""
    return "".join(secrets.choice(CORRELATION_TOKEN_ALPHABET) for _ in range(length))


class RunMonitor:
    """
    Agent that drives a single workflow run from dispatch to completion.
    """

    def __init__(
        self,
        client: GithubApiClient,
        logger: Optional[logging.Logger] = None,
        polling_interval: Optional[float] = None,
    ) -> None:
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.polling_interval = polling_interval

    # -------------------------------------------------------------------
    # Existence checks
    # -------------------------------------------------------------------
    # Statuses outside these sets make the client raise with GitHub's message
    async def has_commit(self, rev: str) -> bool:
        status = await self.client.get_commit_status(rev, *_COMMIT_STATUSES)
        if status == _HTTP_OK:
            return True
        if status in (_HTTP_NOT_FOUND, _HTTP_UNPROCESSABLE):
            return False
        raise GithubApiError(f'get commit "{rev}"', status)

    async def has_branch(self, branch: str) -> bool:
        status = await self.client.get_branch_status(branch, *_BRANCH_STATUSES)
        if status == _HTTP_OK:
            return True
        if status == _HTTP_NOT_FOUND:
            return False
        raise GithubApiError(f'get branch "{branch}"', status)

    async def wait_for_commit(self, rev: str, timeout: float) -> None:
        self.logger.info('Waiting for commit "%s"...', rev)

        async def probe() -> Optional[bool]:
            return True if await self.has_commit(rev) else None

        await poll_until(
            probe,
            timeout=timeout,
            description=f'commit "{rev}"',
            interval=self.polling_interval,
            log=self.logger,
        )
        self.logger.info('Commit "%s" found.', rev)

    async def wait_for_branch(self, branch: str, timeout: float) -> None:
        self.logger.info('Waiting for branch "%s"...', branch)

        async def probe() -> Optional[bool]:
            return True if await self.has_branch(branch) else None

        await poll_until(
            probe,
            timeout=timeout,
            description=f'branch "{branch}"',
            interval=self.polling_interval,
            log=self.logger,
        )
        self.logger.info('Branch "%s" found.', branch)

    # -------------------------------------------------------------------
    # Dispatch & correlation
    # -------------------------------------------------------------------
    async def trigger_workflow(self, workflow: str, branch: str) -> str:
        """
        Dispatch `workflow` on `branch` and return the correlation token.

        Raises
        ------
        DispatchFailedError
            If GitHub does not answer 204 No Content.
        """
        self.logger.info('Triggering workflow "%s" on branch "%s"...', workflow, branch)
        token = generate_correlation_token()
        self.logger.debug("Generated correlation token for the workflow run: %s", token)

        status = await self.client.create_dispatch_event(workflow, branch, token)
        if status != _HTTP_NO_CONTENT:
            raise DispatchFailedError(status)
        return token

    async def find_run(self, branch: str, token: str) -> Optional[WorkflowRun]:
        """Return the recent run on `branch` whose name contains `token`, if any."""
        runs = await self.client.list_workflow_runs(branch)
        self.logger.debug("Received workflow runs: %s", [r.name for r in runs])

        matches = [r for r in runs if r.name and token in r.name]
        if not matches:
            return None
        if len(matches) > 1:
            self.logger.warning(
                'Found %d workflow runs containing "%s", using the first one (id %d)',
                len(matches), token, matches[0].id,
            )
        return matches[0]

    # -------------------------------------------------------------------
    # Run waits
    # -------------------------------------------------------------------
    async def wait_for_run_creation(self, branch: str, token: str, timeout: float) -> WorkflowRun:
        self.logger.info("Waiting for the workflow run to be created...")
        run = await poll_until(
            lambda: self.find_run(branch, token),
            timeout=timeout,
            description="workflow run creation",
            interval=self.polling_interval,
            log=self.logger,
        )
        self.logger.info('Workflow run found: "%s"', run.name)
        return run

    def _log_running_time(self, run: WorkflowRun) -> None:
        if run.run_started_at is None:
            self.logger.info('Workflow run has not started yet, current status is: "%s"', run.status)
            return
        started = run.run_started_at
        if started.tzinfo is None:
            started = started.replace(tzinfo=timezone.utc)
        seconds = int((datetime.now(timezone.utc) - started).total_seconds())
        self.logger.info(
            'Build is running for: %d seconds, current status is: "%s"', seconds, run.status
        )

    async def wait_for_run_completion(self, branch: str, token: str, timeout: float) -> WorkflowRun:
        """
        Poll until the correlated run reaches a terminal status.

        A run that drops out of the recent-runs window between polls is
        treated as still running; only the timeout ends the wait.
        """
        self.logger.info(
            'Waiting for the workflow run "%s" in the branch "%s" to complete...', token, branch
        )

        async def probe() -> Optional[WorkflowRun]:
            run = await self.find_run(branch, token)
            if run is None:
                self.logger.debug('Workflow run "%s" not visible in this poll', token)
                return None
            if run.is_terminal:
                self.logger.info('Workflow run completed with status: "%s"', run.status)
                return run
            self._log_running_time(run)
            self.logger.debug("Workflow is not in the final state yet")
            return None

        return await poll_until(
            probe,
            timeout=timeout,
            description="workflow run completion",
            interval=self.polling_interval,
            log=self.logger,
        )
