"""
Orchestrator Agent
==================
Drives one `run-action` invocation from request to downloaded artifacts.

Stages (strictly sequential, each wait owns its own timeout clock):
    1. wait for the commit
    2. wait for the branch
    3. set / sync repository secrets (no-op when none were given)
    4. dispatch the workflow with a fresh correlation token
    5. wait for the run to be created
    6. wait for the run to complete
    7. fetch and print the run logs
    8. require the "success" conclusion
    9. download artifacts, when a destination path was given

There is no retry above the polling stages: the first error aborts the run.
A dispatch that was acknowledged cannot be revoked.
"""
import logging
from typing import Optional

from actions_runner.agents.run_monitor import RunMonitor
from actions_runner.core.constants import WORKFLOW_RUN_SUCCESS_CONCLUSION
from actions_runner.core.exceptions import RunNotFoundError, WorkflowFailedError
from actions_runner.models.run_request import RunRequest
from actions_runner.models.workflow_run import WorkflowRun
from actions_runner.services.artifact_service import ArtifactRetriever
from actions_runner.services.github_client import GithubApiClient
from actions_runner.services.logs_service import RunLogsFetcher
from actions_runner.services.secrets_service import SecretsSynchronizer


class Orchestrator:
    """
    The workflow-run state machine.

    Collaborators are built from the API client unless given explicitly, and
    all of them log through children of the logger passed here.
    """

    def __init__(
        self,
        client: GithubApiClient,
        logger: Optional[logging.Logger] = None,
        run_monitor: Optional[RunMonitor] = None,
        secrets_sync: Optional[SecretsSynchronizer] = None,
        artifact_retriever: Optional[ArtifactRetriever] = None,
        logs_fetcher: Optional[RunLogsFetcher] = None,
        polling_interval: Optional[float] = None,
    ) -> None:
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.run_monitor = run_monitor or RunMonitor(
            client, self.logger.getChild("run_monitor"), polling_interval
        )
        self.secrets_sync = secrets_sync or SecretsSynchronizer(
            client, self.logger.getChild("secrets")
        )
        self.artifact_retriever = artifact_retriever or ArtifactRetriever(
            client, self.logger.getChild("artifacts")
        )
        self.logs_fetcher = logs_fetcher or RunLogsFetcher(client, self.logger.getChild("logs"))

    def _log_request(self, request: RunRequest) -> None:
        self.logger.info('Starting action for repository "%s"', request.full_name)
        self.logger.info('Workflow: "%s"', request.workflow)
        self.logger.info('Revision: "%s"', request.rev)
        self.logger.info('Branch: "%s"', request.branch)
        self.logger.info('Artifacts path: "%s"', request.artifacts_path or "")

    async def run(self, request: RunRequest) -> WorkflowRun:
        """
        Execute every stage for `request` and return the completed run.

        Raises
        ------
        ActionsRunnerError
            The first fatal error of any stage.
        """
        self._log_request(request)
        monitor = self.run_monitor

        await monitor.wait_for_commit(request.rev, request.commit_timeout)
        await monitor.wait_for_branch(request.branch, request.branch_timeout)

        await self.secrets_sync.set_secrets(request.secrets, request.sync_secrets)

        token = await monitor.trigger_workflow(request.workflow, request.branch)

        created = await monitor.wait_for_run_creation(
            request.branch, token, request.run_creation_timeout
        )
        if created is None:
            raise RunNotFoundError(token)
        self.logger.info('Link to workflow run: "%s"', created.html_url)

        run = await monitor.wait_for_run_completion(
            request.branch, token, request.run_completion_timeout
        )
        if run is None:
            raise RunNotFoundError(token)

        logs = await self.logs_fetcher.fetch_logs(run.id)
        self.logger.info(logs)

        if run.conclusion != WORKFLOW_RUN_SUCCESS_CONCLUSION:
            raise WorkflowFailedError(run.conclusion, run.html_url)
        self.logger.info('Workflow run "%s" succeeded', run.name)

        if request.artifacts_path:
            await self.artifact_retriever.download_artifacts(run, request.artifacts_path)

        return run
