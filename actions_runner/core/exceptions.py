"""
Exceptions
==========
Error hierarchy for the runner.

Every error raised on purpose derives from ActionsRunnerError so the CLI can
map them to a non-zero exit code in one place. All of them are fatal: the
only retries happen inside the polling stages, before their timeout expires.
"""
from typing import Iterable, List, Optional


class ActionsRunnerError(Exception):
    """Base exception for all runner errors."""


class AuthMissingError(ActionsRunnerError):
    """Raised before any network call when no GitHub token is configured."""

    def __init__(self, env_var: str = "GITHUB_TOKEN") -> None:
        self.env_var = env_var
        super().__init__(f"The <{env_var}> environment variable is required.")


class GithubApiError(ActionsRunnerError):
    """
    Raised by the API client for an unexpected HTTP status or a transport failure.

    Attributes:
        operation: What was being attempted (e.g. "get commit abc1234")
        status: HTTP status code, or None when no response was received
    """

    def __init__(self, operation: str, status: Optional[int] = None, detail: str = "") -> None:
        self.operation = operation
        self.status = status
        self.detail = detail
        message = f"GitHub API request failed: {operation}"
        if status is not None:
            message += f" (HTTP {status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class WaitTimeoutError(ActionsRunnerError, TimeoutError):
    """Raised when a wait stage does not see its condition before the timeout."""

    def __init__(self, stage: str, timeout: float) -> None:
        self.stage = stage
        self.timeout = timeout
        super().__init__(f"Timeout waiting for {stage} (after {timeout:g} seconds).")


class DispatchFailedError(ActionsRunnerError):
    """Raised when the dispatch endpoint answers with anything but 204."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"Failed to trigger workflow: HTTP {status}")


class RunNotFoundError(ActionsRunnerError):
    """Raised when a run lookup comes back empty outside of a timeout path."""

    def __init__(self, token: str = "") -> None:
        self.token = token
        super().__init__("Workflow run not found.")


class WorkflowFailedError(ActionsRunnerError):
    """Raised when the completed run did not conclude with success."""

    def __init__(self, conclusion: Optional[str], html_url: str = "") -> None:
        self.conclusion = conclusion
        self.html_url = html_url
        super().__init__(f'Workflow run failed with conclusion: "{conclusion}".')


class NoArtifactsFoundError(ActionsRunnerError):
    """Raised when artifacts were requested but the run produced none."""

    def __init__(self, run_id: int) -> None:
        self.run_id = run_id
        super().__init__(f"No artifacts found for workflow run {run_id}.")


class DownloadError(ActionsRunnerError):
    """Raised when a signed URL cannot be streamed or exceeds the size ceiling."""


class ArtifactDownloadError(ActionsRunnerError):
    """
    Raised when one or more artifacts could not be downloaded or extracted.

    Attributes:
        failed: Mapping of artifact name to the error it raised
    """

    def __init__(self, failed: dict) -> None:
        self.failed = failed
        details = "; ".join(f'"{name}": {err}' for name, err in failed.items())
        super().__init__(f"Error downloading or extracting artifacts: {details}")


class SecretsSyncFailedError(ActionsRunnerError):
    """
    Raised after a secrets batch finished with at least one failed item.

    Attributes:
        action: "delete" or "set"
        failed_keys: Secret names whose request failed
    """

    def __init__(self, action: str, failed_keys: Iterable[str]) -> None:
        self.action = action
        self.failed_keys: List[str] = list(failed_keys)
        super().__init__(
            f"Failed to {action} secrets: {', '.join(self.failed_keys)}"
        )


class LogFetchFailedError(ActionsRunnerError):
    """Raised when the run logs archive cannot be fetched or parsed."""

    def __init__(self, run_id: int, reason: str) -> None:
        self.run_id = run_id
        super().__init__(f"Failed to fetch logs for workflow run {run_id}: {reason}")
