"""
GitHub API Client
=================
Asynchronous wrapper over the GitHub REST endpoints the runner needs.

Every method performs exactly one request (secret listing follows pages) and
either returns parsed data or raises GithubApiError naming the operation.
Existence lookups and the dispatch call return the status code instead,
because deciding what a 404/422/204 means belongs to the caller; a lookup
given its accepted statuses raises with GitHub's message for any other.
A 200 whose body is not the expected JSON shape is a GithubApiError too.

Signed URLs:
    Artifact and log downloads answer with a 302 to a storage URL that is
    valid for about a minute. The client returns that URL without following
    it; fetch it right before use, never cache it.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from actions_runner.core import config
from actions_runner.core.constants import (
    ARTIFACT_ARCHIVE_FORMAT,
    CORRELATION_INPUT_NAME,
    PER_PAGE,
    USER_AGENT,
)
from actions_runner.core.exceptions import GithubApiError
from actions_runner.models.artifact import Artifact, RepoPublicKey
from actions_runner.models.workflow_run import WorkflowRun

logger = logging.getLogger(__name__)

_REDIRECT_STATUSES = (301, 302, 303, 307, 308)

M = TypeVar("M", bound=BaseModel)


def _error_detail(response: httpx.Response) -> str:
    """Pull GitHub's `message` field out of an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message", ""))
    return ""


class GithubApiClient:
    """
    REST client bound to one repository.

    The underlying httpx.AsyncClient (auth header, connection pool) is shared
    by all concurrent calls and never mutated after construction.
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        base_url: str = config.GITHUB_API_URL,
        created_within_seconds: int = config.WORKFLOW_CREATED_WITHIN_SECONDS,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.created_within = timedelta(seconds=created_within_seconds)
        self.headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self.headers["Authorization"] = f"token {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=self.headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=False,
        )

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def __aenter__(self) -> "GithubApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------
    # Low-level helpers
    # -------------------------------------------------------------------
    async def _request(self, method: str, path: str, operation: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise GithubApiError(operation, detail=str(e) or type(e).__name__) from e
        logger.debug("%s %s -> HTTP %d", method, path, response.status_code)
        return response

    @staticmethod
    def _expect(response: httpx.Response, operation: str, *statuses: int) -> httpx.Response:
        if response.status_code not in statuses:
            raise GithubApiError(operation, response.status_code, _error_detail(response))
        return response

    async def _get_json(self, path: str, operation: str, **kwargs: Any) -> Dict[str, Any]:
        response = await self._request("GET", path, operation, **kwargs)
        self._expect(response, operation, 200)
        try:
            body = response.json()
        except ValueError as e:
            raise GithubApiError(operation, response.status_code, "invalid JSON body") from e
        if not isinstance(body, dict):
            raise GithubApiError(operation, response.status_code, "unexpected JSON body")
        return body

    @staticmethod
    def _parse(model: Type[M], items: Iterable[Any], operation: str) -> List[M]:
        """Validate API objects, reporting a schema mismatch as an API error."""
        try:
            return [model.model_validate(item) for item in items]
        except ValueError as e:
            raise GithubApiError(operation, 200, f"unexpected response: {e}") from e

    async def _get_redirect_location(self, path: str, operation: str) -> str:
        response = await self._request("GET", path, operation)
        self._expect(response, operation, *_REDIRECT_STATUSES)
        location = response.headers.get("location")
        if not location:
            raise GithubApiError(operation, response.status_code, "redirect without a location")
        return location

    # -------------------------------------------------------------------
    # Existence lookups
    # -------------------------------------------------------------------
    async def _get_status(self, path: str, operation: str, accepted: Iterable[int]) -> int:
        response = await self._request("GET", path, operation)
        accepted = tuple(accepted)
        if accepted:
            self._expect(response, operation, *accepted)
        return response.status_code

    async def get_branch_status(self, branch: str, *accepted: int) -> int:
        """
        Return the HTTP status of GET /branches/{branch}.

        When `accepted` statuses are given, any other status raises
        GithubApiError carrying GitHub's error message.
        """
        return await self._get_status(
            f"{self._repo_path}/branches/{branch}", f'get branch "{branch}"', accepted
        )

    async def get_commit_status(self, ref: str, *accepted: int) -> int:
        """Return the HTTP status of GET /commits/{ref} (SHA, branch or tag)."""
        return await self._get_status(
            f"{self._repo_path}/commits/{ref}", f'get commit "{ref}"', accepted
        )

    # -------------------------------------------------------------------
    # Workflow runs
    # -------------------------------------------------------------------
    async def create_dispatch_event(self, workflow: str, ref: str, correlation_id: str) -> int:
        """
        Request a workflow_dispatch run and return the response status.

        The correlation id is sent as the `id` input; the workflow's run-name
        template must include it so the run can be found afterwards.
        """
        response = await self._request(
            "POST",
            f"{self._repo_path}/actions/workflows/{workflow}/dispatches",
            f'dispatch workflow "{workflow}"',
            json={"ref": ref, "inputs": {CORRELATION_INPUT_NAME: correlation_id}},
        )
        return response.status_code

    async def list_workflow_runs(self, branch: str) -> List[WorkflowRun]:
        """List runs on `branch` created within the configured look-back window."""
        created_since = datetime.now(timezone.utc) - self.created_within
        params = {
            "branch": branch,
            "created": f">={created_since.strftime('%Y-%m-%dT%H:%M:%SZ')}",
            "per_page": PER_PAGE,
        }
        operation = f'list workflow runs on "{branch}"'
        data = await self._get_json(f"{self._repo_path}/actions/runs", operation, params=params)
        return self._parse(WorkflowRun, data.get("workflow_runs") or [], operation)

    async def list_run_artifacts(self, run_id: int) -> List[Artifact]:
        operation = f"list artifacts of run {run_id}"
        data = await self._get_json(
            f"{self._repo_path}/actions/runs/{run_id}/artifacts",
            operation,
            params={"per_page": PER_PAGE},
        )
        return self._parse(Artifact, data.get("artifacts") or [], operation)

    async def get_artifact_download_url(self, artifact_id: int) -> str:
        return await self._get_redirect_location(
            f"{self._repo_path}/actions/artifacts/{artifact_id}/{ARTIFACT_ARCHIVE_FORMAT}",
            f"get download URL of artifact {artifact_id}",
        )

    async def get_run_logs_url(self, run_id: int) -> str:
        return await self._get_redirect_location(
            f"{self._repo_path}/actions/runs/{run_id}/logs",
            f"get logs URL of run {run_id}",
        )

    # -------------------------------------------------------------------
    # Secrets
    # -------------------------------------------------------------------
    async def get_repo_public_key(self) -> RepoPublicKey:
        operation = "get secrets public key"
        data = await self._get_json(f"{self._repo_path}/actions/secrets/public-key", operation)
        return self._parse(RepoPublicKey, [data], operation)[0]

    async def list_repo_secret_names(self) -> List[str]:
        """Return the names of all repository secrets, following pagination."""
        operation = "list repository secrets"
        names: List[str] = []
        page = 1
        while True:
            data = await self._get_json(
                f"{self._repo_path}/actions/secrets",
                operation,
                params={"per_page": PER_PAGE, "page": page},
            )
            secrets = data.get("secrets") or []
            try:
                names.extend(s["name"] for s in secrets)
            except (KeyError, TypeError) as e:
                raise GithubApiError(operation, 200, f"unexpected response: {e!r}") from e

            total = data.get("total_count", len(names))
            if not secrets or len(secrets) < PER_PAGE or len(names) >= total:
                break
            page += 1
        return names

    async def set_repo_secret(self, name: str, encrypted_value: str, key_id: str) -> None:
        operation = f'set secret "{name}"'
        response = await self._request(
            "PUT",
            f"{self._repo_path}/actions/secrets/{name}",
            operation,
            json={"encrypted_value": encrypted_value, "key_id": key_id},
        )
        # 201 = created, 204 = updated
        self._expect(response, operation, 201, 204)

    async def delete_repo_secret(self, name: str) -> None:
        operation = f'delete secret "{name}"'
        response = await self._request(
            "DELETE", f"{self._repo_path}/actions/secrets/{name}", operation
        )
        self._expect(response, operation, 204)
