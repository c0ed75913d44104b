"""
Run Request Model
=================
Pydantic model for everything one `run-action` invocation needs.

Fields:
    owner / repo            — repository coordinates
    workflow                — workflow file name or id (e.g. "build.yml")
    branch                  — branch the workflow is dispatched on
    rev                     — commit SHA that must exist before dispatching
    artifacts_path          — where to extract artifacts; None = skip download
    commit_timeout          — seconds to wait for the commit
    branch_timeout          — seconds to wait for the branch
    run_creation_timeout    — seconds to wait for the dispatched run to show up
    run_completion_timeout  — seconds to wait for the run to finish
    secrets                 — raw "KEY=VALUE" strings; malformed ones are
                              skipped later with a warning, never rejected here
    sync_secrets            — delete repository secrets missing from `secrets`
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from actions_runner.core import config


class RunRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    workflow: str = Field(min_length=1)
    branch: str = Field(min_length=1)
    rev: str = Field(min_length=1)
    artifacts_path: Optional[str] = None

    commit_timeout: float = Field(default=config.DEFAULT_COMMIT_TIMEOUT, ge=0)
    branch_timeout: float = Field(default=config.DEFAULT_BRANCH_TIMEOUT, ge=0)
    run_creation_timeout: float = Field(
        default=config.DEFAULT_WORKFLOW_RUN_CREATION_TIMEOUT, ge=0
    )
    run_completion_timeout: float = Field(
        default=config.DEFAULT_WORKFLOW_RUN_COMPLETION_TIMEOUT, ge=0
    )

    secrets: List[str] = []
    sync_secrets: bool = False

    @classmethod
    def from_repo_slug(cls, slug: str, **kwargs) -> "RunRequest":
        """Build a request from the "owner/name" form used on the command line."""
        parts = slug.split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f'Repository must be given as "owner/repo", got "{slug}"')
        owner, repo = parts
        return cls(owner=owner, repo=repo, **kwargs)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"
