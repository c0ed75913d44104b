"""
Workflow Run Model
==================
Pydantic mirror of the fields the runner reads from a GitHub Actions run.

Fields:
    id              — numeric run id, used for artifact and log endpoints
    name            — display name; carries the correlation token (may be null)
    status          — queued / in_progress / completed / ... (see constants)
    conclusion      — success / failure / cancelled / ... once terminal
    run_started_at  — when the run started executing (may be null)
    html_url        — web page of the run, shown to the operator

The object is never mutated; every poll fetches a fresh one.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from actions_runner.core.constants import IN_PROGRESS_STATUSES


class WorkflowRun(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    name: Optional[str] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    run_started_at: Optional[datetime] = None
    html_url: str = ""

    @property
    def is_terminal(self) -> bool:
        """Any non-empty status outside the in-progress set counts as finished."""
        return bool(self.status) and self.status not in IN_PROGRESS_STATUSES
