"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    GITHUB_TOKEN                       — Required. Token used for every GitHub API call
    GITHUB_API_URL                     — REST API base URL (default: https://api.github.com)
    POLLING_INTERVAL_SECONDS           — Sleep between two polls of any wait stage (default: 5)
    WORKFLOW_CREATED_WITHIN_SECONDS    — Look-back window when listing recent runs (default: 300)
    ARTIFACTS_MAX_DOWNLOAD_SIZE_BYTES  — Per-artifact download ceiling (default: 1 GiB)
    HTTP_TIMEOUT_SECONDS               — Per-request network timeout (default: 30)

Run Lookup Window:
    The dispatch endpoint does not return a run id, so the runner lists runs
    created within WORKFLOW_CREATED_WITHIN_SECONDS and matches them by name.
    If workflow start latency exceeds this window the run-creation wait times
    out even though the run exists; raise the value on busy repositories.
"""
import os
from dotenv import load_dotenv

load_dotenv()

GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")

POLLING_INTERVAL_SECONDS = float(os.getenv("POLLING_INTERVAL_SECONDS", 5))
WORKFLOW_CREATED_WITHIN_SECONDS = int(os.getenv("WORKFLOW_CREATED_WITHIN_SECONDS", 5 * 60))
ARTIFACTS_MAX_DOWNLOAD_SIZE_BYTES = int(
    os.getenv("ARTIFACTS_MAX_DOWNLOAD_SIZE_BYTES", 1024 * 1024 * 1024)
)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 30))

# Wait-stage defaults in seconds, overridable per invocation from the CLI
DEFAULT_COMMIT_TIMEOUT = 5 * 60
DEFAULT_BRANCH_TIMEOUT = 5 * 60
DEFAULT_WORKFLOW_RUN_CREATION_TIMEOUT = 5 * 60
DEFAULT_WORKFLOW_RUN_COMPLETION_TIMEOUT = 5 * 60


def get_github_token() -> str | None:
    """Read the token at call time so tests and late .env loads are honoured."""
    return os.getenv(GITHUB_TOKEN_ENV_VAR) or None
