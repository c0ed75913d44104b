"""
Constants
Centralised storage for GitHub Actions protocol values and display markers.
"""
# Statuses a workflow run reports before it settles; anything else is terminal
IN_PROGRESS_STATUSES = frozenset({
    "in_progress",   # currently running
    "queued",        # waiting for a runner
    "requested",     # requested, not yet started
    "waiting",       # on hold for an environment approval or other gate
    "pending",       # initial processing
})

WORKFLOW_RUN_SUCCESS_CONCLUSION = "success"

# Workflow input that carries the correlation token
CORRELATION_INPUT_NAME = "id"
CORRELATION_TOKEN_LENGTH = 21
CORRELATION_TOKEN_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-"
)

# GitHub caps page size at 100
PER_PAGE = 100
ARTIFACT_ARCHIVE_FORMAT = "zip"

# In the run logs archive the file prefixed 0_ holds the whole log of each job
WHOLE_LOG_PATH_PREFIX = "0_"
LOG_EXTENSION = ".txt"
LOGS_START_MARKER = "----GITHUB WORKFLOW RUN LOGS START----"
LOGS_END_MARKER = "----GITHUB WORKFLOW RUN LOGS END----"

DOWNLOAD_CHUNK_SIZE = 64 * 1024
USER_AGENT = "github-actions-runner"
