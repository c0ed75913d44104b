"""
Logs Service
============
Fetches the log archive of a workflow run and returns the printable text.

The archive holds one file per job step plus, for each job, a file prefixed
with "0_" that contains the whole job log. Only those are kept.
"""
import asyncio
import logging
import tempfile
from typing import Optional

import httpx

from actions_runner.core.constants import (
    LOG_EXTENSION,
    LOGS_END_MARKER,
    LOGS_START_MARKER,
    WHOLE_LOG_PATH_PREFIX,
)
from actions_runner.core.exceptions import LogFetchFailedError
from actions_runner.services.github_client import GithubApiClient
from actions_runner.utils.archive import read_log_entries
from actions_runner.utils.download import stream_to_file


def format_logs(content: str) -> str:
    """Wrap run logs in start/end markers for display."""
    return f"\n{LOGS_START_MARKER}\n{content}\n{LOGS_END_MARKER}\n"


class RunLogsFetcher:
    def __init__(
        self,
        client: GithubApiClient,
        logger: Optional[logging.Logger] = None,
        download_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.download_transport = download_transport

    async def fetch_logs(self, run_id: int) -> str:
        """
        Return the whole-job logs of `run_id` wrapped in display markers.

        Raises
        ------
        LogFetchFailedError
            If getting the URL, downloading or reading the archive fails
            for any reason (HTTP errors, corrupt or unsupported zip data).
        """
        self.logger.debug("Fetching logs for workflow run %d", run_id)
        try:
            url = await self.client.get_run_logs_url(run_id)
            with tempfile.TemporaryFile() as spool:
                await stream_to_file(url, spool, transport=self.download_transport)
                spool.seek(0)
                content = await asyncio.to_thread(
                    read_log_entries, spool, WHOLE_LOG_PATH_PREFIX, LOG_EXTENSION
                )
        except Exception as e:  # any download or archive failure
            raise LogFetchFailedError(run_id, str(e)) from e

        return format_logs(content)
