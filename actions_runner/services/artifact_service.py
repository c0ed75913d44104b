"""
Artifact Service
================
Downloads and unpacks the artifacts of a completed workflow run.

For every artifact, concurrently:
    1. ask the API for a fresh signed URL (valid ~1 minute, never cached)
    2. stream it into a temporary file on disk, enforcing the size ceiling
    3. extract the zip into <destination>/<artifact name>/

Every artifact task is joined before deciding; any failure fails the whole
step with an ArtifactDownloadError naming each artifact that went wrong.
"""
import asyncio
import logging
import os
import tempfile
from typing import Dict, Optional

import httpx

from actions_runner.core import config
from actions_runner.core.exceptions import ArtifactDownloadError, NoArtifactsFoundError
from actions_runner.models.artifact import Artifact
from actions_runner.models.workflow_run import WorkflowRun
from actions_runner.services.github_client import GithubApiClient
from actions_runner.utils.archive import extract_zip
from actions_runner.utils.download import stream_to_file


class ArtifactRetriever:
    """Fetches run artifacts into a local directory."""

    def __init__(
        self,
        client: GithubApiClient,
        logger: Optional[logging.Logger] = None,
        max_download_bytes: int = config.ARTIFACTS_MAX_DOWNLOAD_SIZE_BYTES,
        download_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.max_download_bytes = max_download_bytes
        self.download_transport = download_transport

    async def download_artifact(self, artifact: Artifact, destination: str) -> str:
        """Download one artifact and return the directory it was extracted to."""
        target_dir = os.path.join(os.path.abspath(destination), os.path.basename(artifact.name))
        url = await self.client.get_artifact_download_url(artifact.id)

        with tempfile.TemporaryFile() as spool:
            size = await stream_to_file(
                url,
                spool,
                max_bytes=self.max_download_bytes,
                transport=self.download_transport,
            )
            spool.seek(0)
            await asyncio.to_thread(extract_zip, spool, target_dir)

        self.logger.info('Artifact "%s" (%d bytes) saved to: %s', artifact.name, size, target_dir)
        return target_dir

    async def download_artifacts(self, run: WorkflowRun, destination: str) -> Dict[str, str]:
        """
        Download every artifact of `run` under `destination`.

        Returns
        -------
        Dict[str, str]
            Artifact name -> extraction directory.

        Raises
        ------
        NoArtifactsFoundError
            If the run has no artifacts.
        ArtifactDownloadError
            If any artifact failed to download or extract.
        """
        self.logger.info("Downloading artifacts...")
        artifacts = await self.client.list_run_artifacts(run.id)
        if not artifacts:
            raise NoArtifactsFoundError(run.id)
        self.logger.info("Artifacts found: %s", ", ".join(a.name for a in artifacts))

        # TODO: two artifacts with the same name would extract into one directory
        results = await asyncio.gather(
            *(self.download_artifact(a, destination) for a in artifacts),
            return_exceptions=True,
        )

        saved: Dict[str, str] = {}
        failed: Dict[str, BaseException] = {}
        for artifact, result in zip(artifacts, results):
            if isinstance(result, BaseException):
                self.logger.error('Failed to download artifact "%s": %s', artifact.name, result)
                failed[artifact.name] = result
            else:
                saved[artifact.name] = result

        if failed:
            raise ArtifactDownloadError(failed) from next(iter(failed.values()))
        return saved
