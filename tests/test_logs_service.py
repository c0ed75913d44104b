"""
Logs Service Tests
==================
Whole-job log selection from the run logs archive.
"""
import asyncio
import struct
import zipfile

import httpx
import pytest

from actions_runner.core.constants import LOGS_END_MARKER, LOGS_START_MARKER
from actions_runner.core.exceptions import GithubApiError, LogFetchFailedError
from actions_runner.services.logs_service import RunLogsFetcher
from conftest import make_zip


def _transport(status, body):
    return httpx.MockTransport(lambda request: httpx.Response(status, content=body))


def test_only_whole_job_logs_are_kept(mock_client):
    archive = make_zip({
        "0_build.txt": "build log\n",
        "build/1_Set up job.txt": "step noise\n",
        "0_test.txt": "test log\n",
        "0_notes.md": "not a log\n",
    })
    mock_client.get_run_logs_url.return_value = "https://storage.test/logs.zip"
    fetcher = RunLogsFetcher(mock_client, download_transport=_transport(200, archive))

    text = asyncio.run(fetcher.fetch_logs(42))

    assert "build log" in text
    assert "test log" in text
    assert "step noise" not in text
    assert "not a log" not in text
    assert text.index("build log") < text.index("test log")
    assert text.index(LOGS_START_MARKER) < text.index("build log") < text.index(LOGS_END_MARKER)
    mock_client.get_run_logs_url.assert_awaited_once_with(42)


def test_url_failure_becomes_log_fetch_error(mock_client):
    mock_client.get_run_logs_url.side_effect = GithubApiError("get logs URL of run 42", 404)
    fetcher = RunLogsFetcher(mock_client)

    with pytest.raises(LogFetchFailedError) as exc_info:
        asyncio.run(fetcher.fetch_logs(42))
    assert exc_info.value.run_id == 42


def test_download_failure_becomes_log_fetch_error(mock_client):
    mock_client.get_run_logs_url.return_value = "https://storage.test/logs.zip"
    fetcher = RunLogsFetcher(mock_client, download_transport=_transport(410, b"expired"))

    with pytest.raises(LogFetchFailedError, match="HTTP 410"):
        asyncio.run(fetcher.fetch_logs(42))


def test_corrupt_archive_becomes_log_fetch_error(mock_client):
    mock_client.get_run_logs_url.return_value = "https://storage.test/logs.zip"
    fetcher = RunLogsFetcher(mock_client, download_transport=_transport(200, b"not a zip"))

    with pytest.raises(LogFetchFailedError):
        asyncio.run(fetcher.fetch_logs(42))


def _corrupt_first_entry(archive: bytes) -> bytes:
    """Flip the first bytes of the first entry's compressed data."""
    name_len, extra_len = struct.unpack("<HH", archive[26:30])
    start = 30 + name_len + extra_len
    damaged = bytearray(archive)
    for i in range(start, start + 4):
        damaged[i] ^= 0xFF
    return bytes(damaged)


def test_corrupt_deflate_data_becomes_log_fetch_error(mock_client):
    archive = make_zip({"0_build.txt": "build log line\n" * 200}, compression=zipfile.ZIP_DEFLATED)
    mock_client.get_run_logs_url.return_value = "https://storage.test/logs.zip"
    fetcher = RunLogsFetcher(
        mock_client, download_transport=_transport(200, _corrupt_first_entry(archive))
    )

    with pytest.raises(LogFetchFailedError) as exc_info:
        asyncio.run(fetcher.fetch_logs(42))
    assert exc_info.value.run_id == 42
    assert exc_info.value.__cause__ is not None
