import io
import zipfile
from base64 import b64encode
from typing import Dict

import pytest
from unittest.mock import AsyncMock
from nacl import public

from actions_runner.models.artifact import RepoPublicKey
from actions_runner.models.workflow_run import WorkflowRun
from actions_runner.services.github_client import GithubApiClient


def make_zip(files: Dict[str, str], compression: int = zipfile.ZIP_STORED) -> bytes:
    """Build an in-memory zip archive from name -> text."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def make_run(**overrides) -> WorkflowRun:
    data = {
        "id": 42,
        "name": "Build abc123",
        "status": "completed",
        "conclusion": "success",
        "run_started_at": "2024-05-01T10:00:00Z",
        "html_url": "https://github.com/owner/repo/actions/runs/42",
    }
    data.update(overrides)
    return WorkflowRun.model_validate(data)


@pytest.fixture
def mock_client():
    return AsyncMock(spec=GithubApiClient)


@pytest.fixture
def key_pair():
    private_key = public.PrivateKey.generate()
    encoded = b64encode(bytes(private_key.public_key)).decode("utf-8")
    return private_key, RepoPublicKey(key_id="key-1", key=encoded)
