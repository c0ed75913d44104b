"""
Download Utilities
==================
Streams a short-lived signed URL into a file object.

Signed storage URLs must not receive the GitHub token, so downloads use their
own unauthenticated client instead of the API client's session. The body is
written chunk by chunk; at no point is the whole archive held in memory.
"""
import logging
from typing import BinaryIO, Optional

import httpx

from actions_runner.core import config
from actions_runner.core.constants import DOWNLOAD_CHUNK_SIZE, USER_AGENT
from actions_runner.core.exceptions import DownloadError

logger = logging.getLogger(__name__)


async def stream_to_file(
    url: str,
    sink: BinaryIO,
    max_bytes: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = config.HTTP_TIMEOUT_SECONDS,
) -> int:
    """
    Download `url` into `sink` and return the number of bytes written.

    Parameters
    ----------
    url : str
        Signed URL, fetched immediately before calling this.
    sink : BinaryIO
        Writable binary file object.
    max_bytes : int, optional
        Abort once the declared or streamed size goes past this ceiling.
    transport : httpx.AsyncBaseTransport, optional
        Custom transport (tests).

    Raises
    ------
    DownloadError
        On a non-200 answer, a transport failure, or an oversized body.
    """
    written = 0
    try:
        async with httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        ) as client:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise DownloadError(f"Failed to download file: HTTP {response.status_code}")

                declared = response.headers.get("content-length")
                if max_bytes is not None and declared and declared.isdigit() and int(declared) > max_bytes:
                    raise DownloadError(
                        f"Download size {declared} bytes exceeds the limit of {max_bytes} bytes"
                    )

                async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise DownloadError(
                            f"Download exceeded the limit of {max_bytes} bytes"
                        )
                    sink.write(chunk)
    except httpx.HTTPError as e:
        raise DownloadError(f"Failed to download file: {str(e) or type(e).__name__}") from e

    sink.flush()
    logger.debug("Downloaded %d bytes", written)
    return written
