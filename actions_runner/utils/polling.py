"""
Polling
=======
Retry-until-condition-or-timeout loop shared by every wait stage.

The probe is a zero-argument coroutine function. A non-None return value
means the condition is met and is handed back to the caller; None means
"not yet". Errors raised by the probe are not retried.

Cadence:
    The loop sleeps `interval` seconds between probes, so the effective
    period is interval + however long the probe's remote call took. The
    timeout is wall clock from the first probe and is only checked after a
    probe, which bounds the overrun to one interval plus one probe call.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from actions_runner.core import config
from actions_runner.core.exceptions import WaitTimeoutError

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def poll_until(
    probe: Callable[[], Awaitable[Optional[T]]],
    *,
    timeout: float,
    description: str,
    interval: Optional[float] = None,
    log: Optional[logging.Logger] = None,
) -> T:
    """
    Invoke `probe` until it returns a value or `timeout` seconds have elapsed.

    Parameters
    ----------
    probe : Callable[[], Awaitable[Optional[T]]]
        One attempt at observing the condition.
    timeout : float
        Seconds measured from the first attempt. Zero still probes once.
    description : str
        What is being awaited; used in log lines and in the timeout error.
    interval : float, optional
        Seconds to sleep between attempts (default: POLLING_INTERVAL_SECONDS).
    log : logging.Logger, optional
        Logger to report retries on.

    Returns
    -------
    T
        The first non-None value returned by the probe.

    Raises
    ------
    WaitTimeoutError
        If the condition is not met in time.
    """
    interval = config.POLLING_INTERVAL_SECONDS if interval is None else interval
    log = log or logger

    start = time.monotonic()
    attempt = 0
    while True:
        attempt += 1
        result = await probe()
        if result is not None:
            return result

        elapsed = time.monotonic() - start
        if elapsed > timeout:
            raise WaitTimeoutError(description, timeout)

        log.debug(
            "%s not reached yet (attempt %d, %.0fs elapsed). Retrying in %gs...",
            description, attempt, elapsed, interval,
        )
        await asyncio.sleep(interval)
