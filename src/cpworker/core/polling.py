"""Bounded polling of CI build status.

This module contains the polling protocol shared by every job execution:
a status query at a fixed cadence, a caller-supplied end condition, and a
wall-clock deadline. It is intentionally synchronous; each job runs the
poll on its own thread, and time is injectable so tests never sleep.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from cpworker.core.builds import (
    BuildClient,
    BuildClientError,
    BuildStatus,
    JobDescriptor,
    PollTimeout,
)

log = logging.getLogger(__name__)

EndCondition = Callable[[BuildStatus], bool]

DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_POLL_TIMEOUT = 40 * 60.0


@dataclass(frozen=True)
class PollSettings:
    """
    Timing configuration for build polling.

    Attributes:
        interval: Seconds between two status queries.
        timeout: Seconds after which polling gives up.
    """

    interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = DEFAULT_POLL_TIMEOUT

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError("interval must be > 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")


def accept_any(_: BuildStatus) -> bool:
    """End condition satisfied by the first observed build status."""
    return True


def poll_for_build(
    client: BuildClient,
    descriptor: JobDescriptor,
    request_id: str,
    end_condition: EndCondition,
    settings: PollSettings = PollSettings(),
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> BuildStatus:
    """
    Block until the build created by a request satisfies an end condition.

    The first query is issued one interval after the poll starts, then once
    per interval. Query errors are logged and the next tick is attempted.
    The deadline is fixed when the poll starts; once it passes no further
    queries are issued.

    Args:
        client: Build client used to query status.
        descriptor: Job whose repository and token are used for queries.
        request_id: Build request identifier to poll.
        end_condition: Predicate deciding whether a status ends the poll.
        settings: Interval and timeout.
        clock: Monotonic clock in seconds.
        sleep: Function used to wait between ticks.

    Returns:
        The first BuildStatus accepted by end_condition.

    Raises:
        PollTimeout: If the deadline passes first. The last status seen, if any,
            is carried on the exception.
    """
    deadline = clock() + settings.timeout
    last: BuildStatus | None = None

    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            break
        if remaining < settings.interval:
            sleep(remaining)
            break
        sleep(settings.interval)

        log.debug("Polling build status for request '%s'", request_id)
        try:
            status = client.get_status(
                descriptor.owner, descriptor.repo, request_id, descriptor.api_token
            )
        except BuildClientError as exc:
            log.error("Status query for request '%s' failed: %s", request_id, exc)
            continue

        last = status
        if clock() > deadline:
            break
        if end_condition(status):
            log.debug(
                "Request '%s' reached state '%s' (build %s)",
                request_id,
                status.state,
                status.build_id,
            )
            return status

    raise PollTimeout(
        f"timed out after {settings.timeout:g}s waiting for build of request "
        f"'{request_id}'",
        last,
    )
