"""
CDPPoller
=========
Waits for a freshly launched browser's DevTools endpoint to answer, instead of
sleeping for a fixed launch delay.

The backoff logic lives in the pure ``advance`` step so it can be exercised
without a network; ``CDPPoller`` only adds the clock, the sleep and one plain
``GET {base}/json/version`` per attempt.

    POLLING ──200──▶ READY
       │
       └──deadline──▶ FAILED (PollTimeoutError)

Usage::

    await wait_for_cdp_ready("http://127.0.0.1:9222", timeout=30, interval=0.5)
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Self

import httpx

from .errors import PollTimeoutError

CDP_VERSION_PATH = "/json/version"

BACKOFF_AFTER_ATTEMPTS = 3
DEFAULT_MAX_INTERVAL = 4.0

ATTEMPT_TIMEOUT_RATIO = 0.8
MIN_ATTEMPT_TIMEOUT = 0.1
MAX_ATTEMPT_TIMEOUT = 2.0


class PollStatus(str, Enum):
    POLLING = "polling"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class PollState:
    started_at: float
    deadline: float
    interval: float
    max_interval: float = DEFAULT_MAX_INTERVAL
    attempt: int = 0
    status: PollStatus = PollStatus.POLLING

    @classmethod
    def begin(cls, now: float, timeout: float, interval: float, max_interval: float = DEFAULT_MAX_INTERVAL) -> Self:
        if timeout <= 0 or interval <= 0 or max_interval <= 0:
            raise ValueError("timeout, interval and max_interval must be positive")
        return cls(
            started_at=now,
            deadline=now + timeout,
            interval=min(interval, max_interval),
            max_interval=max_interval,
        )

    def attempt_timeout(self, now: float) -> float:
        """Per-attempt budget: shorter than the interval and never past the deadline."""
        budget = min(max(self.interval * ATTEMPT_TIMEOUT_RATIO, MIN_ATTEMPT_TIMEOUT), MAX_ATTEMPT_TIMEOUT)
        return max(min(budget, self.deadline - now), 0.0)


def advance(state: PollState, *, now: float, attempt_started: float, ready: bool) -> tuple[PollState, float]:
    """
    Fold one attempt's outcome into ``state``.

    Returns the next state and how long to sleep before the next attempt.
    The sleep is whatever is left of the current interval, clipped to the
    deadline. After ``BACKOFF_AFTER_ATTEMPTS`` attempts the interval doubles,
    up to ``max_interval``.
    """
    if state.status is not PollStatus.POLLING:
        return state, 0.0

    attempt = state.attempt + 1
    if ready:
        return replace(state, attempt=attempt, status=PollStatus.READY), 0.0
    if now >= state.deadline:
        return replace(state, attempt=attempt, status=PollStatus.FAILED), 0.0

    delay = max(state.interval - (now - attempt_started), 0.0)
    delay = min(delay, state.deadline - now)

    interval = state.interval
    if attempt >= BACKOFF_AFTER_ATTEMPTS:
        interval = min(interval * 2, state.max_interval)
    return replace(state, attempt=attempt, interval=interval), delay


def health_check_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{CDP_VERSION_PATH}"


class CDPPoller:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self.max_interval = max_interval
        self._clock = clock
        self._sleep = sleep
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def wait_for_ready(self, base_url: str, timeout: float = 30.0, interval: float = 0.5) -> PollState:
        """Poll until ``base_url`` serves ``/json/version`` with HTTP 200 or ``timeout`` seconds pass."""
        if self._client is not None:
            return await self._poll(self._client, base_url, timeout, interval)
        async with httpx.AsyncClient() as client:
            return await self._poll(client, base_url, timeout, interval)

    async def _poll(self, client: httpx.AsyncClient, base_url: str, timeout: float, interval: float) -> PollState:
        endpoint = health_check_url(base_url)
        state = PollState.begin(self._clock(), timeout, interval, self.max_interval)
        self.logger.info("Waiting up to %ss for CDP endpoint %s", timeout, endpoint)

        while state.status is PollStatus.POLLING:
            started = self._clock()
            if started >= state.deadline:
                state = replace(state, status=PollStatus.FAILED)
                break
            ready = await self._probe(client, endpoint, state.attempt_timeout(started))
            state, delay = advance(state, now=self._clock(), attempt_started=started, ready=ready)
            if state.status is PollStatus.POLLING and delay > 0:
                await self._sleep(delay)

        elapsed = self._clock() - state.started_at
        if state.status is PollStatus.READY:
            self.logger.info("CDP endpoint ready after %d attempt(s), %.2fs", state.attempt, elapsed)
            return state
        raise PollTimeoutError(endpoint, elapsed)

    async def _probe(self, client: httpx.AsyncClient, endpoint: str, timeout: float) -> bool:
        try:
            # A trickling response resets httpx's read timeout; cap the attempt as a whole.
            async with asyncio.timeout(timeout):
                response = await client.get(endpoint, timeout=timeout)
        except (httpx.HTTPError, TimeoutError) as exc:
            self.logger.debug("CDP endpoint %s not ready: %r", endpoint, exc)
            return False
        if response.status_code != 200:
            self.logger.debug("CDP endpoint %s answered %s", endpoint, response.status_code)
        return response.status_code == 200


async def wait_for_cdp_ready(
    base_url: str,
    timeout: float = 30.0,
    interval: float = 0.5,
    max_interval: float = DEFAULT_MAX_INTERVAL,
) -> PollState:
    return await CDPPoller(max_interval=max_interval).wait_for_ready(base_url, timeout, interval)
