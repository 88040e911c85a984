"""Bounded-concurrency execution of a download plan.

A fixed number of worker tasks drain a queue of plan entries. Each entry is
fetched with a tenacity retry policy (transient failures only, jittered
exponential backoff), verified against its checksum when one is known, and
written to the cache. Outcomes are buffered by plan index so they come back
in plan order whatever order the fetches complete in.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
from typing import Awaitable, Callable, List, Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer
from errors import CacheWriteError, ChecksumMismatchError, FetchError, TransientFetchError
from versioning.models import DownloadPlan, FetchOutcome, ResolvedPackage

logger = logging.getLogger(__name__)


def verify_checksum(pkg: ResolvedPackage, data: bytes) -> None:
    """Raise ChecksumMismatchError if data does not hash to pkg.checksum."""
    if not pkg.checksum:
        return
    actual = hashlib.sha256(data).hexdigest()
    if actual != pkg.checksum.lower():
        raise ChecksumMismatchError(
            f"sha256 mismatch for {pkg}: expected {pkg.checksum}, got {actual}"
        )


class FetchExecutor:
    """Runs a DownloadPlan against a registry client and a cache store."""

    def __init__(
        self,
        registry,
        cache,
        workers: int = Constants.DEFAULT_JOBS,
        retries: int = Constants.FETCH_RETRY_MAX,
        backoff_base: float = Constants.FETCH_BACKOFF_BASE_SEC,
        backoff_max: float = Constants.FETCH_BACKOFF_MAX_SEC,
        cancel_event: Optional[threading.Event] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """Initialize the executor.

        Args:
            registry: Object with `async fetch(name, version) -> bytes`.
            cache: Object with `write(name, version, data)`.
            workers: Maximum number of concurrent fetches.
            retries: Maximum attempts per entry for transient failures.
            backoff_base: Multiplier of the exponential backoff, in seconds.
            backoff_max: Upper bound of a single backoff wait, in seconds.
            cancel_event: When set, no new fetches are started.
            sleep: Async sleep used between retries (asyncio.sleep by default).
        """
        self.registry = registry
        self.cache = cache
        self.workers = max(1, workers)
        self.retries = max(1, retries)
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.cancel_event = cancel_event or threading.Event()
        self._sleep = sleep

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def _retrying(self) -> AsyncRetrying:
        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return AsyncRetrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_random_exponential(multiplier=self.backoff_base, max=self.backoff_max),
            retry=retry_if_exception_type(TransientFetchError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
            **kwargs,
        )

    async def fetch_one(self, pkg: ResolvedPackage) -> FetchOutcome:
        """Fetch, verify and store one package. Never raises for a per-entry failure."""
        attempts = 0

        async def _attempt() -> bytes:
            nonlocal attempts
            attempts += 1
            return await self.registry.fetch(pkg.name, pkg.version)

        with Timer() as t:
            try:
                data = await self._retrying()(_attempt)
                verify_checksum(pkg, data)
                try:
                    self.cache.write(pkg.name, pkg.version, data)
                except OSError as e:
                    raise CacheWriteError(f"failed to store {pkg}: {e}") from e
            except FetchError as e:
                logger.error("Failed to fetch %s (%s): %s", pkg, e.reason, e)
                return FetchOutcome.failed(pkg, e.reason, str(e), attempts)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.exception("Unexpected error fetching %s", pkg)
                return FetchOutcome.failed(pkg, type(e).__name__, str(e), attempts)

        if is_debug_enabled(logger):
            logger.debug(
                "Fetched package",
                extra=extra_context(
                    event="fetch",
                    component="executor",
                    action="fetch_one",
                    outcome="success",
                    package=str(pkg),
                    attempts=attempts,
                    size=len(data),
                    duration_ms=t.duration_ms()
                )
            )
        logger.info("Downloaded %s", pkg)
        return FetchOutcome.success(pkg, attempts=attempts, size=len(data))

    async def execute(self, plan: DownloadPlan) -> List[FetchOutcome]:
        """Run every plan entry; return one outcome per entry, in plan order."""
        entries = list(plan.entries)
        outcomes: List[Optional[FetchOutcome]] = [None] * len(entries)
        if not entries:
            return []

        queue: asyncio.Queue = asyncio.Queue()
        for index, pkg in enumerate(entries):
            queue.put_nowait((index, pkg))

        async def worker() -> None:
            while not self.cancelled:
                try:
                    index, pkg = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                outcomes[index] = await self.fetch_one(pkg)

        await asyncio.gather(*(worker() for _ in range(min(self.workers, len(entries)))))

        if self.cancelled:
            logger.warning("Fetching cancelled; unstarted packages were skipped.")
        return [
            outcome if outcome is not None else FetchOutcome.cancelled(pkg)
            for outcome, pkg in zip(outcomes, entries)
        ]

    def run(self, plan: DownloadPlan) -> List[FetchOutcome]:
        """Synchronous wrapper around execute()."""
        return asyncio.run(self.execute(plan))
