"""Artifact downloader for `.crate` files."""

from __future__ import annotations

import asyncio
import logging
import urllib.parse
from typing import Optional

import aiohttp

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from errors import ArtifactNotFoundError, FetchError, TransientFetchError

logger = logging.getLogger(__name__)

_NOT_FOUND_STATUSES = frozenset({403, 404, 410})


def classify_status(status: int, url: str) -> Optional[FetchError]:
    """Map a non-200 HTTP status to the fetch error it represents.

    static.crates.io answers 403 for keys that do not exist, so 403 counts as
    not found alongside 404 and 410.
    """
    if status == 200:
        return None
    target = safe_url(url)
    if status in _NOT_FOUND_STATUSES:
        return ArtifactNotFoundError(f"HTTP {status} for {target}", status=status)
    if status == 429 or status >= 500:
        return TransientFetchError(f"HTTP {status} for {target}", status=status)
    return FetchError(f"HTTP {status} for {target}", status=status)


class ArtifactDownloader:
    """Downloads crate artifacts over a shared aiohttp session."""

    def __init__(
        self,
        base_url: str = Constants.DOWNLOAD_URL_CRATES_IO,
        timeout: float = Constants.REQUEST_TIMEOUT,
        max_connections: int = Constants.DEFAULT_JOBS,
    ):
        """Initialize the downloader.

        Args:
            base_url: Root of the static crate store.
            timeout: Total per-request timeout in seconds.
            max_connections: Connection pool size.
        """
        self.base_url = base_url.rstrip("/") + "/"
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_connections = max_connections
        self._session: Optional[aiohttp.ClientSession] = None

    def artifact_url(self, name: str, version: str) -> str:
        """Build the download URL: {base}/{name}/{name}-{version}.crate."""
        quoted = urllib.parse.quote(name)
        return f"{self.base_url}{quoted}/{quoted}-{urllib.parse.quote(version)}{Constants.CRATE_FILE_EXT}"

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=self._max_connections)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers={"User-Agent": Constants.USER_AGENT},
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def fetch(self, name: str, version: str) -> bytes:
        """Download one artifact.

        Raises:
            TransientFetchError: timeout, connection failure, 429 or 5xx.
            ArtifactNotFoundError: the artifact does not exist.
            FetchError: any other non-200 response.
        """
        if self._session is None:
            await self.start()
        assert self._session is not None

        url = self.artifact_url(name, version)
        with Timer() as t:
            try:
                async with self._session.get(url) as response:
                    error = classify_status(response.status, url)
                    if error is not None:
                        raise error
                    body = await response.read()
            except asyncio.TimeoutError as exc:
                raise TransientFetchError(f"timed out fetching {safe_url(url)}") from exc
            except aiohttp.ClientError as exc:
                raise TransientFetchError(f"{type(exc).__name__}: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Artifact downloaded",
                extra=extra_context(
                    event="http_response",
                    component="downloader",
                    action="GET",
                    outcome="success",
                    size=len(body),
                    duration_ms=t.duration_ms(),
                    target=safe_url(url)
                )
            )
        return body

    async def __aenter__(self) -> "ArtifactDownloader":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
