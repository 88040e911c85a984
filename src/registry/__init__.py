"""Registry access for crates.io.

`RegistryClient` combines the metadata API (popularity listing and latest
version lookup, synchronous over requests) with artifact downloads
(asynchronous over aiohttp).
"""

from __future__ import annotations

from typing import List, Tuple

from constants import Constants
from .crates_io import CratesIoClient, Release
from .download import ArtifactDownloader


class RegistryClient:
    """Facade over the crates.io metadata client and the artifact downloader."""

    def __init__(self, api: CratesIoClient, downloader: ArtifactDownloader):
        self.api = api
        self.downloader = downloader

    @classmethod
    def from_settings(cls, settings) -> "RegistryClient":
        return cls(
            CratesIoClient(
                base_url=settings.registry_url,
                timeout=settings.timeout,
                retries=Constants.HTTP_RETRY_MAX,
            ),
            ArtifactDownloader(
                base_url=settings.download_url,
                timeout=settings.timeout,
                max_connections=settings.jobs,
            ),
        )

    def top_n(self, n: int) -> List[Tuple[str, int]]:
        return self.api.top_n(n)

    def latest_release(self, name: str) -> Release:
        return self.api.latest_release(name)

    def latest_version(self, name: str) -> str:
        return self.api.latest_version(name)

    async def fetch(self, name: str, version: str) -> bytes:
        return await self.downloader.fetch(name, version)

    async def __aenter__(self) -> "RegistryClient":
        await self.downloader.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.downloader.stop()


__all__ = [
    "RegistryClient",
    "CratesIoClient",
    "ArtifactDownloader",
    "Release",
]
