"""crates.io registry API client: popularity listing and latest-version lookup."""
from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import semantic_version

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from errors import PackageNotFoundError, RegistryNetworkError
from versioning.parser import is_valid_crate_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Release:
    """A published crate version and its sha256, when the registry reports one.

    name is the registry's own spelling of the crate, which may differ from
    the requested one in case and in `-` versus `_`.
    """
    version: str
    checksum: Optional[str] = None
    name: Optional[str] = None


def pick_latest(crate: Dict[str, Any], versions: List[Dict[str, Any]]) -> Optional[str]:
    """Pick the version `cargo add` would choose for an unconstrained crate.

    Prefers the registry's own max_stable_version, then max_version; when
    neither is present, the highest non-yanked semantic version, taking
    prereleases only if no stable release exists.
    """
    for key in ("max_stable_version", "max_version", "newest_version"):
        value = crate.get(key)
        if value:
            return value

    stable, pre = [], []
    for entry in versions:
        if entry.get("yanked"):
            continue
        try:
            parsed = semantic_version.Version(entry.get("num", ""))
        except ValueError:
            continue  # Skip invalid versions
        (pre if parsed.prerelease else stable).append(parsed)

    pool = stable or pre
    if not pool:
        return None
    return str(max(pool))


class CratesIoClient:
    """Synchronous client for the crates.io JSON API."""

    def __init__(
        self,
        base_url: str = Constants.REGISTRY_URL_CRATES_IO,
        timeout: float = Constants.REQUEST_TIMEOUT,
        retries: int = Constants.HTTP_RETRY_MAX,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.retries = retries
        self.headers = {"User-Agent": Constants.USER_AGENT, "Accept": "application/json"}

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Tuple[int, Any]:
        url = urllib.parse.urljoin(self.base_url, path)
        status, _, data = get_json(
            url,
            headers=self.headers,
            params=params,
            timeout=self.timeout,
            retries=self.retries,
        )
        return status, data

    def top_n(self, n: int) -> List[Tuple[str, int]]:
        """Return the n most downloaded crates as (name, download_count) pairs.

        crates.io caps page size at 100, so larger counts are paged.

        Raises:
            RegistryNetworkError: if any page cannot be fetched.
        """
        result: List[Tuple[str, int]] = []
        page = 1
        remaining = n
        while remaining > 0:
            per_page = min(remaining, Constants.CRATES_IO_MAX_PER_PAGE)
            status, data = self._get(
                "crates", {"page": page, "per_page": per_page, "sort": "downloads"}
            )
            if status != 200 or not isinstance(data, dict):
                cause = data if status == 0 else f"HTTP {status} listing top crates"
                raise RegistryNetworkError(str(cause))

            crates = data.get("crates") or []
            for crate in crates[:per_page]:
                result.append((crate["name"], int(crate.get("downloads") or 0)))
            if is_debug_enabled(logger):
                logger.debug(
                    "Fetched top crates page",
                    extra=extra_context(
                        event="registry_page",
                        component="crates_io",
                        action="top_n",
                        page=page,
                        count=len(crates)
                    )
                )
            if len(crates) < per_page:
                break  # registry has fewer crates than requested
            page += 1
            remaining -= per_page
        return result

    def latest_release(self, name: str) -> Release:
        """Look up the latest release of a crate.

        Raises:
            PackageNotFoundError: the registry has no such crate.
            RegistryNetworkError: transport failure or unexpected response.
        """
        status, data = self._get(f"crates/{urllib.parse.quote(name)}")
        if status == 404:
            raise PackageNotFoundError(name)
        if status == 0:
            raise RegistryNetworkError(str(data))
        if status != 200 or not isinstance(data, dict) or "crate" not in data:
            raise RegistryNetworkError(
                f"unexpected response for {safe_url(self.base_url + 'crates/' + name)} (HTTP {status})"
            )

        crate = data["crate"]
        versions = data.get("versions") or []
        if not isinstance(crate, dict) or not isinstance(versions, list):
            raise RegistryNetworkError(f"malformed registry response for crate {name!r}")
        canonical = crate.get("name") or name
        if not isinstance(canonical, str) or not is_valid_crate_name(canonical):
            raise RegistryNetworkError(f"registry returned invalid crate name {canonical!r} for {name!r}")

        version = pick_latest(crate, [v for v in versions if isinstance(v, dict)])
        if version is None:
            raise PackageNotFoundError(name)
        checksum = next(
            (v.get("checksum") for v in versions if isinstance(v, dict) and v.get("num") == version),
            None,
        )
        if canonical != name:
            logger.debug("Crate %s is published as %s", name, canonical)
        return Release(version=version, checksum=checksum, name=canonical)

    def latest_version(self, name: str) -> str:
        return self.latest_release(name).version
