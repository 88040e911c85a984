"""Download plan construction: dedup plus cache filtering."""

from __future__ import annotations

import logging
from typing import Iterable, Set, Tuple

from versioning.models import DownloadPlan, ResolvedPackage

logger = logging.getLogger(__name__)


class PlanBuilder:
    """Builds the list of packages that actually need downloading."""

    def __init__(self, cache):
        self.cache = cache

    def build(self, resolved: Iterable[ResolvedPackage]) -> DownloadPlan:
        """Deduplicate by (name, version), keeping first occurrence, and drop
        packages the cache already holds.

        The cache is queried once per unique key.
        """
        plan = DownloadPlan()
        seen: Set[Tuple[str, str]] = set()
        for pkg in resolved:
            if pkg.key in seen:
                continue
            seen.add(pkg.key)
            if self.cache.contains(pkg.name, pkg.version):
                plan.cached.append(pkg)
            else:
                plan.entries.append(pkg)

        logger.info(
            "Plan: %d to download, %d already cached.", len(plan), plan.already_cached
        )
        return plan
