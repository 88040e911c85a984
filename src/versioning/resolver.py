"""Resolution of package references to concrete (name, version) pairs."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence, Union

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer
from errors import ResolutionError
from .models import PackageRef, ResolutionFailure, ResolutionResult, ResolvedPackage

logger = logging.getLogger(__name__)


class Resolver:
    """Maps PackageRefs to ResolvedPackages via the registry client.

    Exact constraints resolve locally; only version-less or "latest" refs
    cost a registry lookup.
    """

    def __init__(self, registry, jobs: int = Constants.DEFAULT_JOBS):
        self.registry = registry
        self.jobs = max(1, jobs)

    def resolve(self, ref: PackageRef) -> ResolvedPackage:
        """Resolve one reference.

        Raises:
            PackageNotFoundError: the registry has no such crate.
            RegistryNetworkError: the version lookup failed in transport.
        """
        spec = ref.version_constraint
        if spec is not None and spec.is_exact:
            return ResolvedPackage(name=ref.name, version=spec.version, checksum=ref.checksum)

        # Registries that report checksums expose latest_release as well
        latest_release = getattr(self.registry, "latest_release", None)
        if latest_release is not None:
            release = latest_release(ref.name)
            name = release.name or ref.name
            version, checksum = release.version, release.checksum
        else:
            name = ref.name
            version, checksum = self.registry.latest_version(ref.name), None
        logger.debug("Resolved %s to %s %s", ref.name, name, version)
        return ResolvedPackage(name=name, version=version, checksum=checksum)

    def _resolve_one(self, ref: PackageRef) -> Union[ResolvedPackage, ResolutionFailure]:
        try:
            return self.resolve(ref)
        except ResolutionError as e:
            logger.error("Failed to resolve %s: %s", ref.name, e)
            return ResolutionFailure(ref=ref, kind=e.kind, message=str(e))
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.exception("Unexpected error resolving %s", ref.name)
            return ResolutionFailure(ref=ref, kind=type(e).__name__, message=str(e))

    def resolve_all(self, refs: Sequence[PackageRef]) -> ResolutionResult:
        """Resolve every reference, in parallel, keeping input order.

        Each ref yields exactly one resolved package or one failure.
        """
        result = ResolutionResult()
        if not refs:
            return result

        with Timer() as t:
            needs_lookup = any(
                r.version_constraint is None or not r.version_constraint.is_exact for r in refs
            )
            if needs_lookup and self.jobs > 1 and len(refs) > 1:
                with ThreadPoolExecutor(max_workers=min(self.jobs, len(refs))) as pool:
                    outcomes = list(pool.map(self._resolve_one, refs))
            else:
                outcomes = [self._resolve_one(r) for r in refs]

        for item in outcomes:
            if isinstance(item, ResolutionFailure):
                result.failures.append(item)
            else:
                result.resolved.append(item)

        if is_debug_enabled(logger):
            logger.debug(
                "Resolution complete",
                extra=extra_context(
                    event="function_exit",
                    component="resolver",
                    action="resolve_all",
                    resolved=len(result.resolved),
                    failed=len(result.failures),
                    duration_ms=t.duration_ms()
                )
            )
        return result
