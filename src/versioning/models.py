"""Data models for selection, resolution and fetching."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class ResolutionMode(Enum):
    """How a requested version is turned into a concrete one."""
    EXACT = "exact"
    LATEST = "latest"


class OutcomeStatus(Enum):
    """Terminal state of one plan entry."""
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class VersionSpec:
    """Either an exact version or "latest"."""
    mode: ResolutionMode
    version: Optional[str] = None

    @classmethod
    def exact(cls, version: str) -> "VersionSpec":
        return cls(ResolutionMode.EXACT, version)

    @classmethod
    def latest(cls) -> "VersionSpec":
        return cls(ResolutionMode.LATEST, None)

    @property
    def is_exact(self) -> bool:
        return self.mode == ResolutionMode.EXACT

    def __str__(self) -> str:
        return self.version if self.is_exact else "latest"


@dataclass(frozen=True)
class PackageRef:
    """Selector output; the version may still need resolving."""
    name: str
    version_constraint: Optional[VersionSpec] = None
    source: str = "cli"  # "ranked" | "dependents" | "cli" | "lockfile"
    checksum: Optional[str] = None


@dataclass(frozen=True)
class ResolvedPackage:
    """One cache/download unit. Identity is (name, version)."""
    name: str
    version: str
    checksum: Optional[str] = field(default=None, compare=False)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.version)

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass
class SelectionIssue:
    """A malformed selection token, reported without aborting the run."""
    token: str
    message: str


@dataclass
class SelectionResult:
    """Selector output: valid references plus per-token issues."""
    refs: List[PackageRef] = field(default_factory=list)
    issues: List[SelectionIssue] = field(default_factory=list)


@dataclass
class ResolutionFailure:
    """A reference that could not be resolved."""
    ref: PackageRef
    kind: str
    message: str


@dataclass
class ResolutionResult:
    """Resolver output in selection order."""
    resolved: List[ResolvedPackage] = field(default_factory=list)
    failures: List[ResolutionFailure] = field(default_factory=list)


@dataclass
class DownloadPlan:
    """Deduplicated, cache-filtered packages to fetch, in first-seen order."""
    entries: List[ResolvedPackage] = field(default_factory=list)
    cached: List[ResolvedPackage] = field(default_factory=list)

    @property
    def already_cached(self) -> int:
        return len(self.cached)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass
class FetchOutcome:
    """Terminal result for one plan entry."""
    package: ResolvedPackage
    status: OutcomeStatus
    reason: Optional[str] = None
    detail: Optional[str] = None
    attempts: int = 0
    size: int = 0

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def success(cls, package: ResolvedPackage, attempts: int, size: int) -> "FetchOutcome":
        return cls(package, OutcomeStatus.SUCCESS, attempts=attempts, size=size)

    @classmethod
    def failed(cls, package: ResolvedPackage, reason: str, detail: str, attempts: int) -> "FetchOutcome":
        return cls(package, OutcomeStatus.FAILED, reason=reason, detail=detail, attempts=attempts)

    @classmethod
    def cancelled(cls, package: ResolvedPackage) -> "FetchOutcome":
        return cls(package, OutcomeStatus.CANCELLED, reason="Cancelled", detail="run cancelled before fetch")
