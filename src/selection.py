"""Selection of crates to prefetch.

A selection is one of four variants; `Selector.select` is the single dispatch
point turning any of them into an ordered list of PackageRef.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import ClassVar, List, Sequence, Union

from constants import Constants, SelectionModes
from common.logging_utils import extra_context, is_debug_enabled
from errors import ConfigurationError, InvalidCountError, InvalidTokenError, RegistryNetworkError, SelectionError
from registry.lockfile_parser import LockedPackage, parse_cargo_lock
from registry.ranking import TOP_CRATES, top_dependents
from versioning.models import PackageRef, SelectionIssue, SelectionResult
from versioning.parser import parse_cli_token, parse_lockfile_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedSelection:
    """Most downloaded crates, as listed by the registry."""
    mode: ClassVar[SelectionModes] = SelectionModes.TOP_DOWNLOADS
    n: int = Constants.DEFAULT_TOP_N


@dataclass(frozen=True)
class DependentsSelection:
    """Most depended-upon crates, from the bundled ranking."""
    mode: ClassVar[SelectionModes] = SelectionModes.TOP_DEPS
    n: int = Constants.DEFAULT_TOP_N


@dataclass(frozen=True)
class ExplicitSelection:
    """User-named crates, `name` or `name@version`."""
    mode: ClassVar[SelectionModes] = SelectionModes.EXPLICIT
    tokens: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class LockfileSelection:
    """Every crates.io package of a parsed Cargo.lock."""
    mode: ClassVar[SelectionModes] = SelectionModes.LOCKFILE
    entries: Sequence[LockedPackage] = field(default_factory=tuple)


Selection = Union[RankedSelection, DependentsSelection, ExplicitSelection, LockfileSelection]


def _check_count(n) -> int:
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise InvalidCountError(n)
    return n


class Selector:
    """Turns a Selection into PackageRefs using the given registry client."""

    def __init__(self, registry):
        self.registry = registry

    def select(self, selection: Selection) -> SelectionResult:
        """Produce package references for a selection.

        Raises:
            InvalidCountError: a ranked selection with n <= 0.
            SelectionError: the registry ranking could not be listed.
        """
        if isinstance(selection, RankedSelection):
            result = self._select_ranked(selection)
        elif isinstance(selection, DependentsSelection):
            result = self._select_dependents(selection)
        elif isinstance(selection, ExplicitSelection):
            result = self._select_explicit(selection)
        elif isinstance(selection, LockfileSelection):
            result = self._select_lockfile(selection)
        else:
            raise ConfigurationError(f"unsupported selection: {selection!r}")

        if is_debug_enabled(logger):
            logger.debug(
                "Selection complete",
                extra=extra_context(
                    event="decision",
                    component="selector",
                    action="select",
                    mode=selection.mode.value,
                    count=len(result.refs),
                    issues=len(result.issues)
                )
            )
        return result

    def _select_ranked(self, selection: RankedSelection) -> SelectionResult:
        n = _check_count(selection.n)
        logger.info("Fetching the top %d crates by downloads.", n)
        try:
            ranked = self.registry.top_n(n)
        except RegistryNetworkError as e:
            raise SelectionError(f"failed to fetch top crates from registry: {e.cause}") from e
        refs = [PackageRef(name=name, source="ranked") for name, _downloads in ranked]
        return SelectionResult(refs=refs)

    def _select_dependents(self, selection: DependentsSelection) -> SelectionResult:
        n = _check_count(selection.n)
        if n > len(TOP_CRATES):
            logger.warning("Bundled ranking has only %d crates; requested %d.", len(TOP_CRATES), n)
        refs = [PackageRef(name=name, source="dependents") for name in top_dependents(n)]
        return SelectionResult(refs=refs)

    def _select_explicit(self, selection: ExplicitSelection) -> SelectionResult:
        result = SelectionResult()
        for token in selection.tokens:
            try:
                result.refs.append(parse_cli_token(token))
            except InvalidTokenError as e:
                logger.error("Invalid package token %r: %s", token, e.message)
                result.issues.append(SelectionIssue(token=token, message=e.message))
        return result

    def _select_lockfile(self, selection: LockfileSelection) -> SelectionResult:
        refs = [
            parse_lockfile_entry(entry.name, entry.version, entry.checksum)
            for entry in selection.entries
        ]
        return SelectionResult(refs=refs)


def selection_from_args(args) -> Selection:
    """Build the selection variant from parsed CLI arguments.

    Exactly one of --top-downloads, --top-deps, --lockfile or positional crates
    may be given; none means the top 100 crates by downloads.

    Raises:
        ConfigurationError: conflicting modes, an invalid count, or an
            unreadable lockfile.
    """
    top_downloads = getattr(args, "TOP_DOWNLOADS", None)
    top_deps = getattr(args, "TOP_DEPS", None)
    lockfile = getattr(args, "LOCKFILE", None)
    crates: List[str] = list(getattr(args, "CRATES", None) or [])

    given = [
        flag for flag, present in (
            ("--top-downloads", top_downloads is not None),
            ("--top-deps", top_deps is not None),
            ("--lockfile", lockfile is not None),
            ("crate arguments", bool(crates)),
        ) if present
    ]
    if len(given) > 1:
        raise ConfigurationError(f"selection modes are mutually exclusive: {', '.join(given)}")

    try:
        if top_downloads is not None:
            return RankedSelection(_check_count(top_downloads))
        if top_deps is not None:
            return DependentsSelection(_check_count(top_deps))
    except InvalidCountError as e:
        raise ConfigurationError(str(e)) from e
    if lockfile is not None:
        return LockfileSelection(tuple(parse_cargo_lock(lockfile)))
    if crates:
        return ExplicitSelection(tuple(crates))
    return RankedSelection(Constants.DEFAULT_TOP_N)
