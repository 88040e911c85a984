"""Rendering of plans and fetch outcomes, plus JSON/CSV export."""

from __future__ import annotations

import csv
import json
import logging
import sys
from typing import List, Optional, Sequence, TextIO

from versioning.models import (
    DownloadPlan,
    FetchOutcome,
    OutcomeStatus,
    ResolutionFailure,
    SelectionIssue,
)

logger = logging.getLogger(__name__)


class Reporter:
    """Writes human-readable reports to a stream. Never alters pipeline data."""

    def __init__(self, stream: Optional[TextIO] = None, verbose: bool = False, quiet: bool = False):
        self.stream = stream if stream is not None else sys.stdout
        self.verbose = verbose
        self.quiet = quiet

    def _write(self, line: str = "") -> None:
        if not self.quiet:
            self.stream.write(line + "\n")

    def errors(
        self,
        issues: Sequence[SelectionIssue] = (),
        failures: Sequence[ResolutionFailure] = (),
    ) -> None:
        """Report every selection and resolution error in one block."""
        if not issues and not failures:
            return
        self._write("errors:")
        for issue in issues:
            self._write(f"  invalid argument {issue.token!r}: {issue.message}")
        for failure in failures:
            self._write(f"  {failure.ref.name}: {failure.kind}: {failure.message}")

    def plan(self, plan: DownloadPlan) -> None:
        """List mode: one `name = "version"` line per entry and the cached count."""
        for pkg in plan.entries:
            self._write(f'{pkg.name} = "{pkg.version}"')
        if self.verbose:
            for pkg in plan.cached:
                self._write(f'{pkg.name} = "{pkg.version}" (cached)')
        self._write(f"{len(plan.entries)} to download, {plan.already_cached} already cached")

    def outcomes(self, outcomes: Sequence[FetchOutcome], already_cached: int = 0) -> None:
        """Download mode: per-entry result in plan order, then summary counts."""
        for outcome in outcomes:
            pkg = outcome.package
            if outcome.status == OutcomeStatus.SUCCESS:
                self._write(f"{pkg.name} {pkg.version}: ok")
            elif outcome.status == OutcomeStatus.CANCELLED:
                self._write(f"{pkg.name} {pkg.version}: cancelled")
            else:
                self._write(f"{pkg.name} {pkg.version}: FAILED ({outcome.reason}): {outcome.detail}")
        self._write(summary_line(outcomes, already_cached))


def summary_line(outcomes: Sequence[FetchOutcome], already_cached: int = 0) -> str:
    downloaded = sum(1 for o in outcomes if o.status == OutcomeStatus.SUCCESS)
    failed = sum(1 for o in outcomes if o.status == OutcomeStatus.FAILED)
    cancelled = sum(1 for o in outcomes if o.status == OutcomeStatus.CANCELLED)
    line = f"{downloaded} downloaded, {failed} failed, {already_cached} already cached"
    if cancelled:
        line += f", {cancelled} cancelled"
    return line


def _rows(plan: Optional[DownloadPlan], outcomes: Optional[Sequence[FetchOutcome]]) -> List[dict]:
    rows = []
    if outcomes is not None:
        for o in outcomes:
            rows.append({
                "name": o.package.name,
                "version": o.package.version,
                "status": o.status.value,
                "reason": o.reason,
                "detail": o.detail,
                "attempts": o.attempts,
                "size": o.size,
            })
    elif plan is not None:
        for pkg in plan.entries:
            rows.append({"name": pkg.name, "version": pkg.version, "status": "planned"})
    if plan is not None:
        for pkg in plan.cached:
            rows.append({"name": pkg.name, "version": pkg.version, "status": "cached"})
    return rows


def export_json(path: str, plan: Optional[DownloadPlan] = None,
                outcomes: Optional[Sequence[FetchOutcome]] = None) -> None:
    """Exports the plan (list mode) or the outcomes (download mode) to a JSON file.

    Raises:
        OSError: the file could not be written.
    """
    with open(path, "w", encoding="utf-8") as file:
        json.dump(_rows(plan, outcomes), file, ensure_ascii=False, indent=4)
    logger.info("JSON file has been successfully exported at: %s", path)


def export_csv(path: str, plan: Optional[DownloadPlan] = None,
               outcomes: Optional[Sequence[FetchOutcome]] = None) -> None:
    """Exports the plan or outcomes to a CSV file.

    Raises:
        OSError: the file could not be written.
    """
    headers = ["name", "version", "status", "reason", "detail", "attempts", "size"]

    def _nv(v):
        return "" if v is None else v

    with open(path, "w", newline="", encoding="utf-8") as file:
        writer = csv.writer(file)
        writer.writerow(headers)
        for row in _rows(plan, outcomes):
            writer.writerow([_nv(row.get(h)) for h in headers])
    logger.info("CSV file has been successfully exported at: %s", path)
