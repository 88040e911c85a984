"""Tests for plan and outcome reporting."""

import csv
import io
import json

from report import Reporter, export_csv, export_json, summary_line
from versioning.models import (
    DownloadPlan,
    FetchOutcome,
    PackageRef,
    ResolutionFailure,
    ResolvedPackage,
    SelectionIssue,
)

SERDE = ResolvedPackage("serde", "1.0.90")
LIBC = ResolvedPackage("libc", "0.2.1")
LOG = ResolvedPackage("log", "0.4.20")


def _reporter(**kwargs):
    out = io.StringIO()
    return Reporter(stream=out, **kwargs), out


class TestReporter:
    """Console rendering."""

    def test_plan_lines(self):
        reporter, out = _reporter()
        reporter.plan(DownloadPlan(entries=[SERDE, LIBC], cached=[LOG]))
        assert out.getvalue().splitlines() == [
            'serde = "1.0.90"',
            'libc = "0.2.1"',
            "2 to download, 1 already cached",
        ]

    def test_verbose_plan_lists_cached(self):
        reporter, out = _reporter(verbose=True)
        reporter.plan(DownloadPlan(entries=[], cached=[LOG]))
        assert 'log = "0.4.20" (cached)' in out.getvalue()

    def test_outcomes(self):
        reporter, out = _reporter()
        reporter.outcomes([
            FetchOutcome.success(SERDE, attempts=1, size=10),
            FetchOutcome.failed(LIBC, "NotFound", "HTTP 404", 1),
            FetchOutcome.cancelled(LOG),
        ], already_cached=2)
        assert out.getvalue().splitlines() == [
            "serde 1.0.90: ok",
            "libc 0.2.1: FAILED (NotFound): HTTP 404",
            "log 0.4.20: cancelled",
            "1 downloaded, 1 failed, 2 already cached, 1 cancelled",
        ]

    def test_errors_block(self):
        reporter, out = _reporter()
        reporter.errors(
            [SelectionIssue("bad@@", "malformed package token")],
            [ResolutionFailure(PackageRef("ghost"), "NotFound", "crate 'ghost' not found in registry")],
        )
        lines = out.getvalue().splitlines()
        assert lines[0] == "errors:"
        assert "bad@@" in lines[1]
        assert lines[2].startswith("  ghost: NotFound")

    def test_no_errors_prints_nothing(self):
        reporter, out = _reporter()
        reporter.errors([], [])
        assert out.getvalue() == ""

    def test_quiet(self):
        reporter, out = _reporter(quiet=True)
        reporter.plan(DownloadPlan(entries=[SERDE]))
        assert out.getvalue() == ""


def test_summary_without_cancellations():
    assert summary_line([FetchOutcome.success(SERDE, attempts=2, size=1)]) == (
        "1 downloaded, 0 failed, 0 already cached"
    )


class TestExport:
    """File exports."""

    def test_json_outcomes_and_cached(self, tmp_path):
        path = tmp_path / "out.json"
        plan = DownloadPlan(entries=[SERDE], cached=[LIBC])

        export_json(str(path), plan=plan, outcomes=[FetchOutcome.success(SERDE, attempts=3, size=42)])

        rows = json.loads(path.read_text(encoding="utf-8"))
        assert rows[0]["status"] == "success"
        assert rows[0]["attempts"] == 3
        assert rows[1] == {"name": "libc", "version": "0.2.1", "status": "cached"}

    def test_json_plan_only(self, tmp_path):
        path = tmp_path / "plan.json"
        export_json(str(path), plan=DownloadPlan(entries=[SERDE]))
        assert json.loads(path.read_text(encoding="utf-8")) == [
            {"name": "serde", "version": "1.0.90", "status": "planned"}
        ]

    def test_csv(self, tmp_path):
        path = tmp_path / "out.csv"
        export_csv(str(path), outcomes=[FetchOutcome.failed(LIBC, "Transient", "HTTP 503", 3)])

        with open(path, newline="", encoding="utf-8") as fh:
            rows = list(csv.DictReader(fh))
        assert rows[0]["name"] == "libc"
        assert rows[0]["reason"] == "Transient"
        assert rows[0]["size"] == "0"
        assert rows[0]["detail"] == "HTTP 503"
