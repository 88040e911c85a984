"""End-to-end pipeline tests against in-memory registry and cache doubles."""

import io
import json
import threading
from unittest.mock import patch

import pytest

import prefetch
from config import Settings
from constants import ExitCodes
from errors import ArtifactNotFoundError, SelectionError
from fakes import FakeCache, FakeRegistry
from report import Reporter
from selection import ExplicitSelection, LockfileSelection, RankedSelection
from registry.lockfile_parser import LockedPackage

SETTINGS = Settings(jobs=2, retries=3, backoff_base=0, backoff_max=0)


def _run(selection, registry, cache, **kwargs):
    out = io.StringIO()
    result = prefetch.run(selection, SETTINGS, registry, cache, reporter=Reporter(stream=out), **kwargs)
    return result, out.getvalue()


class TestRun:
    """prefetch.run()"""

    def test_list_mode_never_fetches_or_writes(self):
        registry = FakeRegistry(top=[("syn", 3), ("serde", 2)], latest={"syn": "2.0.0", "serde": "1.0.90"})
        cache = FakeCache()

        result, output = _run(RankedSelection(2), registry, cache, list_only=True)

        assert registry.total_fetches == 0
        assert cache.writes == []
        assert result.outcomes is None
        assert 'syn = "2.0.0"' in output
        assert 'serde = "1.0.90"' in output
        assert "2 to download, 0 already cached" in output
        assert result.exit_code == ExitCodes.SUCCESS.value

    def test_invalid_token_is_reported_and_valid_ones_proceed(self):
        registry = FakeRegistry(latest={"serde": "1.0.90"})
        cache = FakeCache()

        result, output = _run(ExplicitSelection(("serde", "not a valid name@@")), registry, cache)

        assert cache.writes == [("serde", "1.0.90")]
        assert "not a valid name@@" in output
        assert result.exit_code == ExitCodes.FAILURES.value

    def test_lockfile_duplicates_fetched_once(self):
        entries = (
            LockedPackage("serde", "1.0.90"),
            LockedPackage("libc", "0.2.1"),
            LockedPackage("serde", "1.0.90"),
        )
        registry = FakeRegistry()

        result, _ = _run(LockfileSelection(entries), registry, FakeCache())

        assert [p.key for p in result.plan] == [("serde", "1.0.90"), ("libc", "0.2.1")]
        assert dict(registry.fetch_calls) == {("serde", "1.0.90"): 1, ("libc", "0.2.1"): 1}
        assert registry.lookup_calls == []

    def test_everything_cached_makes_no_requests(self):
        registry = FakeRegistry()
        cache = FakeCache(present={("serde", "1.0.90")})

        result, output = _run(LockfileSelection((LockedPackage("serde", "1.0.90"),)), registry, cache)

        assert registry.total_fetches == 0
        assert registry.entered == 0
        assert result.outcomes == []
        assert "0 downloaded, 0 failed, 1 already cached" in output
        assert result.exit_code == ExitCodes.SUCCESS.value

    def test_fetch_failure_sets_failure_exit_code(self):
        registry = FakeRegistry(fetch_script={("ghost", "1.0.0"): [ArtifactNotFoundError("HTTP 404")]})

        result, output = _run(ExplicitSelection(("ghost@1.0.0", "serde@1.0.90")), registry, FakeCache())

        assert "ghost 1.0.0: FAILED (NotFound)" in output
        assert "serde 1.0.90: ok" in output
        assert "1 downloaded, 1 failed, 0 already cached" in output
        assert result.exit_code == ExitCodes.FAILURES.value

    def test_resolution_failure_reported(self):
        registry = FakeRegistry(missing={"ghost"})

        result, output = _run(ExplicitSelection(("ghost", "serde")), registry, FakeCache())

        assert "ghost: NotFound" in output
        assert [p.name for p in result.plan] == ["serde"]
        assert result.exit_code == ExitCodes.FAILURES.value

    def test_cancelled_run_counts_as_failure(self):
        event = threading.Event()
        event.set()
        registry = FakeRegistry()

        result, output = _run(ExplicitSelection(("serde@1.0.90",)), registry, FakeCache(), cancel_event=event)

        assert registry.total_fetches == 0
        assert "1 cancelled" in output
        assert result.exit_code == ExitCodes.FAILURES.value

    def test_ranking_failure_propagates(self):
        class Broken(FakeRegistry):
            def top_n(self, n):
                raise SelectionError("listing unavailable")

        with pytest.raises(SelectionError):
            _run(RankedSelection(5), Broken(), FakeCache())


class TestMain:
    """prefetch.main() exit codes and wiring."""

    def test_conflicting_modes_exit_config_error(self):
        with pytest.raises(SystemExit) as exc:
            prefetch.main(["--top-downloads", "5", "serde"])
        assert exc.value.code == ExitCodes.CONFIG_ERROR.value

    def test_invalid_count_exit_config_error(self):
        with pytest.raises(SystemExit) as exc:
            prefetch.main(["--top-deps", "0"])
        assert exc.value.code == ExitCodes.CONFIG_ERROR.value

    def test_listing_failure_exit_connection_error(self, tmp_path):
        class Broken(FakeRegistry):
            def top_n(self, n):
                raise SelectionError("listing unavailable")

        with patch("prefetch.RegistryClient.from_settings", return_value=Broken()):
            with pytest.raises(SystemExit) as exc:
                prefetch.main(["--top-downloads", "3", "--cache-dir", str(tmp_path), "-q"])
        assert exc.value.code == ExitCodes.CONNECTION_ERROR.value

    def test_download_writes_cache_and_exports_json(self, tmp_path):
        cache_dir = tmp_path / "cache"
        out = tmp_path / "report.json"
        registry = FakeRegistry(latest={"serde": "1.0.90"})

        with patch("prefetch.RegistryClient.from_settings", return_value=registry):
            with pytest.raises(SystemExit) as exc:
                prefetch.main(["serde", "--cache-dir", str(cache_dir), "-o", str(out), "-q"])

        assert exc.value.code == ExitCodes.SUCCESS.value
        assert (cache_dir / "serde-1.0.90.crate").read_bytes() == b"crate-bytes"
        rows = json.loads(out.read_text(encoding="utf-8"))
        assert rows[0]["name"] == "serde"
        assert rows[0]["status"] == "success"

    def test_second_run_finds_everything_cached(self, tmp_path):
        registry = FakeRegistry()
        argv = ["libc@0.2.1", "--cache-dir", str(tmp_path), "-q"]

        with patch("prefetch.RegistryClient.from_settings", return_value=registry):
            with pytest.raises(SystemExit):
                prefetch.main(argv)
            with pytest.raises(SystemExit) as exc:
                prefetch.main(argv)

        assert exc.value.code == ExitCodes.SUCCESS.value
        assert registry.total_fetches == 1
