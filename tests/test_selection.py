"""Tests for selection modes and CLI-to-selection mapping."""

from types import SimpleNamespace

import pytest

from constants import SelectionModes
from errors import ConfigurationError, InvalidCountError, RegistryNetworkError, SelectionError
from fakes import FakeRegistry
from registry.lockfile_parser import LockedPackage
from registry.ranking import TOP_CRATES
from selection import (
    DependentsSelection,
    ExplicitSelection,
    LockfileSelection,
    RankedSelection,
    Selector,
    selection_from_args,
)


def _args(**overrides):
    base = dict(TOP_DOWNLOADS=None, TOP_DEPS=None, LOCKFILE=None, CRATES=[])
    base.update(overrides)
    return SimpleNamespace(**base)


class TestSelector:
    """Selector dispatch for each selection variant."""

    def test_ranked_refs_have_no_constraint(self):
        registry = FakeRegistry(top=[("syn", 900), ("serde", 800), ("libc", 700)])

        result = Selector(registry).select(RankedSelection(2))

        assert [r.name for r in result.refs] == ["syn", "serde"]
        assert all(r.version_constraint is None for r in result.refs)
        assert registry.top_calls == [2]

    @pytest.mark.parametrize("n", [0, -5])
    def test_ranked_invalid_count(self, n):
        registry = FakeRegistry()
        with pytest.raises(InvalidCountError):
            Selector(registry).select(RankedSelection(n))
        assert registry.top_calls == []

    def test_ranked_listing_failure_is_selection_error(self):
        class Broken(FakeRegistry):
            def top_n(self, n):
                raise RegistryNetworkError("timeout")

        with pytest.raises(SelectionError):
            Selector(Broken()).select(RankedSelection(10))

    def test_dependents_uses_bundled_ranking(self):
        registry = FakeRegistry()

        result = Selector(registry).select(DependentsSelection(3))

        assert [r.name for r in result.refs] == list(TOP_CRATES[:3])
        assert registry.top_calls == []

    def test_explicit_reports_invalid_tokens_individually(self):
        result = Selector(FakeRegistry()).select(
            ExplicitSelection(("serde", "not a valid name@@", "libc@0.2.1"))
        )

        assert [r.name for r in result.refs] == ["serde", "libc"]
        assert len(result.issues) == 1
        assert result.issues[0].token == "not a valid name@@"

    def test_lockfile_refs_are_exact(self):
        entries = (LockedPackage("serde", "1.0.90", "c" * 64), LockedPackage("libc", "0.2.1"))

        result = Selector(FakeRegistry()).select(LockfileSelection(entries))

        assert [(r.name, r.version_constraint.version) for r in result.refs] == [
            ("serde", "1.0.90"),
            ("libc", "0.2.1"),
        ]
        assert result.refs[0].checksum == "c" * 64


class TestSelectionFromArgs:
    """Mapping parsed arguments onto one selection variant."""

    def test_default_is_top_100_downloads(self):
        assert selection_from_args(_args()) == RankedSelection(100)

    def test_top_downloads_count(self):
        assert selection_from_args(_args(TOP_DOWNLOADS=25)) == RankedSelection(25)

    def test_top_deps(self):
        assert selection_from_args(_args(TOP_DEPS=10)) == DependentsSelection(10)

    def test_explicit_crates(self):
        assert selection_from_args(_args(CRATES=["serde", "rand@0.8.5"])) == ExplicitSelection(
            ("serde", "rand@0.8.5")
        )

    def test_conflicting_modes(self):
        with pytest.raises(ConfigurationError, match="mutually exclusive"):
            selection_from_args(_args(TOP_DOWNLOADS=10, CRATES=["serde"]))

    def test_lockfile_and_top_deps_conflict(self, tmp_path):
        with pytest.raises(ConfigurationError):
            selection_from_args(_args(TOP_DEPS=5, LOCKFILE=str(tmp_path / "Cargo.lock")))

    def test_invalid_count(self):
        with pytest.raises(ConfigurationError):
            selection_from_args(_args(TOP_DOWNLOADS=0))

    def test_unreadable_lockfile(self, tmp_path):
        with pytest.raises(ConfigurationError):
            selection_from_args(_args(LOCKFILE=str(tmp_path / "missing.lock")))

    def test_lockfile(self, tmp_path):
        lock = tmp_path / "Cargo.lock"
        lock.write_text(
            '[[package]]\nname = "log"\nversion = "0.4.20"\n'
            'source = "registry+https://github.com/rust-lang/crates.io-index"\n',
            encoding="utf-8",
        )

        selection = selection_from_args(_args(LOCKFILE=str(lock)))

        assert selection == LockfileSelection((LockedPackage("log", "0.4.20"),))

    def test_each_variant_names_its_mode(self):
        assert RankedSelection().mode is SelectionModes.TOP_DOWNLOADS
        assert DependentsSelection().mode is SelectionModes.TOP_DEPS
        assert ExplicitSelection().mode is SelectionModes.EXPLICIT
        assert LockfileSelection().mode is SelectionModes.LOCKFILE
