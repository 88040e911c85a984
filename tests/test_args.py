"""Tests for command-line parsing."""

import pytest

from args import parse_args
from constants import Constants


class TestParseArgs:
    """Flag parsing and defaults."""

    def test_no_arguments(self):
        args = parse_args([])
        assert args.CRATES == []
        assert args.TOP_DOWNLOADS is None
        assert args.TOP_DEPS is None
        assert not args.LIST

    def test_top_downloads_without_value(self):
        assert parse_args(["--top-downloads"]).TOP_DOWNLOADS == Constants.DEFAULT_TOP_N

    def test_top_downloads_with_value(self):
        assert parse_args(["--top-downloads", "25"]).TOP_DOWNLOADS == 25

    def test_top_deps(self):
        assert parse_args(["--top-deps=10"]).TOP_DEPS == 10

    def test_crates_and_tuning(self):
        args = parse_args(["serde", "rand@0.8.5", "-j", "4", "--retries", "5", "--list"])
        assert args.CRATES == ["serde", "rand@0.8.5"]
        assert args.JOBS == 4
        assert args.RETRIES == 5
        assert args.LIST

    def test_format_is_case_insensitive(self):
        assert parse_args(["-o", "out.txt", "-f", "CSV"]).OUTPUT_FORMAT == "csv"

    def test_non_integer_count_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["--top-downloads", "many"])
