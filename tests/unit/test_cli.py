"""Unit tests for the generate_changelog command line helpers."""

import argparse
from datetime import date

import pytest

from generate_changelog import build_parser, parse_date, read_shas_file

from factories import make_sha


class TestReadShasFile:
    def test_skips_blanks_and_comments(self, tmp_path):
        path = tmp_path / "shas.txt"
        path.write_text(
            f"# release 2.1.0\n{make_sha(1)}\n\n{make_sha(2)}  # hotfix\n", encoding="utf-8"
        )
        assert read_shas_file(path) == [make_sha(1), make_sha(2)]


class TestParseDate:
    def test_iso_date(self):
        assert parse_date("2024-05-31") == date(2024, 5, 31)

    def test_invalid_date(self):
        with pytest.raises(argparse.ArgumentTypeError, match="expected YYYY-MM-DD"):
            parse_date("31/05/2024")


class TestBuildParser:
    def test_defaults(self):
        args = build_parser().parse_args(["acme/widgets", make_sha(1)])
        assert args.repository == "acme/widgets"
        assert args.shas == [make_sha(1)]
        assert args.version is None
        assert args.output is None
        assert args.log_level == "INFO"

    def test_date_range(self):
        args = build_parser().parse_args(
            ["acme/widgets", "--since", "2024-05-01", "--until", "2024-05-31"]
        )
        assert args.shas == []
        assert args.since == date(2024, 5, 1)
        assert args.until == date(2024, 5, 31)
