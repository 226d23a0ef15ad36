"""Tests for ConsolePrinter.

Tests the Rich-based console output of the command-line client.
"""

import json
from io import StringIO

import pytest
from rich.console import Console

from s3lite.console import ConsolePrinter, _format_size, listing_to_dict
from s3lite.models import ListingEntry, OperationResult


@pytest.fixture
def output() -> StringIO:
    return StringIO()


@pytest.fixture
def printer(output) -> ConsolePrinter:
    console = Console(file=output, width=200, color_system=None, force_terminal=False)
    return ConsolePrinter(console=console)


ENTRIES = [
    ListingEntry("a.txt", "2013-05-24T00:00:00.000Z", '"etag-a"', 12, "STANDARD"),
    ListingEntry("photos/b.jpg", None, None, 3 * 1024 * 1024, None),
]


class TestFormatSize:
    """Tests for size formatting."""

    @pytest.mark.parametrize("size,expected", [
        (None, "-"),
        (0, "0 B"),
        (1023, "1023 B"),
        (1024, "1.0 KiB"),
        (3 * 1024 * 1024, "3.0 MiB"),
        (5 * 1024 ** 4, "5120.0 GiB"),
    ])
    def test_format_size(self, size, expected):
        assert _format_size(size) == expected


class TestStatus:
    """Tests for status lines."""

    def test_success(self, printer, output):
        printer.status("PUT", "a.txt", OperationResult(200))
        assert "[OK] PUT a.txt (HTTP 200)" in output.getvalue()

    def test_failure_includes_body(self, printer, output):
        printer.status("GET", "a.txt", OperationResult(404, result=b"<Error>NoSuchKey</Error>"))

        text = output.getvalue()
        assert "[FAIL] GET a.txt (HTTP 404)" in text
        assert "<Error>NoSuchKey</Error>" in text

    def test_quiet_hides_success(self, output):
        printer = ConsolePrinter(console=Console(file=output), quiet=True)
        printer.status("PUT", "a.txt", OperationResult(200))
        assert output.getvalue() == ""

    def test_quiet_still_prints_failures(self, output):
        printer = ConsolePrinter(console=Console(file=output), quiet=True)
        printer.status("PUT", "a.txt", OperationResult(500))
        assert "FAIL" in output.getvalue()


class TestListing:
    """Tests for listing output."""

    def test_table_rows(self, printer, output):
        printer.listing("test-bucket", ENTRIES)

        text = output.getvalue()
        assert "s3://test-bucket" in text
        assert "a.txt" in text
        assert "photos/b.jpg" in text
        assert "3.0 MiB" in text
        assert "STANDARD" in text

    def test_empty_listing(self, printer, output):
        printer.listing("test-bucket", [])
        assert "No objects in test-bucket." in output.getvalue()

    def test_json(self, printer, output):
        printer.listing_json(ENTRIES)

        records = json.loads(output.getvalue())
        assert records == listing_to_dict(ENTRIES)
        assert records[0]["key"] == "a.txt"
        assert records[0]["size"] == 12


class TestUrl:
    """Tests for URL output."""

    def test_url_printed_verbatim(self, output):
        printer = ConsolePrinter(console=Console(file=output, width=40))
        url = "https://b.s3.amazonaws.com/k?X-Amz-Algorithm=AWS4-HMAC-SHA256&X-Amz-Signature=" + "a" * 64

        printer.url(url)

        assert output.getvalue() == url + "\n"
