"""Tests for ReceiptDateParser component."""

import pytest

from taxsync.config import ReceiptRules
from taxsync.parsers.base import ReceiptContext
from taxsync.parsers.date_parser import ReceiptDateParser


class TestReceiptDateParser:
    """Test suite for ReceiptDateParser."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = ReceiptDateParser()

    def parse(self, text):
        result = self.parser.parse(ReceiptContext(full_text=text))
        return result.value if result else None

    @pytest.mark.parametrize("text,expected", [
        ("Date: 2026-02-13", "2026-02-13"),
        ("2026/01/15", "2026-01-15"),
        ("2026-1-5", "2026-01-05"),
        ("Date: Jan 15, 2026", "2026-01-15"),
        ("February 3, 2026", "2026-02-03"),
        ("15 March 2026", "2026-03-15"),
        ("13/02/2026", "2026-02-13"),
    ])
    def test_formats(self, text, expected):
        """Test each receipt date layout."""
        assert self.parse(text) == expected

    def test_day_first_preferred(self):
        """Test an ambiguous numeric date is read day-first."""
        assert self.parse("05/04/2026") == "2026-04-05"

    def test_month_first_when_day_first_impossible(self):
        """Test MM/DD is tried when DD/MM is not a real date."""
        assert self.parse("04/25/2026") == "2026-04-25"

    def test_year_window(self):
        """Test dates outside the accepted years are ignored."""
        assert self.parse("Date: 2019-06-01") is None
        assert self.parse("Date: 2031-06-01") is None

    def test_out_of_window_falls_through(self):
        """Test a rejected match lets later layouts try."""
        assert self.parse("Store #1999-12-31\nJan 15, 2026") == "2026-01-15"

    def test_custom_year_window(self):
        """Test the year window comes from the receipt rules."""
        parser = ReceiptDateParser(receipt_rules=ReceiptRules(min_year=2010, max_year=2040))
        result = parser.parse(ReceiptContext(full_text="2015-06-01"))
        assert result.value == "2015-06-01"

    @pytest.mark.parametrize("text", ["", "Thank you", "2026-13-45"])
    def test_no_date(self, text):
        """Test texts without a valid date."""
        assert self.parse(text) is None

    def test_confidence(self):
        """Test unambiguous layouts score higher than numeric guesses."""
        iso = self.parser.parse(ReceiptContext(full_text="2026-02-13"))
        guess = self.parser.parse(ReceiptContext(full_text="13/02/2026"))
        assert iso.confidence > guess.confidence
