"""Tests for the deterministic expense parser."""

import pytest

from trip_ledger.parser.expense import (
    calculate_confidence,
    parse_expense,
    to_minor_units,
)


class TestToMinorUnits:
    """Test conversion to integer minor units."""

    def test_two_decimal_currency(self):
        """Cents are scaled by 100 without float drift."""
        assert to_minor_units(60.5, "USD") == 6050
        assert to_minor_units(19.99, "EUR") == 1999

    def test_zero_decimal_currency(self):
        """JPY and KRW are not scaled."""
        assert to_minor_units(1200, "JPY") == 1200
        assert to_minor_units(5000, "KRW") == 5000


class TestParseExpense:
    """Test full expense parsing."""

    def test_equal_split(self):
        """Currency, amount, description, split and category together."""
        parsed = parse_expense("Dinner €60 split 4 ways")

        assert parsed is not None
        assert parsed.amount == 6000
        assert parsed.currency == "EUR"
        assert parsed.description == "Dinner"
        assert parsed.split_type == "equal"
        assert parsed.split_count == 4
        assert parsed.category == "food"
        assert parsed.payer is None
        assert parsed.participants is None
        assert parsed.confidence == pytest.approx(0.9)
        assert parsed.original_text == "Dinner €60 split 4 ways"

    def test_default_currency(self):
        """No currency in the text falls back to the default."""
        parsed = parse_expense("Lunch 12.50", default_currency="GBP")

        assert parsed is not None
        assert parsed.currency == "GBP"
        assert parsed.amount == 1250

    def test_zero_decimal_currency(self):
        """Yen amounts are stored as written."""
        parsed = parse_expense("Ramen ¥1200")

        assert parsed is not None
        assert parsed.currency == "JPY"
        assert parsed.amount == 1200

    def test_eu_format(self):
        """EU number format."""
        parsed = parse_expense("Hotel 1.234,56 €", decimal_format="EU")

        assert parsed is not None
        assert parsed.currency == "EUR"
        assert parsed.amount == 123456

    def test_participants_imply_split_count(self):
        """Listed names give the split count when none is stated."""
        parsed = parse_expense("Dinner $90 with alice, bob and carol.")

        assert parsed is not None
        assert parsed.participants == ["Alice", "Bob", "Carol"]
        assert parsed.split_count == 3

    @pytest.mark.parametrize("text", ["", "   ", "dinner with friends"])
    def test_no_amount_returns_none(self, text):
        """Blank text or text without an amount is not an expense."""
        assert parse_expense(text) is None

    def test_overflowing_amount_returns_none(self):
        """An amount too large to represent is not an expense."""
        assert parse_expense("Taxi " + "9" * 400) is None


class TestCalculateConfidence:
    """Test confidence scoring."""

    def test_amount_only(self):
        """An amount alone is worth 0.4."""
        score = calculate_confidence(
            has_currency=False,
            has_description=False,
            has_payer=False,
            split_type="none",
            has_split_count=False,
            has_participants=False,
            has_category=False,
        )
        assert score == pytest.approx(0.4)

    def test_split_bonuses_need_split_language(self):
        """A split count without split language earns nothing."""
        score = calculate_confidence(
            has_currency=False,
            has_description=False,
            has_payer=False,
            split_type="none",
            has_split_count=True,
            has_participants=True,
            has_category=False,
        )
        assert score == pytest.approx(0.4)

    def test_everything_capped(self):
        """All signals together are capped at 1.0."""
        score = calculate_confidence(
            has_currency=True,
            has_description=True,
            has_payer=True,
            split_type="equal",
            has_split_count=True,
            has_participants=True,
            has_category=True,
        )
        assert score == 1.0
