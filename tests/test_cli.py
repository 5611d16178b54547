"""Smoke tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from trip_ledger.cli import app

runner = CliRunner()

ALICE = "11111111-1111-4111-8111-111111111111"
BOB = "22222222-2222-4222-8222-222222222222"
CAROL = "33333333-3333-4333-8333-333333333333"


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep the database and API key out of the user's environment."""
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "test.db"))
    monkeypatch.delenv("FX_API_KEY", raising=False)


@pytest.fixture
def trip_file(tmp_path):
    """Write a small trip to disk."""
    trip = {
        "id": "trip-1",
        "name": "Lisbon",
        "base_currency": "EUR",
        "owner_id": ALICE,
        "participants": [
            {"user_id": ALICE, "full_name": "Alice Smith"},
            {"user_id": BOB, "full_name": "Bob Jones"},
            {"user_id": CAROL, "full_name": "Carol White"},
        ],
        "expenses": [
            {
                "id": "e1",
                "description": "Dinner",
                "amount": 9000,
                "currency": "EUR",
                "date": "2025-06-01",
                "payer": "Alice",
                "metadata": {"kind": "dining", "restaurant_name": "Tasca"},
            },
            {
                "id": "e2",
                "description": "Tickets",
                "amount": 500,
                "currency": "EUR",
                "date": "2025-06-02",
                "split_type": "custom",
                "custom_splits": [{"name": "Bob", "amount": 400}],
            },
        ],
    }
    path = tmp_path / "trip.json"
    path.write_text(json.dumps(trip), encoding="utf-8")
    return path


class TestParseCommand:
    """Test the parse command."""

    def test_parse(self):
        """A parsable expense prints its draft."""
        result = runner.invoke(app, ["parse", "Dinner €60 split 4 ways"])

        assert result.exit_code == 0
        assert "Parsed Expense" in result.output
        assert "Dinner" in result.output

    def test_no_amount(self):
        """Text without an amount exits non-zero."""
        result = runner.invoke(app, ["parse", "dinner with friends"])

        assert result.exit_code == 1
        assert "No amount found" in result.output

    def test_bad_decimal_format(self):
        """Unknown number formats are rejected."""
        result = runner.invoke(app, ["parse", "Lunch 12", "--decimal-format", "XX"])

        assert result.exit_code == 1
        assert "Unknown decimal format" in result.output

    def test_resolve_against_trip(self, trip_file):
        """Names are matched to trip participants."""
        result = runner.invoke(
            app,
            ["parse", "alice paid $30 for lunch with bob", "--trip", str(trip_file)],
        )

        assert result.exit_code == 0
        assert "Alice Smith" in result.output
        assert "Bob Jones" in result.output


class TestSettleCommand:
    """Test the settle command."""

    def test_settle(self, trip_file):
        """Balances and settlements are printed."""
        result = runner.invoke(app, ["settle", str(trip_file)])

        assert result.exit_code == 0
        assert "Suggested Settlements" in result.output
        assert "Settlements close every balance" in result.output
        assert "Excluded 'Tickets'" in result.output

    def test_invalid_trip_file(self, tmp_path):
        """Malformed trip files are reported as errors."""
        path = tmp_path / "broken.json"
        path.write_text("{}", encoding="utf-8")

        result = runner.invoke(app, ["settle", str(path)])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestSharesCommand:
    """Test the shares command."""

    def test_shares(self, trip_file):
        """Per-expense shares and errors are printed."""
        result = runner.invoke(app, ["shares", str(trip_file)])

        assert result.exit_code == 0
        assert "Carol White" in result.output
        assert "Tasca" in result.output
        assert "do not sum" in result.output
