"""Tests for SettlementService layer."""

from datetime import date
from unittest.mock import patch

import pytest

from trip_ledger.config import Settings
from trip_ledger.db import Database
from trip_ledger.ledger.service import SettlementService
from trip_ledger.models import (
    CustomSplit,
    DiningMetadata,
    ExpenseInput,
    FxRate,
    Trip,
    TripParticipant,
)

ALICE = "11111111-1111-4111-8111-111111111111"
BOB = "22222222-2222-4222-8222-222222222222"
CAROL = "33333333-3333-4333-8333-333333333333"
EXPENSE_DATE = date(2025, 6, 1)


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings without an FX API key."""
    return Settings(database_path=tmp_path / "test.db", fx_api_key=None)


@pytest.fixture
def mock_db(tmp_path):
    """Create a temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def service(mock_settings):
    """Create a SettlementService without a database."""
    return SettlementService(mock_settings)


def make_trip(*expenses: ExpenseInput) -> Trip:
    """Create a EUR trip owned by Alice."""
    return Trip(
        id="trip-1",
        name="Lisbon",
        base_currency="EUR",
        owner_id=ALICE,
        participants=[
            TripParticipant(user_id=ALICE, full_name="Alice Smith"),
            TripParticipant(user_id=BOB, full_name="Bob Jones"),
            TripParticipant(user_id=CAROL, full_name="Carol White"),
        ],
        expenses=list(expenses),
    )


def make_input(id: str, amount: int, **kwargs) -> ExpenseInput:
    """Create an expense input for testing."""
    kwargs.setdefault("currency", "EUR")
    return ExpenseInput(
        id=id,
        description=f"Expense {id}",
        amount=amount,
        date=EXPENSE_DATE,
        **kwargs,
    )


@pytest.fixture
def sample_trip():
    """Trip mixing good, foreign, broken and unattributed expenses."""
    return make_trip(
        make_input("e1", 9000, payer="Alice"),
        make_input(
            "e2",
            3000,
            created_by=BOB,
            split_type="custom",
            custom_splits=[
                CustomSplit(name="Bob", amount=1000),
                CustomSplit(name="Carol", amount=2000),
            ],
        ),
        make_input("e3", 1000, currency="USD", payer="Carol"),
        make_input(
            "e4",
            500,
            split_type="custom",
            custom_splits=[CustomSplit(name="Bob", amount=400)],
        ),
        make_input("e5", 500, payer="Zed", split_type="none"),
    )


class TestBuildExpense:
    """Test building a single expense."""

    def test_payer_and_shares(self, service):
        """Named payer and equal shares across the trip."""
        trip = make_trip(make_input("e1", 100, payer="Bob"))

        expense, error, warning = service.build_expense(trip, trip.expenses[0])

        assert error is None
        assert warning is None
        assert expense.payer_id == BOB
        assert [s.share_amount for s in expense.participants] == [34, 33, 33]

    def test_creator_is_default_payer(self, service):
        """Without a payer, whoever entered the expense paid."""
        trip = make_trip(make_input("e1", 100, created_by=CAROL))

        expense, _, _ = service.build_expense(trip, trip.expenses[0])

        assert expense.payer_id == CAROL

    def test_owner_is_last_resort_payer(self, service):
        """Without payer or creator, the trip owner paid."""
        trip = make_trip(make_input("e1", 100))

        expense, _, _ = service.build_expense(trip, trip.expenses[0])

        assert expense.payer_id == ALICE

    def test_unshared_expense_borne_by_payer(self, service):
        """A 'none' split becomes a single payer share."""
        trip = make_trip(make_input("e1", 700, payer="Carol", split_type="none"))

        expense, error, _ = service.build_expense(trip, trip.expenses[0])

        assert error is None
        assert len(expense.participants) == 1
        assert expense.participants[0].user_id == CAROL
        assert expense.participants[0].share_amount == 700

    def test_share_error(self, service):
        """Share build failures are returned, not raised."""
        trip = make_trip(make_input("e1", 100, participants=["Zed"]))

        expense, error, _ = service.build_expense(trip, trip.expenses[0])

        assert expense is None
        assert error == 'Participant "Zed" is not in this trip'

    def test_metadata_carried(self, service):
        """Typed metadata survives onto the built expense."""
        trip = make_trip(
            make_input("e1", 100, metadata=DiningMetadata(restaurant_name="Tasca"))
        )

        expense, _, _ = service.build_expense(trip, trip.expenses[0])

        assert isinstance(expense.metadata, DiningMetadata)
        assert expense.metadata.restaurant_name == "Tasca"


class TestSummarize:
    """Test whole-trip summaries."""

    def test_balances_and_settlements(self, service, sample_trip):
        """Usable expenses are settled; the rest are reported."""
        summary = service.summarize(sample_trip)

        assert summary.currency == "EUR"
        assert [(b.user_id, b.net_balance) for b in summary.balances] == [
            (ALICE, 6000),
            (BOB, -1000),
            (CAROL, -5000),
        ]
        transfers = [
            (s.from_user_id, s.to_user_id, s.amount) for s in summary.settlements
        ]
        assert transfers == [
            (CAROL, ALICE, 5000),
            (BOB, ALICE, 1000),
        ]
        assert summary.total_expenses == 12500

    def test_excluded_expenses(self, service, sample_trip):
        """Missing rates and broken splits are excluded with a reason."""
        summary = service.summarize(sample_trip)

        excluded = {e.expense_id: e.reason for e in summary.excluded_expenses}
        assert excluded["e3"] == "No USD->EUR exchange rate"
        assert "do not sum" in excluded["e4"]
        assert len(excluded) == 2

    def test_payer_fallback_warning(self, service, sample_trip):
        """An unknown payer is recorded as a warning."""
        summary = service.summarize(sample_trip)

        assert summary.warnings == [
            'Expense e5: Payer "Zed" is not a participant in this trip'
        ]

    def test_balances_conserve(self, service, sample_trip):
        """Balances always sum to zero."""
        summary = service.summarize(sample_trip)

        assert sum(b.net_balance for b in summary.balances) == 0

    def test_empty_trip(self, service):
        """No expenses, nothing owed."""
        summary = service.summarize(make_trip())

        assert summary.balances == []
        assert summary.settlements == []
        assert summary.total_expenses == 0


class TestSummarizeWithRates:
    """Test summaries that look up missing exchange rates."""

    def test_cached_rate_used(self, mock_settings, mock_db):
        """A cached rate brings a foreign expense into the summary."""
        mock_db.save_fx_rates(
            [
                FxRate(
                    base_currency="USD",
                    target_currency="EUR",
                    date=EXPENSE_DATE,
                    rate=0.9,
                )
            ]
        )
        service = SettlementService(mock_settings, mock_db)
        trip = make_trip(make_input("e1", 1000, currency="USD", payer="Carol"))

        summary = service.summarize(trip, fetch_rates=True)

        assert summary.excluded_expenses == []
        assert summary.total_expenses == 900
        assert {b.user_id: b.net_balance for b in summary.balances} == {
            CAROL: 600,
            ALICE: -300,
            BOB: -300,
        }

    def test_rates_not_fetched_unless_asked(self, mock_settings, mock_db):
        """Without fetch_rates the cache is not consulted."""
        service = SettlementService(mock_settings, mock_db)
        trip = make_trip(make_input("e1", 1000, currency="USD"))

        with patch("trip_ledger.ledger.service.FxRateService") as mock_fx:
            summary = service.summarize(trip)

        mock_fx.assert_not_called()
        assert summary.excluded_expenses[0].expense_id == "e1"

    def test_stored_snapshot_preferred(self, mock_settings, mock_db):
        """An expense's own rate snapshot is never replaced."""
        service = SettlementService(mock_settings, mock_db)
        trip = make_trip(make_input("e1", 1000, currency="USD", fx_rate=0.5))

        with patch("trip_ledger.ledger.service.FxRateService") as mock_fx:
            summary = service.summarize(trip, fetch_rates=True)

        mock_fx.assert_not_called()
        assert summary.total_expenses == 500
