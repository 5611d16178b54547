"""Service layer that composes share construction, FX and settlement.

Turns a trip's entered expenses into balances and suggested transfers.
Expenses that cannot be used are left out of the summary with a reason
instead of failing the whole trip.
"""

import logging

from ..config import Settings
from ..db import Database
from ..models import (
    ExcludedExpense,
    Expense,
    ExpenseInput,
    SettlementSummary,
    Trip,
)
from .fx import FxRateService
from .reconciler import (
    calculate_user_balances,
    convert_expense_to_base_currency,
    optimize_settlements,
)
from .shares import build_expense_participants, payer_only_share, resolve_payer

logger = logging.getLogger(__name__)


class SettlementService:
    """Service for computing trip balances and settlement suggestions."""

    def __init__(self, settings: Settings, database: Database | None = None):
        """Initialize the settlement service.

        The database is only needed to look up exchange rates.
        """
        self.settings = settings
        self.db = database

    def build_expense(
        self, trip: Trip, expense_input: ExpenseInput
    ) -> tuple[Expense | None, str | None, str | None]:
        """
        Resolve the payer and build the shares for one entered expense.

        The payer defaults to the expense creator, then the trip owner. An
        expense nobody else shares is borne by the payer alone.

        Returns:
            Tuple of (expense, error, payer_warning). expense is None exactly
            when error is set.
        """
        default_payer_id = expense_input.created_by or trip.owner_id
        payer = resolve_payer(
            expense_input.payer,
            default_payer_id,
            trip.participants,
            threshold=self.settings.name_match_threshold,
        )

        result = build_expense_participants(
            expense_input.id,
            expense_input,
            trip.participants,
            threshold=self.settings.name_match_threshold,
            strict_percentages=self.settings.strict_percentages,
        )
        if not result.ok:
            return None, result.error, payer.error

        shares = result.participants or [
            payer_only_share(expense_input.id, expense_input.amount, payer.payer_id)
        ]

        expense = Expense(
            id=expense_input.id,
            description=expense_input.description,
            amount=expense_input.amount,
            currency=expense_input.currency,
            payer_id=payer.payer_id,
            date=expense_input.date,
            category=expense_input.category,
            split_type=expense_input.split_type,
            fx_rate=expense_input.fx_rate,
            participants=shares,
            metadata=expense_input.metadata,
        )
        return expense, None, payer.error

    def _with_rate_snapshot(self, expense: Expense, base_currency: str) -> Expense:
        """Attach a looked-up rate to a foreign expense that has none."""
        if (
            expense.currency == base_currency
            or expense.fx_rate is not None
            or self.db is None
        ):
            return expense

        rate = FxRateService(self.settings, self.db).get_rate(
            expense.currency, base_currency, expense.date
        )
        if rate is None:
            return expense

        return expense.model_copy(update={"fx_rate": rate})

    def summarize(self, trip: Trip, fetch_rates: bool = False) -> SettlementSummary:
        """
        Compute balances and suggested settlements for a trip.

        Args:
            trip: Trip with participants and entered expenses
            fetch_rates: Look up missing exchange rates (cache, then API)

        Returns:
            Summary in the trip base currency

        Raises:
            ConservationError: If computed balances are not zero-sum
        """
        base_currency = trip.base_currency
        expenses: list[Expense] = []
        excluded: list[ExcludedExpense] = []
        warnings: list[str] = []
        total = 0

        for expense_input in trip.expenses:
            expense, error, payer_warning = self.build_expense(trip, expense_input)

            if payer_warning:
                warnings.append(f"{expense_input.description}: {payer_warning}")

            if expense is None:
                excluded.append(
                    ExcludedExpense(
                        expense_id=expense_input.id,
                        description=expense_input.description,
                        reason=error or "Shares could not be built",
                    )
                )
                continue

            if fetch_rates:
                expense = self._with_rate_snapshot(expense, base_currency)

            conversion = convert_expense_to_base_currency(expense, base_currency)
            if conversion.needs_fx_rate:
                excluded.append(
                    ExcludedExpense(
                        expense_id=expense.id,
                        description=expense.description,
                        reason=(
                            f"No {expense.currency}->{base_currency} exchange rate"
                        ),
                    )
                )
                continue

            total += conversion.amount
            expenses.append(expense)

        if excluded:
            logger.warning(
                f"Excluded {len(excluded)} of {len(trip.expenses)} expenses "
                f"from trip {trip.id}"
            )

        balances = calculate_user_balances(expenses, base_currency, trip.participants)
        settlements = optimize_settlements(balances)

        logger.info(
            f"Trip {trip.id}: {len(expenses)} expenses, "
            f"{len(settlements)} settlements suggested"
        )

        return SettlementSummary(
            currency=base_currency,
            balances=balances,
            settlements=settlements,
            total_expenses=total,
            excluded_expenses=excluded,
            warnings=warnings,
        )
