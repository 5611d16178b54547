"""Core settlement logic: base-currency conversion, balances, transfers."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from ..exceptions import ConservationError
from ..models import (
    ConversionResult,
    Expense,
    ExpenseParticipantShare,
    Settlement,
    TripParticipant,
    UserBalance,
)

logger = logging.getLogger(__name__)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def convert_amount(amount: int, rate: float) -> int:
    """Convert minor units with a rate, rounding half-up."""
    return round_half_up(Decimal(amount) * Decimal(str(rate)))


def convert_expense_to_base_currency(
    expense: Expense, base_currency: str
) -> ConversionResult:
    """
    Express an expense total in the trip base currency.

    Uses the rate snapshot stored on the expense. An expense in another
    currency without a snapshot is flagged with needs_fx_rate and amount 0.
    """
    if expense.currency == base_currency:
        return ConversionResult(amount=expense.amount, currency=base_currency)

    if expense.fx_rate is None:
        return ConversionResult(amount=0, currency=base_currency, needs_fx_rate=True)

    return ConversionResult(
        amount=convert_amount(expense.amount, expense.fx_rate),
        currency=base_currency,
    )


def convert_shares_with_adjustment(
    shares: list[ExpenseParticipantShare],
    rate: float,
    expected_total: int,
) -> list[int]:
    """
    Convert share amounts with a rate so they still sum to expected_total.

    Steps:
    1. Convert each share independently (half-up)
    2. Compute residual = expected_total - sum
    3. Add the residual to the share with the largest absolute value

    Returns:
        Converted amounts, in the same order as shares
    """
    converted = [convert_amount(share.share_amount, rate) for share in shares]
    if not converted:
        return converted

    residual = expected_total - sum(converted)
    if residual != 0:
        largest_index = max(range(len(converted)), key=lambda i: abs(converted[i]))
        converted[largest_index] += residual

        logger.info(
            f"Applied FX rounding adjustment: {residual} minor units "
            f"to share of {shares[largest_index].user_id}"
        )

    return converted


def calculate_user_balances(
    expenses: list[Expense],
    base_currency: str,
    participants: list[TripParticipant] | None = None,
) -> list[UserBalance]:
    """
    Calculate each user's net balance across expenses.

    Net balance = total paid - total of own shares. Positive means the user
    is owed money. Expenses lacking a needed FX rate are skipped. Users are
    listed in the order they are first seen (payer before shares, expense
    order preserved).

    Args:
        expenses: Expenses with their share rows
        base_currency: Trip base currency
        participants: Optional source of display names

    Returns:
        One balance per user seen

    Raises:
        ConservationError: If balances do not sum to zero, which means some
            expense's shares do not add up to its amount
    """
    names = {p.user_id: p.full_name for p in participants or []}
    balances: dict[str, int] = {}

    for expense in expenses:
        conversion = convert_expense_to_base_currency(expense, base_currency)
        if conversion.needs_fx_rate:
            logger.warning(
                f"Skipping expense {expense.id}: no {expense.currency}->"
                f"{base_currency} rate"
            )
            continue

        balances[expense.payer_id] = (
            balances.get(expense.payer_id, 0) + conversion.amount
        )

        if expense.currency == base_currency or expense.fx_rate is None:
            share_amounts = [share.share_amount for share in expense.participants]
        else:
            share_amounts = convert_shares_with_adjustment(
                expense.participants, expense.fx_rate, conversion.amount
            )

        for share, amount in zip(expense.participants, share_amounts, strict=True):
            balances[share.user_id] = balances.get(share.user_id, 0) - amount

    total = sum(balances.values())
    if total != 0:
        raise ConservationError(total)

    return [
        UserBalance(
            user_id=user_id,
            user_name=names.get(user_id, user_id),
            net_balance=net_balance,
            currency=base_currency,
        )
        for user_id, net_balance in balances.items()
    ]


def optimize_settlements(balances: list[UserBalance]) -> list[Settlement]:
    """
    Suggest transfers that bring every balance to zero.

    Greedy: debtors and creditors are each sorted once, largest first, and
    walked in step. The current debtor pays the current creditor the smaller
    of the two amounts, and whichever side reaches zero moves on. Ties keep the input order,
    so identical input always gives identical output. At most n - 1
    transfers for n non-zero balances.

    Args:
        balances: Zero-sum balances in minor units

    Returns:
        Ordered settlement suggestions
    """
    debtors = [[b, -b.net_balance] for b in balances if b.net_balance < 0]
    creditors = [[b, b.net_balance] for b in balances if b.net_balance > 0]

    # sort() is stable: equal amounts keep first-seen order
    debtors.sort(key=lambda entry: entry[1], reverse=True)
    creditors.sort(key=lambda entry: entry[1], reverse=True)

    settlements: list[Settlement] = []
    debtor_index = 0
    creditor_index = 0

    while debtor_index < len(debtors) and creditor_index < len(creditors):
        debtor, owed = debtors[debtor_index]
        creditor, due = creditors[creditor_index]

        amount = min(owed, due)
        settlements.append(
            Settlement(
                from_user_id=debtor.user_id,
                from_user_name=debtor.user_name,
                to_user_id=creditor.user_id,
                to_user_name=creditor.user_name,
                amount=amount,
                currency=debtor.currency,
            )
        )

        debtors[debtor_index][1] -= amount
        creditors[creditor_index][1] -= amount

        if debtors[debtor_index][1] == 0:
            debtor_index += 1
        if creditors[creditor_index][1] == 0:
            creditor_index += 1

    return settlements


def apply_settlements(
    balances: list[UserBalance], settlements: list[Settlement]
) -> dict[str, int]:
    """
    Apply transfers to balances and return what is left per user.

    A payer's balance rises by the amount paid; the receiver's falls.
    """
    remaining = {balance.user_id: balance.net_balance for balance in balances}

    for settlement in settlements:
        remaining[settlement.from_user_id] = (
            remaining.get(settlement.from_user_id, 0) + settlement.amount
        )
        remaining[settlement.to_user_id] = (
            remaining.get(settlement.to_user_id, 0) - settlement.amount
        )

    return remaining
