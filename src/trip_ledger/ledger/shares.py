"""Participant resolution and per-expense share construction.

Shares are always rebuilt from scratch for an expense. Every mode
reconstructs the expense total exactly:

- equal: floor division, the first participant absorbs the remainder
- percentage: floored shares, the last participant absorbs the remainder
- custom: amounts must already sum to the total, otherwise the build fails

Callers must pass participant and split lists in a stable order; the
position of a participant decides who absorbs rounding remainders.
"""

import logging
import re
from decimal import ROUND_FLOOR, Decimal

from ..models import (
    ExpenseInput,
    ExpenseParticipantShare,
    PayerResolution,
    ShareBuildResult,
    TripParticipant,
)
from .matcher import DEFAULT_AUTO_RESOLVE_THRESHOLD, match_single_participant_name

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I
)


def resolve_participant_id(
    identifier: str,
    participants: list[TripParticipant],
    threshold: float = DEFAULT_AUTO_RESOLVE_THRESHOLD,
) -> str | None:
    """
    Resolve a participant name or user_id to a trip participant's user_id.

    A UUID-shaped identifier is only accepted when it belongs to one of the
    participants. Anything else is fuzzy matched by name and accepted only
    at or above threshold.

    Returns:
        user_id, or None if the identifier is not a participant
    """
    if UUID_PATTERN.match(identifier):
        for participant in participants:
            if participant.user_id == identifier:
                return identifier
        return None

    match = match_single_participant_name(
        identifier, participants, min_confidence=threshold
    )
    if match is None:
        logger.debug(f"No confident participant match for '{identifier}'")
        return None

    return match.user_id


def resolve_payer(
    payer: str | None,
    default_payer_id: str,
    participants: list[TripParticipant],
    threshold: float = DEFAULT_AUTO_RESOLVE_THRESHOLD,
) -> PayerResolution:
    """
    Resolve who paid for an expense.

    No payer means the default payer. An unknown payer also falls back to
    the default payer, with an error the caller may surface or ignore.
    """
    if not payer:
        return PayerResolution(payer_id=default_payer_id)

    resolved = resolve_participant_id(payer, participants, threshold)
    if resolved is None:
        logger.warning(f"Payer '{payer}' not found, using {default_payer_id}")
        return PayerResolution(
            payer_id=default_payer_id,
            error=f'Payer "{payer}" is not a participant in this trip',
        )

    return PayerResolution(payer_id=resolved)


def _not_in_trip(identifier: str) -> ShareBuildResult:
    return ShareBuildResult(error=f'Participant "{identifier}" is not in this trip')


def _build_equal_shares(
    expense_id: str,
    expense: ExpenseInput,
    participants: list[TripParticipant],
    threshold: float,
) -> ShareBuildResult:
    user_ids: list[str] = []

    if expense.participants:
        for identifier in expense.participants:
            resolved = resolve_participant_id(identifier, participants, threshold)
            if resolved is None:
                return _not_in_trip(identifier)
            user_ids.append(resolved)
    elif expense.split_count:
        user_ids = [p.user_id for p in participants[: expense.split_count]]
    else:
        user_ids = [p.user_id for p in participants]

    if not user_ids:
        return ShareBuildResult(error="No participants available for equal split")

    share_amount, remainder = divmod(expense.amount, len(user_ids))
    if remainder:
        logger.debug(
            f"Expense {expense_id}: remainder {remainder} assigned to {user_ids[0]}"
        )

    return ShareBuildResult(
        participants=[
            ExpenseParticipantShare(
                expense_id=expense_id,
                user_id=user_id,
                share_amount=share_amount + (remainder if index == 0 else 0),
                share_type="equal",
                share_value=None,
            )
            for index, user_id in enumerate(user_ids)
        ]
    )


def _build_percentage_shares(
    expense_id: str,
    expense: ExpenseInput,
    participants: list[TripParticipant],
    threshold: float,
    strict_percentages: bool,
) -> ShareBuildResult:
    splits = expense.percentage_splits or []

    if strict_percentages and splits:
        total_percentage = sum(Decimal(str(split.percentage)) for split in splits)
        if total_percentage != 100:
            return ShareBuildResult(
                error=f"Percentages sum to {total_percentage}%, expected 100%"
            )

    shares: list[ExpenseParticipantShare] = []
    assigned = 0

    for index, split in enumerate(splits):
        user_id = resolve_participant_id(split.name, participants, threshold)
        if user_id is None:
            return _not_in_trip(split.name)

        if index == len(splits) - 1:
            share_amount = expense.amount - assigned
        else:
            exact = Decimal(expense.amount) * Decimal(str(split.percentage)) / 100
            share_amount = int(exact.to_integral_value(rounding=ROUND_FLOOR))
            assigned += share_amount

        shares.append(
            ExpenseParticipantShare(
                expense_id=expense_id,
                user_id=user_id,
                share_amount=share_amount,
                share_type="percentage",
                share_value=split.percentage,
            )
        )

    return ShareBuildResult(participants=shares)


def _build_custom_shares(
    expense_id: str,
    expense: ExpenseInput,
    participants: list[TripParticipant],
    threshold: float,
) -> ShareBuildResult:
    if expense.custom_splits is None:
        return ShareBuildResult()
    splits = expense.custom_splits

    total_custom = sum(split.amount for split in splits)
    if total_custom != expense.amount:
        return ShareBuildResult(
            error=(
                f"Custom splits ({total_custom}) do not sum to "
                f"expense total ({expense.amount})"
            )
        )

    shares: list[ExpenseParticipantShare] = []
    for split in splits:
        user_id = resolve_participant_id(split.name, participants, threshold)
        if user_id is None:
            return _not_in_trip(split.name)

        shares.append(
            ExpenseParticipantShare(
                expense_id=expense_id,
                user_id=user_id,
                share_amount=split.amount,
                share_type="amount",
                share_value=split.amount,
            )
        )

    return ShareBuildResult(participants=shares)


def build_expense_participants(
    expense_id: str,
    expense: ExpenseInput,
    participants: list[TripParticipant],
    threshold: float = DEFAULT_AUTO_RESOLVE_THRESHOLD,
    strict_percentages: bool = False,
) -> ShareBuildResult:
    """
    Build the share rows for one expense.

    Args:
        expense_id: Id stamped on every share row
        expense: Split configuration and total
        participants: Trip participants, in the caller's stable order
        threshold: Minimum name-match confidence for resolving a participant
        strict_percentages: Reject percentage splits not totalling 100

    Returns:
        Share rows, or an error naming the first offending participant or
        the custom-split mismatch. Never both.
    """
    if expense.split_type == "equal":
        result = _build_equal_shares(expense_id, expense, participants, threshold)
    elif expense.split_type == "percentage":
        result = _build_percentage_shares(
            expense_id, expense, participants, threshold, strict_percentages
        )
    elif expense.split_type == "custom":
        result = _build_custom_shares(expense_id, expense, participants, threshold)
    else:
        # "none": no shares; see payer_only_share
        result = ShareBuildResult()

    if not result.ok:
        logger.info(f"Expense {expense_id}: {result.error}")

    return result


def payer_only_share(
    expense_id: str, amount: int, payer_id: str
) -> ExpenseParticipantShare:
    """The single share row for an expense nobody else takes part in."""
    return ExpenseParticipantShare(
        expense_id=expense_id,
        user_id=payer_id,
        share_amount=amount,
        share_type="amount",
        share_value=amount,
    )
