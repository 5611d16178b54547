"""Deterministic natural-language expense parser.

Composes the tokenizer into a draft expense, e.g.

    parse_expense("Dinner €60 split 4 ways")
    -> amount=6000, currency="EUR", description="Dinner",
       split_type="equal", split_count=4
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from ..models import ParsedExpense, RawSplitType
from .tokenizer import (
    detect_split_type,
    extract_amount,
    extract_currency,
    extract_description,
    extract_names,
    extract_payer,
    extract_split_count,
    infer_category,
)

logger = logging.getLogger(__name__)

# Currencies without a minor unit
ZERO_DECIMAL_CURRENCIES = frozenset(["JPY", "KRW"])


def to_minor_units(amount: float, currency: str) -> int:
    """
    Convert a major-unit amount to integer minor units.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Amount as written, e.g. 60.5
        currency: ISO 4217 code; zero-decimal currencies are not scaled

    Returns:
        Amount in minor units (integer)
    """
    value = Decimal(str(amount))
    if currency not in ZERO_DECIMAL_CURRENCIES:
        value *= 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_expense(
    text: str,
    default_currency: str = "USD",
    decimal_format: Literal["US", "EU"] = "US",
) -> ParsedExpense | None:
    """
    Parse a free-text expense entry into a draft.

    Args:
        text: User input, e.g. "Alice paid $120 for hotel, split between Alice, Bob"
        default_currency: Used when no currency symbol or code is present
        decimal_format: "US" (1,000.50) or "EU" (1.000,50)

    Returns:
        Parsed draft, or None if the text is blank or has no amount
    """
    trimmed = text.strip()
    if not trimmed:
        return None

    currency_match = extract_currency(trimmed)
    currency = currency_match.currency if currency_match else default_currency

    amount_match = extract_amount(trimmed, decimal_format)
    if amount_match is None:
        logger.debug(f"No amount found in '{trimmed}'")
        return None

    payer = extract_payer(trimmed)
    split_type = detect_split_type(trimmed)
    split_count = extract_split_count(trimmed)
    participants = extract_names(trimmed)

    # Listed participants imply the split count
    final_split_count = split_count or (len(participants) if participants else None)

    description = extract_description(trimmed)
    category_guess = infer_category(description)
    category = category_guess.category if category_guess else None

    confidence = calculate_confidence(
        has_currency=currency_match is not None,
        has_description=bool(description) and description != "Expense",
        has_payer=payer is not None,
        split_type=split_type,
        has_split_count=final_split_count is not None,
        has_participants=bool(participants),
        has_category=category is not None,
    )

    return ParsedExpense(
        amount=to_minor_units(amount_match.amount, currency),
        currency=currency,
        description=description,
        category=category,
        payer=payer,
        split_type=split_type,
        split_count=final_split_count,
        participants=participants or None,
        confidence=confidence,
        original_text=text,
    )


def calculate_confidence(
    has_currency: bool,
    has_description: bool,
    has_payer: bool,
    split_type: RawSplitType,
    has_split_count: bool,
    has_participants: bool,
    has_category: bool,
) -> float:
    """
    Score how complete a parsed expense is.

    An amount is always present by the time this is called and is worth
    0.4. Split count and equal-split bonuses only apply when split language
    was found. The result is capped at 1.0.
    """
    score = 0.4

    if has_currency:
        score += 0.1
    if has_description:
        score += 0.1
    if has_payer:
        score += 0.1

    if split_type != "none":
        score += 0.1
        if has_split_count or has_participants:
            score += 0.1
        if split_type == "equal":
            score += 0.05

    if has_category:
        score += 0.05

    return min(round(score, 4), 1.0)
