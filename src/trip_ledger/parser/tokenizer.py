"""Heuristic token extraction for free-text expense entries.

Every function here is total: a miss is reported as None (or an empty
list), never as an exception. Results are hints for a confirmation step,
not validated data.
"""

import math
import re
from typing import Literal

from ..models import AmountMatch, CategoryGuess, CurrencyMatch, RawSplitType

# Symbol/code -> ISO 4217, searched in this order
CURRENCY_SYMBOLS: dict[str, str] = {
    "€": "EUR",
    "$": "USD",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "₣": "CHF",
    "CHF": "CHF",
    "USD": "USD",
    "EUR": "EUR",
    "GBP": "GBP",
    "JPY": "JPY",
    "INR": "INR",
}

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "food": [
        "dinner",
        "lunch",
        "breakfast",
        "meal",
        "restaurant",
        "cafe",
        "coffee",
        "drinks",
        "groceries",
        "food",
    ],
    "transport": [
        "taxi",
        "uber",
        "lyft",
        "bus",
        "train",
        "flight",
        "gas",
        "petrol",
        "parking",
    ],
    "accommodation": ["hotel", "hostel", "airbnb", "rent", "accommodation", "room"],
    "activity": [
        "tickets",
        "museum",
        "tour",
        "attraction",
        "cinema",
        "movie",
        "concert",
        "show",
    ],
    "other": [],
}

# Capitalized words that are never participant names
NON_NAME_WORDS = frozenset(
    [
        "I",
        "Me",
        "My",
        "The",
        "A",
        "An",
        "This",
        "That",
        "Split",
        "Paid",
        "Owes",
    ]
    + [
        keyword.capitalize()
        for keywords in CATEGORY_KEYWORDS.values()
        for keyword in keywords
    ]
)

LIST_NOISE_WORDS = frozenset(["the", "a", "an", "with", "paid", "split", "owes"])

_AMOUNT_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    "US": [
        re.compile(r"(\d{1,3}(?:,\d{3})+\.\d{2})"),  # 1,000.50
        re.compile(r"(\d{1,3}(?:,\d{3})+)"),  # 1,000
        re.compile(r"(\d+\.\d{2})"),  # 60.50
        re.compile(r"(\d+)"),  # 2500
    ],
    "EU": [
        re.compile(r"(\d{1,3}(?:\.\d{3})+,\d{2})"),  # 1.000,50
        re.compile(r"(\d{1,3}(?:\.\d{3})+)"),  # 1.000
        re.compile(r"(\d+,\d{2})"),  # 60,50
        re.compile(r"(\d+)"),
    ],
}

_SPLIT_COUNT_PATTERNS = [
    re.compile(r"(\d+)\s*(?:ways?|people|persons?)", re.I),
    re.compile(r"(?:split|divide|share|shared)\s+(?:equally|evenly)?\s*(\d+)", re.I),
    re.compile(r"(\d+)\s*(?:way|person|people)\s+(?:split|shared?)", re.I),
    re.compile(r"(?:between|among)\s+(\d+)", re.I),
]

# Ordered: the first rule that fires decides the split type
_SPLIT_TYPE_RULES: list[tuple[re.Pattern[str], RawSplitType]] = [
    (re.compile(r"(?:split|divide|shared?)\s+(?:equally|evenly)", re.I), "equal"),
    (re.compile(r"(?:split|divide|share)\s+\d+\s*ways?", re.I), "equal"),
    (re.compile(r"\d+\s*(?:people|persons?)\s*(?:split|shared?)", re.I), "equal"),
    (re.compile(r"(?:we|let's)\s+split", re.I), "equal"),
    (re.compile(r"\d+%"), "percentage"),
    (
        re.compile(r"(?:their\s+share|each\s+person\s+pays|everyone\s+pays)", re.I),
        "shares",
    ),
    (re.compile(r"(?:owes?|owe)\s+(?:half|quarter)", re.I), "custom"),
    (
        re.compile(r"(?:everyone|each\s+person)\s+pays(?:\s+their\s+share)?", re.I),
        "custom",
    ),
    (re.compile(r"split\s+(?:between|among)", re.I), "equal"),
    (re.compile(r"split|divide|share|between|among|shared", re.I), "equal"),
]

_CURRENCY_SYMBOL_CLASS = "[€$£¥₹₣]"


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def extract_currency(text: str) -> CurrencyMatch | None:
    """
    Find the currency mentioned in text.

    Symbols and codes are tried in CURRENCY_SYMBOLS order and the first one
    present wins, even if another one appears earlier in the string.

    Returns:
        Currency code and the offset of the matched symbol, or None
    """
    for symbol, code in CURRENCY_SYMBOLS.items():
        index = text.find(symbol)
        if index != -1:
            return CurrencyMatch(currency=code, position=index)

    return None


def extract_amount(
    text: str, decimal_format: Literal["US", "EU"] = "US"
) -> AmountMatch | None:
    """
    Extract a numeric amount from text.

    Patterns are tried from most to least specific; the first match of the
    first pattern that matches anywhere is used. US format reads "1,000.50",
    EU format reads "1.000,50".

    The reported position is where the amount token starts: the offset of a
    currency symbol written directly before the digits, otherwise of the
    first digit.

    Returns:
        Parsed amount (major units) and its position, or None
    """
    for pattern in _AMOUNT_PATTERNS[decimal_format]:
        match = pattern.search(text)
        if not match:
            continue

        amount_str = match.group(1)
        if decimal_format == "US":
            amount_str = amount_str.replace(",", "")
        else:
            amount_str = amount_str.replace(".", "").replace(",", ".", 1)

        try:
            amount = float(amount_str)
        except ValueError:
            continue
        if not math.isfinite(amount):
            continue

        position = match.start(1)
        if position > 0 and re.match(_CURRENCY_SYMBOL_CLASS, text[position - 1]):
            position -= 1

        return AmountMatch(amount=amount, position=position)

    return None


def extract_split_count(text: str) -> int | None:
    """
    Extract how many ways an expense is split.

    Examples:
        "split 4 ways" -> 4
        "between 3" -> 3
        "5 people" -> 5
    """
    for pattern in _SPLIT_COUNT_PATTERNS:
        match = pattern.search(text)
        if match:
            # Three or more digits is out of range anyway
            if len(match.group(1)) > 2:
                continue
            count = int(match.group(1))
            if 0 < count < 100:
                return count

    return None


def _names_from_with_list(text: str) -> list[str]:
    """Names from a conversational list: "with alice, bob and carol"."""
    match = re.search(r"\bwith\s+([\w\s,]+?)(?:\.(?:\s+|$)|$)", text, re.I)
    if not match:
        return []

    names = []
    for part in re.split(r",\s*|\s+and\s+", match.group(1)):
        candidate = part.strip()
        if (
            2 <= len(candidate) <= 20
            and re.fullmatch(r"[a-z]+", candidate, re.I)
            and candidate.lower() not in LIST_NOISE_WORDS
        ):
            names.append(_capitalize(candidate))
    return names


def _names_from_between_list(text: str) -> list[str]:
    """Names from "between Alice, Bob, Carol"."""
    match = re.search(r"between\s+([\w\s,]+?)(?:\s+and\s+|$)", text, re.I)
    if not match:
        return []

    return [
        _capitalize(part.strip())
        for part in re.split(r",\s*", match.group(1))
        if re.fullmatch(r"[a-z]+", part.strip(), re.I)
    ]


def extract_names(text: str) -> list[str]:
    """
    Extract candidate participant names from text.

    Combines a "with ..." list, a "between ..." list and a scan for
    capitalized words that are not common non-name words. Duplicates are
    dropped, first occurrence kept.

    Example:
        "dinner with alice, bob and carol." -> ["Alice", "Bob", "Carol"]
    """
    names = _names_from_with_list(text)
    names.extend(_names_from_between_list(text))
    names.extend(
        word
        for word in re.findall(r"\b[A-Z][a-z]+\b", text)
        if word not in NON_NAME_WORDS
    )

    return list(dict.fromkeys(names))


def extract_payer(text: str) -> str | None:
    """
    Extract who paid.

    "I paid" / "me paid" -> "I"; "alice paid (for)" -> "Alice".
    """
    if re.search(r"\b(?:I|me)\s+paid\b", text, re.I):
        return "I"

    match = re.search(r"\b([a-z]+)\s+paid\b", text, re.I)
    if match:
        return _capitalize(match.group(1))

    return None


def detect_split_type(text: str) -> RawSplitType:
    """
    Classify the split language in text.

    Explicit equal-split phrasing wins, then "N%" (percentage), "their
    share" (shares), "owes half" (custom); any other split keyword means an
    equal split. No split language at all gives "none".
    """
    for pattern, split_type in _SPLIT_TYPE_RULES:
        if pattern.search(text):
            return split_type

    return "none"


def normalize_split_type(
    split_type: RawSplitType,
) -> Literal["equal", "percentage", "custom", "none"]:
    """Fold the parser-only "shares" type into "percentage"."""
    if split_type == "shares":
        return "percentage"
    return split_type


def infer_category(description: str) -> CategoryGuess | None:
    """
    Guess an expense category from keywords.

    Confidence is 0.7 when the matched keyword is longer than five
    characters and 0.5 otherwise.
    """
    lowered = description.lower()

    for category, keywords in CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            if keyword in lowered:
                confidence = 0.7 if len(keyword) > 5 else 0.5
                return CategoryGuess(category=category, confidence=confidence)

    return None


def extract_description(text: str) -> str:
    """
    Derive a short description from the input.

    When the text ends with a "<name> paid <amount>" clause, everything
    before that clause is kept as is. Otherwise currency, amounts and split
    or payer keywords are stripped out. Falls back to "Expense".
    """
    payer_clause = re.match(
        r"^(.+?)\.?\s+[a-z]+\s+paid\s+[\d€$£¥₹₣]+", text, re.I
    )
    if payer_clause:
        description = payer_clause.group(1).strip()
        if not description.endswith("."):
            description += "."
        return description

    description = re.sub(_CURRENCY_SYMBOL_CLASS, "", text)
    description = re.sub(r"\b(USD|EUR|GBP|JPY|CHF|INR)\b", "", description, flags=re.I)
    description = re.sub(r"\d{1,3}(?:,\d{3})*(?:[,.]\d{2})?", "", description)
    description = re.sub(
        r"\b(?:split|divide|share|equally|evenly|between|paid|owes?|owe)\b",
        "",
        description,
        flags=re.I,
    )
    description = re.sub(
        r"\d+\s*(?:ways?|people|persons?)", "", description, flags=re.I
    )
    description = re.sub(r"\s+ways?\b", "", description, flags=re.I)
    description = re.sub(
        r"\b(?:I|me|my)\s+(?:paid|owe|owes?)\b", "", description, flags=re.I
    )
    description = re.sub(r"\s+", " ", description).strip()
    description = re.sub(r"^[,\s]+|[,\s]+$", "", description)

    return description or "Expense"
