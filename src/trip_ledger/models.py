"""Pydantic domain models for trip-ledger."""

from datetime import date, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

SplitType = Literal["equal", "percentage", "custom", "none"]
RawSplitType = Literal["equal", "custom", "percentage", "shares", "none"]
ShareType = Literal["equal", "percentage", "amount"]
ExpenseCategory = Literal["food", "transport", "accommodation", "activity", "other"]

# ============================================================================
# Trip Models
# ============================================================================


class TripParticipant(BaseModel):
    """A person who can owe or be owed money on a trip."""

    user_id: str
    full_name: str
    join_start_date: date | None = None  # partial membership window
    join_end_date: date | None = None


# ============================================================================
# Expense Metadata (tagged by kind)
# ============================================================================


class TransportMetadata(BaseModel):
    kind: Literal["transport"] = "transport"
    transport_type: (
        Literal["flight", "train", "bus", "ferry", "car", "other"] | None
    ) = None
    flight_number: str | None = None
    train_number: str | None = None
    departure_location: str | None = None
    arrival_location: str | None = None
    booking_reference: str | None = None


class AccommodationMetadata(BaseModel):
    kind: Literal["accommodation"] = "accommodation"
    accommodation_type: (
        Literal["hotel", "airbnb", "hostel", "camping", "resort", "other"] | None
    ) = None
    check_in_time: str | None = None
    check_out_time: str | None = None
    confirmation_number: str | None = None
    address: str | None = None


class DiningMetadata(BaseModel):
    kind: Literal["dining"] = "dining"
    restaurant_name: str | None = None
    cuisine_type: str | None = None
    price_range: Literal["$", "$$", "$$$", "$$$$"] | None = None
    reservation_name: str | None = None


class ActivityMetadata(BaseModel):
    kind: Literal["activity"] = "activity"
    activity_type: (
        Literal["tour", "class", "workshop", "sports", "entertainment", "other"]
        | None
    ) = None
    duration: str | None = None  # e.g. "2 hours", "half day"
    meeting_point: str | None = None


class SightseeingMetadata(BaseModel):
    kind: Literal["sightseeing"] = "sightseeing"
    attraction_name: str | None = None
    admission_price: str | None = None
    opening_hours: str | None = None


class GeneralMetadata(BaseModel):
    kind: Literal["general"] = "general"
    notes: str | None = None


ExpenseMetadata = Annotated[
    TransportMetadata
    | AccommodationMetadata
    | DiningMetadata
    | ActivityMetadata
    | SightseeingMetadata
    | GeneralMetadata,
    Field(discriminator="kind"),
]


# ============================================================================
# Expense Input Models
# ============================================================================


class PercentageSplit(BaseModel):
    """One participant's percentage of an expense."""

    name: str  # participant name or user_id
    percentage: float


class CustomSplit(BaseModel):
    """One participant's literal share of an expense."""

    name: str  # participant name or user_id
    amount: int  # minor units


class ExpenseInput(BaseModel):
    """An expense as entered by a user, before shares are computed.

    Participants and splits may reference trip participants by display name
    or by user_id; they are resolved against the trip when shares are built.
    """

    id: str
    description: str = "Expense"
    amount: int  # minor units
    currency: str
    category: ExpenseCategory = "other"
    date: date
    payer: str | None = None  # name or user_id; None = creator paid
    created_by: str | None = None
    split_type: SplitType = "equal"
    participants: list[str] | None = None
    split_count: int | None = None
    percentage_splits: list[PercentageSplit] | None = None
    custom_splits: list[CustomSplit] | None = None
    fx_rate: float | None = None  # snapshot rate to trip base currency
    metadata: ExpenseMetadata | None = None


# ============================================================================
# Share / Expense Models
# ============================================================================


class ExpenseParticipantShare(BaseModel):
    """One participant's share of one expense."""

    expense_id: str
    user_id: str
    share_amount: int  # minor units
    share_type: ShareType
    share_value: float | None = None  # percentage or literal amount; None for equal


class ShareBuildResult(BaseModel):
    """Outcome of building shares: either share rows or an error, never both."""

    participants: list[ExpenseParticipantShare] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PayerResolution(BaseModel):
    """Resolved payer. error is set when the fallback payer was used."""

    payer_id: str
    error: str | None = None


class Expense(BaseModel):
    """An expense with its computed participant shares."""

    id: str
    description: str
    amount: int  # minor units
    currency: str
    payer_id: str
    date: date
    category: ExpenseCategory = "other"
    split_type: SplitType = "equal"
    fx_rate: float | None = None
    participants: list[ExpenseParticipantShare] = Field(default_factory=list)
    metadata: ExpenseMetadata | None = None


# ============================================================================
# Balance / Settlement Models
# ============================================================================


class ConversionResult(BaseModel):
    """An expense amount expressed in the trip base currency."""

    amount: int
    currency: str
    needs_fx_rate: bool = False


class UserBalance(BaseModel):
    """Net position of one participant.

    Positive = the group owes this participant; negative = they owe the group.
    """

    user_id: str
    user_name: str
    net_balance: int  # minor units, base currency
    currency: str


class Settlement(BaseModel):
    """A suggested transfer: from_user pays to_user."""

    from_user_id: str
    from_user_name: str
    to_user_id: str
    to_user_name: str
    amount: int  # minor units
    currency: str


class ExcludedExpense(BaseModel):
    """An expense left out of a settlement summary, and why."""

    expense_id: str
    description: str
    reason: str


class SettlementSummary(BaseModel):
    """Balances and suggested settlements for a whole trip."""

    currency: str
    balances: list[UserBalance] = Field(default_factory=list)
    settlements: list[Settlement] = Field(default_factory=list)
    total_expenses: int = 0
    excluded_expenses: list[ExcludedExpense] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class Trip(BaseModel):
    """A trip with its participants and entered expenses."""

    id: str
    name: str = "Trip"
    base_currency: str
    owner_id: str
    participants: list[TripParticipant]
    expenses: list[ExpenseInput] = Field(default_factory=list)


# ============================================================================
# Name Matching Models
# ============================================================================


class NameMatch(BaseModel):
    """A candidate participant for a parsed name."""

    user_id: str
    full_name: str
    confidence: float = Field(ge=0.0, le=1.0)
    match_type: Literal["exact", "partial", "fuzzy", "initials"]
    similarity_score: float | None = None  # fuzzy matches only


class ParticipantMatch(BaseModel):
    """All candidates for one parsed name."""

    input: str
    matches: list[NameMatch] = Field(default_factory=list)
    is_ambiguous: bool = False
    is_unmatched: bool = False
    best_match: NameMatch | None = None


class ParticipantResolutionResult(BaseModel):
    """Resolution of a list of parsed names against trip participants."""

    matches: list[ParticipantMatch] = Field(default_factory=list)
    has_ambiguous: bool = False
    has_unmatched: bool = False
    is_fully_resolved: bool = False
    resolved_user_ids: list[str] | None = None


# ============================================================================
# Parser Models
# ============================================================================


class CurrencyMatch(BaseModel):
    currency: str
    position: int


class AmountMatch(BaseModel):
    amount: float  # major units as written, e.g. 60.5
    position: int


class CategoryGuess(BaseModel):
    category: str
    confidence: float = Field(ge=0.0, le=1.0)


class ParsedExpense(BaseModel):
    """Draft expense extracted from free text. All fields are hints."""

    amount: int  # minor units
    currency: str
    description: str
    category: str | None = None
    payer: str | None = None
    split_type: RawSplitType = "none"
    split_count: int | None = None
    participants: list[str] | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    original_text: str


# ============================================================================
# FX Models
# ============================================================================


class FxRate(BaseModel):
    """A cached historical exchange rate: 1 base_currency = rate target_currency."""

    id: int | None = None
    base_currency: str
    target_currency: str
    date: date
    rate: float
    fetched_at: datetime = Field(default_factory=datetime.now)
