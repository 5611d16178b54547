"""Interactive UI components and display helpers."""

import logging
from decimal import Decimal
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import (
    AccommodationMetadata,
    ActivityMetadata,
    DiningMetadata,
    ExpenseMetadata,
    GeneralMetadata,
    NameMatch,
    SightseeingMetadata,
    TransportMetadata,
    TripParticipant,
)
from .parser.expense import ZERO_DECIMAL_CURRENCIES

logger = logging.getLogger(__name__)


class ParticipantCompleter(Completer):
    """Fuzzy search completer for trip participants."""

    def __init__(self, participants: list[TripParticipant]):
        """Initialize the completer with the trip participants."""
        self.participants = participants
        self.name_to_id = {p.full_name: p.user_id for p in participants}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for participant in self.participants:
            if not query or self._fuzzy_match(query, participant.full_name.lower()):
                yield Completion(
                    text=participant.full_name,
                    start_position=-len(document.text),
                    display=participant.full_name,
                )

    def _fuzzy_match(self, query: str, text: str) -> bool:
        """
        Fuzzy match: all characters in query must appear in order in text.

        Example:
            query="bsm" matches "Bob Smith"
        """
        query_idx = 0
        for char in text:
            if query_idx < len(query) and char == query[query_idx]:
                query_idx += 1
        return query_idx == len(query)


def select_participant_interactive(
    parsed_name: str,
    participants: list[TripParticipant],
    candidates: list[NameMatch] | None = None,
) -> str | None:
    """
    Ask the user which participant a parsed name refers to.

    Args:
        parsed_name: Name as it appeared in the input
        participants: Trip participants to choose from
        candidates: Scored matches to show as hints

    Returns:
        Selected user_id, or None to skip
    """
    print(f"\nWho is '{parsed_name}'?")
    for candidate in candidates or []:
        print(
            f"   {candidate.full_name} "
            f"({candidate.match_type}, confidence: {candidate.confidence:.2f})"
        )
    print("   Type to search, press Enter to confirm, Ctrl+C to skip\n")

    completer = ParticipantCompleter(participants)
    session: PromptSession[str] = PromptSession(completer=completer)

    default_text = candidates[0].full_name if candidates else ""

    try:
        while True:
            result = session.prompt(
                "Participant: ",
                default=default_text,
                complete_while_typing=True,
            )

            if not result:
                return None

            user_id = completer.name_to_id.get(result)
            if user_id:
                logger.info(f"User resolved '{parsed_name}' to {result}")
                return user_id

            print("Unknown participant. Pick from the list or press Tab to complete.")
            default_text = ""

    except (KeyboardInterrupt, EOFError):
        return None


def format_money(amount: int, currency: str, use_color: bool = True) -> str:
    """
    Format minor units in accounting style.

    Negative amounts use parentheses: (EUR 85.02)
    Positive amounts are padded so decimal points align in tables.
    """
    places = 0 if currency in ZERO_DECIMAL_CURRENCIES else 2
    major = abs(Decimal(amount).scaleb(-places))
    text = f"{currency} {major:,.{places}f}"

    if amount < 0:
        return f"([red]{text}[/red])" if use_color else f"({text})"
    return f" [green]{text}[/green] " if use_color else f" {text} "


def describe_metadata(metadata: ExpenseMetadata | None) -> str:
    """One-line summary of typed expense metadata, empty when there is none."""
    if metadata is None:
        return ""

    if isinstance(metadata, TransportMetadata):
        parts = [
            metadata.transport_type,
            metadata.flight_number or metadata.train_number,
        ]
        if metadata.departure_location or metadata.arrival_location:
            parts.append(
                f"{metadata.departure_location or '?'} -> "
                f"{metadata.arrival_location or '?'}"
            )
        parts.append(metadata.booking_reference)
    elif isinstance(metadata, AccommodationMetadata):
        parts = [
            metadata.accommodation_type,
            metadata.address,
            f"check-in {metadata.check_in_time}" if metadata.check_in_time else None,
            f"check-out {metadata.check_out_time}" if metadata.check_out_time else None,
            metadata.confirmation_number,
        ]
    elif isinstance(metadata, DiningMetadata):
        parts = [
            metadata.restaurant_name,
            metadata.cuisine_type,
            metadata.price_range,
            (
                f"reserved as {metadata.reservation_name}"
                if metadata.reservation_name
                else None
            ),
        ]
    elif isinstance(metadata, ActivityMetadata):
        parts = [
            metadata.activity_type,
            metadata.duration,
            f"meet at {metadata.meeting_point}" if metadata.meeting_point else None,
        ]
    elif isinstance(metadata, SightseeingMetadata):
        parts = [
            metadata.attraction_name,
            metadata.admission_price,
            metadata.opening_hours,
        ]
    elif isinstance(metadata, GeneralMetadata):
        parts = [metadata.notes]
    else:
        raise TypeError(f"Unknown metadata kind: {type(metadata).__name__}")

    return " | ".join(part for part in parts if part)
