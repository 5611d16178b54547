"""Tests for participant name matching."""

import pytest

from trip_ledger.ledger.matcher import (
    dice_similarity,
    extract_initials,
    match_participant_names,
    match_single_name,
    match_single_participant_name,
    normalize_name,
)
from trip_ledger.models import TripParticipant


@pytest.fixture
def participants():
    """Two participants with distinct first names."""
    return [
        TripParticipant(user_id="u-alice", full_name="Alice Smith"),
        TripParticipant(user_id="u-bob", full_name="Bob Jones"),
    ]


class TestHelpers:
    """Test normalisation and similarity helpers."""

    def test_normalize_name(self):
        """Lowercase, trimmed, accents stripped."""
        assert normalize_name("  José ") == "jose"
        assert normalize_name("José", remove_accents=False) == "josé"

    def test_extract_initials(self):
        """First letter of each name part."""
        assert extract_initials("José María García") == "JMG"

    def test_dice_similarity(self):
        """Bigram overlap."""
        assert dice_similarity("alica", "alice") == pytest.approx(0.75)
        assert dice_similarity("abc", "abc") == 1.0
        assert dice_similarity("a", "b") == 0.0


class TestMatchSingleName:
    """Test scoring a single name."""

    def test_exact_match(self, participants):
        """Full name ignoring case."""
        matches = match_single_name("alice smith", participants)
        assert len(matches) == 1
        assert matches[0].match_type == "exact"
        assert matches[0].confidence == 1.0

    def test_partial_match(self, participants):
        """First name or word prefix."""
        matches = match_single_name("Alice", participants)
        assert matches[0].user_id == "u-alice"
        assert matches[0].match_type == "partial"
        assert matches[0].confidence == 0.9

    def test_fuzzy_match(self, participants):
        """Typos are scored between 0.7 and 0.9."""
        match = match_single_participant_name("Alica", participants)
        assert match is not None
        assert match.user_id == "u-alice"
        assert match.match_type == "fuzzy"
        assert match.confidence == pytest.approx(0.725)
        assert match.similarity_score == pytest.approx(0.75)

    def test_initials_match(self, participants):
        """Initials score 0.6."""
        matches = match_single_name("AS", participants)
        assert len(matches) == 1
        assert matches[0].match_type == "initials"
        assert matches[0].confidence == 0.6

    def test_initials_disabled(self, participants):
        """Initials matching can be switched off."""
        assert match_single_name("AS", participants, match_initials=False) == []

    def test_no_match(self, participants):
        """Unknown names return nothing."""
        assert match_single_name("Zed", participants) == []
        assert match_single_participant_name("Zed", participants) is None

    def test_empty_name(self, participants):
        """Blank input never matches."""
        assert match_single_name("   ", participants) == []


class TestMatchParticipantNames:
    """Test resolving a list of names."""

    def test_fully_resolved(self, participants):
        """Every name has one confident match."""
        result = match_participant_names(["Alice", "Bob"], participants)

        assert result.is_fully_resolved
        assert not result.has_ambiguous
        assert not result.has_unmatched
        assert result.resolved_user_ids == ["u-alice", "u-bob"]

    def test_ambiguous(self):
        """Two participants sharing a first name."""
        participants = [
            TripParticipant(user_id="u-1", full_name="Alice Smith"),
            TripParticipant(user_id="u-2", full_name="Alice Jones"),
        ]

        result = match_participant_names(["Alice"], participants)

        assert result.has_ambiguous
        assert result.matches[0].is_ambiguous
        assert len(result.matches[0].matches) == 2
        # Ties keep participant order
        assert result.matches[0].best_match.user_id == "u-1"
        assert not result.is_fully_resolved
        assert result.resolved_user_ids is None

    def test_unmatched(self, participants):
        """Unknown names block full resolution."""
        result = match_participant_names(["Alice", "Zed"], participants)

        assert result.has_unmatched
        assert result.matches[1].is_unmatched
        assert result.matches[1].best_match is None
        assert not result.is_fully_resolved

    def test_low_confidence_not_auto_resolved(self, participants):
        """A fuzzy match below the auto-resolve threshold needs confirmation."""
        result = match_participant_names(["Alica"], participants)

        assert not result.has_unmatched
        assert not result.is_fully_resolved
