"""Fuzzy matching of parsed names to trip participants.

Each participant is scored by the first rule that applies:

- exact (case/accent-insensitive) full name: 1.0
- a word of the full name equals or starts with the input: 0.9
- bigram (Dice) similarity >= 0.7 with the full name or one of its parts:
  scaled into 0.7-0.9
- initials ("AS" for "Alice Smith"): 0.6
"""

import logging
import re
import unicodedata
from collections import Counter

from ..models import (
    NameMatch,
    ParticipantMatch,
    ParticipantResolutionResult,
    TripParticipant,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.6
DEFAULT_AUTO_RESOLVE_THRESHOLD = 0.85
FUZZY_SIMILARITY_THRESHOLD = 0.7
AMBIGUITY_CONFIDENCE = 0.7


def normalize_name(name: str, remove_accents: bool = True) -> str:
    """Lowercase, trim and (optionally) strip accents: "José " -> "jose"."""
    normalized = name.lower().strip()
    if remove_accents:
        decomposed = unicodedata.normalize("NFD", normalized)
        normalized = "".join(c for c in decomposed if not unicodedata.combining(c))
    return normalized


def extract_initials(full_name: str) -> str:
    """ "José María García" -> "JMG"."""
    return "".join(part[0].upper() for part in full_name.split() if part)


def dice_similarity(first: str, second: str) -> float:
    """
    Sørensen-Dice coefficient over character bigrams, ignoring whitespace.

    Example:
        dice_similarity("alica", "alice") -> 0.75
    """
    first = re.sub(r"\s+", "", first)
    second = re.sub(r"\s+", "", second)

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[i : i + 2] for i in range(len(first) - 1))
    second_bigrams = Counter(second[i : i + 2] for i in range(len(second) - 1))
    overlap = sum((first_bigrams & second_bigrams).values())

    return 2.0 * overlap / (len(first) + len(second) - 2)


def _is_partial_match(normalized_input: str, normalized_full: str) -> bool:
    words = normalized_full.split()
    return any(word.startswith(normalized_input) for word in words)


def match_single_name(
    parsed_name: str,
    participants: list[TripParticipant],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    normalize_accents: bool = True,
    match_initials: bool = True,
) -> list[NameMatch]:
    """
    Score one parsed name against every participant.

    Returns:
        Candidates at or above min_confidence, highest confidence first
        (ties keep participant order)
    """
    normalized_input = normalize_name(parsed_name, normalize_accents)
    if not normalized_input:
        return []

    matches: list[NameMatch] = []

    for participant in participants:
        normalized_full = normalize_name(participant.full_name, normalize_accents)

        if normalized_input == normalized_full:
            matches.append(
                NameMatch(
                    user_id=participant.user_id,
                    full_name=participant.full_name,
                    confidence=1.0,
                    match_type="exact",
                )
            )
            continue

        if _is_partial_match(normalized_input, normalized_full):
            matches.append(
                NameMatch(
                    user_id=participant.user_id,
                    full_name=participant.full_name,
                    confidence=0.9,
                    match_type="partial",
                )
            )
            continue

        part_similarity = max(
            (
                dice_similarity(normalized_input, part)
                for part in normalized_full.split()
            ),
            default=0.0,
        )
        similarity = max(
            dice_similarity(normalized_input, normalized_full), part_similarity
        )

        if similarity >= FUZZY_SIMILARITY_THRESHOLD:
            confidence = min(0.7 + (similarity - 0.7) * 0.5, 0.9)
            matches.append(
                NameMatch(
                    user_id=participant.user_id,
                    full_name=participant.full_name,
                    confidence=confidence,
                    match_type="fuzzy",
                    similarity_score=similarity,
                )
            )
            continue

        if match_initials:
            initials = extract_initials(participant.full_name).lower()
            if normalized_input == initials:
                matches.append(
                    NameMatch(
                        user_id=participant.user_id,
                        full_name=participant.full_name,
                        confidence=0.6,
                        match_type="initials",
                    )
                )

    kept = [match for match in matches if match.confidence >= min_confidence]
    return sorted(kept, key=lambda match: match.confidence, reverse=True)


def match_single_participant_name(
    parsed_name: str,
    participants: list[TripParticipant],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> NameMatch | None:
    """Best candidate for a name, or None when nothing clears min_confidence."""
    matches = match_single_name(parsed_name, participants, min_confidence)
    return matches[0] if matches else None


def match_participant_names(
    parsed_names: list[str],
    participants: list[TripParticipant],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    auto_resolve_threshold: float = DEFAULT_AUTO_RESOLVE_THRESHOLD,
    normalize_accents: bool = True,
    match_initials: bool = True,
) -> ParticipantResolutionResult:
    """
    Resolve several parsed names at once.

    A name is ambiguous when more than one candidate scores above 0.7. The
    whole list is fully resolved only when every name has a single clear
    best match at or above auto_resolve_threshold.

    Args:
        parsed_names: Names pulled out of user input
        participants: Trip participants to match against
        min_confidence: Candidates below this are discarded
        auto_resolve_threshold: Confidence needed to resolve without asking

    Returns:
        Per-name matches plus overall resolution flags
    """
    results: list[ParticipantMatch] = []

    for name in parsed_names:
        candidates = match_single_name(
            name,
            participants,
            min_confidence=min_confidence,
            normalize_accents=normalize_accents,
            match_initials=match_initials,
        )
        high_confidence = [
            c for c in candidates if c.confidence > AMBIGUITY_CONFIDENCE
        ]
        results.append(
            ParticipantMatch(
                input=name,
                matches=candidates,
                is_ambiguous=len(high_confidence) > 1,
                is_unmatched=not candidates,
                best_match=candidates[0] if candidates else None,
            )
        )

    is_fully_resolved = all(
        result.best_match is not None
        and not result.is_ambiguous
        and result.best_match.confidence >= auto_resolve_threshold
        for result in results
    )

    if not is_fully_resolved:
        unresolved = [r.input for r in results if r.is_ambiguous or r.is_unmatched]
        logger.debug(f"Names needing attention: {unresolved}")

    return ParticipantResolutionResult(
        matches=results,
        has_ambiguous=any(result.is_ambiguous for result in results),
        has_unmatched=any(result.is_unmatched for result in results),
        is_fully_resolved=is_fully_resolved,
        resolved_user_ids=(
            [result.best_match.user_id for result in results if result.best_match]
            if is_fully_resolved
            else None
        ),
    )
