"""Decrypt-and-select step.

Only the requester runs this: it decrypts the aggregate ciphertext, sums
each candidate's slot pair and picks the closest candidate.

The optional consistency check compares every decrypted distance against a
plaintext recomputation. It needs the candidates' plaintext coordinates, so
it only makes sense in simulations and tests; production callers leave it
off.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from oblivious_matching.core.backend import SlotArray
from oblivious_matching.core.requester import RequesterContext
from oblivious_matching.core.slots import pair_sums
from oblivious_matching.core.types import Candidate, MatchResult, squared_distance

logger = logging.getLogger(__name__)

# Per-candidate detail is logged for the first and last few candidates only.
_LOG_EDGE = 4


class ConsistencyCheck(Protocol):
    """Diagnostic oracle deciding whether a decrypted distance is trustworthy."""

    def expected(self, candidate: Candidate) -> int:
        ...


class PlaintextConsistencyCheck:
    """Recompute distances from plaintext coordinates (simulation only)."""

    def __init__(self, requester: RequesterContext) -> None:
        if requester.position is None:
            raise ValueError("Requester position has not been sampled yet")
        self.origin = requester.position

    def expected(self, candidate: Candidate) -> int:
        c = candidate.coordinate
        return squared_distance(c.x, c.y, self.origin.x, self.origin.y)


def select_from_slots(
    slots: SlotArray,
    candidates: Sequence[Candidate],
    count: int,
    check: ConsistencyCheck | None = None,
) -> MatchResult:
    """Pick the minimum-distance candidate from decoded residues.

    Candidates failing the check are counted and skipped. Ties go to the
    lowest index.

    Args:
        slots: Decoded aggregate result.
        candidates: Candidates in index order.
        count: Number of candidates in the round.
        check: Optional consistency oracle.

    Returns:
        MatchResult; winning_id is None if no candidate qualified.

    Raises:
        ValueError: If a candidate index falls outside [0, count).
    """
    if count == 0 or not candidates:
        return MatchResult.no_match()

    ordered = sorted(candidates, key=lambda c: c.index)
    for candidate in ordered:
        if not 0 <= candidate.index < count:
            raise ValueError(
                f"Candidate {candidate.candidate_id} has slot index {candidate.index}, "
                f"expected 0 <= index < {count}"
            )
    distances = pair_sums(slots, count)

    winner: Candidate | None = None
    min_distance: int | None = None
    errors = 0

    for candidate in ordered:
        computed = distances[candidate.index]
        correct = True
        if check is not None:
            expected = check.expected(candidate)
            correct = computed == expected
            if not correct:
                errors += 1
                logger.warning(
                    f"Distance mismatch for {candidate.candidate_id}: "
                    f"decrypted {computed}, expected {expected}"
                )

        if correct and (min_distance is None or computed < min_distance):
            winner = candidate
            min_distance = computed

        if candidate.index < _LOG_EDGE or candidate.index >= count - _LOG_EDGE:
            logger.debug(
                f"Distance with {candidate.candidate_id}: {computed} --> correct: {correct}"
            )

    if winner is None:
        logger.info(f"No match: all {count} candidates failed the consistency check")
        return MatchResult.no_match(error_count=errors)

    logger.info(
        f"Closest candidate is {winner.candidate_id} (squared distance {min_distance}), "
        f"{errors} errors out of {count}"
    )
    return MatchResult(
        winning_id=winner.candidate_id, error_count=errors, min_distance=min_distance
    )


def select(
    result_ciphertext: Any,
    candidates: Sequence[Candidate],
    requester: RequesterContext,
    count: int,
    check: ConsistencyCheck | None = None,
) -> MatchResult:
    """Decrypt the aggregate result and select the closest candidate."""
    if count == 0:
        return MatchResult.no_match()
    slots = requester.decrypt(result_ciphertext)
    return select_from_slots(slots, candidates, count, check=check)
