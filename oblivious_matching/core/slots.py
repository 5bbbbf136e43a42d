"""Slot packing for batched position vectors.

Candidate i owns the slot pair (2i, 2i+1). The requester vector repeats the
requester's coordinate in every owned pair so a single homomorphic
subtraction lines up against all candidates at once:

    requester: [rx, ry, rx, ry, ..., rx, ry, 0, 0, ...]
    candidate: [0, 0, ..., dx_i, dy_i, ..., 0, 0]
"""

from __future__ import annotations

import numpy as np

from oblivious_matching.core.backend import SlotArray
from oblivious_matching.core.types import Coordinate


def slot_pair(index: int) -> tuple[int, int]:
    """Slots holding candidate ``index``'s (x, y)."""
    return index << 1, (index << 1) + 1


def check_capacity(slot_count: int, candidate_count: int) -> None:
    """Raise ValueError unless every candidate gets a disjoint slot pair."""
    if candidate_count < 0:
        raise ValueError(f"candidate_count must be >= 0, got {candidate_count}")
    if 2 * candidate_count > slot_count:
        raise ValueError(
            f"{candidate_count} candidates need {2 * candidate_count} slots, "
            f"only {slot_count} available"
        )


def pack_requester(coordinate: Coordinate, candidate_count: int, slot_count: int) -> SlotArray:
    """Replicate the requester coordinate into the first ``candidate_count`` pairs.

    Args:
        coordinate: Requester position.
        candidate_count: Number of candidates in the round.
        slot_count: Batching slots N.

    Returns:
        Slot vector of length N.
    """
    check_capacity(slot_count, candidate_count)
    packed = np.zeros(slot_count, dtype=np.int64)
    used = 2 * candidate_count
    packed[0:used:2] = coordinate.x
    packed[1:used:2] = coordinate.y
    return packed


def pack_candidate(coordinate: Coordinate, index: int, slot_count: int) -> SlotArray:
    """Place one candidate coordinate at its slot pair, zero elsewhere."""
    check_capacity(slot_count, index + 1)
    packed = np.zeros(slot_count, dtype=np.int64)
    sx, sy = slot_pair(index)
    packed[sx] = coordinate.x
    packed[sy] = coordinate.y
    return packed


def pair_sums(slots: SlotArray, candidate_count: int) -> list[int]:
    """Sum each candidate's slot pair into one squared distance.

    The sum is taken over Python ints, outside the plaintext ring, so it
    never wraps even when it exceeds T.
    """
    check_capacity(len(slots), candidate_count)
    return [int(slots[2 * i]) + int(slots[2 * i + 1]) for i in range(candidate_count)]
