"""Candidate pool generation.

Discovery (who is nearby, where) is a pluggable source. The generator only
encodes and encrypts what the source returns, placing candidate i at slot
pair (2i, 2i+1). Slot assignment is the discovery order; there is no
per-round permutation.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol, Sequence

import numpy as np

from oblivious_matching.core.requester import RequesterContext, sample_coordinate
from oblivious_matching.core.slots import check_capacity, pack_candidate
from oblivious_matching.core.types import Candidate, Coordinate, candidate_id_for

logger = logging.getLogger(__name__)


class CandidateSource(Protocol):
    """Discovery capability: a bounded list of (candidate_id, coordinate)."""

    def discover(self, count: int) -> list[tuple[str, Coordinate]]:
        ...


class SyntheticCandidateSource:
    """Uniformly random drivers on the [0, bound)^2 grid.

    Stands in for real discovery, as the demo deployment does.
    """

    def __init__(self, rng: np.random.Generator, bound: int) -> None:
        self.rng = rng
        self.bound = bound

    def discover(self, count: int) -> list[tuple[str, Coordinate]]:
        return [(candidate_id_for(i), sample_coordinate(self.rng, self.bound)) for i in range(count)]


class StaticCandidateSource:
    """Replays fixed coordinates, ids assigned by position."""

    def __init__(self, coordinates: Sequence[Coordinate]) -> None:
        self.coordinates = list(coordinates)

    def discover(self, count: int) -> list[tuple[str, Coordinate]]:
        if count > len(self.coordinates):
            raise ValueError(
                f"Requested {count} candidates, only {len(self.coordinates)} available"
            )
        return [(candidate_id_for(i), c) for i, c in enumerate(self.coordinates[:count])]


def encrypt_candidates(
    requester: RequesterContext,
    discovered: Sequence[tuple[str, Coordinate]],
    max_workers: int = 1,
) -> list[Candidate]:
    """Encode each candidate into its slot pair and encrypt under the public key.

    Args:
        requester: Context providing parameters and the public key.
        discovered: (candidate_id, coordinate) in slot order.
        max_workers: Worker threads for per-candidate encryption. Output
            order is always slot order.

    Returns:
        Candidates in index order.
    """
    params = requester.params
    check_capacity(params.slot_count, len(discovered))
    bound = requester.max_coordinate
    for candidate_id, coordinate in discovered:
        if not coordinate.within(bound):
            raise ValueError(f"{candidate_id} coordinate {coordinate} outside [0, {bound})")

    backend = requester.backend
    public_key = requester.public_key

    def _encrypt(index: int) -> Candidate:
        candidate_id, coordinate = discovered[index]
        slots = pack_candidate(coordinate, index, params.slot_count)
        ciphertext = backend.encrypt(backend.encode(params, slots), public_key)
        return Candidate(
            candidate_id=candidate_id,
            index=index,
            coordinate=coordinate,
            ciphertext=ciphertext,
        )

    indices = range(len(discovered))
    if max_workers > 1 and len(discovered) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(_encrypt, indices))
    return [_encrypt(i) for i in indices]


def generate_candidates(
    requester: RequesterContext,
    count: int,
    source: CandidateSource | None = None,
    max_workers: int = 1,
) -> list[Candidate]:
    """Discover ``count`` candidates and encrypt their positions.

    Defaults to synthetic discovery driven by the requester's generator.
    """
    check_capacity(requester.params.slot_count, count)
    if source is None:
        source = SyntheticCandidateSource(requester.rng, requester.max_coordinate)
    discovered = source.discover(count)
    logger.info(f"Encrypting {len(discovered)} candidate positions")
    return encrypt_candidates(requester, discovered, max_workers=max_workers)
