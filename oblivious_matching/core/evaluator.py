"""Homomorphic distance evaluation.

Computes, in one batched pass,

    ((Ct_D0 + Ct_D1 + ... + Ct_Dn-1) - Ct_R)^2

whose slot pair (2i, 2i+1) decrypts to ((dx_i - rx)^2, (dy_i - ry)^2).
All distances cost a single ciphertext multiplication.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from oblivious_matching.core.backend import HomomorphicBackend
from oblivious_matching.core.types import Candidate

logger = logging.getLogger(__name__)


def evaluate(
    backend: HomomorphicBackend,
    requester_ciphertext: Any,
    candidates: Sequence[Candidate],
) -> Any:
    """Return the aggregate squared-difference ciphertext.

    Candidates are added in index order so repeated runs perform the same
    sequence of operations.
    """
    logger.info(f"Computing encrypted distances for {len(candidates)} candidates")
    accumulator = backend.negate(requester_ciphertext)
    for candidate in sorted(candidates, key=lambda c: c.index):
        accumulator = backend.add(accumulator, candidate.ciphertext)
    return backend.multiply(accumulator, accumulator)
