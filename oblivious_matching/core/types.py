"""Value types shared across one matching round."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np


@dataclass(frozen=True)
class Coordinate:
    """Grid position with non-negative integer components."""

    x: int
    y: int

    def __post_init__(self) -> None:
        for value in (self.x, self.y):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise TypeError(f"Coordinates must be integers, got {value!r}")
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Coordinates must be non-negative, got ({self.x}, {self.y})")

    def within(self, bound: int) -> bool:
        """True if both components are < bound."""
        return self.x < bound and self.y < bound


@dataclass
class Candidate:
    """A driver taking part in one round.

    Attributes:
        candidate_id: Identifier handed to the ledger if this candidate wins.
        index: Slot assignment; the coordinate lives in slots (2i, 2i+1).
        coordinate: Plaintext position, retained only for the diagnostic
            consistency check. A real service never sees it.
        ciphertext: Position vector encrypted under the requester's public key.
    """

    candidate_id: str
    index: int
    coordinate: Coordinate = field(repr=False)
    ciphertext: Any = field(repr=False)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of the selection step.

    ``winning_id`` is None when no candidate qualified (empty pool or every
    candidate failed the consistency check). That is a normal outcome, not
    an error.
    """

    winning_id: str | None
    error_count: int
    min_distance: int | None

    @property
    def matched(self) -> bool:
        return self.winning_id is not None

    @classmethod
    def no_match(cls, error_count: int = 0) -> "MatchResult":
        return cls(winning_id=None, error_count=error_count, min_distance=None)


def squared_distance(a: int, b: int, c: int, d: int) -> int:
    """Squared Euclidean distance between (a, b) and (c, d).

    Subtracts the smaller component from the larger so the result is the
    same for unsigned inputs in any order.
    """
    dx = max(a, c) - min(a, c)
    dy = max(b, d) - min(b, d)
    return dx * dx + dy * dy


def candidate_id_for(index: int) -> str:
    return f"Driver{index}"
