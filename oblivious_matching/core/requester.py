"""Requester (rider) context.

Owns the ephemeral key pair, the batching parameters and the random
generator for one session. The secret key and the sampled position stay
inside this object.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from oblivious_matching.core.backend import BatchParameters, HomomorphicBackend, KeyPair
from oblivious_matching.core.slots import pack_requester
from oblivious_matching.core.types import Coordinate

logger = logging.getLogger(__name__)


def sample_coordinate(rng: np.random.Generator, bound: int) -> Coordinate:
    """Draw a coordinate uniformly from [0, bound)^2."""
    x, y = rng.integers(0, bound, size=2)
    return Coordinate(int(x), int(y))


@dataclass
class RequesterContext:
    """Per-session state of the requester.

    Attributes:
        requester_id: Identifier of the rider.
        params: Batching parameters the key pair was generated for.
        backend: Homomorphic backend.
        rng: Explicitly owned generator. Seed it to reproduce a round.
    """

    requester_id: str
    params: BatchParameters
    backend: HomomorphicBackend = field(repr=False)
    rng: np.random.Generator = field(repr=False)
    _keys: KeyPair = field(repr=False)
    _position: Coordinate | None = field(default=None, repr=False)
    _pinned: bool = field(default=False, repr=False)

    @classmethod
    def create(
        cls,
        requester_id: str,
        params: BatchParameters,
        backend: HomomorphicBackend,
        seed: int | None = None,
    ) -> "RequesterContext":
        """Validate parameters and generate the session key pair.

        Raises:
            ConfigurationError: If the backend rejects the parameters.
        """
        keys = backend.setup(params)
        logger.info(
            f"Requester {requester_id} ready: backend={backend.name}, "
            f"N={params.slot_count}, T={params.plaintext_modulus}"
        )
        return cls(
            requester_id=requester_id,
            params=params,
            backend=backend,
            rng=np.random.default_rng(seed),
            _keys=keys,
        )

    @property
    def public_key(self) -> Any:
        """Public key handle shared with candidates."""
        return self._keys.public_key

    @property
    def max_coordinate(self) -> int:
        return self.params.max_coordinate

    @property
    def position(self) -> Coordinate | None:
        """Sampled position. Only the diagnostic consistency check reads this."""
        return self._position

    def fix_position(self, coordinate: Coordinate) -> None:
        """Pin the position instead of sampling it (scenarios and tests)."""
        if not coordinate.within(self.max_coordinate):
            raise ValueError(
                f"Coordinate components must be < {self.max_coordinate}, got {coordinate}"
            )
        self._position = coordinate
        self._pinned = True

    def encrypted_position(self, candidate_count: int) -> Any:
        """Encrypt the requester vector for a round of ``candidate_count``.

        Draws a fresh position on every call unless one was pinned with
        fix_position(). The latest position is kept for the consistency check.
        Encryption uses the secret-key handle, which also holds the public
        key, so the result is an ordinary ciphertext under the session key.
        """
        if not self._pinned:
            self._position = sample_coordinate(self.rng, self.max_coordinate)

        logger.info(
            f"Encrypting requester position for {candidate_count} candidates "
            f"on a {self.max_coordinate} x {self.max_coordinate} grid"
        )
        slots = pack_requester(self._position, candidate_count, self.params.slot_count)
        plaintext = self.backend.encode(self.params, slots)
        return self.backend.encrypt(plaintext, self._keys.secret_key)

    def decrypt(self, ciphertext: Any) -> np.ndarray:
        """Decrypt and decode a result ciphertext into residues."""
        plaintext = self.backend.decrypt(ciphertext, self._keys.secret_key)
        return self.backend.decode(plaintext)
