"""Plaintext reference backend.

Implements the homomorphic interface with no encryption at all: a
"ciphertext" is the residue vector tagged with the id of the key pair that
produced it. Slot arithmetic is exact modulo T, so results match BFV.

INSECURE. Use for tests, simulations and benchmarks of the surrounding
pipeline only.
"""

from __future__ import annotations

import logging
import pickle
import uuid
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from oblivious_matching.core.backend import (
    BatchParameters,
    HEScheme,
    HomomorphicBackend,
    KeyPair,
    Plaintext,
    SlotArray,
    check_residues,
)
from oblivious_matching.core.errors import CapabilityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaintextKey:
    """Key handle for the reference backend."""

    key_id: str
    params: BatchParameters
    is_secret: bool


@dataclass
class PlaintextCiphertext:
    """Transparent ciphertext: residues mod T plus the owning key id."""

    slots: SlotArray = field(repr=False)
    modulus: int
    key_id: str


class PlaintextBackend(HomomorphicBackend):
    """Transparent backend with exact modular slot arithmetic.

    Attributes:
        fault_rate: Probability that each slot is corrupted by multiply().
            Emulates an exhausted noise budget so decoding mismatches can be
            produced on demand.
    """

    def __init__(self, fault_rate: float = 0.0, seed: int | None = None) -> None:
        if not 0.0 <= fault_rate <= 1.0:
            raise ValueError(f"fault_rate must be in [0, 1], got {fault_rate}")
        self.fault_rate = fault_rate
        self._rng = np.random.default_rng(seed)

    @property
    def scheme(self) -> HEScheme:
        return HEScheme.PLAINTEXT

    @property
    def name(self) -> str:
        return "Plaintext-Reference"

    def setup(self, params: BatchParameters) -> KeyPair:
        params.validate()
        key_id = uuid.uuid4().hex
        return KeyPair(
            public_key=PlaintextKey(key_id=key_id, params=params, is_secret=False),
            secret_key=PlaintextKey(key_id=key_id, params=params, is_secret=True),
        )

    def encode(self, params: BatchParameters, slots: SlotArray) -> Plaintext:
        return Plaintext(slots=check_residues(params, slots), modulus=params.plaintext_modulus)

    def decode(self, plaintext: Plaintext) -> SlotArray:
        return np.mod(plaintext.slots, plaintext.modulus).astype(np.int64)

    def encrypt(self, plaintext: Plaintext, key: Any) -> PlaintextCiphertext:
        key = self._check_key(key)
        if plaintext.modulus != key.params.plaintext_modulus:
            raise CapabilityError("Plaintext modulus does not match the key parameters")
        return PlaintextCiphertext(
            slots=plaintext.slots.copy(), modulus=plaintext.modulus, key_id=key.key_id
        )

    def decrypt(self, ciphertext: Any, secret_key: Any) -> Plaintext:
        key = self._check_key(secret_key)
        ciphertext = self._check_ciphertext(ciphertext)
        if not key.is_secret:
            raise CapabilityError("Cannot decrypt without the secret key")
        if ciphertext.key_id != key.key_id:
            raise CapabilityError("Ciphertext was not produced under this key pair")
        return Plaintext(slots=ciphertext.slots.copy(), modulus=ciphertext.modulus)

    def negate(self, ciphertext: Any) -> PlaintextCiphertext:
        ct = self._check_ciphertext(ciphertext)
        return PlaintextCiphertext(
            slots=np.mod(-ct.slots, ct.modulus), modulus=ct.modulus, key_id=ct.key_id
        )

    def add(self, left: Any, right: Any) -> PlaintextCiphertext:
        left, right = self._check_pair(left, right)
        return PlaintextCiphertext(
            slots=np.mod(left.slots + right.slots, left.modulus),
            modulus=left.modulus,
            key_id=left.key_id,
        )

    def multiply(self, left: Any, right: Any) -> PlaintextCiphertext:
        left, right = self._check_pair(left, right)
        t = left.modulus
        # object dtype keeps the product exact for moduli above 2^31
        product = np.mod(left.slots.astype(object) * right.slots.astype(object), t).astype(
            np.int64
        )
        if self.fault_rate > 0.0:
            product = self._inject_faults(product, t)
        return PlaintextCiphertext(slots=product, modulus=t, key_id=left.key_id)

    def serialize_ciphertext(self, ciphertext: Any) -> bytes:
        ct = self._check_ciphertext(ciphertext)
        return pickle.dumps((ct.slots.tolist(), ct.modulus, ct.key_id))

    def load_ciphertext(self, key: Any, data: bytes) -> PlaintextCiphertext:
        key = self._check_key(key)
        try:
            slots, modulus, key_id = pickle.loads(data)
        except (pickle.UnpicklingError, ValueError, TypeError, EOFError) as e:
            raise CapabilityError(f"Could not load ciphertext: {e}") from e
        if key_id != key.key_id:
            raise CapabilityError("Ciphertext was not produced under this key pair")
        return PlaintextCiphertext(
            slots=np.asarray(slots, dtype=np.int64), modulus=modulus, key_id=key_id
        )

    def _inject_faults(self, slots: SlotArray, modulus: int) -> SlotArray:
        mask = self._rng.random(len(slots)) < self.fault_rate
        if mask.any():
            noise = self._rng.integers(1, modulus, size=int(mask.sum()))
            slots = slots.copy()
            slots[mask] = np.mod(slots[mask] + noise, modulus)
            logger.debug(f"Injected noise into {int(mask.sum())} slots")
        return slots

    @staticmethod
    def _check_key(key: Any) -> PlaintextKey:
        if not isinstance(key, PlaintextKey):
            raise TypeError(f"Expected PlaintextKey, got {type(key)}")
        return key

    @staticmethod
    def _check_ciphertext(ciphertext: Any) -> PlaintextCiphertext:
        if not isinstance(ciphertext, PlaintextCiphertext):
            raise TypeError(f"Expected PlaintextCiphertext, got {type(ciphertext)}")
        return ciphertext

    def _check_pair(
        self, left: Any, right: Any
    ) -> tuple[PlaintextCiphertext, PlaintextCiphertext]:
        left = self._check_ciphertext(left)
        right = self._check_ciphertext(right)
        if left.key_id != right.key_id:
            raise CapabilityError("Cannot combine ciphertexts from different key pairs")
        if len(left.slots) != len(right.slots):
            raise CapabilityError(
                f"Slot count mismatch: {len(left.slots)} vs {len(right.slots)}"
            )
        return left, right
