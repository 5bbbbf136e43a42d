"""Abstract homomorphic backend interface.

This module defines the narrow capability the matching core consumes.
Swap implementations to use different batched HE libraries (TenSEAL BFV,
the plaintext reference backend, ...). Nothing above this layer knows which
library is underneath.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np
import numpy.typing as npt

from oblivious_matching.core.errors import ConfigurationError

# BFV plaintext modulus used by the original ride-matching deployment
# (128-bit security, N = 2^13). Prime and congruent to 1 mod 2N.
DEFAULT_PLAINTEXT_MODULUS = 0x3EE0001
DEFAULT_SLOT_COUNT = 1 << 13

SlotArray = npt.NDArray[np.int64]


class HEScheme(str, Enum):
    """Supported homomorphic schemes."""

    BFV = "bfv"  # Exact arithmetic on batched integers
    PLAINTEXT = "plaintext"  # Insecure reference, no encryption


@dataclass(frozen=True)
class BatchParameters:
    """Batching parameters for one matching round.

    Attributes:
        slot_count: Number of batching slots N (power of two).
        plaintext_modulus: Plaintext modulus T for slot arithmetic.
        security_level: Security level in bits.
        coeff_mod_bit_sizes: Optional coefficient modulus chain. Backends
            pick their own default when None.
    """

    slot_count: int = DEFAULT_SLOT_COUNT
    plaintext_modulus: int = DEFAULT_PLAINTEXT_MODULUS
    security_level: int = 128
    coeff_mod_bit_sizes: tuple[int, ...] | None = None

    def validate(self) -> None:
        """Raise ConfigurationError if N and T cannot support batching."""
        n = self.slot_count
        t = self.plaintext_modulus
        if n < 2 or n & (n - 1):
            raise ConfigurationError(f"slot_count must be a power of two >= 2, got {n}")
        if t <= 2:
            raise ConfigurationError(f"plaintext_modulus must be > 2, got {t}")
        if t % (2 * n) != 1:
            raise ConfigurationError(
                f"plaintext_modulus {t:#x} does not support batching with N={n} "
                f"(requires T = 1 mod {2 * n})"
            )

    @property
    def max_coordinate(self) -> int:
        """Exclusive upper bound for coordinate components: floor(sqrt(T)).

        Keeps every per-axis squared difference below T so no slot wraps.
        """
        return math.isqrt(self.plaintext_modulus)

    @property
    def max_candidates(self) -> int:
        """Each candidate needs a disjoint pair of slots."""
        return self.slot_count // 2

    def as_dict(self) -> dict[str, Any]:
        return {
            "slot_count": self.slot_count,
            "plaintext_modulus": self.plaintext_modulus,
            "security_level": self.security_level,
        }


@dataclass(frozen=True)
class KeyPair:
    """Ephemeral key pair for one requester session.

    Both fields are opaque backend handles. The secret key lives exactly as
    long as the session and is kept out of repr() so it cannot end up in logs.
    """

    public_key: Any = field(repr=False)
    secret_key: Any = field(repr=False)


@dataclass(frozen=True)
class Plaintext:
    """Batched plaintext: one residue in [0, T) per slot."""

    slots: SlotArray
    modulus: int

    def __len__(self) -> int:
        return len(self.slots)


class HomomorphicBackend(ABC):
    """Abstract batched homomorphic encryption backend.

    This is the only cryptographic surface the matching core uses.
    To add a new library, implement this interface and register it in
    ``oblivious_matching.core.backends.get_backend``.
    """

    @property
    @abstractmethod
    def scheme(self) -> HEScheme:
        """The scheme this backend implements."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this backend."""
        ...

    @abstractmethod
    def setup(self, params: BatchParameters) -> KeyPair:
        """Create a context for the parameters and generate a fresh key pair.

        Raises:
            ConfigurationError: If the parameters are rejected.
        """
        ...

    @abstractmethod
    def encode(self, params: BatchParameters, slots: SlotArray) -> Plaintext:
        """Encode a slot vector (residues in [0, T)) into a plaintext."""
        ...

    @abstractmethod
    def decode(self, plaintext: Plaintext) -> SlotArray:
        """Decode a plaintext back into residues in [0, T)."""
        ...

    @abstractmethod
    def encrypt(self, plaintext: Plaintext, key: Any) -> Any:
        """Encrypt a plaintext under a public or secret key handle."""
        ...

    @abstractmethod
    def decrypt(self, ciphertext: Any, secret_key: Any) -> Plaintext:
        """Decrypt a ciphertext with the paired secret key."""
        ...

    @abstractmethod
    def negate(self, ciphertext: Any) -> Any:
        """Homomorphic negation."""
        ...

    @abstractmethod
    def add(self, left: Any, right: Any) -> Any:
        """Homomorphic slot-wise addition."""
        ...

    @abstractmethod
    def multiply(self, left: Any, right: Any) -> Any:
        """Homomorphic slot-wise ciphertext-ciphertext multiplication."""
        ...

    @abstractmethod
    def serialize_ciphertext(self, ciphertext: Any) -> bytes:
        """Serialize a ciphertext to bytes."""
        ...

    @abstractmethod
    def load_ciphertext(self, key: Any, data: bytes) -> Any:
        """Load a serialized ciphertext against a key handle."""
        ...


def check_residues(params: BatchParameters, slots: SlotArray) -> SlotArray:
    """Validate a slot vector against N and T, returning it as int64.

    Shared by backends in encode().
    """
    arr = np.asarray(slots, dtype=np.int64)
    if arr.ndim != 1:
        raise ValueError(f"Slot vector must be 1-D, got shape {arr.shape}")
    if len(arr) > params.slot_count:
        raise ValueError(
            f"Slot vector has {len(arr)} entries, only {params.slot_count} slots available"
        )
    if len(arr) and (arr.min() < 0 or arr.max() >= params.plaintext_modulus):
        raise ValueError(f"Slot residues must lie in [0, {params.plaintext_modulus})")
    if len(arr) < params.slot_count:
        arr = np.pad(arr, (0, params.slot_count - len(arr)))
    return arr
