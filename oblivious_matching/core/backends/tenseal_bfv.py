"""TenSEAL BFV Backend Implementation.

This module implements the homomorphic backend using TenSEAL with the BFV
scheme, which supports exact modular arithmetic on batched integer vectors.

BFV is the right fit for ride matching because:
- Coordinates and squared distances are small integers
- Batching packs every candidate's slot pair into one ciphertext
- One ciphertext multiplication squares all differences at once
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import tenseal as ts

from oblivious_matching.core.backend import (
    BatchParameters,
    HEScheme,
    HomomorphicBackend,
    KeyPair,
    Plaintext,
    SlotArray,
    check_residues,
)
from oblivious_matching.core.errors import CapabilityError, ConfigurationError

logger = logging.getLogger(__name__)

_TENSEAL_ERRORS = (ValueError, RuntimeError, TypeError)


@dataclass(frozen=True)
class TenSEALKey:
    """Key handle: a TenSEAL context plus the parameters it was built for.

    The public handle holds a public copy of the context; the secret handle
    holds the full context (secret key embedded).
    """

    context: ts.Context = field(repr=False)
    params: BatchParameters
    is_secret: bool


class TenSEALBFVBackend(HomomorphicBackend):
    """TenSEAL BFV backend for exact arithmetic on batched integers.

    This backend supports:
    - Public-key and secret-context encryption of slot vectors
    - Encrypted negation and addition
    - Ciphertext-ciphertext multiplication (relinearized by TenSEAL)

    Note: TenSEAL contexts always encrypt asymmetrically. A secret-key
    handle still produces a ciphertext that decrypts under the paired secret
    key, which is all the matching pipeline relies on.
    """

    @property
    def scheme(self) -> HEScheme:
        return HEScheme.BFV

    @property
    def name(self) -> str:
        return "TenSEAL-BFV"

    def setup(self, params: BatchParameters) -> KeyPair:
        """Set up a BFV context and split it into public/secret handles.

        Args:
            params: Batching parameters.

        Returns:
            KeyPair of TenSEALKey handles.
        """
        params.validate()
        if params.security_level != 128:
            raise ConfigurationError(
                f"TenSEAL BFV backend supports 128-bit security only, got {params.security_level}"
            )

        try:
            context = ts.context(
                ts.SCHEME_TYPE.BFV,
                poly_modulus_degree=params.slot_count,
                plain_modulus=params.plaintext_modulus,
                coeff_mod_bit_sizes=list(params.coeff_mod_bit_sizes or []),
            )
        except _TENSEAL_ERRORS as e:
            raise ConfigurationError(f"TenSEAL rejected BFV parameters: {e}") from e

        public_context = context.copy()
        public_context.make_context_public()

        logger.debug(
            f"BFV context ready: N={params.slot_count}, T={params.plaintext_modulus}"
        )
        return KeyPair(
            public_key=TenSEALKey(context=public_context, params=params, is_secret=False),
            secret_key=TenSEALKey(context=context, params=params, is_secret=True),
        )

    def encode(self, params: BatchParameters, slots: SlotArray) -> Plaintext:
        """Validate and pack residues.

        TenSEAL encodes at encryption time, so the plaintext here is the
        checked residue vector.
        """
        return Plaintext(slots=check_residues(params, slots), modulus=params.plaintext_modulus)

    def decode(self, plaintext: Plaintext) -> SlotArray:
        return np.mod(plaintext.slots, plaintext.modulus).astype(np.int64)

    def encrypt(self, plaintext: Plaintext, key: Any) -> ts.BFVVector:
        """Encrypt a plaintext with the context behind the key handle.

        Residues are centred into (-T/2, T/2] because the SEAL batch encoder
        takes signed values.
        """
        key = self._check_key(key)
        t = plaintext.modulus
        centred = np.where(plaintext.slots > t // 2, plaintext.slots - t, plaintext.slots)
        try:
            return ts.bfv_vector(key.context, centred.tolist())
        except _TENSEAL_ERRORS as e:
            raise CapabilityError(f"BFV encryption failed: {e}") from e

    def decrypt(self, ciphertext: Any, secret_key: Any) -> Plaintext:
        """Decrypt with the secret key held in the full context."""
        key = self._check_key(secret_key)
        if not key.is_secret:
            raise CapabilityError("Cannot decrypt without the secret key")
        ciphertext = self._check_ciphertext(ciphertext)
        try:
            values = ciphertext.decrypt(key.context.secret_key())
        except _TENSEAL_ERRORS as e:
            raise CapabilityError(f"BFV decryption failed: {e}") from e
        t = key.params.plaintext_modulus
        return Plaintext(slots=np.mod(np.asarray(values, dtype=np.int64), t), modulus=t)

    def negate(self, ciphertext: Any) -> ts.BFVVector:
        ciphertext = self._check_ciphertext(ciphertext)
        try:
            # BFVVector.neg() has no C++ binding; scale by -1 instead.
            return ciphertext * -1
        except _TENSEAL_ERRORS as e:
            raise CapabilityError(f"BFV negation failed: {e}") from e

    def add(self, left: Any, right: Any) -> ts.BFVVector:
        left = self._check_ciphertext(left)
        right = self._check_ciphertext(right)
        try:
            return left + right
        except _TENSEAL_ERRORS as e:
            raise CapabilityError(f"BFV addition failed: {e}") from e

    def multiply(self, left: Any, right: Any) -> ts.BFVVector:
        """Multiply two ciphertexts.

        Note: This consumes the one multiplicative level the pipeline needs.
        """
        left = self._check_ciphertext(left)
        right = self._check_ciphertext(right)
        try:
            return left * right
        except _TENSEAL_ERRORS as e:
            raise CapabilityError(f"BFV multiplication failed: {e}") from e

    def serialize_ciphertext(self, ciphertext: Any) -> bytes:
        return self._check_ciphertext(ciphertext).serialize()

    def load_ciphertext(self, key: Any, data: bytes) -> ts.BFVVector:
        key = self._check_key(key)
        try:
            return ts.bfv_vector_from(key.context, data)
        except _TENSEAL_ERRORS as e:
            raise CapabilityError(f"Could not load BFV ciphertext: {e}") from e

    @staticmethod
    def _check_key(key: Any) -> TenSEALKey:
        if not isinstance(key, TenSEALKey):
            raise TypeError(f"Expected TenSEALKey, got {type(key)}")
        return key

    @staticmethod
    def _check_ciphertext(ciphertext: Any) -> ts.BFVVector:
        if not isinstance(ciphertext, ts.BFVVector):
            raise TypeError(f"Expected BFVVector, got {type(ciphertext)}")
        return ciphertext
