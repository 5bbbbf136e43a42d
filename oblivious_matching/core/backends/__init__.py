"""Homomorphic backend implementations."""

from __future__ import annotations

from oblivious_matching.core.backend import HomomorphicBackend
from oblivious_matching.core.errors import ConfigurationError

BACKEND_NAMES = ("tenseal", "plaintext")


def get_backend(name: str, **kwargs) -> HomomorphicBackend:
    """Instantiate a backend by name.

    TenSEAL is imported lazily so the plaintext backend works without it.
    """
    key = name.lower()
    if key == "tenseal":
        from oblivious_matching.core.backends.tenseal_bfv import TenSEALBFVBackend

        return TenSEALBFVBackend(**kwargs)
    if key == "plaintext":
        from oblivious_matching.core.backends.plaintext import PlaintextBackend

        return PlaintextBackend(**kwargs)
    raise ConfigurationError(f"Unknown backend: {name} (expected one of {BACKEND_NAMES})")
