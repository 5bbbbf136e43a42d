"""Exception hierarchy for the matching core."""

from __future__ import annotations


class MatchingError(Exception):
    """Base class for matching failures that abort a round."""


class ConfigurationError(MatchingError, ValueError):
    """Invalid batching/security parameters. Never retried."""


class CapabilityError(MatchingError, RuntimeError):
    """An encode/encrypt/decrypt or homomorphic operation failed."""
