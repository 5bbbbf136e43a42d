"""Core matching protocol components."""

from oblivious_matching.core.backend import BatchParameters, HomomorphicBackend, KeyPair
from oblivious_matching.core.backends import get_backend
from oblivious_matching.core.candidates import generate_candidates
from oblivious_matching.core.errors import CapabilityError, ConfigurationError, MatchingError
from oblivious_matching.core.evaluator import evaluate
from oblivious_matching.core.requester import RequesterContext
from oblivious_matching.core.selector import PlaintextConsistencyCheck, select
from oblivious_matching.core.types import Candidate, Coordinate, MatchResult

__all__ = [
    "BatchParameters",
    "HomomorphicBackend",
    "KeyPair",
    "get_backend",
    "generate_candidates",
    "CapabilityError",
    "ConfigurationError",
    "MatchingError",
    "evaluate",
    "RequesterContext",
    "PlaintextConsistencyCheck",
    "select",
    "Candidate",
    "Coordinate",
    "MatchResult",
]
