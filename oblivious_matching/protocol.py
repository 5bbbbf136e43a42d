"""One oblivious matching round, end to end.

    Setup -> Encrypt(requester) -> Generate+Encrypt(candidates)
          -> Evaluate -> Select

The round is all-or-nothing: any exception aborts it and no partial
report is produced. Nothing is persisted here; handing the winner to the
ledger is the caller's job.

The design follows the ORide protocol:

    A. Pham, I. Dacosta, G. Endignoux, J. Troncoso-Pastoriza,
    K. Huguenin, and J.-P. Hubaux. ORide: A Privacy-Preserving
    yet Accountable Ride-Hailing Service. USENIX Security 2017.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from oblivious_matching import observability
from oblivious_matching.core.backend import BatchParameters, HomomorphicBackend
from oblivious_matching.core.candidates import CandidateSource, generate_candidates
from oblivious_matching.core.errors import ConfigurationError
from oblivious_matching.core.evaluator import evaluate
from oblivious_matching.core.requester import RequesterContext
from oblivious_matching.core.selector import PlaintextConsistencyCheck, select
from oblivious_matching.core.types import Coordinate, MatchResult

logger = logging.getLogger(__name__)


@dataclass
class RoundReport:
    """Result of a completed round plus per-stage timings.

    Attributes:
        requester_id: Rider that requested the match.
        result: Selection outcome.
        candidate_count: Candidates that took part.
        timings_ms: Stage name -> wall time in milliseconds.
        finished_at: UTC timestamp when selection completed.
    """

    requester_id: str
    result: MatchResult
    candidate_count: int
    timings_ms: dict[str, float] = field(default_factory=dict)
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def error_rate(self) -> float:
        if self.candidate_count == 0:
            return 0.0
        return self.result.error_count / self.candidate_count


def run_matching_round(
    requester_id: str,
    candidate_count: int,
    params: BatchParameters,
    backend: HomomorphicBackend,
    seed: int | None = None,
    verify: bool = True,
    source: CandidateSource | None = None,
    requester_position: Coordinate | None = None,
    max_workers: int = 1,
) -> RoundReport:
    """Run one matching round.

    Args:
        requester_id: Rider identifier.
        candidate_count: Number of drivers to match against.
        params: Batching parameters; must fit 2 * candidate_count slots.
        backend: Homomorphic backend.
        seed: Seed for the round's generator.
        verify: Run the plaintext consistency check (simulation only).
        source: Candidate discovery; synthetic when None.
        requester_position: Pin the rider position instead of sampling it.
        max_workers: Threads for per-candidate encryption.

    Returns:
        RoundReport for the round.

    Raises:
        ConfigurationError: Parameters rejected or pool too large.
        CapabilityError: A homomorphic operation failed.
    """
    observability.increment_counter("rounds_total")
    timings: dict[str, float] = {}
    round_start = time.perf_counter()

    def _stage(name: str, started: float) -> None:
        timings[name] = (time.perf_counter() - started) * 1000
        logger.info(f"{name} time: {timings[name]:.2f}ms")

    try:
        with observability.trace_span("matching_round", {"requester": requester_id}):
            params.validate()
            if 2 * candidate_count > params.slot_count:
                raise ConfigurationError(
                    f"{candidate_count} candidates exceed the {params.max_candidates} "
                    f"slot pairs available with N={params.slot_count}"
                )

            start = time.perf_counter()
            requester = RequesterContext.create(requester_id, params, backend, seed=seed)
            if requester_position is not None:
                requester.fix_position(requester_position)
            _stage("setup", start)

            start = time.perf_counter()
            requester_ct = requester.encrypted_position(candidate_count)
            _stage("requester_encryption", start)

            start = time.perf_counter()
            candidates = generate_candidates(
                requester, candidate_count, source=source, max_workers=max_workers
            )
            _stage("candidate_generation", start)

            start = time.perf_counter()
            result_ct = evaluate(backend, requester_ct, candidates)
            _stage("evaluation", start)

            start = time.perf_counter()
            check = PlaintextConsistencyCheck(requester) if verify else None
            result = select(result_ct, candidates, requester, candidate_count, check=check)
            _stage("selection", start)
    except Exception:
        observability.increment_counter("rounds_failed_total")
        logger.exception(f"Matching round for {requester_id} aborted")
        raise

    timings["total"] = (time.perf_counter() - round_start) * 1000
    observability.increment_counter("consistency_errors_total", result.error_count)
    if not result.matched:
        observability.increment_counter("no_match_total")

    if candidate_count:
        logger.info(
            f"Round finished with {100 * result.error_count / candidate_count:.2f}% errors"
        )
    return RoundReport(
        requester_id=requester_id,
        result=result,
        candidate_count=candidate_count,
        timings_ms=timings,
    )
