#!/usr/bin/env python3
"""Oblivious Ride Matching Demo.

This demo runs the complete matching pipeline locally:
1. Rider generates an ephemeral key pair and encrypts its position
2. Nearby drivers encrypt their positions under the rider's public key
3. The service homomorphically computes every squared distance at once
4. Rider decrypts and picks the closest driver
5. The ride is recorded in the service ledger

Positions are synthetic: drivers are placed uniformly at random on a
floor(sqrt(T)) x floor(sqrt(T)) grid.
"""

from __future__ import annotations

import argparse
import logging

import numpy as np

from oblivious_matching.config import settings
from oblivious_matching.core.backends import BACKEND_NAMES, get_backend
from oblivious_matching.ledger import ServiceLedger, record_ride
from oblivious_matching.protocol import run_matching_round


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Oblivious ride matching demo")
    parser.add_argument("--rider", default="Rider787", help="Rider identifier")
    parser.add_argument(
        "--drivers",
        type=int,
        default=settings.DEFAULT_CANDIDATE_COUNT,
        help="Number of nearby drivers",
    )
    parser.add_argument("--backend", choices=BACKEND_NAMES, default=settings.BACKEND)
    parser.add_argument("--seed", type=int, default=None, help="Seed to reproduce the round")
    parser.add_argument("--workers", type=int, default=settings.MAX_WORKERS)
    parser.add_argument("--no-verify", action="store_true", help="Skip the plaintext check")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args()


def main() -> None:
    """Run the ride matching demo."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    params = settings.batch_parameters()
    backend = get_backend(args.backend)

    print("=" * 70)
    print("OBLIVIOUS RIDE MATCHING DEMO")
    print("Homomorphic computations on batched integers")
    print("=" * 70)
    print(f"\nBackend: {backend.name}")
    print(f"Parameters: N={params.slot_count}, T={params.plaintext_modulus}")
    print(f"Grid: {params.max_coordinate} x {params.max_coordinate}, drivers: {args.drivers}")

    report = run_matching_round(
        requester_id=args.rider,
        candidate_count=args.drivers,
        params=params,
        backend=backend,
        seed=args.seed,
        verify=not args.no_verify,
        max_workers=args.workers,
    )

    print("\nTiming:")
    for stage, ms in report.timings_ms.items():
        print(f"   {stage:<22} {ms:10.2f}ms")

    result = report.result
    print(f"\nFinished with {100 * report.error_rate:.2f}% errors")
    if not result.matched:
        print("No driver found for this round.")
        return

    print(
        f"Closest driver to {args.rider} is {result.winning_id} "
        f"(distance {int(np.sqrt(result.min_distance))} units)"
    )

    ledger = ServiceLedger()
    ledger.init_ledger(report.finished_at.isoformat())
    record = record_ride(
        ledger,
        rider_id=args.rider,
        driver_id=result.winning_id,
        timestamp=report.finished_at.isoformat(),
        rng=np.random.default_rng(args.seed),
    )
    print(f"\nService recorded: {record.service_id} ({record.fare})")
    print(f"Ledger now holds {len(ledger)} services")


if __name__ == "__main__":
    main()
