"""Oblivious Ride Matching Benchmarks.

Measures, per driver-pool size:
- Setup (key generation) time
- Rider encryption time
- Driver generation + encryption time
- Homomorphic distance evaluation time
- Decrypt-and-select time
- Consistency error rate

Outputs:
- Console summary
- bench/results/benchmark_results.json
- bench/results/benchmark_results.md
"""

from __future__ import annotations

import argparse
import json
import platform
import time
from dataclasses import asdict, dataclass
from pathlib import Path

import numpy as np

from oblivious_matching.config import settings
from oblivious_matching.core.backends import BACKEND_NAMES, get_backend
from oblivious_matching.protocol import run_matching_round

STAGES = (
    "setup",
    "requester_encryption",
    "candidate_generation",
    "evaluation",
    "selection",
    "total",
)


@dataclass
class BenchmarkResult:
    """Timings for one pool size."""

    drivers: int
    iterations: int
    mean_time_ms: dict[str, float]
    std_time_ms: dict[str, float]
    error_rate: float


@dataclass
class BenchmarkSummary:
    """Summary of all benchmark results."""

    timestamp: str
    platform: str
    python_version: str
    backend: str
    slot_count: int
    plaintext_modulus: int
    results: list[BenchmarkResult]


def run_benchmarks(
    backend_name: str,
    pool_sizes: list[int],
    num_iterations: int = 3,
    max_workers: int = 1,
) -> BenchmarkSummary:
    """Run full matching rounds for each pool size.

    Args:
        backend_name: Homomorphic backend to use.
        pool_sizes: Driver counts to benchmark.
        num_iterations: Rounds per pool size.
        max_workers: Threads for driver encryption.

    Returns:
        BenchmarkSummary with all results.
    """
    print("=" * 60)
    print("Oblivious Ride Matching Benchmark")
    print("=" * 60)

    backend = get_backend(backend_name)
    params = settings.batch_parameters()
    results: list[BenchmarkResult] = []

    for n, drivers in enumerate(pool_sizes, start=1):
        print(f"\n[{n}/{len(pool_sizes)}] {drivers} drivers...")
        samples: dict[str, list[float]] = {stage: [] for stage in STAGES}
        errors = 0
        for i in range(num_iterations):
            report = run_matching_round(
                requester_id="BenchRider",
                candidate_count=drivers,
                params=params,
                backend=backend,
                seed=i,
                max_workers=max_workers,
            )
            for stage in STAGES:
                samples[stage].append(report.timings_ms.get(stage, 0.0))
            errors += report.result.error_count

        result = BenchmarkResult(
            drivers=drivers,
            iterations=num_iterations,
            mean_time_ms={s: float(np.mean(v)) for s, v in samples.items()},
            std_time_ms={s: float(np.std(v)) for s, v in samples.items()},
            error_rate=errors / (drivers * num_iterations) if drivers else 0.0,
        )
        results.append(result)
        print(
            f"   Total: {result.mean_time_ms['total']:.2f}ms ± {result.std_time_ms['total']:.2f}ms"
        )
        print(f"   Evaluation: {result.mean_time_ms['evaluation']:.2f}ms")
        print(f"   Error rate: {100 * result.error_rate:.2f}%")

    return BenchmarkSummary(
        timestamp=time.strftime("%Y-%m-%d %H:%M:%S"),
        platform=platform.platform(),
        python_version=platform.python_version(),
        backend=backend.name,
        slot_count=params.slot_count,
        plaintext_modulus=params.plaintext_modulus,
        results=results,
    )


def save_results(summary: BenchmarkSummary, output_dir: Path) -> None:
    """Save benchmark results to files."""
    output_dir.mkdir(parents=True, exist_ok=True)

    json_path = output_dir / "benchmark_results.json"
    with open(json_path, "w") as f:
        json.dump(asdict(summary), f, indent=2)
    print(f"\nSaved JSON results to: {json_path}")

    md_path = output_dir / "benchmark_results.md"
    with open(md_path, "w") as f:
        f.write("# Oblivious Ride Matching Benchmark Results\n\n")
        f.write(f"**Timestamp**: {summary.timestamp}\n")
        f.write(f"**Platform**: {summary.platform}\n")
        f.write(f"**Python**: {summary.python_version}\n")
        f.write(f"**Backend**: {summary.backend}\n")
        f.write(f"**Slots (N)**: {summary.slot_count}\n")
        f.write(f"**Plaintext modulus (T)**: {summary.plaintext_modulus}\n\n")

        f.write("## Results (mean ms)\n\n")
        f.write("| Drivers | " + " | ".join(STAGES) + " | Errors |\n")
        f.write("|---------|" + "|".join("---" for _ in STAGES) + "|--------|\n")
        for r in summary.results:
            cells = " | ".join(f"{r.mean_time_ms[s]:.2f}" for s in STAGES)
            f.write(f"| {r.drivers} | {cells} | {100 * r.error_rate:.2f}% |\n")

    print(f"Saved Markdown results to: {md_path}")


def main() -> None:
    """Run benchmarks and save results."""
    parser = argparse.ArgumentParser(description="Benchmark oblivious ride matching")
    parser.add_argument("--backend", choices=BACKEND_NAMES, default=settings.BACKEND)
    parser.add_argument("--drivers", type=int, nargs="+", default=[16, 256, 2048, 4096])
    parser.add_argument("--iterations", type=int, default=3)
    parser.add_argument("--workers", type=int, default=1)
    args = parser.parse_args()

    summary = run_benchmarks(args.backend, args.drivers, args.iterations, args.workers)

    output_dir = Path(__file__).parent / "results"
    save_results(summary, output_dir)

    print("\n" + "=" * 60)
    print("Benchmark complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
