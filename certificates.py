"""Certificate helpers: independent verification of a selection and JSON output."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from coverage_table import RunnerParams, near_zero
from dominance import prime_divisors


def verify_selection(params: RunnerParams, velocities: Sequence[int]) -> List[str]:
    """Check a decoded selection against the problem itself, not the formula.

    Returns a list of human-readable problems; an empty list means the
    selection is a valid cover.
    """
    problems: List[str] = []
    chosen = list(velocities)
    if len(set(chosen)) != len(chosen):
        problems.append("duplicate velocities")
    if len(set(chosen)) != params.k:
        problems.append(f"expected {params.k} velocities, got {len(set(chosen))}")
    for v in chosen:
        if not 1 <= v <= params.half_period:
            problems.append(f"velocity {v} outside 1..{params.half_period}")
        elif v % params.prime == 0:
            problems.append(f"velocity {v} is a multiple of {params.prime}")

    uncovered = [
        t
        for t in range(1, params.half_period + 1)
        if not any(near_zero(v, t, params) for v in chosen)
    ]
    if uncovered:
        problems.append(f"{len(uncovered)} uncovered times (first t={uncovered[0]})")

    limit = max(0, params.k - 2)
    for q in prime_divisors(params.runner_count):
        count = sum(1 for v in chosen if v % q == 0)
        if count > limit:
            problems.append(f"{count} velocities divisible by {q} (limit {limit})")
    return problems


def is_valid_selection(params: RunnerParams, velocities: Sequence[int]) -> bool:
    return not verify_selection(params, velocities)


def save_certificate(
    params: RunnerParams,
    verdict: Optional[str],
    velocities: Sequence[int],
    path: Path,
    runtime: Optional[float],
    stats: Dict[str, int],
    verify_fn: Callable[[RunnerParams, Sequence[int]], bool] = is_valid_selection,
    backend: Optional[str] = None,
    cnf_path: Optional[Path] = None,
) -> None:
    """Write a JSON certificate with verdict, selection, verification, and reduction stats."""
    data = {
        "k": params.k,
        "prime": params.prime,
        "runner_count": params.runner_count,
        "period": params.period,
        "verdict": verdict,
        "velocities": list(velocities),
        "verified_cover": verify_fn(params, velocities) if velocities else None,
        "backend": backend,
        "runtime_seconds": runtime,
        "stats": dict(stats),
        "cnf": str(cnf_path) if cnf_path else None,
    }
    path.write_text(json.dumps(data, indent=2))
