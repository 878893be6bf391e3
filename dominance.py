"""Dominance-based reductions of the candidate and time sets.

Both passes are satisfiability preserving:

- Velocity pass: b is dropped when a surviving a covers every time b covers and
  is no worse under any divisibility bound (a % q == 0 implies b % q == 0 for
  every prime q dividing runner_count). Any selection using b can swap in a's
  final surviving dominator; if two selected velocities collapse onto the same
  survivor, the selection is refilled from survivors divisible by none of the
  q, which never touches a bounded count. The pass is abandoned when fewer
  than k such unconstrained survivors remain.
- Time pass: the clause for t2 is implied by the clause for t1 whenever every
  survivor covering t1 also covers t2, so t2 is dropped.

Removed items are never used as dominators, so equal profiles keep exactly one
representative.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from coverage_table import CoverageTable


@dataclass
class ReductionResult:
    """Output of both reduction passes."""

    candidates: List[int]
    survivors: List[int]
    dominated_by: Dict[int, int]
    time_covers: Dict[int, int]  # time -> bit-vector over survivor indices
    essential_times: List[int]
    implied_by: Dict[int, int]
    divisors: Tuple[int, ...]
    velocity_pass_applied: bool = True
    by_rule: Dict[str, int] = field(default_factory=dict)


def prime_divisors(n: int) -> Tuple[int, ...]:
    """Distinct prime factors of n by trial division up to √n."""
    out: List[int] = []
    rest = n
    d = 2
    while d <= math.isqrt(rest):
        if rest % d == 0:
            out.append(d)
            while rest % d == 0:
                rest //= d
        d += 1
    if rest > 1:
        out.append(rest)
    return tuple(out)


def _divisor_mask(v: int, divisors: Sequence[int]) -> int:
    mask = 0
    for idx, q in enumerate(divisors):
        if v % q == 0:
            mask |= 1 << idx
    return mask


def dominates(table: CoverageTable, a: int, b: int, divisors: Sequence[int]) -> bool:
    """True when velocity a can always stand in for velocity b."""
    if table.row(b) & ~table.row(a):
        return False
    return _divisor_mask(a, divisors) & ~_divisor_mask(b, divisors) == 0


def reduce_velocities(
    table: CoverageTable,
    candidates: Sequence[int],
    divisors: Sequence[int],
    k: int,
) -> Tuple[List[int], Dict[int, int], bool]:
    """Return (survivors, dominated_by, applied), survivors in enumeration order."""
    rows = [table.row(v) for v in candidates]
    masks = [_divisor_mask(v, divisors) for v in candidates]
    removed = [False] * len(candidates)
    dominated_by: Dict[int, int] = {}
    for j, b in enumerate(candidates):
        row_b = rows[j]
        mask_b = masks[j]
        for i, a in enumerate(candidates):
            if i == j or removed[i]:
                continue
            if row_b & ~rows[i] == 0 and masks[i] & ~mask_b == 0:
                removed[j] = True
                dominated_by[b] = a
                break

    survivors = [v for v, gone in zip(candidates, removed) if not gone]
    free = sum(1 for v in survivors if _divisor_mask(v, divisors) == 0)
    if dominated_by and free < k:
        return list(candidates), {}, False
    return survivors, dominated_by, True


def build_time_covers(table: CoverageTable, survivors: Sequence[int]) -> Dict[int, int]:
    """Transpose the coverage rows into one survivor-index bit-vector per time."""
    covers: Dict[int, int] = {t: 0 for t in table.times}
    for idx, v in enumerate(survivors):
        row = table.row(v)
        bit = 1 << idx
        for t in table.times:
            if (row >> (t - 1)) & 1:
                covers[t] |= bit
    return covers


def reduce_times(time_covers: Dict[int, int]) -> Tuple[List[int], Dict[int, int]]:
    """Return (essential_times, implied_by)."""
    times = list(time_covers)
    implied = [False] * len(times)
    implied_by: Dict[int, int] = {}
    for j, t2 in enumerate(times):
        cover2 = time_covers[t2]
        for i, t1 in enumerate(times):
            if i == j or implied[i]:
                continue
            if time_covers[t1] & ~cover2 == 0:
                implied[j] = True
                implied_by[t2] = t1
                break
    essential = [t for t, gone in zip(times, implied) if not gone]
    return essential, implied_by


def reduce_instance(
    table: CoverageTable,
    candidates: Sequence[int],
    divisors: Sequence[int],
    k: int,
    use_velocity_pass: bool = True,
    use_time_pass: bool = True,
) -> ReductionResult:
    """Run both passes (each can be switched off) and bundle the result."""
    if use_velocity_pass:
        survivors, dominated_by, applied = reduce_velocities(
            table, candidates, divisors, k
        )
    else:
        survivors, dominated_by, applied = list(candidates), {}, False

    time_covers = build_time_covers(table, survivors)
    if use_time_pass:
        essential, implied_by = reduce_times(time_covers)
    else:
        essential, implied_by = list(time_covers), {}

    return ReductionResult(
        candidates=list(candidates),
        survivors=survivors,
        dominated_by=dominated_by,
        time_covers=time_covers,
        essential_times=essential,
        implied_by=implied_by,
        divisors=tuple(divisors),
        velocity_pass_applied=applied,
        by_rule={
            "dominated_velocities": len(dominated_by),
            "implied_times": len(implied_by),
        },
    )


def format_reduction_summary(reduction: ReductionResult, k: int, prime: int) -> str:
    """Human-friendly one-line summary of the reduction."""
    parts = [
        f"[reduction] k={k} prime={prime}",
        f"candidates={len(reduction.candidates)}",
        f"survivors={len(reduction.survivors)}",
        f"times={len(reduction.time_covers)}",
        f"essential_times={len(reduction.essential_times)}",
        f"divisors={list(reduction.divisors)}",
        f"by_rule={reduction.by_rule}",
    ]
    if not reduction.velocity_pass_applied:
        parts.append("velocity_pass=skipped")
    return " | ".join(parts)
