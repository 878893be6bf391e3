"""Near-zero coverage relation between candidate velocities and time units.

A runner with integer velocity v on a track of length `period` sits at
position (t*v mod period)/period at time t/period. It is "near zero" when that
position is within 1/runner_count of the start on either side. The test is
done on integers only so nothing drifts at large scale.

Each velocity gets one bit-vector (a Python int) with bit t-1 set when time t
is covered, for t in 1..half_period.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

# Table construction and the velocity pass are both quadratic in half_period.
DEFAULT_MAX_HALF_PERIOD = 4_000


class ConfigurationError(ValueError):
    """Raised when (k, prime) cannot describe a valid run."""


@dataclass(frozen=True)
class RunnerParams:
    k: int
    prime: int

    @property
    def runner_count(self) -> int:
        return self.k + 1

    @property
    def period(self) -> int:
        return self.runner_count * self.prime

    @property
    def half_period(self) -> int:
        return self.period // 2


def is_prime(n: int) -> bool:
    if n < 2:
        return False
    for d in range(2, math.isqrt(n) + 1):
        if n % d == 0:
            return False
    return True


def validate_params(
    k: int, prime: int, max_half_period: int = DEFAULT_MAX_HALF_PERIOD
) -> RunnerParams:
    """Check parameters up-front and return the frozen record."""
    if k < 1:
        raise ConfigurationError(f"k must be at least 1, got {k}")
    if not is_prime(prime):
        raise ConfigurationError(f"{prime} is not a prime")
    params = RunnerParams(k=k, prime=prime)
    if params.half_period > max_half_period:
        raise ConfigurationError(
            f"half period {params.half_period} exceeds the configured cap {max_half_period}"
        )
    return params


def near_zero(velocity: int, time: int, params: RunnerParams) -> bool:
    period = params.period
    n = params.runner_count
    residue = (time * velocity) % period
    return residue * n < period or (period - residue) * n < period


def candidate_velocities(params: RunnerParams) -> List[int]:
    """Velocities 1..half_period that are not multiples of the prime, ascending."""
    return [v for v in range(1, params.half_period + 1) if v % params.prime != 0]


@dataclass(frozen=True)
class CoverageTable:
    params: RunnerParams
    rows: Tuple[int, ...]  # indexed by velocity 0..half_period

    @property
    def times(self) -> range:
        return range(1, self.params.half_period + 1)

    def row(self, velocity: int) -> int:
        return self.rows[velocity]

    def covers(self, velocity: int, time: int) -> bool:
        return bool((self.rows[velocity] >> (time - 1)) & 1)

    def covered_times(self, velocity: int) -> List[int]:
        return [t for t in self.times if self.covers(velocity, t)]


def build_coverage_table(params: RunnerParams) -> CoverageTable:
    period = params.period
    n = params.runner_count
    half = params.half_period
    rows: List[int] = []
    for v in range(half + 1):
        bits = 0
        residue = 0
        for t in range(1, half + 1):
            # Running residue of t*v mod period, same value near_zero computes.
            residue = (residue + v) % period
            if residue * n < period or (period - residue) * n < period:
                bits |= 1 << (t - 1)
        rows.append(bits)
    return CoverageTable(params=params, rows=tuple(rows))
