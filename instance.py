"""Assemble the cover-search CNF: coverage, exact count, and divisibility bounds.

Pipeline: coverage table -> dominance reduction -> variables and clauses ->
DIMACS. The formula itself is the only thing written to the formula stream;
the variable-to-velocity mapping and counts are produced separately by
`format_diagnostics`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from cardinality import at_most, exactly
from cnf import CNF
from coverage_table import (
    CoverageTable,
    RunnerParams,
    build_coverage_table,
    candidate_velocities,
)
from dominance import ReductionResult, prime_divisors, reduce_instance


@dataclass
class DivisorBound:
    divisor: int
    limit: int
    size: int  # number of decision variables divisible by `divisor`


@dataclass
class Instance:
    params: RunnerParams
    cnf: CNF
    var_to_velocity: Dict[int, int]
    reduction: ReductionResult
    divisor_bounds: List[DivisorBound]
    uncoverable_times: List[int]
    contradiction_var: Optional[int]
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def trivially_unsat(self) -> bool:
        return self.contradiction_var is not None


def assemble(
    params: RunnerParams,
    reduction: ReductionResult,
    divisors: Optional[Sequence[int]] = None,
) -> Instance:
    """Turn a reduction into a CNF.

    `divisors` defaults to the prime divisors of runner_count and must equal the
    tuple the reduction was computed with; the velocity pass is only sound for
    the bounds that are actually emitted here.
    """
    k = params.k
    divisor_tuple = (
        tuple(divisors) if divisors is not None else prime_divisors(params.runner_count)
    )
    if divisor_tuple != reduction.divisors:
        raise ValueError(
            f"reduction used divisors {list(reduction.divisors)}, "
            f"assembler got {list(divisor_tuple)}"
        )

    cnf = CNF()
    survivors = reduction.survivors
    x_vars = [cnf.new_var() for _ in survivors]
    var_to_velocity = {var: v for var, v in zip(x_vars, survivors)}

    contradiction: Optional[int] = None
    uncoverable: List[int] = []
    for t in reduction.essential_times:
        cover = reduction.time_covers[t]
        clause = [x_vars[idx] for idx in range(len(survivors)) if (cover >> idx) & 1]
        if clause:
            cnf.add_clause(clause)
            continue
        uncoverable.append(t)
        if contradiction is None:
            contradiction = cnf.add_contradiction()

    if k <= len(x_vars):
        exactly(cnf, x_vars, k)
    elif contradiction is None:
        # Not enough survivors to pick k distinct velocities.
        contradiction = cnf.add_contradiction()

    limit = max(0, k - 2)
    bounds: List[DivisorBound] = []
    for q in divisor_tuple:
        lits = [var for var, v in zip(x_vars, survivors) if v % q == 0]
        if not lits:
            continue
        at_most(cnf, lits, limit)
        bounds.append(DivisorBound(divisor=q, limit=limit, size=len(lits)))

    return Instance(
        params=params,
        cnf=cnf,
        var_to_velocity=var_to_velocity,
        reduction=reduction,
        divisor_bounds=bounds,
        uncoverable_times=uncoverable,
        contradiction_var=contradiction,
    )


def build_instance(
    params: RunnerParams,
    use_velocity_pass: bool = True,
    use_time_pass: bool = True,
    table: Optional[CoverageTable] = None,
) -> Instance:
    """Run the whole pipeline for one (k, prime) case and record stage timings."""
    timings: Dict[str, float] = {}

    t0 = time.perf_counter()
    if table is None:
        table = build_coverage_table(params)
    timings["coverage"] = time.perf_counter() - t0

    divisors = prime_divisors(params.runner_count)
    t0 = time.perf_counter()
    reduction = reduce_instance(
        table,
        candidate_velocities(params),
        divisors,
        params.k,
        use_velocity_pass=use_velocity_pass,
        use_time_pass=use_time_pass,
    )
    timings["reduction"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    inst = assemble(params, reduction, divisors)
    timings["assembly"] = time.perf_counter() - t0
    inst.timings = timings
    return inst


def decode_model(instance: Instance, model: Sequence[int]) -> List[int]:
    """Velocities whose decision variable is true in `model`, ascending."""
    chosen = [
        instance.var_to_velocity[lit] for lit in model if lit in instance.var_to_velocity
    ]
    return sorted(chosen)


def format_diagnostics(instance: Instance) -> List[str]:
    """Side-channel lines: header, variable mapping, cardinality groups, counts, timings."""
    p = instance.params
    red = instance.reduction
    lines = [
        f"k = {p.k}, n = {p.runner_count}, prime = {p.prime}, "
        f"Q = {p.period}, maxM = {p.half_period}",
        f"c Candidates (not divisible by prime): {len(red.candidates)}",
        f"c Candidates after dominance: {len(red.survivors)}",
        f"c Essential times after dominance: {len(red.essential_times)} of {len(red.time_covers)}",
    ]
    if not red.velocity_pass_applied and red.candidates:
        lines.append("c Velocity dominance skipped")
    if instance.uncoverable_times:
        lines.append(
            f"c Uncoverable positions: {len(instance.uncoverable_times)} "
            f"(first t = {instance.uncoverable_times[0]}); instance is trivially UNSAT"
        )
    elif instance.trivially_unsat:
        lines.append(
            f"c Fewer than {p.k} candidates survive; instance is trivially UNSAT"
        )
    for bound in instance.divisor_bounds:
        lines.append(
            f"c GCD constraint: at most {bound.limit} of {bound.size} "
            f"velocities divisible by {bound.divisor}"
        )
    lines.append("c Variable-to-velocity mapping:")
    for var, v in instance.var_to_velocity.items():
        lines.append(f"c var {var} <-> v = {v}")
    lines.append(
        f"c Variables: {instance.cnf.num_vars} | Clauses: {instance.cnf.num_clauses}"
    )
    if instance.timings:
        lines.append(
            "c Timings: "
            + " | ".join(f"{stage}={secs:.3f}s" for stage, secs in instance.timings.items())
        )
    return lines


def reduction_stats(instance: Instance) -> Dict[str, int]:
    red = instance.reduction
    return {
        "candidates": len(red.candidates),
        "survivors": len(red.survivors),
        "times": len(red.time_covers),
        "essential_times": len(red.essential_times),
        "num_vars": instance.cnf.num_vars,
        "num_clauses": instance.cnf.num_clauses,
    }
