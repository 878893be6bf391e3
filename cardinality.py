"""Sequential-counter cardinality constraints.

This is the standard encoding from:
  Carsten Sinz, "Towards an Optimal CNF Encoding of Boolean Cardinality Constraints", CP 2005.

The counter built here is functionally complete: every auxiliary s(i,j) is
forced to equal "at least j of the first i literals are true", in both
directions. That lets `exactly` reuse the same table for the lower bound with a
single unit clause instead of a second counter over the negated literals.
"""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

from cnf import CNF

Counter = Dict[Tuple[int, int], int]


def _sequential_counter(cnf: CNF, lits: Sequence[int], bound: int) -> Counter:
    """Allocate s(i,j) for i=1..n, j=1..min(i,bound) and tie them to the prefix counts.

    Returns a dict keyed by (i, j), 1-based as in the paper.
    """
    n = len(lits)
    s: Counter = {}

    # s(1,1) <-> x1
    s[1, 1] = cnf.new_var()
    cnf.add_clause([-lits[0], s[1, 1]])
    cnf.add_clause([-s[1, 1], lits[0]])

    for i in range(2, n + 1):
        xi = lits[i - 1]

        # s(i,1) <-> s(i-1,1) ∨ xi
        s[i, 1] = cnf.new_var()
        cnf.add_clause([-xi, s[i, 1]])
        cnf.add_clause([-s[i - 1, 1], s[i, 1]])
        cnf.add_clause([-s[i, 1], s[i - 1, 1], xi])

        for j in range(2, min(i, bound) + 1):
            s[i, j] = cnf.new_var()
            prev_same = s.get((i - 1, j))  # absent when j == i: treated as false
            prev_less = s[i - 1, j - 1]
            # s(i-1,j) ∨ (xi ∧ s(i-1,j-1)) -> s(i,j)
            if prev_same is not None:
                cnf.add_clause([-prev_same, s[i, j]])
            cnf.add_clause([-xi, -prev_less, s[i, j]])
            # s(i,j) -> s(i-1,j) ∨ xi  and  s(i,j) -> s(i-1,j) ∨ s(i-1,j-1)
            if prev_same is not None:
                cnf.add_clause([-s[i, j], prev_same, xi])
                cnf.add_clause([-s[i, j], prev_same, prev_less])
            else:
                cnf.add_clause([-s[i, j], xi])
                cnf.add_clause([-s[i, j], prev_less])
    return s


def _add_overflow_cutoff(cnf: CNF, lits: Sequence[int], s: Counter, bound: int) -> None:
    # (¬xi ∨ ¬s(i-1,bound)) whenever the prefix can already hold `bound` trues.
    for i in range(bound + 1, len(lits) + 1):
        cnf.add_clause([-lits[i - 1], -s[i - 1, bound]])


def at_most(cnf: CNF, lits: Sequence[int], bound: int) -> None:
    """Emit clauses so that at most `bound` of `lits` are true.

    No clauses when `lits` is empty or `bound >= len(lits)`; `bound == 0`
    forces every literal false. A negative bound is caller error.
    """
    if bound < 0:
        raise ValueError(f"at_most bound must be non-negative, got {bound}")
    n = len(lits)
    if n == 0 or bound >= n:
        return
    if bound == 0:
        for lit in lits:
            cnf.add_clause([-lit])
        return
    s = _sequential_counter(cnf, lits, bound)
    _add_overflow_cutoff(cnf, lits, s, bound)


def exactly(cnf: CNF, lits: Sequence[int], target: int) -> None:
    """Emit clauses so that exactly `target` of `lits` are true."""
    n = len(lits)
    if target < 0 or target > n:
        raise ValueError(f"exactly target {target} outside 0..{n}")
    if target == 0:
        for lit in lits:
            cnf.add_clause([-lit])
        return
    if target == n:
        for lit in lits:
            cnf.add_clause([lit])
        return
    s = _sequential_counter(cnf, lits, target)
    _add_overflow_cutoff(cnf, lits, s, target)
    # Counter is exact, so "at least target" is the single fact s(n,target).
    cnf.add_clause([s[n, target]])

