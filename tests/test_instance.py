import itertools
import unittest

import solver_backends
from certificates import is_valid_selection
from coverage_table import RunnerParams, candidate_velocities
from dominance import ReductionResult
from instance import (
    DivisorBound,
    assemble,
    build_instance,
    decode_model,
    format_diagnostics,
    reduction_stats,
)

PYSAT_AVAILABLE = solver_backends.PYSAT_AVAILABLE

SMALL_CASES = [
    (2, 3),
    (2, 5),
    (2, 7),
    (3, 3),
    (3, 5),
    (3, 7),
    (3, 11),
    (3, 13),
    (4, 3),
    (4, 5),
    (4, 7),
    (4, 11),
    (5, 7),
    # The velocity pass removes candidates in these.
    (1, 5),
    (1, 7),
    (1, 11),
    (1, 13),
    (1, 41),
    (6, 5),
    # Here it removes some, then falls back to the full candidate list.
    (5, 5),
]


def _reduction(survivors, time_covers, divisors, candidates=None):
    return ReductionResult(
        candidates=list(candidates or survivors),
        survivors=list(survivors),
        dominated_by={},
        time_covers=dict(time_covers),
        essential_times=list(time_covers),
        implied_by={},
        divisors=tuple(divisors),
    )


def _brute_force_cover_exists(params):
    for combo in itertools.combinations(candidate_velocities(params), params.k):
        if is_valid_selection(params, combo):
            return True
    return False


class AssemblerTests(unittest.TestCase):
    def test_clause_layout_and_uncoverable_time(self):
        params = RunnerParams(k=2, prime=5)
        red = _reduction(
            [1, 2, 3], {1: 0b011, 2: 0b000, 3: 0b110}, (3,), candidates=[1, 2, 3, 4]
        )
        inst = assemble(params, red)
        clauses = inst.cnf.clauses
        self.assertEqual(inst.var_to_velocity, {1: 1, 2: 2, 3: 3})
        self.assertEqual(clauses[0], [1, 2])
        # Contradiction pair replaces the empty coverage clause, emitted once.
        self.assertEqual(clauses[1:3], [[4], [-4]])
        self.assertEqual(clauses[3], [2, 3])
        self.assertEqual(inst.uncoverable_times, [2])
        self.assertTrue(inst.trivially_unsat)
        # k=2 -> at most 0 velocities divisible by 3.
        self.assertEqual(clauses[-1], [-3])
        self.assertEqual(inst.divisor_bounds, [DivisorBound(divisor=3, limit=0, size=1)])
        self.assertTrue(all(cl for cl in clauses))

    def test_too_few_survivors_is_unsatisfiable_not_an_error(self):
        params = RunnerParams(k=2, prime=5)
        inst = assemble(params, _reduction([1], {1: 0b1}, (3,)))
        self.assertEqual(inst.cnf.clauses, [[1], [2], [-2]])
        self.assertEqual(inst.contradiction_var, 2)
        self.assertEqual(inst.divisor_bounds, [])
        self.assertIn(
            "c Fewer than 2 candidates survive; instance is trivially UNSAT",
            format_diagnostics(inst),
        )

    def test_divisor_list_must_match_reduction(self):
        params = RunnerParams(k=2, prime=5)
        red = _reduction([1, 2], {1: 0b11}, (3,))
        with self.assertRaises(ValueError):
            assemble(params, red, divisors=(2,))
        with self.assertRaises(ValueError):
            assemble(params, _reduction([1, 2], {1: 0b11}, ()))

    def test_uncoverable_position_detected_end_to_end(self):
        # k=4, prime=3: no candidate is near zero at t=5.
        for kwargs in ({}, {"use_velocity_pass": False, "use_time_pass": False}):
            inst = build_instance(RunnerParams(k=4, prime=3), **kwargs)
            self.assertEqual(inst.uncoverable_times, [5])
            self.assertTrue(inst.trivially_unsat)
        inst = build_instance(RunnerParams(k=4, prime=3))
        self.assertEqual(inst.reduction.essential_times, [5])

    def test_formula_invariants(self):
        inst = build_instance(RunnerParams(k=4, prime=17))
        cnf = inst.cnf
        survivors = inst.reduction.survivors
        self.assertEqual(list(inst.var_to_velocity), list(range(1, len(survivors) + 1)))
        self.assertEqual(list(inst.var_to_velocity.values()), survivors)
        for cl in cnf.clauses:
            self.assertTrue(cl)
            self.assertTrue(all(0 < abs(l) <= cnf.num_vars for l in cl))
        lines = cnf.to_dimacs().splitlines()
        self.assertEqual(lines[0], f"p cnf {cnf.num_vars} {cnf.num_clauses}")
        self.assertEqual(len(lines), cnf.num_clauses + 1)
        self.assertTrue(all(line.endswith(" 0") for line in lines[1:]))
        self.assertEqual(set(inst.timings), {"coverage", "reduction", "assembly"})

    def test_output_is_deterministic(self):
        a = build_instance(RunnerParams(k=4, prime=17))
        b = build_instance(RunnerParams(k=4, prime=17))
        self.assertEqual(a.cnf.to_dimacs(), b.cnf.to_dimacs())

    def test_diagnostics_stay_out_of_formula(self):
        inst = build_instance(RunnerParams(k=4, prime=17))
        diag = format_diagnostics(inst)
        self.assertIn("c Variable-to-velocity mapping:", diag)
        first = inst.reduction.survivors[0]
        self.assertIn(f"c var 1 <-> v = {first}", diag)
        self.assertTrue(any(line.startswith("c GCD constraint") for line in diag))
        self.assertNotIn("c var", inst.cnf.to_dimacs())
        stats = reduction_stats(inst)
        self.assertEqual(stats["candidates"], 40)
        self.assertLessEqual(stats["survivors"], 40)
        self.assertEqual(stats["times"], 42)

    def test_decode_model_picks_true_decision_variables(self):
        params = RunnerParams(k=2, prime=5)
        inst = assemble(params, _reduction([1, 2, 4], {1: 0b111}, (3,)))
        model = [-1, 2, 3] + list(range(4, inst.cnf.num_vars + 1))
        self.assertEqual(decode_model(inst, model), [2, 4])


@unittest.skipUnless(PYSAT_AVAILABLE, "python-sat not installed")
class EndToEndTests(unittest.TestCase):
    def _solve(self, inst):
        return solver_backends.PySATBackend().solve(inst.cnf)

    def test_k4_prime17_is_unsatisfiable(self):
        outcome = self._solve(build_instance(RunnerParams(k=4, prime=17)))
        self.assertFalse(outcome.satisfiable)
        self.assertEqual(outcome.verdict, "UNSATISFIABLE")

    def test_small_cases_agree_with_brute_force(self):
        for k, prime in SMALL_CASES:
            params = RunnerParams(k=k, prime=prime)
            expected = _brute_force_cover_exists(params)
            for kwargs in ({}, {"use_velocity_pass": False, "use_time_pass": False}):
                inst = build_instance(params, **kwargs)
                outcome = self._solve(inst)
                self.assertEqual(outcome.satisfiable, expected, (k, prime, kwargs))
                if outcome.satisfiable:
                    chosen = decode_model(inst, outcome.model)
                    self.assertTrue(is_valid_selection(params, chosen), chosen)

    def test_k8_prime31_cover_decodes(self):
        params = RunnerParams(k=8, prime=31)
        inst = build_instance(params)
        outcome = self._solve(inst)
        self.assertTrue(outcome.satisfiable)
        chosen = decode_model(inst, outcome.model)
        self.assertEqual(len(chosen), 8)
        self.assertTrue(is_valid_selection(params, chosen), chosen)


if __name__ == "__main__":
    unittest.main()
