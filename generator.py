"""Generate the lonely-runner cover CNF for one (k, prime) case; optionally check it.

Question: is there a set of k distinct velocities in 1..Q/2 (Q = (k+1)*prime),
none a multiple of prime, such that at every time t in 1..Q/2 at least one of
them is within 1/(k+1) of the start, and for every prime q dividing k+1 at most
k-2 of them are divisible by q? The formula is SAT exactly when such a cover
exists.

Method:
- Integer-only near-zero table, one bit-vector per velocity.
- Dominance reduction: drop velocities another candidate can always replace and
  time constraints implied by another one (both satisfiability preserving).
- Sinz sequential counters for "exactly k" and the per-divisor "at most k-2".

Output: DIMACS on stdout (or --out); the variable-to-velocity mapping and
counts go to stderr (or --mapping) and never into the formula.

Example commands:
  # Formula for k=4, prime=17 piped into a solver
  python generator.py 4 17 > k4_p17.cnf
  # Build, solve with MiniSat through pysat, verify the cover, write a certificate
  python generator.py 8 31 --solve pysat --cert case_k8_p31.json
  # Every prime from 17 to 97 for k=6, resumable, one certificate per case
  python generator.py 6 17 --seq 97 --solve pysat --cert-dir cases
"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, TextIO

from certificates import save_certificate, verify_selection
from coverage_table import (
    DEFAULT_MAX_HALF_PERIOD,
    ConfigurationError,
    RunnerParams,
    is_prime,
    validate_params,
)
from dominance import format_reduction_summary
from instance import (
    Instance,
    build_instance,
    decode_model,
    format_diagnostics,
    reduction_stats,
)
from solver_backends import BACKEND_NAMES, Backend, SolveOutcome, create_backend


@dataclass
class CaseResult:
    params: RunnerParams
    verdict: str
    velocities: List[int]
    problems: List[str]
    runtime: float
    outcome: SolveOutcome

    @property
    def verified(self) -> Optional[bool]:
        if not self.outcome.satisfiable:
            return None
        return not self.problems


def solve_case(instance: Instance, backend: Backend) -> CaseResult:
    """Decide the instance and independently verify a returned cover."""
    outcome = backend.solve(instance.cnf)
    velocities: List[int] = []
    problems: List[str] = []
    if outcome.satisfiable:
        velocities = decode_model(instance, outcome.model or [])
        problems = verify_selection(instance.params, velocities)
    return CaseResult(
        params=instance.params,
        verdict=outcome.verdict,
        velocities=velocities,
        problems=problems,
        runtime=outcome.runtime,
        outcome=outcome,
    )


def emit_diagnostics(instance: Instance, stream: TextIO) -> None:
    for line in format_diagnostics(instance):
        print(line, file=stream)


def primes_between(lo: int, hi: int) -> List[int]:
    return [p for p in range(max(2, lo), hi + 1) if is_prime(p)]


def sequential_case_run(
    k: int,
    start_prime: int,
    max_prime: int,
    out_dir: Path,
    backend_name: Optional[str] = None,
    threads: int = 8,
    use_velocity_pass: bool = True,
    use_time_pass: bool = True,
    max_half_period: int = DEFAULT_MAX_HALF_PERIOD,
    show_reduction: bool = False,
    backend_factory: Callable[[str, int], Backend] = create_backend,
    build_func: Callable[..., Instance] = build_instance,
) -> List[Path]:
    """Generate (and optionally solve) every prime case in [start_prime, max_prime].

    Writes k{K}_p{P}.cnf and case_k{K}_p{P}.json into out_dir and skips cases
    whose certificate already exists, so interrupted runs resume where they
    stopped. Returns the certificate paths written in this run.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    backend = backend_factory(backend_name, threads) if backend_name else None
    written: List[Path] = []
    for prime in primes_between(start_prime, max_prime):
        cert_path = out_dir / f"case_k{k}_p{prime}.json"
        if cert_path.exists():
            continue
        params = validate_params(k, prime, max_half_period)
        t0 = time.perf_counter()
        inst = build_func(
            params, use_velocity_pass=use_velocity_pass, use_time_pass=use_time_pass
        )
        cnf_path = out_dir / f"k{k}_p{prime}.cnf"
        with cnf_path.open("w") as fh:
            inst.cnf.write_dimacs(fh)
        if show_reduction:
            print(format_reduction_summary(inst.reduction, k, prime))

        verdict: Optional[str] = None
        velocities: List[int] = []
        if backend is not None:
            res = solve_case(inst, backend)
            verdict = res.verdict
            velocities = res.velocities
        runtime = time.perf_counter() - t0
        save_certificate(
            params,
            verdict,
            velocities,
            cert_path,
            runtime=runtime,
            stats=reduction_stats(inst),
            backend=backend_name,
            cnf_path=cnf_path,
        )
        written.append(cert_path)
        print(
            f"k={k} prime={prime} -> {verdict or 'generated'} | "
            f"vars {inst.cnf.num_vars} clauses {inst.cnf.num_clauses} | "
            f"time {runtime:.3f}s | saved {cert_path}"
        )
    return written


def parse_args(argv: Optional[Sequence[str]] = None):
    import argparse

    parser = argparse.ArgumentParser(
        description="Generate the lonely-runner cover CNF for (k, prime)."
    )
    parser.add_argument("k", type=int, help="Number of velocities to select (runners - 1)")
    parser.add_argument("prime", type=int, help="Prime modulus")
    parser.add_argument(
        "--out", type=Path, help="Write the DIMACS formula here instead of stdout."
    )
    parser.add_argument(
        "--mapping",
        type=Path,
        help="Write the variable mapping and statistics here instead of stderr.",
    )
    parser.add_argument(
        "--no-velocity-reduction",
        action="store_true",
        help="Keep every candidate velocity (skip velocity dominance).",
    )
    parser.add_argument(
        "--no-time-reduction",
        action="store_true",
        help="Emit a coverage clause for every time (skip time dominance).",
    )
    parser.add_argument(
        "--max-half-period",
        type=int,
        default=DEFAULT_MAX_HALF_PERIOD,
        help="Refuse parameters whose half period exceeds this value.",
    )
    parser.add_argument(
        "--solve",
        choices=list(BACKEND_NAMES),
        help="Also decide the formula with this backend and verify any cover found.",
    )
    parser.add_argument(
        "--threads", type=int, default=8, help="Solver threads (CP-SAT only)"
    )
    parser.add_argument(
        "--cert", type=Path, help="Write a JSON certificate for the case to this path."
    )
    parser.add_argument(
        "--seq",
        type=int,
        metavar="MAX_PRIME",
        help=(
            "Run every prime from `prime` up to MAX_PRIME, writing files in "
            "--cert-dir (not combinable with --out, --mapping or --cert)."
        ),
    )
    parser.add_argument(
        "--cert-dir",
        type=Path,
        default=Path("cases"),
        help="Directory for formulas and certificates in sequential mode.",
    )
    parser.add_argument(
        "--show-reduction",
        action="store_true",
        help="Print a one-line summary of the dominance reduction.",
    )
    args = parser.parse_args(argv)
    if args.seq:
        single = [
            flag
            for flag, value in (
                ("--out", args.out),
                ("--mapping", args.mapping),
                ("--cert", args.cert),
            )
            if value is not None
        ]
        if single:
            parser.error(
                f"{', '.join(single)} cannot be combined with --seq; "
                "sequential runs write into --cert-dir"
            )
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    use_velocity_pass = not args.no_velocity_reduction
    use_time_pass = not args.no_time_reduction

    if args.seq:
        try:
            sequential_case_run(
                args.k,
                args.prime,
                args.seq,
                args.cert_dir,
                backend_name=args.solve,
                threads=args.threads,
                use_velocity_pass=use_velocity_pass,
                use_time_pass=use_time_pass,
                max_half_period=args.max_half_period,
                show_reduction=args.show_reduction,
            )
        except ConfigurationError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        return 0

    try:
        params = validate_params(args.k, args.prime, args.max_half_period)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    t0 = time.perf_counter()
    inst = build_instance(
        params, use_velocity_pass=use_velocity_pass, use_time_pass=use_time_pass
    )

    if args.out:
        with args.out.open("w") as fh:
            inst.cnf.write_dimacs(fh)
    else:
        inst.cnf.write_dimacs(sys.stdout)

    if args.mapping:
        with args.mapping.open("w") as fh:
            emit_diagnostics(inst, fh)
    else:
        emit_diagnostics(inst, sys.stderr)
    if args.show_reduction:
        print(format_reduction_summary(inst.reduction, params.k, params.prime), file=sys.stderr)

    res: Optional[CaseResult] = None
    if args.solve:
        res = solve_case(inst, create_backend(args.solve, args.threads))
        print(f"s {res.verdict} ({res.outcome.backend}, {res.runtime:.3f}s)", file=sys.stderr)
        if res.velocities:
            print(f"c cover: {res.velocities}", file=sys.stderr)
            status = "passed" if res.verified else "FAILED: " + "; ".join(res.problems)
            print(f"c verification: {status}", file=sys.stderr)

    if args.cert:
        save_certificate(
            params,
            res.verdict if res else None,
            res.velocities if res else [],
            args.cert,
            runtime=time.perf_counter() - t0,
            stats=reduction_stats(inst),
            backend=args.solve,
            cnf_path=args.out,
        )
        print(f"wrote certificate to {args.cert}", file=sys.stderr)
    if res is not None and res.verified is False:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
