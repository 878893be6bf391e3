"""Backends for checking a generated CNF: pysat (MiniSat), CP-SAT, and kissat."""

from __future__ import annotations

import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from cnf import CNF

try:
    from pysat.solvers import Solver as PySATSolver
except ImportError as exc:  # pragma: no cover - import guard
    PySATSolver = None  # type: ignore[assignment]
    _PYSAT_ERROR = exc
else:  # pragma: no cover - import guard
    _PYSAT_ERROR = None

try:
    from ortools.sat.python import cp_model
except ImportError as exc:  # pragma: no cover - import guard
    cp_model = None  # type: ignore[assignment]
    _ORTOOLS_CP_ERROR = exc
else:  # pragma: no cover - import guard
    _ORTOOLS_CP_ERROR = None


PYSAT_AVAILABLE = PySATSolver is not None
CPSAT_AVAILABLE = cp_model is not None

BACKEND_NAMES = ("pysat", "cpsat", "kissat")


class BackendNotAvailable(RuntimeError):
    """Raised when the requested backend is missing a dependency or unavailable."""


@dataclass
class SolveOutcome:
    satisfiable: bool
    model: Optional[List[int]]  # signed literals over the formula's variables
    backend: str
    runtime: float

    @property
    def verdict(self) -> str:
        return "SATISFIABLE" if self.satisfiable else "UNSATISFIABLE"


class Backend(Protocol):
    def solve(self, cnf: CNF) -> SolveOutcome:
        """Decide the formula; return a model when it is satisfiable."""


def _require_pysat() -> None:
    if not PYSAT_AVAILABLE:
        raise BackendNotAvailable(
            "pysat backend requires python-sat; install with `pip install python-sat`."
        ) from _PYSAT_ERROR


def _require_ortools_cp() -> None:
    if cp_model is None:
        raise BackendNotAvailable(
            "CP-SAT backend requires ortools; install with `pip install ortools`."
        ) from _ORTOOLS_CP_ERROR


class PySATBackend:
    def __init__(self, solver_name: str = "m22"):
        _require_pysat()
        self._solver_name = solver_name

    def solve(self, cnf: CNF) -> SolveOutcome:
        t0 = time.perf_counter()
        with PySATSolver(name=self._solver_name, bootstrap_with=cnf.clauses) as solver:
            sat = solver.solve()
            model = solver.get_model() if sat else None
        return SolveOutcome(
            satisfiable=bool(sat),
            model=list(model) if model is not None else None,
            backend="pysat",
            runtime=time.perf_counter() - t0,
        )


class CPSATBackend:
    def __init__(self, threads: int = 8):
        _require_ortools_cp()
        self._threads = threads

    def solve(self, cnf: CNF) -> SolveOutcome:
        t0 = time.perf_counter()
        model = cp_model.CpModel()
        x = [None] + [model.NewBoolVar(f"x_{i}") for i in range(1, cnf.num_vars + 1)]
        for clause in cnf.clauses:
            model.AddBoolOr([x[lit] if lit > 0 else x[-lit].Not() for lit in clause])
        solver = cp_model.CpSolver()
        solver.parameters.num_search_workers = self._threads
        status = solver.Solve(model)
        if status == cp_model.INFEASIBLE:
            return SolveOutcome(False, None, "cpsat", time.perf_counter() - t0)
        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            raise RuntimeError(f"CP-SAT failed with status {status}")
        assignment = [
            i if solver.BooleanValue(x[i]) else -i for i in range(1, cnf.num_vars + 1)
        ]
        return SolveOutcome(True, assignment, "cpsat", time.perf_counter() - t0)


def parse_solver_output(stdout: str) -> List[int]:
    """Collect the literals from competition-format `v ...` lines."""
    lits: List[int] = []
    for line in stdout.splitlines():
        if not line.startswith("v"):
            continue
        for token in line[1:].split():
            lit = int(token)
            if lit != 0:
                lits.append(lit)
    return lits


class KissatBackend:
    """Runs the `kissat` binary on a temporary DIMACS file (exit 10 = SAT, 20 = UNSAT)."""

    def __init__(
        self,
        executable: str = "kissat",
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self._executable = executable
        self._runner = runner

    def solve(self, cnf: CNF) -> SolveOutcome:
        t0 = time.perf_counter()
        with tempfile.TemporaryDirectory() as tmpdir:
            cnf_path = Path(tmpdir) / "instance.cnf"
            with cnf_path.open("w") as fh:
                cnf.write_dimacs(fh)
            try:
                result = self._runner(
                    [self._executable, "-q", str(cnf_path)],
                    capture_output=True,
                    text=True,
                )
            except FileNotFoundError as exc:
                raise BackendNotAvailable(
                    f"kissat executable {self._executable!r} not found"
                ) from exc
        if result.returncode == 10:
            model = parse_solver_output(result.stdout)
            return SolveOutcome(True, model, "kissat", time.perf_counter() - t0)
        if result.returncode == 20:
            return SolveOutcome(False, None, "kissat", time.perf_counter() - t0)
        raise RuntimeError(f"kissat failed: {result.stdout}\n{result.stderr}")


def create_backend(name: str, threads: int = 8) -> Backend:
    name = name.lower()
    if name in ("pysat", "minisat", "m22"):
        return PySATBackend()
    if name in ("cpsat", "cp-sat", "cp_sat"):
        return CPSATBackend(threads)
    if name == "kissat":
        return KissatBackend()
    raise ValueError(f"Unknown backend {name}")
