"""Clause sink and DIMACS serialization shared by every encoding stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, TextIO


@dataclass
class CNF:
    """Monotone variable counter plus an ordered clause list.

    One instance is threaded explicitly through every stage of a run.
    """

    num_vars: int = 0
    clauses: List[List[int]] = field(default_factory=list)

    def new_var(self) -> int:
        self.num_vars += 1
        return self.num_vars

    def add_clause(self, lits: Sequence[int]) -> None:
        if not lits:
            raise ValueError("refusing to emit an empty clause")
        for lit in lits:
            if lit == 0 or abs(lit) > self.num_vars:
                raise ValueError(
                    f"literal {lit} outside allocated range 1..{self.num_vars}"
                )
        self.clauses.append(list(lits))

    def add_contradiction(self) -> int:
        """Emit the unit pair x, ¬x on a fresh variable and return x."""
        dummy = self.new_var()
        self.clauses.append([dummy])
        self.clauses.append([-dummy])
        return dummy

    @property
    def num_clauses(self) -> int:
        return len(self.clauses)

    def dimacs_lines(self) -> List[str]:
        lines = [f"p cnf {self.num_vars} {len(self.clauses)}"]
        for cl in self.clauses:
            lines.append(" ".join(str(lit) for lit in cl) + " 0")
        return lines

    def to_dimacs(self) -> str:
        return "\n".join(self.dimacs_lines()) + "\n"

    def write_dimacs(self, fh: TextIO) -> None:
        for line in self.dimacs_lines():
            fh.write(line + "\n")
