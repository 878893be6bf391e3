#!/usr/bin/env python3
"""
Plot and log per-case certificates.

This script reads the JSON certificates written by `generator.py --seq`, prints
a small summary table, and saves two plots:
- Reduction: candidate velocities before/after dominance and essential times
  against all times, per prime.
- Runtime per prime, with the verdict shown in colors.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

import matplotlib.pyplot as plt

VERDICT_COLORS = {
    "SATISFIABLE": "#2a9d8f",  # Teal
    "UNSATISFIABLE": "#e76f51",  # Orange/Red
    None: "#f4a261",  # Yellow/Tan
}


@dataclass
class CaseCertificate:
    k: int
    prime: int
    verdict: str | None
    verified: bool | None
    runtime_seconds: float | None
    stats: Dict[str, int]
    path: Path


def load_certificates(cert_dir: Path, k: int | None = None) -> List[CaseCertificate]:
    certs: List[CaseCertificate] = []
    if not cert_dir.exists():
        return []
    for path in cert_dir.glob("case_k*_p*.json"):
        with path.open() as fh:
            data = json.load(fh)
        if k is not None and int(data["k"]) != k:
            continue
        certs.append(
            CaseCertificate(
                k=int(data["k"]),
                prime=int(data["prime"]),
                verdict=data.get("verdict"),
                verified=data.get("verified_cover"),
                runtime_seconds=data.get("runtime_seconds"),
                stats=dict(data.get("stats") or {}),
                path=path,
            )
        )
    certs.sort(key=lambda c: (c.k, c.prime))
    return certs


def print_summary(certs: Sequence[CaseCertificate]) -> None:
    if not certs:
        print("No certificates found.")
        return
    sat = sum(1 for c in certs if c.verdict == "SATISFIABLE")
    unsat = sum(1 for c in certs if c.verdict == "UNSATISFIABLE")
    unknown = len(certs) - sat - unsat
    print(f"Loaded {len(certs)} certificates.")
    print(f"Verdicts: {sat} SAT, {unsat} UNSAT, {unknown} not solved.")
    bad = [c for c in certs if c.verdict == "SATISFIABLE" and c.verified is False]
    if bad:
        print("Covers failing verification: " + ", ".join(c.path.name for c in bad))

    print(
        f"{'k':>3} {'prime':>6} {'cands':>6} {'kept':>6} {'times':>6} {'ess':>6}"
        f"  {'runtime (s)':>11}  {'verdict':>7}"
    )
    print("-" * 64)
    for cert in certs:
        runtime = (
            f"{cert.runtime_seconds:.2f}" if cert.runtime_seconds is not None else "—"
        )
        verdict = {"SATISFIABLE": "SAT", "UNSATISFIABLE": "UNSAT"}.get(cert.verdict, "?")
        s = cert.stats
        print(
            f"{cert.k:>3} {cert.prime:>6} {s.get('candidates', 0):>6} "
            f"{s.get('survivors', 0):>6} {s.get('times', 0):>6} "
            f"{s.get('essential_times', 0):>6}  {runtime:>11}  {verdict:>7}"
        )


def save_fig(fig: plt.Figure, out_dir: Path, name: str, formats: Iterable[str]) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for fmt in formats:
        fig_path = out_dir / f"{name}.{fmt}"
        fig.savefig(fig_path, bbox_inches="tight", dpi=150)
        print(f"Saved {fig_path}")
    plt.close(fig)


def plot_reduction(
    certs: Sequence[CaseCertificate], out_dir: Path, formats: Iterable[str]
) -> None:
    primes = [c.prime for c in certs]
    fig, (ax_v, ax_t) = plt.subplots(2, 1, figsize=(10, 8), sharex=True)

    ax_v.plot(
        primes,
        [c.stats.get("candidates", 0) for c in certs],
        marker="o",
        markersize=4,
        color="#8d99ae",
        label="Candidates",
    )
    ax_v.plot(
        primes,
        [c.stats.get("survivors", 0) for c in certs],
        marker="o",
        markersize=4,
        color="#264653",
        label="After velocity dominance",
    )
    ax_v.set_ylabel("Velocities", fontsize=11)
    ax_v.set_title("Dominance reduction per prime", fontsize=13, fontweight="bold")
    ax_v.grid(True, linestyle="--", alpha=0.4)
    ax_v.legend(loc="upper left")

    ax_t.plot(
        primes,
        [c.stats.get("times", 0) for c in certs],
        marker="o",
        markersize=4,
        color="#8d99ae",
        label="Times",
    )
    ax_t.plot(
        primes,
        [c.stats.get("essential_times", 0) for c in certs],
        marker="o",
        markersize=4,
        color="#2a9d8f",
        label="Essential times",
    )
    ax_t.set_xlabel("prime", fontsize=11)
    ax_t.set_ylabel("Coverage clauses", fontsize=11)
    ax_t.grid(True, linestyle="--", alpha=0.4)
    ax_t.legend(loc="upper left")

    save_fig(fig, out_dir, "reduction", formats)


def plot_runtime(
    certs: Sequence[CaseCertificate], out_dir: Path, formats: Iterable[str]
) -> None:
    primes = [c.prime for c in certs]
    runtimes = [c.runtime_seconds or 0.0 for c in certs]
    colors = [VERDICT_COLORS.get(c.verdict, VERDICT_COLORS[None]) for c in certs]

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.bar(primes, runtimes, color=colors, width=0.8, alpha=0.9)
    ax.set_xlabel("prime", fontsize=11)
    ax.set_ylabel("Runtime (s)", fontsize=11)
    ax.set_yscale("symlog", linthresh=0.1)
    ax.grid(True, axis="y", linestyle="--", alpha=0.3)
    ax.set_title("Generation + solve time", fontsize=13, fontweight="bold")
    legend_elements = [
        plt.Line2D([0], [0], color=VERDICT_COLORS["SATISFIABLE"], lw=4, label="SAT (cover)"),
        plt.Line2D([0], [0], color=VERDICT_COLORS["UNSATISFIABLE"], lw=4, label="UNSAT"),
        plt.Line2D([0], [0], color=VERDICT_COLORS[None], lw=4, label="Not solved"),
    ]
    ax.legend(handles=legend_elements, fontsize="small", loc="upper left")

    save_fig(fig, out_dir, "runtime", formats)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--cert-dir",
        type=Path,
        default=Path("cases"),
        help="Directory containing case_k*_p*.json certificate files.",
    )
    parser.add_argument("--k", type=int, help="Only plot cases with this k.")
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("plots"),
        help="Where to save generated plots.",
    )
    parser.add_argument(
        "--formats",
        nargs="+",
        default=["png"],
        help="Image formats to save (passed to matplotlib).",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Display plots interactively after saving.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    plt.rcParams.update(
        {
            "font.family": "sans-serif",
            "axes.spines.top": False,
            "axes.spines.right": False,
        }
    )

    certs = load_certificates(args.cert_dir, args.k)
    print_summary(certs)
    if not certs:
        return

    plot_reduction(certs, args.out_dir, args.formats)
    plot_runtime(certs, args.out_dir, args.formats)

    if args.show:
        plt.show()


if __name__ == "__main__":
    main()
