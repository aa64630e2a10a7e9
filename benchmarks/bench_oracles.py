"""
Benchmark: law-checking oracles

Measures how the exhaustive oracles scale with the size of the finite
objects they enumerate.

Sections:
  B1: Kernel composition (n × n row-stochastic chains)
  B2: Comonoid laws over objects of growing size
  B3: Robust thunkability of deterministic kernels
  B4: Conditional independence of paired kernels
  B5: Kolmogorov zero–one over products of k fair coins

Usage:
    cd benchmarks
    python bench_oracles.py
"""

from __future__ import annotations

import json
import os
import random
import sys
from dataclasses import asdict, dataclass, field
from typing import Any

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "packages", "python", "src"))

from markov_oracles import (
    PROB,
    FinMarkov,
    build_kolmogorov_zero_one_witness,
    build_markov_comonoid_witness,
    build_markov_conditional_witness,
    check_conditional_independence,
    check_kolmogorov_zero_one,
    check_markov_comonoid,
    check_thunkability_robust,
    cylinder_projection,
    det_k,
    from_matrix,
    independent_indexed_product,
    indexed_product_obj,
    mk_fin,
    pair,
    prior_from_family,
    tensor_obj,
)

from bench_utils import DEFAULT_TRIALS, timed_trials


def _random_kernel(X, Y, rng: random.Random) -> FinMarkov:
    rows = []
    for _ in X.elems:
        raw = [rng.random() + 0.01 for _ in Y.elems]
        total = sum(raw)
        rows.append([w / total for w in raw])
    return from_matrix(X, Y, rows)


# ═══════════════════════════════════════════════════════════════════
# B1–B4: Kernel-level oracles
# ═══════════════════════════════════════════════════════════════════


def bench_composition(sizes: list[int] = [4, 8, 16, 32], n_trials: int = DEFAULT_TRIALS) -> dict[str, Any]:
    rng = random.Random(42)
    results = {}
    for n in sizes:
        X = mk_fin(range(n))
        f, g, h = (_random_kernel(X, X, rng) for _ in range(3))
        stats = timed_trials(lambda: f.then(g).then(h).matrix(), n=n_trials)
        results[f"n={n}"] = stats.to_dict()
    return results


def bench_comonoid(sizes: list[int] = [2, 4, 8, 12], n_trials: int = DEFAULT_TRIALS) -> dict[str, Any]:
    results = {}
    for n in sizes:
        witness = build_markov_comonoid_witness(mk_fin(range(n)))
        stats = timed_trials(lambda: check_markov_comonoid(witness), n=n_trials)
        results[f"n={n}"] = stats.to_dict()
    return results


def bench_thunkability(sizes: list[int] = [4, 16, 64], n_trials: int = DEFAULT_TRIALS) -> dict[str, Any]:
    results = {}
    for n in sizes:
        X = mk_fin(range(n))
        f = det_k(X, X, lambda x: (x * 7 + 3) % n)
        stats = timed_trials(lambda: check_thunkability_robust(PROB, f, X), n=n_trials)
        results[f"n={n}"] = stats.to_dict()
    return results


def bench_conditional(sizes: list[int] = [2, 4, 6], n_trials: int = DEFAULT_TRIALS) -> dict[str, Any]:
    rng = random.Random(7)
    results = {}
    for n in sizes:
        A = mk_fin(range(n))
        Y = mk_fin(range(n))
        joint = FinMarkov(
            A, tensor_obj(Y, Y), pair(PROB, _random_kernel(A, Y, rng), _random_kernel(A, Y, rng))
        )
        witness = build_markov_conditional_witness(
            build_markov_comonoid_witness(A),
            [build_markov_comonoid_witness(Y), build_markov_comonoid_witness(Y)],
            joint,
        )
        stats = timed_trials(lambda: check_conditional_independence(witness), n=n_trials)
        results[f"n={n}"] = stats.to_dict()
    return results


# ═══════════════════════════════════════════════════════════════════
# B5: Zero–one oracle
# ═══════════════════════════════════════════════════════════════════


def bench_zero_one(coins: list[int] = [2, 3, 4], n_trials: int = 5) -> dict[str, Any]:
    results = {}
    for k in coins:
        index = list(range(k))
        family = independent_indexed_product(PROB, index, lambda j: {0: 0.5, 1: 0.5})
        product = indexed_product_obj(index, [0, 1])
        prior = prior_from_family(family, index, product)
        stat = det_k(product, mk_fin(["tail"]), lambda xs: "tail")
        marginals = [(f"F[{j}]", cylinder_projection(product, index, [j])) for j in index]
        witness = build_kolmogorov_zero_one_witness(prior, stat, marginals)
        stats = timed_trials(lambda: check_kolmogorov_zero_one(witness), n=n_trials, warmup=1)
        results[f"k={k}"] = {"holds": check_kolmogorov_zero_one(witness).holds, **stats.to_dict()}
    return results


@dataclass
class OracleResults:
    composition: dict[str, Any] = field(default_factory=dict)
    comonoid: dict[str, Any] = field(default_factory=dict)
    thunkability: dict[str, Any] = field(default_factory=dict)
    conditional: dict[str, Any] = field(default_factory=dict)
    zero_one: dict[str, Any] = field(default_factory=dict)


def run_all() -> OracleResults:
    results = OracleResults()
    print("=== Oracle Benchmarks ===\n")

    print("B1  Kernel composition...")
    results.composition = bench_composition()

    print("B2  Comonoid laws...")
    results.comonoid = bench_comonoid()

    print("B3  Robust thunkability...")
    results.thunkability = bench_thunkability()

    print("B4  Conditional independence...")
    results.conditional = bench_conditional()

    print("B5  Kolmogorov zero–one...")
    results.zero_one = bench_zero_one()

    return results


if __name__ == "__main__":
    r = run_all()
    for section, rows in asdict(r).items():
        print(f"\n--- {section} (ms) ---")
        for k, v in rows.items():
            print(f"  {k}: {v['mean_ms']:.3f} ± {v['std_ms']:.3f}")
    out = os.path.join(os.path.dirname(__file__), "results_oracles.json")
    with open(out, "w", encoding="utf-8") as fh:
        json.dump(asdict(r), fh, indent=2)
    print(f"\nResults written to {out}")
