"""
Finite permutation invariance.

Given a prior ``p: A -> X_J`` over an indexed product object and a
statistic ``s: X_J -> T``, a finite symmetry ``σ̂: X_J -> X_J`` (a
relabeling of the index set) leaves the statistic invariant when

    p ; σ̂ ; s  =  p ; s        for every input a ∈ A.

Each symmetry is reported separately: whether the prior itself is
invariant (``p ; σ̂ = p``) and whether the composite through the statistic
is.  Only the latter decides the verdict; a skewed prior under a
symmetric statistic still passes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from markov_oracles.conditional import validate_permutation
from markov_oracles.kernel import (
    DEFAULT_TOLERANCE,
    Fin,
    FinMarkov,
    deterministic,
    kernel_mismatches,
)
from markov_oracles.semiring import PROB, Semiring

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FiniteSymmetry:
    """A named endomorphism ``sigma_hat`` of the product object.

    ``kind`` is ``"permutation"`` or ``"injection"``.
    """

    name: str
    sigma_hat: FinMarkov
    kind: str = "permutation"


def coordinate_permutation(
    product: Fin,
    order: Sequence[int],
    name: Optional[str] = None,
    semiring: Semiring = PROB,
) -> FiniteSymmetry:
    """Symmetry of a flat-tuple product object relabeling its coordinates.

    The image of ``(x₀, …, xₙ₋₁)`` is ``(x_{order[0]}, …, x_{order[n-1]})``.

    Raises:
        ValueError: If *order* is not a permutation of the coordinates.
    """
    arity = len(product.elems[0]) if product.elems else len(order)
    validate_permutation(order, arity)
    positions = tuple(order)
    sigma = FinMarkov(
        product,
        product,
        deterministic(semiring, lambda xs: tuple(xs[i] for i in positions)),
        semiring,
    )
    label = name if name is not None else f"permute{list(positions)}"
    return FiniteSymmetry(label, sigma, "permutation")


@dataclass(frozen=True)
class StatInvarianceReport:
    holds: bool
    details: str


@dataclass(frozen=True)
class SymmetryReport:
    name: str
    kind: str
    prior_invariant: bool
    stat_report: StatInvarianceReport


@dataclass(frozen=True)
class PermutationFailure:
    """The first input/output pair at which a symmetry changes ``p ; s``."""

    name: str
    input: Any
    output: Any
    observed: Any
    expected: Any


@dataclass(frozen=True)
class FinitePermutationInvarianceReport:
    holds: bool
    failures: tuple[PermutationFailure, ...]
    symmetry_reports: tuple[SymmetryReport, ...]
    details: str

    @property
    def failure_labels(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.failures)


def check_finite_permutation_invariance(
    prior: FinMarkov,
    stat: FinMarkov,
    permutations: Sequence[FiniteSymmetry],
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> FinitePermutationInvarianceReport:
    """Check ``p ; σ̂ ; s = p ; s`` for every supplied symmetry.

    Raises:
        ValueError: If a symmetry is not an endomorphism of
            ``prior.codomain``.
    """
    baseline = prior.then(stat)
    failures: list[PermutationFailure] = []
    reports: list[SymmetryReport] = []

    for sym in permutations:
        sigma = sym.sigma_hat
        if sigma.domain is not prior.codomain or sigma.codomain is not prior.codomain:
            raise ValueError(f"symmetry {sym.name!r} is not an endomorphism of the prior codomain")

        relabeled = prior.then(sigma)
        prior_invariant = not kernel_mismatches(relabeled, prior, tolerance)
        found = kernel_mismatches(relabeled.then(stat), baseline, tolerance)
        if found:
            first = found[0]
            failures.append(PermutationFailure(
                sym.name, first.input, first.point, first.observed, first.expected
            ))
            stat_details = (
                f"{sym.name} changes the statistic at input {first.input!r}, "
                f"output {first.point!r}: {first.observed!r} vs {first.expected!r}"
            )
        else:
            stat_details = f"{sym.name} leaves the statistic invariant"
        reports.append(SymmetryReport(
            sym.name, sym.kind, prior_invariant, StatInvarianceReport(not found, stat_details)
        ))

    holds = not failures
    if holds:
        details = f"statistic invariant under {len(reports)} symmetr{'y' if len(reports) == 1 else 'ies'}"
    else:
        details = f"{len(failures)} symmetr{'y' if len(failures) == 1 else 'ies'} broke invariance"
    logger.debug("permutation invariance: holds=%s (%s)", holds, details)
    return FinitePermutationInvarianceReport(holds, tuple(failures), tuple(reports), details)
