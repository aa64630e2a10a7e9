"""
Conditional independence of tensor outputs.

A kernel ``p: A -> Y₁ ⊗ … ⊗ Yₖ`` exhibits conditional independence of its
outputs given ``A`` when, for every input ``a``,

    p(a) = p₁(a) ⊗ p₂(a) ⊗ … ⊗ pₖ(a)

where ``pᵢ = p ; πᵢ`` are the conditional marginals.  Products of more
than two factors are left-associated pairs: ``((y₁, y₂), y₃)``.

The oracle materializes each marginal, rebuilds the factorized kernel with
copy-and-tensor pairing, and compares it against ``p`` row by row.  The
first mismatching codomain point of each input is recorded with both
weights.  Optional permutations of the tensor factors re-check the same
equality after relabeling the codomain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from markov_oracles.comonoid import MarkovComonoidWitness
from markov_oracles.kernel import (
    DEFAULT_TOLERANCE,
    Fin,
    FinMarkov,
    Kernel,
    KernelMismatch,
    deterministic,
    kernel_mismatches,
    pair,
)
from markov_oracles.semiring import Semiring

logger = logging.getLogger(__name__)


# ── Nested tensor values ───────────────────────────────────────────


def flatten_product(value: Any, arity: int) -> list[Any]:
    """Unpack a left-associated product value into its ``arity`` factors.

    Raises:
        ValueError: If *value* is not shaped as a nested pair of that arity.
    """
    if arity <= 0:
        return []
    if arity == 1:
        return [value]
    if not isinstance(value, tuple) or len(value) != 2:
        raise ValueError(f"expected a left-associated tensor pair, got: {value!r}")
    head = flatten_product(value[0], arity - 1)
    head.append(value[1])
    return head


def rebuild_product(values: Sequence[Any]) -> Any:
    if not values:
        raise ValueError("cannot rebuild a tensor product with zero factors")
    acc = values[0]
    for v in values[1:]:
        acc = (acc, v)
    return acc


def validate_permutation(permutation: Sequence[int], arity: int) -> None:
    if len(permutation) != arity:
        raise ValueError(f"permutation length {len(permutation)} does not match arity {arity}")
    seen: set[int] = set()
    for idx in permutation:
        if isinstance(idx, bool) or not isinstance(idx, int):
            raise ValueError(f"permutation entries must be integers, got: {idx!r}")
        if idx < 0 or idx >= arity:
            raise ValueError(f"permutation index {idx} is outside [0, {arity})")
        if idx in seen:
            raise ValueError(f"permutation repeats index {idx}")
        seen.add(idx)


def permutation_kernel(
    codomain: Fin,
    arity: int,
    permutation: Sequence[int],
    semiring: Semiring,
) -> FinMarkov:
    """Endomorphism of *codomain* reordering its tensor factors."""
    validate_permutation(permutation, arity)
    order = tuple(permutation)

    def act(value: Any) -> Any:
        flat = flatten_product(value, arity)
        return rebuild_product([flat[i] for i in order])

    return FinMarkov(codomain, codomain, deterministic(semiring, act), semiring)


def _coordinate_projection(
    codomain: Fin,
    target: Fin,
    arity: int,
    index: int,
    semiring: Semiring,
) -> FinMarkov:
    return FinMarkov(
        codomain,
        target,
        deterministic(semiring, lambda v: flatten_product(v, arity)[index]),
        semiring,
    )


# ═══════════════════════════════════════════════════════════════════
# WITNESS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class MarkovConditionalWitness:
    """Joint kernel ``arrow: A -> Y₁ ⊗ … ⊗ Yₖ`` with its output projections."""

    domain: MarkovComonoidWitness
    outputs: tuple[MarkovComonoidWitness, ...]
    arrow: FinMarkov
    projections: tuple[FinMarkov, ...]
    label: Optional[str] = None

    @property
    def arity(self) -> int:
        return len(self.outputs)


def build_markov_conditional_witness(
    domain: MarkovComonoidWitness,
    outputs: Sequence[MarkovComonoidWitness],
    arrow: FinMarkov,
    label: Optional[str] = None,
    projections: Optional[Sequence[FinMarkov]] = None,
) -> MarkovConditionalWitness:
    """Package a conditional-independence witness.

    Without explicit *projections*, coordinate projections are inferred from
    the left-associated pair structure of ``arrow.codomain``.

    Raises:
        ValueError: If the arrow does not consume ``domain.object``, no
            outputs are given, or a projection does not run from
            ``arrow.codomain`` to its output object.
    """
    if arrow.domain is not domain.object:
        raise ValueError("conditional witness domain does not match the arrow's domain")
    outs = tuple(outputs)
    if not outs:
        raise ValueError("conditional independence requires at least one output object")

    if projections is None:
        arity = len(outs)
        for elem in arrow.codomain.elems:
            flatten_product(elem, arity)
        projs = tuple(
            _coordinate_projection(arrow.codomain, w.object, arity, i, arrow.semiring)
            for i, w in enumerate(outs)
        )
    else:
        projs = tuple(projections)

    if len(projs) != len(outs):
        raise ValueError(
            f"number of projections ({len(projs)}) must match number of outputs ({len(outs)})"
        )
    for i, (proj, w) in enumerate(zip(projs, outs)):
        if proj.domain is not arrow.codomain:
            raise ValueError(f"projection {i} does not consume the conditional kernel codomain")
        if proj.codomain is not w.object:
            raise ValueError(f"projection {i} does not target the expected output object")

    return MarkovConditionalWitness(domain, outs, arrow, projs, label)


def conditional_marginals(witness: MarkovConditionalWitness) -> tuple[FinMarkov, ...]:
    """The conditional marginals ``arrow ; πᵢ``."""
    return tuple(witness.arrow.then(p) for p in witness.projections)


def factorize_conditional(witness: MarkovConditionalWitness) -> FinMarkov:
    """Rebuild ``⟨p₁, …, pₖ⟩`` over the arrow's own codomain object.

    Raises:
        ValueError: If the marginals' product cardinality differs from the
            arrow's codomain.
    """
    components = conditional_marginals(witness)
    R = witness.arrow.semiring
    kernel: Kernel = components[0]
    size = len(components[0].codomain)
    for c in components[1:]:
        kernel = pair(R, kernel, c)
        size *= len(c.codomain)
    if size != len(witness.arrow.codomain):
        raise ValueError(
            f"factorized codomain cardinality {size} differs from kernel codomain "
            f"{len(witness.arrow.codomain)}"
        )
    return FinMarkov(witness.domain.object, witness.arrow.codomain, kernel, R)


# ═══════════════════════════════════════════════════════════════════
# ORACLE
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ConditionalFailure:
    """law ∈ {"cardinality", "factorization", "permutation"}."""

    law: str
    message: str
    permutation: Optional[tuple[int, ...]] = None


@dataclass(frozen=True)
class ConditionalPermutationReport:
    permutation: tuple[int, ...]
    holds: bool
    details: str


@dataclass(frozen=True, eq=False)
class MarkovConditionalReport:
    witness: MarkovConditionalWitness
    components: tuple[FinMarkov, ...]
    factorized: FinMarkov
    holds: bool
    equality: bool
    mismatches: tuple[KernelMismatch, ...]
    permutations: tuple[ConditionalPermutationReport, ...]
    failures: tuple[ConditionalFailure, ...]
    details: str


def check_conditional_independence(
    witness: MarkovConditionalWitness,
    permutations: Sequence[Sequence[int]] = (),
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> MarkovConditionalReport:
    """Certify ``arrow(a) = ⊗ᵢ pᵢ(a)`` for every input ``a``.

    Violations never raise: structural problems found while factorizing or
    permuting become entries in ``failures``.
    """
    failures: list[ConditionalFailure] = []
    arrow = witness.arrow

    cardinality = 1
    for w in witness.outputs:
        cardinality *= len(w.object)
    if cardinality != len(arrow.codomain):
        failures.append(ConditionalFailure(
            "cardinality",
            f"codomain cardinality {len(arrow.codomain)} mismatches product size {cardinality}",
        ))

    components = conditional_marginals(witness)
    try:
        factorized = factorize_conditional(witness)
    except ValueError as error:
        failures.append(ConditionalFailure("factorization", str(error)))
        factorized = arrow

    mismatches = kernel_mismatches(arrow, factorized, tolerance)
    equality = not mismatches
    if not equality:
        first = mismatches[0]
        failures.append(ConditionalFailure(
            "factorization",
            f"joint differs from the product of marginals at input {first.input!r}, "
            f"point {first.point!r}: observed {first.observed!r}, expected {first.expected!r}",
        ))

    perm_reports: list[ConditionalPermutationReport] = []
    for raw in permutations:
        permutation = tuple(raw)
        try:
            perm = permutation_kernel(arrow.codomain, witness.arity, permutation, arrow.semiring)
            found = kernel_mismatches(arrow.then(perm), factorized.then(perm), tolerance)
        except ValueError as error:
            failures.append(ConditionalFailure(
                "permutation",
                f"invalid permutation {list(permutation)}: {error}",
                permutation,
            ))
            perm_reports.append(ConditionalPermutationReport(permutation, False, str(error)))
            continue
        ok = not found
        if ok:
            details = "permutation preserved conditional independence"
        else:
            details = "permutation broke equality between arrow and factorization"
            failures.append(ConditionalFailure(
                "permutation",
                f"permutation {list(permutation)} violated conditional independence",
                permutation,
            ))
        perm_reports.append(ConditionalPermutationReport(permutation, ok, details))

    holds = not failures
    descriptor = witness.label or f"{witness.arity}-ary conditional kernel"
    if holds:
        details = f"{descriptor} satisfies conditional independence."
    else:
        details = f"{descriptor} violated {len(failures)} condition(s)."
    logger.debug("conditional independence for %s: holds=%s", descriptor, holds)

    return MarkovConditionalReport(
        witness=witness,
        components=components,
        factorized=factorized,
        holds=holds,
        equality=equality,
        mismatches=mismatches,
        permutations=tuple(perm_reports),
        failures=tuple(failures),
        details=details,
    )
