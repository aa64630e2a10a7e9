"""
Kolmogorov and Hewitt–Savage zero–one oracles.

A zero–one witness bundles

    prior  p : A -> X_J         distribution over the product
    stat   s : X_J -> T         tail statistic
    finite marginals π_F : X_J -> X_F

and certifies that ``s ∘ p`` is deterministic (the tail statistic is almost
surely constant given ``A``).  The Kolmogorov oracle evaluates three
obligation families independently:

  (a) global:        (X_{F₁} ⊗ … ⊗ X_{Fₙ}, T) conditionally independent given A;
  (b) per marginal:  X_F ⟂ T ∥ A for each named finite marginal;
  (c) determinism:   ``s ∘ p`` is Dirac on every input and carries full mass.

Every failing obligation is appended to one ``failures`` list, attributed
to ``"global"``, the marginal's name or ``"determinism"``.  The
Hewitt–Savage oracle adds permutation invariance of the statistic under
finite relabelings of the index set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Optional, Sequence, Union

from markov_oracles.comonoid import build_markov_comonoid_witness
from markov_oracles.conditional import (
    MarkovConditionalReport,
    build_markov_conditional_witness,
    check_conditional_independence,
)
from markov_oracles.determinism import is_deterministic, is_deterministic_kernel
from markov_oracles.kernel import (
    DEFAULT_TOLERANCE,
    Fin,
    FinMarkov,
    Kernel,
    pair,
    tensor_obj,
)
from markov_oracles.permutation import (
    FinitePermutationInvarianceReport,
    FiniteSymmetry,
    check_finite_permutation_invariance,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class KolmogorovFiniteMarginal:
    """Projection ``π_F : X_J -> X_F`` named by its finite subset ``F``."""

    name: str
    projection: FinMarkov


MarginalLike = Union[KolmogorovFiniteMarginal, tuple]


def _as_marginal(entry: MarginalLike) -> KolmogorovFiniteMarginal:
    if isinstance(entry, KolmogorovFiniteMarginal):
        return entry
    name, projection = entry
    return KolmogorovFiniteMarginal(str(name), projection)


@dataclass(frozen=True, eq=False)
class KolmogorovZeroOneWitness:
    prior: FinMarkov
    stat: FinMarkov
    finite_marginals: tuple[KolmogorovFiniteMarginal, ...]
    label: Optional[str] = None


@dataclass(frozen=True, eq=False)
class HewittSavageWitness(KolmogorovZeroOneWitness):
    permutations: tuple[FiniteSymmetry, ...] = ()


def _validate_pieces(
    prior: FinMarkov,
    stat: FinMarkov,
    marginals: tuple[KolmogorovFiniteMarginal, ...],
) -> None:
    if prior.codomain is not stat.domain:
        raise ValueError("zero–one witness requires the statistic to consume the prior codomain")
    for i, entry in enumerate(marginals):
        if entry.projection.domain is not stat.domain:
            raise ValueError(f"finite marginal {i} ({entry.name}) does not consume X_J")


def build_kolmogorov_zero_one_witness(
    prior: FinMarkov,
    stat: FinMarkov,
    finite_marginals: Sequence[MarginalLike],
    label: Optional[str] = None,
) -> KolmogorovZeroOneWitness:
    """Bundle a prior, tail statistic and finite marginals.

    Marginals may be :class:`KolmogorovFiniteMarginal` values or
    ``(name, projection)`` pairs.

    Raises:
        ValueError: If ``prior.codomain is not stat.domain`` or a marginal
            projection does not consume ``stat.domain``.
    """
    marginals = tuple(_as_marginal(m) for m in finite_marginals)
    _validate_pieces(prior, stat, marginals)
    return KolmogorovZeroOneWitness(prior, stat, marginals, label)


def build_hewitt_savage_witness(
    prior: FinMarkov,
    stat: FinMarkov,
    finite_marginals: Sequence[MarginalLike],
    permutations: Sequence[FiniteSymmetry],
    label: Optional[str] = None,
) -> HewittSavageWitness:
    """Kolmogorov witness plus finite symmetries of the product.

    Raises:
        ValueError: As :func:`build_kolmogorov_zero_one_witness`, or if a
            symmetry is not an endomorphism of ``prior.codomain``.
    """
    marginals = tuple(_as_marginal(m) for m in finite_marginals)
    _validate_pieces(prior, stat, marginals)
    symmetries = tuple(permutations)
    for sym in symmetries:
        sigma = sym.sigma_hat
        if sigma.domain is not prior.codomain or sigma.codomain is not prior.codomain:
            raise ValueError(f"symmetry {sym.name!r} is not an endomorphism of the prior codomain")
    return HewittSavageWitness(prior, stat, marginals, label, symmetries)


# ═══════════════════════════════════════════════════════════════════
# REPORTS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ZeroOneFailure:
    """Failed obligation: ``name`` is "global", a marginal name or "determinism"."""

    name: str
    reason: str


@dataclass(frozen=True, eq=False)
class MarginalCheck:
    name: str
    report: MarkovConditionalReport


@dataclass(frozen=True, eq=False)
class KolmogorovZeroOneReport:
    holds: bool
    witness: KolmogorovZeroOneWitness
    composite: FinMarkov
    deterministic: bool
    ci_family_verified: bool
    failures: tuple[ZeroOneFailure, ...]
    tolerance: float
    global_independence: Optional[MarkovConditionalReport]
    marginal_checks: tuple[MarginalCheck, ...]
    details: str


@dataclass(frozen=True, eq=False)
class HewittSavageReport(KolmogorovZeroOneReport):
    permutation_invariant: bool = True
    permutation_failures: tuple[str, ...] = ()
    permutation_report: Optional[FinitePermutationInvarianceReport] = None


# ═══════════════════════════════════════════════════════════════════
# KOLMOGOROV
# ═══════════════════════════════════════════════════════════════════


def _combine_projections(projections: Sequence[FinMarkov]) -> FinMarkov:
    first = projections[0]
    R = first.semiring
    kernel: Kernel = first
    codomain: Fin = first.codomain
    for proj in projections[1:]:
        kernel = pair(R, kernel, proj)
        codomain = tensor_obj(codomain, proj.codomain)
    return FinMarkov(first.domain, codomain, kernel, R)


def _independence_with_stat(
    witness: KolmogorovZeroOneWitness,
    block: FinMarkov,
    block_label: str,
    label: str,
    tolerance: Optional[float],
) -> MarkovConditionalReport:
    """Check ``(block, T)`` conditionally independent given ``A``."""
    prior, stat = witness.prior, witness.stat
    R = prior.semiring
    prefix = witness.label or "Kolmogorov"
    domain = build_markov_comonoid_witness(
        prior.domain, f"{witness.label} domain" if witness.label else None, R
    )
    block_witness = build_markov_comonoid_witness(block.codomain, f"{prefix} {block_label}", R)
    t_witness = build_markov_comonoid_witness(
        stat.codomain, f"{witness.label} T" if witness.label else None, R
    )
    state_joint = FinMarkov(
        prior.codomain,
        tensor_obj(block.codomain, stat.codomain),
        pair(R, block, stat),
        R,
    )
    conditional = build_markov_conditional_witness(
        domain, [block_witness, t_witness], prior.then(state_joint), label
    )
    return check_conditional_independence(conditional, tolerance=tolerance)


def _global_independence(
    witness: KolmogorovZeroOneWitness,
    tolerance: Optional[float],
) -> Optional[MarkovConditionalReport]:
    if not witness.finite_marginals:
        return None
    combined = _combine_projections([m.projection for m in witness.finite_marginals])
    prefix = witness.label or "Kolmogorov"
    return _independence_with_stat(
        witness, combined, "finite marginals", f"{prefix} finite marginals", tolerance
    )


def _marginal_checks(
    witness: KolmogorovZeroOneWitness,
    tolerance: Optional[float],
) -> tuple[MarginalCheck, ...]:
    prefix = witness.label or "Kolmogorov"
    return tuple(
        MarginalCheck(
            m.name,
            _independence_with_stat(
                witness, m.projection, m.name, f"{prefix} ({m.name}, T)", tolerance
            ),
        )
        for m in witness.finite_marginals
    )


def check_kolmogorov_zero_one(
    witness: KolmogorovZeroOneWitness,
    tolerance: float = DEFAULT_TOLERANCE,
) -> KolmogorovZeroOneReport:
    """Evaluate the global, per-marginal and determinism obligations.

    The three families are evaluated independently; ``holds`` is their
    conjunction.
    """
    prior = witness.prior
    R = prior.semiring
    composite = prior.then(witness.stat)

    global_report = _global_independence(witness, tolerance)
    marginal_reports = _marginal_checks(witness, tolerance)
    ci_verified = (global_report is None or global_report.holds) and all(
        m.report.holds for m in marginal_reports
    )

    det = is_deterministic(R, composite, prior.domain.elems).det
    if det:
        det = is_deterministic_kernel(prior.domain, composite, tolerance, R)

    failures: list[ZeroOneFailure] = []
    if global_report is not None and not global_report.holds:
        failures.append(ZeroOneFailure("global", global_report.details))
    for m in marginal_reports:
        if not m.report.holds:
            failures.append(ZeroOneFailure(m.name, m.report.details))
    if not det:
        failures.append(ZeroOneFailure("determinism", "composite s ∘ p failed determinism check"))

    holds = ci_verified and det
    descriptor = witness.label or "Kolmogorov zero–one"
    if holds:
        details = f"{descriptor}: all finite marginals verify X_F ⟂ T ∥ A and s ∘ p is deterministic."
    else:
        details = f"{descriptor}: {len(failures)} obligation(s) failed."
    logger.debug("%s", details)

    return KolmogorovZeroOneReport(
        holds=holds,
        witness=witness,
        composite=composite,
        deterministic=det,
        ci_family_verified=ci_verified,
        failures=tuple(failures),
        tolerance=tolerance,
        global_independence=global_report,
        marginal_checks=marginal_reports,
        details=details,
    )


# ═══════════════════════════════════════════════════════════════════
# HEWITT–SAVAGE
# ═══════════════════════════════════════════════════════════════════


def check_hewitt_savage_zero_one(
    witness: HewittSavageWitness,
    tolerance: float = DEFAULT_TOLERANCE,
) -> HewittSavageReport:
    """Kolmogorov obligations plus invariance under the witness permutations.

    Labels of violating permutations are appended to ``failures``.
    """
    base = check_kolmogorov_zero_one(witness, tolerance)
    perm_report = check_finite_permutation_invariance(
        witness.prior, witness.stat, witness.permutations, tolerance
    )
    labels = perm_report.failure_labels
    failures = base.failures + tuple(ZeroOneFailure(name, name) for name in labels)

    holds = base.holds and perm_report.holds
    descriptor = witness.label or "Hewitt–Savage zero–one"
    if holds:
        details = f"{descriptor}: Kolmogorov hypotheses and permutation invariance certify determinism."
    else:
        details = f"{descriptor}: detected {len(failures)} issue(s)."
    logger.debug("%s", details)

    inherited: dict[str, Any] = {
        f.name: getattr(base, f.name) for f in fields(KolmogorovZeroOneReport)
    }
    inherited.update(holds=holds, failures=failures, details=details)
    return HewittSavageReport(
        **inherited,
        permutation_invariant=perm_report.holds,
        permutation_failures=labels,
        permutation_report=perm_report,
    )
