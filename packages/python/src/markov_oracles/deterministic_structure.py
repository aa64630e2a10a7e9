"""
Deterministic morphisms and their comonoid characterization.

In a Markov category a morphism is *deterministic* exactly when it is a
comonoid homomorphism.  These oracles check both sides independently and
report whether they agree:

  - :func:`check_deterministic_comonoid`: Dirac rows with full mass versus
    preservation of copy and discard;
  - :func:`check_deterministic_tensor_via_marginals`: a kernel into a
    tensor is deterministic iff both marginals are (positivity);
  - :func:`check_determinism_lemma`: under conditional independence of
    ``(X, T)`` given ``A``, a deterministic ``s: X -> T`` makes ``p ; s``
    deterministic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from markov_oracles.comonoid import (
    ComonoidHomReport,
    MarkovComonoidWitness,
    build_markov_comonoid_witness,
    check_markov_comonoid_hom,
)
from markov_oracles.conditional import (
    MarkovConditionalReport,
    MarkovConditionalWitness,
    check_conditional_independence,
    conditional_marginals,
)
from markov_oracles.determinism import (
    DeterminismCounterexample,
    extract_deterministic_base,
)
from markov_oracles.dist import dirac
from markov_oracles.kernel import (
    DEFAULT_TOLERANCE,
    FinMarkov,
    fst,
    kernel_mismatches,
    snd,
    tensor_obj,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MarkovDeterministicWitness:
    domain: MarkovComonoidWitness
    codomain: MarkovComonoidWitness
    arrow: FinMarkov
    label: Optional[str] = None
    base: Optional[Callable[[Any], Any]] = None


def build_markov_deterministic_witness(
    domain: MarkovComonoidWitness,
    codomain: MarkovComonoidWitness,
    arrow: FinMarkov,
    label: Optional[str] = None,
    base: Optional[Callable[[Any], Any]] = None,
) -> MarkovDeterministicWitness:
    """Tie *arrow* to the comonoid witnesses of its endpoints.

    Raises:
        ValueError: If the arrow's domain or codomain is not the witness object.
    """
    if arrow.domain is not domain.object:
        raise ValueError("deterministic witness domain does not match the comonoid witness")
    if arrow.codomain is not codomain.object:
        raise ValueError("deterministic witness codomain does not match the comonoid witness")
    return MarkovDeterministicWitness(domain, codomain, arrow, label, base)


def certify_deterministic_function(
    domain: MarkovComonoidWitness,
    codomain: MarkovComonoidWitness,
    base: Callable[[Any], Any],
    label: Optional[str] = None,
) -> MarkovDeterministicWitness:
    """Witness for the Dirac kernel of a plain function ``base``."""
    R = domain.semiring
    arrow = FinMarkov(domain.object, codomain.object, lambda x: dirac(R, base(x)), R)
    return build_markov_deterministic_witness(domain, codomain, arrow, label, base)


def _describe_object(witness: MarkovComonoidWitness) -> str:
    if witness.label:
        return witness.label
    size = len(witness.object)
    return "terminal object" if size == 1 else f"{size}-element object"


def _describe_arrow(witness: MarkovDeterministicWitness) -> str:
    if witness.label:
        return witness.label
    return f"{_describe_object(witness.domain)} → {_describe_object(witness.codomain)}"


# ═══════════════════════════════════════════════════════════════════
# DETERMINISM VS COMONOID HOMOMORPHISM
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DeterministicFailure:
    """law ∈ {"determinism", "copy", "discard", "equivalence"}."""

    law: str
    message: str
    counterexample: Optional[DeterminismCounterexample] = None


@dataclass(frozen=True, eq=False)
class MarkovDeterminismReport:
    holds: bool
    deterministic: bool
    comonoid_hom: bool
    equivalent: bool
    preserves_copy: bool
    preserves_discard: bool
    witness: MarkovDeterministicWitness
    failures: tuple[DeterministicFailure, ...]
    details: str
    base: Optional[Callable[[Any], Any]] = field(default=None, repr=False)
    hom: Optional[ComonoidHomReport] = field(default=None, repr=False)


def check_deterministic_comonoid(
    witness: MarkovDeterministicWitness,
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> MarkovDeterminismReport:
    """Check determinism and comonoid-homomorphism of the witness arrow."""
    arrow = witness.arrow
    descriptor = _describe_arrow(witness)

    base, counterexample = extract_deterministic_base(
        witness.domain.object,
        witness.codomain.object,
        arrow,
        tolerance,
        arrow.semiring,
    )
    is_det = base is not None

    hom = check_markov_comonoid_hom(witness.domain, witness.codomain, arrow, tolerance)
    comonoid_hom = hom.holds
    equivalent = is_det == comonoid_hom
    holds = is_det and comonoid_hom

    failures: list[DeterministicFailure] = []
    if not is_det:
        failures.append(DeterministicFailure(
            "determinism",
            f"kernel {descriptor} is not deterministic: found a non-Dirac output",
            counterexample,
        ))
    if not hom.preserves_copy:
        failures.append(DeterministicFailure("copy", f"copy law failed for {descriptor}"))
    if not hom.preserves_discard:
        failures.append(DeterministicFailure("discard", f"discard law failed for {descriptor}"))
    if not equivalent:
        failures.append(DeterministicFailure(
            "equivalence",
            f"determinism and comonoid homomorphism disagreed for {descriptor}",
        ))

    if holds:
        details = f"Morphism {descriptor} is deterministic and preserves copy/discard."
    else:
        details = f"{len(failures)} determinism check(s) failed for {descriptor}."

    return MarkovDeterminismReport(
        holds=holds,
        deterministic=is_det,
        comonoid_hom=comonoid_hom,
        equivalent=equivalent,
        preserves_copy=hom.preserves_copy,
        preserves_discard=hom.preserves_discard,
        witness=witness,
        failures=tuple(failures),
        details=details,
        base=base,
        hom=hom,
    )


# ═══════════════════════════════════════════════════════════════════
# POSITIVITY: TENSOR DETERMINISM VIA MARGINALS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class MarkovPositivityWitness:
    left: MarkovComonoidWitness
    right: MarkovComonoidWitness
    tensor: MarkovComonoidWitness
    project_left: FinMarkov
    project_right: FinMarkov
    label: Optional[str] = None


def build_markov_positivity_witness(
    left: MarkovComonoidWitness,
    right: MarkovComonoidWitness,
    label: Optional[str] = None,
    tensor: Optional[MarkovComonoidWitness] = None,
) -> MarkovPositivityWitness:
    R = left.semiring
    if tensor is None:
        tensor = build_markov_comonoid_witness(
            tensor_obj(left.object, right.object), label, R
        )
    project_left = FinMarkov(tensor.object, left.object, fst(R), R)
    project_right = FinMarkov(tensor.object, right.object, snd(R), R)
    return MarkovPositivityWitness(left, right, tensor, project_left, project_right, label)


@dataclass(frozen=True, eq=False)
class TensorMarginalDeterminismReport:
    holds: bool
    equivalent: bool
    tensor: MarkovDeterminismReport
    left: MarkovDeterminismReport
    right: MarkovDeterminismReport
    details: str


def check_deterministic_tensor_via_marginals(
    domain: MarkovComonoidWitness,
    positivity: MarkovPositivityWitness,
    arrow: FinMarkov,
    label: Optional[str] = None,
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> TensorMarginalDeterminismReport:
    """Determinism of ``arrow: A -> B ⊗ C`` agrees with that of both marginals.

    Raises:
        ValueError: If the arrow does not land in the positivity tensor object.
    """
    if arrow.codomain is not positivity.tensor.object:
        raise ValueError("tensor arrow codomain does not match the positivity witness tensor")

    tensor_witness = build_markov_deterministic_witness(domain, positivity.tensor, arrow, label)
    tensor_report = check_deterministic_comonoid(tensor_witness, tolerance)
    left_report = check_deterministic_comonoid(
        build_markov_deterministic_witness(
            domain, positivity.left, arrow.then(positivity.project_left)
        ),
        tolerance,
    )
    right_report = check_deterministic_comonoid(
        build_markov_deterministic_witness(
            domain, positivity.right, arrow.then(positivity.project_right)
        ),
        tolerance,
    )

    marginals_det = left_report.deterministic and right_report.deterministic
    equivalent = tensor_report.deterministic == marginals_det
    descriptor = label or positivity.label or "tensor morphism"
    if equivalent:
        details = f"Determinism of {descriptor} matches the determinism of both marginals."
    else:
        details = f"Determinism of {descriptor} disagrees with its marginals."
    return TensorMarginalDeterminismReport(
        holds=equivalent,
        equivalent=equivalent,
        tensor=tensor_report,
        left=left_report,
        right=right_report,
        details=details,
    )


# ═══════════════════════════════════════════════════════════════════
# DETERMINISM LEMMA
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class DeterminismLemmaWitness:
    """Hypotheses of the determinism lemma.

    ``conditional`` packages ``A -> X ⊗ T`` (outputs at ``x_index`` and
    ``t_index``), ``p: A -> X`` is its X marginal and ``deterministic``
    wraps ``s: X -> T``.
    """

    conditional: MarkovConditionalWitness
    p: FinMarkov
    deterministic: MarkovDeterministicWitness
    x_index: int = 0
    t_index: int = 1
    label: Optional[str] = None


@dataclass(frozen=True)
class DeterminismLemmaFailure:
    """law ∈ {"conditionalIndependence", "deterministicComponent",
    "marginalMismatch", "compositeDeterminism"}."""

    law: str
    message: str


@dataclass(frozen=True, eq=False)
class DeterminismLemmaReport:
    holds: bool
    conditional: MarkovConditionalReport
    deterministic: MarkovDeterminismReport
    composite: MarkovDeterminismReport
    composite_arrow: FinMarkov
    failures: tuple[DeterminismLemmaFailure, ...]
    details: str


def check_determinism_lemma(
    witness: DeterminismLemmaWitness,
    permutations: Sequence[Sequence[int]] = (),
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> DeterminismLemmaReport:
    """Check that ``p ; s`` is deterministic under ``X ⟂ T ∥ A``.

    Raises:
        ValueError: If the indices or objects of the witness pieces do not
            line up.
    """
    conditional = witness.conditional
    xi, ti = witness.x_index, witness.t_index
    if xi == ti:
        raise ValueError("determinism lemma requires distinct indices for X and T")
    for name, idx in (("X", xi), ("T", ti)):
        if idx < 0 or idx >= conditional.arity:
            raise ValueError(f"{name} marginal index {idx} is outside the conditional outputs")

    p = witness.p
    s = witness.deterministic
    x_obj = conditional.outputs[xi].object
    t_obj = conditional.outputs[ti].object
    if p.domain is not conditional.domain.object:
        raise ValueError("kernel p must share the conditional witness domain")
    if p.codomain is not x_obj:
        raise ValueError("kernel p must land in the X output of the conditional witness")
    if s.domain.object is not x_obj:
        raise ValueError("deterministic arrow s must consume the X output object")
    if s.codomain.object is not t_obj:
        raise ValueError("deterministic arrow s must land in the T output object")

    components = conditional_marginals(conditional)
    cond_report = check_conditional_independence(conditional, permutations, tolerance)
    det_report = check_deterministic_comonoid(s, tolerance)

    composite_arrow = p.then(s.arrow)
    composite_label = f"{witness.label} composite" if witness.label else None
    composite_witness = build_markov_deterministic_witness(
        conditional.domain, s.codomain, composite_arrow, composite_label
    )
    composite_report = check_deterministic_comonoid(composite_witness, tolerance)

    failures: list[DeterminismLemmaFailure] = []
    if kernel_mismatches(components[xi], p, tolerance):
        failures.append(DeterminismLemmaFailure(
            "marginalMismatch",
            "conditional witness X marginal does not match the provided kernel p",
        ))
    if kernel_mismatches(components[ti], composite_arrow, tolerance):
        failures.append(DeterminismLemmaFailure(
            "marginalMismatch",
            "conditional witness T marginal does not match the composite s ∘ p",
        ))
    if not det_report.holds:
        failures.append(DeterminismLemmaFailure("deterministicComponent", det_report.details))
    if not cond_report.holds:
        failures.append(DeterminismLemmaFailure("conditionalIndependence", cond_report.details))
    if not composite_report.deterministic:
        failures.append(DeterminismLemmaFailure("compositeDeterminism", composite_report.details))

    holds = not failures
    descriptor = witness.label or "determinism lemma"
    if holds:
        details = (
            f"{descriptor}: composite {_describe_arrow(composite_witness)} is deterministic "
            f"under the conditional independence hypothesis."
        )
    else:
        details = f"{descriptor}: detected {len(failures)} issue(s) while applying the determinism lemma."
    logger.debug("determinism lemma %s: holds=%s", descriptor, holds)

    return DeterminismLemmaReport(
        holds=holds,
        conditional=cond_report,
        deterministic=det_report,
        composite=composite_report,
        composite_arrow=composite_arrow,
        failures=tuple(failures),
        details=details,
    )
