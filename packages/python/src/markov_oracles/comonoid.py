"""
Canonical comonoid structure on finite objects.

Every finite set ``X`` carries a commutative comonoid in the Markov
category: copy ``Δ: X -> X ⊗ X, x ↦ (x, x)`` and discard
``!: X -> I, x ↦ •``.  The structure is derived from the object alone;
no externally supplied copy function is accepted.

Laws (checked exhaustively, no sampling):

    coassociativity   Δ ; (Δ ⊗ id)  ≅  Δ ; (id ⊗ Δ)     (up to rebracketing)
    commutativity     Δ ; swap      =  Δ
    left counit       Δ ; (! ⊗ id)  ≅  id
    right counit      Δ ; (id ⊗ !)  ≅  id

A morphism ``f: X -> Y`` is a comonoid homomorphism when it preserves copy
(``f ; Δ_Y = Δ_X ; (f ⊗ f)``) and discard (``f ; !_Y = !_X``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from markov_oracles.kernel import (
    DEFAULT_TOLERANCE,
    I_FIN,
    Fin,
    FinMarkov,
    Kernel,
    KernelMismatch,
    copy_k,
    det_k,
    discard_k,
    id_k,
    kernel_mismatches,
    tensor,
    tensor_obj,
)
from markov_oracles.semiring import PROB, Semiring

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MarkovComonoidWitness:
    """Copy/discard structure attached to a finite object."""

    object: Fin
    copy: FinMarkov
    discard: FinMarkov
    label: Optional[str] = None

    @property
    def semiring(self) -> Semiring:
        return self.copy.semiring


def build_markov_comonoid_witness(
    fin: Fin,
    label: Optional[str] = None,
    semiring: Semiring = PROB,
) -> MarkovComonoidWitness:
    return MarkovComonoidWitness(
        object=fin,
        copy=copy_k(fin, semiring),
        discard=discard_k(fin, semiring),
        label=label,
    )


def _describe(witness: MarkovComonoidWitness) -> str:
    if witness.label:
        return witness.label
    size = len(witness.object)
    return "terminal object" if size == 1 else f"{size}-element object"


@dataclass(frozen=True)
class ComonoidLawFailure:
    """A comonoid law violated at one input, with both compared weights."""

    law: str
    input: Any
    point: Any
    observed: Any
    expected: Any


def _failures(law: str, found: tuple[KernelMismatch, ...]) -> list[ComonoidLawFailure]:
    return [ComonoidLawFailure(law, m.input, m.point, m.observed, m.expected) for m in found]


# ═══════════════════════════════════════════════════════════════════
# COMONOID LAWS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class MarkovComonoidReport:
    holds: bool
    coassociative: bool
    commutative: bool
    counit_left: bool
    counit_right: bool
    failures: tuple[ComonoidLawFailure, ...]
    details: str


def check_markov_comonoid(
    witness: MarkovComonoidWitness,
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> MarkovComonoidReport:
    """Verify the four comonoid laws by enumeration over the object.

    The witness's own copy/discard kernels are exercised, so a witness
    assembled by hand with a wrong copy map is reported, not trusted.
    """
    X = witness.object
    R = witness.semiring
    copy_kernel: Kernel = witness.copy
    discard_kernel: Kernel = witness.discard
    ident: Kernel = id_k(X, R)

    XX = tensor_obj(X, X)
    XX_X = tensor_obj(XX, X)
    X_XX = tensor_obj(X, XX)
    delta = FinMarkov(X, XX, copy_kernel, R)

    # Coassociativity, compared after rebracketing ((x, y), z) -> (x, (y, z))
    left_branch = delta.then(FinMarkov(XX, XX_X, tensor(R, copy_kernel, ident), R))
    left_branch = left_branch.then(det_k(XX_X, X_XX, lambda p: (p[0][0], (p[0][1], p[1])), R))
    right_branch = delta.then(FinMarkov(XX, X_XX, tensor(R, ident, copy_kernel), R))
    coassoc = kernel_mismatches(left_branch, right_branch, tolerance)

    swapped = delta.then(det_k(XX, XX, lambda p: (p[1], p[0]), R))
    commut = kernel_mismatches(swapped, delta, tolerance)

    identity = id_k(X, R)
    I_X = tensor_obj(I_FIN, X)
    X_I = tensor_obj(X, I_FIN)
    counit_l = delta.then(FinMarkov(XX, I_X, tensor(R, discard_kernel, ident), R))
    counit_l = counit_l.then(det_k(I_X, X, lambda p: p[1], R))
    counit_r = delta.then(FinMarkov(XX, X_I, tensor(R, ident, discard_kernel), R))
    counit_r = counit_r.then(det_k(X_I, X, lambda p: p[0], R))
    left_unit = kernel_mismatches(counit_l, identity, tolerance)
    right_unit = kernel_mismatches(counit_r, identity, tolerance)

    failures = (
        _failures("coassociativity", coassoc)
        + _failures("commutativity", commut)
        + _failures("counit-left", left_unit)
        + _failures("counit-right", right_unit)
    )
    holds = not failures
    descriptor = _describe(witness)
    if holds:
        details = f"{descriptor} satisfies the comonoid laws."
    else:
        details = f"{descriptor} violated {len(failures)} comonoid law instance(s)."
    logger.debug("comonoid check on %s: holds=%s", descriptor, holds)
    return MarkovComonoidReport(
        holds=holds,
        coassociative=not coassoc,
        commutative=not commut,
        counit_left=not left_unit,
        counit_right=not right_unit,
        failures=tuple(failures),
        details=details,
    )


# ═══════════════════════════════════════════════════════════════════
# COMONOID HOMOMORPHISMS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ComonoidHomReport:
    preserves_copy: bool
    preserves_discard: bool
    holds: bool
    failures: tuple[ComonoidLawFailure, ...]
    details: str


def _as_object(value: Union[Fin, MarkovComonoidWitness]) -> Fin:
    return value.object if isinstance(value, MarkovComonoidWitness) else value


def check_markov_comonoid_hom(
    domain: Union[Fin, MarkovComonoidWitness],
    codomain: Union[Fin, MarkovComonoidWitness],
    morphism: Union[Kernel, FinMarkov],
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
    semiring: Optional[Semiring] = None,
) -> ComonoidHomReport:
    """Check that *morphism* commutes with copy and with discard.

    The two preservation laws are reported independently.  The semiring is
    taken from *morphism* when it is a :class:`FinMarkov`, else from
    *semiring* (default ``PROB``).
    """
    X = _as_object(domain)
    Y = _as_object(codomain)
    if semiring is not None:
        R = semiring
    elif isinstance(morphism, FinMarkov):
        R = morphism.semiring
    else:
        R = PROB
    f = FinMarkov(X, Y, morphism, R)

    XX = tensor_obj(X, X)
    YY = tensor_obj(Y, Y)
    lhs = f.then(copy_k(Y, R, codomain=YY))
    rhs = copy_k(X, R, codomain=XX).then(FinMarkov(XX, YY, tensor(R, f, f), R))
    copy_found = kernel_mismatches(lhs, rhs, tolerance)

    discard_found = kernel_mismatches(f.then(discard_k(Y, R)), discard_k(X, R), tolerance)

    failures = _failures("copy", copy_found) + _failures("discard", discard_found)
    holds = not failures
    descriptor = f"{len(X)}-element → {len(Y)}-element morphism"
    if holds:
        details = f"{descriptor} preserves copy and discard."
    else:
        broken = [law for law, found in (("copy", copy_found), ("discard", discard_found)) if found]
        details = f"{descriptor} fails to preserve {' and '.join(broken)}."
    return ComonoidHomReport(
        preserves_copy=not copy_found,
        preserves_discard=not discard_found,
        holds=holds,
        failures=tuple(failures),
        details=details,
    )
