"""
Thunkability oracle.

A kernel ``f: A -> Dist[B]`` is *thunkable* when it is Dirac everywhere,
with base ``b``, **and** its Kleisli lift commutes with push-forward along
``b``:

    P f (d)  ==  b_* d        for every probe distribution d over A

where ``P f (d) = d >>= f``.  In a Markov category over finite sets the two
conditions coincide (thunkable ⇔ deterministic); checking the square on
mixtures catches kernels whose Dirac outputs do not assemble into an
honest function.

Probes are generated systematically, never randomly:

  1. one Dirac probe per domain element;
  2. when the domain has at least two elements, the unnormalized uniform
     probe (weight ``one`` on every element);
  3. for numeric semirings, the fixed mixtures 0.7/0.3 over the first two
     elements and 0.2/0.3/0.5 over the first three.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from markov_oracles.determinism import (
    DeterministicBase,
    is_deterministic,
    make_deterministic,
)
from markov_oracles.dist import Dist, DistLike, as_dist, bind, equal_dist
from markov_oracles.dist import pushforward as _pushforward
from markov_oracles.kernel import DEFAULT_TOLERANCE, Fin, Kernel
from markov_oracles.semiring import Semiring

logger = logging.getLogger(__name__)

# Fixed non-uniform mixtures used as probes on numeric semirings
_TWO_POINT_MIX = (0.7, 0.3)
_THREE_POINT_MIX = (0.2, 0.3, 0.5)

Domain = Union[Fin, Sequence[Any]]


def _elements(domain: Domain) -> tuple:
    return domain.elems if isinstance(domain, Fin) else tuple(domain)


def lift_p(R: Semiring, f: Kernel) -> Callable[[DistLike], Dist]:
    """Kleisli lift ``P f : Dist[A] -> Dist[B]``."""
    return lambda d: bind(as_dist(R, d), f)


def pushforward(R: Semiring, d: DistLike, b: Callable[[Any], Any]) -> Dist:
    return _pushforward(as_dist(R, d), b)


def generate_probe_dists(R: Semiring, domain: Domain) -> list[Dist]:
    """Systematic probe distributions over *domain*.

    An empty domain yields no probes; a singleton yields its point mass.
    """
    elems = _elements(domain)
    probes = [Dist(R, {a: R.one}) for a in elems]
    if len(elems) >= 2:
        probes.append(Dist(R, ((a, R.one) for a in elems)))
        if R.numeric:
            probes.append(Dist(R, zip(elems[:2], _TWO_POINT_MIX)))
            if len(elems) >= 3:
                probes.append(Dist(R, zip(elems[:3], _THREE_POINT_MIX)))
    return probes


@dataclass(frozen=True)
class ProbeFailure:
    """A probe on which ``P f (d)`` and ``b_* d`` disagree."""

    probe: Dist
    lifted: Dist
    pushed: Dist


@dataclass(frozen=True)
class ThunkabilityReport:
    """Verdict of the thunkability oracle.

    ``base`` is present only when the kernel is thunkable; ``failure``
    records the first offending probe when the square fails.
    """

    thunkable: bool
    base: Optional[DeterministicBase]
    details: str
    probes_checked: int = 0
    failure: Optional[ProbeFailure] = field(default=None, repr=False)


def _first_square_failure(
    R: Semiring,
    f: Kernel,
    base: Callable[[Any], Any],
    probes: Iterable[DistLike],
    tolerance: Optional[float],
) -> tuple[int, Optional[ProbeFailure]]:
    lifted_map = lift_p(R, f)
    checked = 0
    for probe in probes:
        d = as_dist(R, probe)
        checked += 1
        lifted = lifted_map(d)
        pushed = pushforward(R, d, base)
        if not equal_dist(lifted, pushed, tolerance):
            return checked, ProbeFailure(d, lifted, pushed)
    return checked, None


def check_commuting_square(
    R: Semiring,
    f: Kernel,
    base: Callable[[Any], Any],
    probes: Iterable[DistLike],
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> bool:
    """True when ``P f (d) == base_* d`` for every probe."""
    _, failure = _first_square_failure(R, f, base, probes, tolerance)
    return failure is None


def is_thunkable(
    R: Semiring,
    f: Kernel,
    domain: Domain,
    probes: Iterable[DistLike],
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> ThunkabilityReport:
    """Thunkability of *f* over *domain* against caller-supplied probes.

    Any failing probe short-circuits to "not thunkable" with no base.
    """
    det = is_deterministic(R, f, _elements(domain))
    base = det.base
    if not det.det or base is None:
        details = f"not deterministic: output at {det.counterexample!r} is not Dirac"
        logger.debug("thunkability rejected: %s", details)
        return ThunkabilityReport(False, None, details)

    checked, failure = _first_square_failure(R, f, base, probes, tolerance)
    if failure is not None:
        details = (
            f"commuting square failed on probe {dict(failure.probe)!r}: "
            f"lift gave {dict(failure.lifted)!r}, push-forward gave {dict(failure.pushed)!r}"
        )
        logger.debug("thunkability rejected: %s", details)
        return ThunkabilityReport(False, None, details, checked, failure)

    logger.debug("thunkability passed on %d probe(s)", checked)
    return ThunkabilityReport(True, base, f"passed ({checked} probes)", checked)


def check_thunkability_robust(
    R: Semiring,
    f: Kernel,
    domain: Domain,
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> ThunkabilityReport:
    """Thunkability against the systematic probes of :func:`generate_probe_dists`."""
    return is_thunkable(R, f, domain, generate_probe_dists(R, domain), tolerance)


def verify_deterministic_is_thunkable(
    R: Semiring,
    base: Callable[[Any], Any],
    domain: Domain,
) -> bool:
    """Lift *base* to a Dirac kernel and confirm it is thunkable with the same base."""
    report = check_thunkability_robust(R, make_deterministic(R, base), domain)
    if not report.thunkable or report.base is None:
        return False
    return all(report.base(a) == base(a) for a in _elements(domain))


def verify_stochastic_not_thunkable(R: Semiring, f: Kernel, domain: Domain) -> bool:
    return not check_thunkability_robust(R, f, domain).thunkable
