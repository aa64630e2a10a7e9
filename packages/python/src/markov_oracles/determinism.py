"""
Dirac and determinism recognizers.

A distribution is *Dirac* when exactly one outcome carries a non-zero
weight.  A kernel is *deterministic* on a set of samples when every sampled
output is Dirac; the sole outcomes then define a base function
``b(a) = the Dirac point of f(a)``.

The base is partial.  It is certain on the sampled inputs and is extended
lazily to other inputs only where ``f`` is still Dirac; elsewhere it
answers ``None`` (or a failed :class:`DiracCheck` through
:meth:`DeterministicBase.at`) instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from markov_oracles.dist import Dist, DistLike, as_dist, dirac
from markov_oracles.kernel import DEFAULT_TOLERANCE, Fin, Kernel
from markov_oracles.semiring import PROB, Semiring

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiracCheck:
    """Outcome of :func:`is_dirac_at`; ``point`` is set only when ``ok``."""

    ok: bool
    point: Any = None


def is_dirac_at(R: Semiring, d: DistLike) -> DiracCheck:
    """Report whether *d* has exactly one non-zero outcome."""
    support = as_dist(R, d).support()
    if len(support) == 1:
        return DiracCheck(True, support[0])
    return DiracCheck(False)


class DeterministicBase:
    """Partial base function of a kernel that was Dirac on its samples.

    Calling the base returns the Dirac point or ``None``.  Sampled inputs
    are answered from the table built during recognition; any other input
    is evaluated through the kernel on demand.
    """

    __slots__ = ("semiring", "kernel", "_table")

    def __init__(self, R: Semiring, kernel: Kernel, table: Iterable[tuple[Any, Any]]) -> None:
        self.semiring = R
        self.kernel = kernel
        self._table = tuple(table)

    @property
    def sampled(self) -> tuple[tuple[Any, Any], ...]:
        """``(input, point)`` pairs recorded during recognition."""
        return self._table

    def at(self, a: Any) -> DiracCheck:
        for x, point in self._table:
            if x == a:
                return DiracCheck(True, point)
        return is_dirac_at(self.semiring, self.kernel(a))

    def __call__(self, a: Any) -> Optional[Any]:
        check = self.at(a)
        return check.point if check.ok else None

    def __repr__(self) -> str:
        return f"DeterministicBase({dict(self._table)!r})"


@dataclass(frozen=True)
class DeterminismResult:
    """Result of :func:`is_deterministic`.

    Attributes:
        det:            True when every sampled output was Dirac.
        base:           Partial base function, present only when ``det``.
        counterexample: First sample whose output was not Dirac.
    """

    det: bool
    base: Optional[DeterministicBase] = None
    counterexample: Optional[Any] = None


def is_deterministic(R: Semiring, f: Kernel, samples: Iterable[Any]) -> DeterminismResult:
    """Recognize a kernel that is Dirac on every sample.

    Example::

        >>> r = is_deterministic(PROB, lambda a: dirac(PROB, a + 1), [0, 1])
        >>> r.det, r.base(1)
        (True, 2)
    """
    table: list[tuple[Any, Any]] = []
    for a in samples:
        check = is_dirac_at(R, f(a))
        if not check.ok:
            logger.debug("kernel is not Dirac at sample %r", a)
            return DeterminismResult(False, None, a)
        table.append((a, check.point))
    return DeterminismResult(True, DeterministicBase(R, f, table))


def make_deterministic(R: Semiring, fn: Callable[[Any], Any]) -> Callable[[Any], Dist]:
    """Dirac lift ``a ↦ δ_{fn(a)}`` of a plain function."""
    return lambda a: dirac(R, fn(a))


def is_deterministic_kernel(
    domain: Fin,
    kernel: Kernel,
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
    semiring: Semiring = PROB,
) -> bool:
    """Every row is a Dirac measure carrying full mass ``one``.

    Stricter than :func:`is_deterministic`: a single support point with
    weight 0.5 is Dirac but not a deterministic Markov kernel.
    """
    R = semiring
    for x in domain.elems:
        d = as_dist(R, kernel(x))
        if not R.close(d.mass(), R.one, tolerance):
            return False
        if len(d.support()) != 1:
            return False
    return True


@dataclass(frozen=True)
class DeterminismCounterexample:
    """Domain element whose output is not a full-mass Dirac measure."""

    input: Any
    distribution: Dist = field(repr=False)


def extract_deterministic_base(
    domain: Fin,
    codomain: Fin,
    kernel: Kernel,
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
    semiring: Semiring = PROB,
) -> tuple[Optional[Callable[[Any], Any]], Optional[DeterminismCounterexample]]:
    """Total base function over *domain*, or the first counterexample.

    The returned function maps each domain element to the codomain
    element (under ``codomain.eq``) its Dirac output concentrates on, and
    raises ``ValueError`` for inputs outside *domain*.
    """
    R = semiring
    table: list[tuple[Any, Any]] = []
    for x in domain.elems:
        d = as_dist(R, kernel(x))
        support = d.support()
        if len(support) != 1 or not R.close(d.weight(support[0]), R.one, tolerance):
            return None, DeterminismCounterexample(x, d)
        i = codomain.index_of(support[0])
        if i < 0:
            return None, DeterminismCounterexample(x, d)
        table.append((x, codomain.elems[i]))

    def base(a: Any) -> Any:
        for x, y in table:
            if domain.eq(x, a):
                return y
        raise ValueError(f"{a!r} is not an element of the domain")

    return base, None
