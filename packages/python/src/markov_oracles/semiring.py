"""
Semirings for weighted finite distributions.

Every distribution and kernel in markov-oracles carries the semiring its
weights live in.  Composition sums with ``add`` and chains with ``mul``;
nothing beyond the semiring axioms is assumed (no inverses, no order).

Shipped instances:

    PROB       non-negative reals       (+, ×, 0, 1)
    BOOL       possibility              (or, and, False, True)
    MAX_PLUS   tropical / best path     (max, +, -inf, 0)
    LOG_PROB   log-domain probability   (logaddexp, +, -inf, 0)

Semirings are plain immutable values.  They are always passed explicitly;
no operation consults a global default registry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

# Absolute tolerance behind PROB.eq (representation noise, not oracle tolerance)
_EQ_TOL = 1e-12

_NEG_INF = float("-inf")


@dataclass(frozen=True)
class Semiring:
    """A commutative semiring ``(R, add, mul, zero, one)`` plus equality.

    Attributes:
        name:     Short identifier used in reprs and diagnostics.
        zero:     Additive identity; absent distribution keys carry it.
        one:      Multiplicative identity; the weight of a Dirac point.
        add:      Aggregation of alternative paths.
        mul:      Sequencing of independent steps.
        eq:       Structural equality of weights.
        is_zero:  Optional fast zero test; falls back to ``eq(a, zero)``.
        numeric:  True for floating-point probability-like semirings.
                  Oracles compare those with an absolute tolerance and
                  probe them with fixed non-uniform mixtures.
    """

    name: str
    zero: Any
    one: Any
    add: Callable[[Any, Any], Any] = field(repr=False)
    mul: Callable[[Any, Any], Any] = field(repr=False)
    eq: Callable[[Any, Any], bool] = field(repr=False)
    is_zero: Optional[Callable[[Any], bool]] = field(default=None, repr=False)
    numeric: bool = False

    def iszero(self, a: Any) -> bool:
        if self.is_zero is not None:
            return self.is_zero(a)
        return self.eq(a, self.zero)

    def sum(self, values: Iterable[Any]) -> Any:
        acc = self.zero
        for v in values:
            acc = self.add(acc, v)
        return acc

    def prod(self, values: Iterable[Any]) -> Any:
        acc = self.one
        for v in values:
            acc = self.mul(acc, v)
        return acc

    def close(self, a: Any, b: Any, tolerance: Optional[float] = None) -> bool:
        """Compare two weights under the oracle tolerance rule.

        Numeric semirings with a tolerance compare ``|a - b| <= tolerance``;
        everything else defers to :attr:`eq`.
        """
        if self.numeric and tolerance is not None:
            if a == b:
                return True
            return abs(a - b) <= tolerance
        return self.eq(a, b)


# ═══════════════════════════════════════════════════════════════════
# SHIPPED INSTANCES
# ═══════════════════════════════════════════════════════════════════


def _float_eq(a: float, b: float) -> bool:
    # Equal infinities have nan difference
    if a == b:
        return True
    return abs(a - b) <= _EQ_TOL


def _logaddexp(a: float, b: float) -> float:
    if a == _NEG_INF:
        return b
    if b == _NEG_INF:
        return a
    hi, lo = (a, b) if a >= b else (b, a)
    return hi + math.log1p(math.exp(lo - hi))


PROB = Semiring(
    name="prob",
    zero=0.0,
    one=1.0,
    add=lambda a, b: a + b,
    mul=lambda a, b: a * b,
    eq=_float_eq,
    is_zero=lambda a: abs(a) <= _EQ_TOL,
    numeric=True,
)

BOOL = Semiring(
    name="bool",
    zero=False,
    one=True,
    add=lambda a, b: bool(a or b),
    mul=lambda a, b: bool(a and b),
    eq=lambda a, b: bool(a) == bool(b),
    is_zero=lambda a: not a,
)

MAX_PLUS = Semiring(
    name="max-plus",
    zero=_NEG_INF,
    one=0.0,
    add=max,
    mul=lambda a, b: a + b,
    eq=_float_eq,
    is_zero=lambda a: a == _NEG_INF,
)

LOG_PROB = Semiring(
    name="log-prob",
    zero=_NEG_INF,
    one=0.0,
    add=_logaddexp,
    mul=lambda a, b: a + b,
    eq=_float_eq,
    is_zero=lambda a: a == _NEG_INF,
)
