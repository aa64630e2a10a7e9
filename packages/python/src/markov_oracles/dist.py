"""
Finite weighted distributions over a semiring.

A :class:`Dist` maps finitely many outcomes to semiring weights.  Absent
outcomes implicitly weigh ``zero``.  No normalization invariant is enforced:
"sums to one" is a property that individual oracles check, not something
the representation guarantees.

The module also hosts the distribution monad kinds.  Probability,
sub-probability and arbitrary-weight distributions share one interface
(``of``, ``map``, ``bind``, ``product``); :class:`DistMonad` is a single
strategy value configured per kind rather than a class hierarchy.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Union

from markov_oracles.semiring import PROB, Semiring

DistLike = Union["Dist", Mapping]


class Dist(Mapping):
    """Immutable finite distribution ``outcome -> weight`` over a semiring.

    Duplicate outcomes supplied at construction are merged with
    ``semiring.add``.  Lookups of absent outcomes through :meth:`weight`
    return ``semiring.zero``; plain ``d[x]`` keeps Mapping semantics and
    raises ``KeyError``.

    Equality is semiring equality of weights over the union of supports,
    so ``Dist(PROB, {"a": 1.0}) == Dist(PROB, {"a": 1.0, "b": 0.0})``.
    """

    __slots__ = ("semiring", "_weights")

    def __init__(
        self,
        semiring: Semiring,
        weights: Union[Mapping, Iterable[tuple[Any, Any]]] = (),
    ) -> None:
        items = weights.items() if isinstance(weights, Mapping) else weights
        table: dict[Any, Any] = {}
        for outcome, w in items:
            if outcome in table:
                table[outcome] = semiring.add(table[outcome], w)
            else:
                table[outcome] = w
        self.semiring = semiring
        self._weights = table

    def __getitem__(self, outcome: Any) -> Any:
        return self._weights[outcome]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dist):
            return NotImplemented
        return self.semiring == other.semiring and equal_dist(self, other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Dist({self.semiring.name}, {self._weights!r})"

    def weight(self, outcome: Any) -> Any:
        """Weight of *outcome*, ``zero`` when absent."""
        return self._weights.get(outcome, self.semiring.zero)

    def support(self) -> tuple[Any, ...]:
        """Outcomes carrying a non-zero weight, in insertion order."""
        R = self.semiring
        return tuple(x for x, w in self._weights.items() if not R.iszero(w))

    def mass(self) -> Any:
        """Total weight ``add``-folded over every entry."""
        return self.semiring.sum(self._weights.values())


@dataclass(frozen=True)
class WeightMismatch:
    """A support point at which two distributions disagree."""

    point: Any
    left: Any
    right: Any


# ═══════════════════════════════════════════════════════════════════
# CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════


def dirac(R: Semiring, x: Any) -> Dist:
    """Point mass δₓ with weight ``one``."""
    return Dist(R, {x: R.one})


def from_pairs(R: Semiring, pairs: Iterable[tuple[Any, Any]]) -> Dist:
    return Dist(R, pairs)


def as_dist(R: Semiring, value: Any) -> Dist:
    """Coerce a kernel output to a :class:`Dist` over *R*.

    Accepts an existing ``Dist`` unchanged or any mapping of weights.

    Raises:
        TypeError: If *value* is neither.
    """
    if isinstance(value, Dist):
        return value
    if isinstance(value, Mapping):
        return Dist(R, value)
    raise TypeError(
        f"kernel output must be a Dist or a mapping of weights, got: {type(value).__name__}"
    )


# ═══════════════════════════════════════════════════════════════════
# OPERATIONS
# ═══════════════════════════════════════════════════════════════════


def pushforward(d: Dist, f: Callable[[Any], Any]) -> Dist:
    """Image distribution ``f_* d``: weights of colliding outcomes are added."""
    return Dist(d.semiring, ((f(x), w) for x, w in d.items()))


def bind(d: Dist, k: Callable[[Any], DistLike]) -> Dist:
    """Kleisli extension ``(d >>= k)(y) = Σₓ d(x) · k(x)(y)``.

    Outcomes of *d* carrying ``zero`` are skipped, so *k* is never
    evaluated where it need not be.
    """
    R = d.semiring
    acc: dict[Any, Any] = {}
    for x, w in d.items():
        if R.iszero(w):
            continue
        for y, v in as_dist(R, k(x)).items():
            contribution = R.mul(w, v)
            acc[y] = R.add(acc[y], contribution) if y in acc else contribution
    return Dist(R, acc)


def product(d1: Dist, d2: Dist) -> Dist:
    """Independent product on pairs ``(x, y)`` with weight ``d1(x) · d2(y)``."""
    R = d1.semiring
    return Dist(R, (((x, y), R.mul(w, v)) for x, w in d1.items() for y, v in d2.items()))


def prune(d: Dist) -> Dist:
    """Drop entries whose weight is zero."""
    R = d.semiring
    return Dist(R, ((x, w) for x, w in d.items() if not R.iszero(w)))


def normalize(d: Dist) -> Dist:
    """Rescale a numeric distribution so its mass is one.

    Raises:
        ValueError: If the semiring is not numeric or the mass is zero.
    """
    R = d.semiring
    if not R.numeric:
        raise ValueError(f"cannot normalize over non-numeric semiring {R.name!r}")
    total = d.mass()
    if R.iszero(total):
        raise ValueError("cannot normalize a distribution with zero mass")
    return Dist(R, ((x, w / total) for x, w in d.items()))


def equal_dist(a: Dist, b: Dist, tolerance: Optional[float] = None) -> bool:
    """Pointwise weight equality over the union of both key sets.

    Uses ``a.semiring.close`` so numeric semirings honour *tolerance*.
    """
    return not dist_mismatches(a, b, tolerance, first_only=True)


def dist_mismatches(
    a: Dist,
    b: Dist,
    tolerance: Optional[float] = None,
    *,
    first_only: bool = False,
) -> tuple[WeightMismatch, ...]:
    """List every outcome where *a* and *b* disagree, with both weights."""
    R = a.semiring
    found: list[WeightMismatch] = []
    keys = list(a.keys()) + [k for k in b.keys() if k not in a]
    for k in keys:
        left, right = a.weight(k), b.weight(k)
        if not R.close(left, right, tolerance):
            found.append(WeightMismatch(k, left, right))
            if first_only:
                break
    return tuple(found)


# ═══════════════════════════════════════════════════════════════════
# MONAD KINDS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DistMonad:
    """One distribution-monad interface, configured per kind.

    Attributes:
        name:        Kind label.
        semiring:    Weight semiring for every produced distribution.
        normalizing: Whether ``map``/``bind`` rescale results to mass one.
        affine:      Whether ``T(1)`` is a singleton, i.e. the Kleisli
                     category is a Markov category.
    """

    name: str
    semiring: Semiring
    normalizing: bool = False
    affine: bool = False

    def of(self, x: Any) -> Dist:
        return dirac(self.semiring, x)

    def map(self, d: DistLike, f: Callable[[Any], Any]) -> Dist:
        return self._finish(pushforward(as_dist(self.semiring, d), f))

    def bind(self, d: DistLike, k: Callable[[Any], DistLike]) -> Dist:
        return self._finish(bind(as_dist(self.semiring, d), k))

    def product(self, d1: DistLike, d2: DistLike) -> Dist:
        return self._finish(
            product(as_dist(self.semiring, d1), as_dist(self.semiring, d2))
        )

    @property
    def is_markov(self) -> bool:
        return self.affine

    def _finish(self, d: Dist) -> Dist:
        d = prune(d)
        if self.normalizing and len(d) > 0:
            return normalize(d)
        return d


def probability_monad() -> DistMonad:
    """Normalized probability distributions; a Markov category."""
    return DistMonad("probability", PROB, normalizing=True, affine=True)


def subprobability_monad() -> DistMonad:
    """Mass at most one, never renormalized; not affine."""
    return DistMonad("subprobability", PROB, normalizing=False, affine=False)


def weighted_monad(R: Semiring = PROB) -> DistMonad:
    """Arbitrary semiring weights; not affine."""
    return DistMonad(f"weighted[{R.name}]", R, normalizing=False, affine=False)


def require_markov(monad: DistMonad) -> None:
    """Raise unless *monad* supports Markov-only structure (discard)."""
    if not monad.affine:
        raise ValueError(
            f"{monad.name} Kleisli category is not Markov: T(1) is not a singleton"
        )


def check_fubini(
    monad: DistMonad,
    da: DistLike,
    db: DistLike,
    tolerance: float = 1e-9,
) -> bool:
    """Product measure coherence: ``product(da, db) == da >>= (a ↦ map(db, b ↦ (a, b)))``."""
    lhs = monad.product(da, db)
    rhs = monad.bind(da, lambda a: monad.map(db, lambda b: (a, b)))
    return equal_dist(lhs, rhs, tolerance)
