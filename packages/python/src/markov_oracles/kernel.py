"""
Finite sets, Markov kernels and the FinMarkov morphism algebra.

Objects are finite sets (:class:`Fin`): an ordered, duplicate-free
enumeration plus an equality predicate.  Morphisms are kernels
``X -> Dist[Y]`` bundled with their domain and codomain objects
(:class:`FinMarkov`).

Core operations:

    Kleisli composition   (f ; g)(x)(z) = Σ_y f(x)(y) · g(y)(z)
    Tensor                (f ⊗ g)((x, z))((y, w)) = f(x)(y) · g(z)(w)
    Matrix view           |X| × |Y| weight table, codomain lookup via Fin.eq

Composition is well-formed only when the first morphism's codomain *is*
the second morphism's domain (object identity, not structural equality).
A mismatch is a modelling error and raises :class:`CompositionError`.

Structural maps of the Markov category (copy Δ, discard !, swap,
projections, pairing) are deterministic kernels built here as well.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional, Sequence

from markov_oracles.dist import Dist, DistLike, as_dist, bind, dirac
from markov_oracles.semiring import PROB, Semiring

Kernel = Callable[[Any], DistLike]

# Default absolute tolerance for oracle comparisons on numeric semirings
DEFAULT_TOLERANCE = 1e-9


class CompositionError(ValueError):
    """Raised when morphisms are composed across non-identical objects."""


# ═══════════════════════════════════════════════════════════════════
# FINITE OBJECTS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class Fin:
    """A finite set: ordered enumeration plus equality.

    Two ``Fin`` values compare equal only if they are the same object.
    Enumeration order is fixed for the lifetime of the object and defines
    row/column order of every matrix view.
    """

    elems: tuple
    eq: Callable[[Any, Any], bool] = field(default=operator.eq, repr=False)
    show: Optional[Callable[[Any], str]] = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.elems)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.elems)

    def index_of(self, x: Any) -> int:
        """Position of *x* under :attr:`eq`, or -1."""
        for i, e in enumerate(self.elems):
            if self.eq(e, x):
                return i
        return -1

    def contains(self, x: Any) -> bool:
        return self.index_of(x) >= 0

    def render(self, x: Any) -> str:
        return self.show(x) if self.show is not None else str(x)


def _validate_element(value: Any) -> None:
    try:
        hash(value)
    except TypeError:
        raise TypeError(
            f"Fin elements must be hashable, got: {type(value).__name__} {value!r}"
        ) from None


def mk_fin(
    elements: Sequence[Any],
    equals: Optional[Callable[[Any, Any], bool]] = None,
    show: Optional[Callable[[Any], str]] = None,
) -> Fin:
    """Build a :class:`Fin` from *elements*, rejecting duplicates.

    Args:
        elements: Enumeration, copied into an immutable tuple.
        equals:   Equality predicate; defaults to ``==``.
        show:     Optional pretty-printer for elements.

    Raises:
        TypeError: If an element is not hashable (distributions key
            outcomes by element).
        ValueError: If two elements are equal under *equals*.
    """
    eq = equals if equals is not None else operator.eq
    elems = tuple(elements)
    for a in elems:
        _validate_element(a)
    for i, a in enumerate(elems):
        for b in elems[i + 1:]:
            if eq(a, b):
                raise ValueError(f"Fin elements must be distinct, got duplicate: {a!r}")
    return Fin(elems, eq, show)


def tensor_obj(X: Fin, Y: Fin) -> Fin:
    """Cartesian product object ``X ⊗ Y`` with pairs ``(x, y)`` in row-major order."""
    elems = tuple((x, y) for x in X.elems for y in Y.elems)

    def eq(a: Any, b: Any) -> bool:
        return X.eq(a[0], b[0]) and Y.eq(a[1], b[1])

    def show(p: Any) -> str:
        return f"({X.render(p[0])}, {Y.render(p[1])})"

    return Fin(elems, eq, show)


# Monoidal unit: the one-point set
UNIT = ()
I_FIN = Fin((UNIT,), lambda a, b: True, lambda _: "•")


# ═══════════════════════════════════════════════════════════════════
# KERNEL COMBINATORS
# ═══════════════════════════════════════════════════════════════════


def compose(R: Semiring, f: Kernel, g: Kernel) -> Kernel:
    """Kleisli composite ``x ↦ f(x) >>= g``."""

    def composite(x: Any) -> Dist:
        return bind(as_dist(R, f(x)), g)

    return composite


def tensor(R: Semiring, f: Kernel, g: Kernel) -> Kernel:
    """Independent product kernel on pairs."""

    def product_kernel(xz: Any) -> Dist:
        x, z = xz
        dy = as_dist(R, f(x))
        dw = as_dist(R, g(z))
        return Dist(R, (((y, w), R.mul(p, q)) for y, p in dy.items() for w, q in dw.items()))

    return product_kernel


def deterministic(R: Semiring, fn: Callable[[Any], Any]) -> Kernel:
    """Embed a plain function as a Dirac kernel."""
    return lambda x: dirac(R, fn(x))


def copy(R: Semiring) -> Kernel:
    return deterministic(R, lambda x: (x, x))


def discard(R: Semiring) -> Kernel:
    return deterministic(R, lambda _: UNIT)


def swap(R: Semiring) -> Kernel:
    return deterministic(R, lambda p: (p[1], p[0]))


def fst(R: Semiring) -> Kernel:
    return deterministic(R, lambda p: p[0])


def snd(R: Semiring) -> Kernel:
    return deterministic(R, lambda p: p[1])


def pair(R: Semiring, f: Kernel, g: Kernel) -> Kernel:
    """Pairing ``⟨f, g⟩ = Δ ; (f ⊗ g)``: both kernels see the same input."""
    return compose(R, copy(R), tensor(R, f, g))


def convex_mix(lam: float, f: Kernel, g: Kernel) -> Kernel:
    """Probability mixture ``λ·f + (1 - λ)·g``."""
    if not 0.0 <= lam <= 1.0:
        raise ValueError(f"mixture weight must be in [0, 1], got: {lam}")

    def mixed(x: Any) -> Dist:
        left = ((y, lam * p) for y, p in as_dist(PROB, f(x)).items())
        right = ((y, (1.0 - lam) * p) for y, p in as_dist(PROB, g(x)).items())
        return Dist(PROB, [*left, *right])

    return mixed


# ═══════════════════════════════════════════════════════════════════
# FINMARKOV MORPHISMS
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class FinMarkov:
    """A kernel together with its finite domain and codomain objects.

    Attributes:
        domain:   Source object ``X``.
        codomain: Target object ``Y``.
        kernel:   ``X -> Dist[Y]``; plain weight mappings are accepted.
        semiring: Weight semiring of every output.
    """

    domain: Fin
    codomain: Fin
    kernel: Kernel = field(repr=False)
    semiring: Semiring = PROB

    def __call__(self, x: Any) -> Dist:
        return as_dist(self.semiring, self.kernel(x))

    def then(self, other: FinMarkov) -> FinMarkov:
        """Kleisli composite ``self ; other``.

        Raises:
            CompositionError: If ``self.codomain is not other.domain`` or
                the two morphisms use different semirings.
        """
        if self.codomain is not other.domain:
            raise CompositionError(
                f"cannot compose: codomain {self.codomain!r} is not the domain "
                f"{other.domain!r} of the next morphism"
            )
        if self.semiring != other.semiring:
            raise CompositionError(
                f"cannot compose kernels over {self.semiring.name!r} "
                f"and {other.semiring.name!r}"
            )
        return FinMarkov(
            self.domain,
            other.codomain,
            compose(self.semiring, self, other),
            self.semiring,
        )

    def tensor(
        self,
        other: FinMarkov,
        domain: Optional[Fin] = None,
        codomain: Optional[Fin] = None,
    ) -> FinMarkov:
        """Independent product ``self ⊗ other``.

        Pass pre-built *domain* / *codomain* product objects to compose the
        result with morphisms that already reference them.
        """
        if self.semiring != other.semiring:
            raise CompositionError(
                f"cannot tensor kernels over {self.semiring.name!r} "
                f"and {other.semiring.name!r}"
            )
        return FinMarkov(
            domain if domain is not None else tensor_obj(self.domain, other.domain),
            codomain if codomain is not None else tensor_obj(self.codomain, other.codomain),
            tensor(self.semiring, self, other),
            self.semiring,
        )

    def row(self, x: Any) -> list[Any]:
        """Weights of ``self(x)`` in codomain enumeration order."""
        R = self.semiring
        Y = self.codomain
        d = self(x)
        return [R.sum(w for z, w in d.items() if Y.eq(z, y)) for y in Y.elems]

    def matrix(self) -> list[list[Any]]:
        return [self.row(x) for x in self.domain.elems]

    def pretty(self, digits: int = 4) -> str:
        if self.semiring.numeric:
            fmt: Callable[[Any], str] = lambda w: f"{w:.{digits}f}"
        else:
            fmt = str
        return "\n".join("\t".join(fmt(w) for w in r) for r in self.matrix())

    def to_numpy(self) -> Any:
        """Matrix view as a ``numpy.ndarray`` of floats.

        Requires ``numpy`` at call time.
        """
        try:
            import numpy as np  # type: ignore[import-untyped]
        except ImportError:
            raise ImportError(
                "Matrix export requires numpy. "
                "Install with: pip install numpy"
            ) from None
        return np.array(self.matrix(), dtype=float).reshape(
            len(self.domain), len(self.codomain)
        )


# ── Builders ───────────────────────────────────────────────────────


def id_k(X: Fin, semiring: Semiring = PROB) -> FinMarkov:
    return FinMarkov(X, X, deterministic(semiring, lambda x: x), semiring)


def det_k(X: Fin, Y: Fin, fn: Callable[[Any], Any], semiring: Semiring = PROB) -> FinMarkov:
    """Deterministic morphism induced by a plain function ``X -> Y``."""
    return FinMarkov(X, Y, deterministic(semiring, fn), semiring)


def copy_k(X: Fin, semiring: Semiring = PROB, codomain: Optional[Fin] = None) -> FinMarkov:
    target = codomain if codomain is not None else tensor_obj(X, X)
    return FinMarkov(X, target, copy(semiring), semiring)


def discard_k(X: Fin, semiring: Semiring = PROB) -> FinMarkov:
    return FinMarkov(X, I_FIN, discard(semiring), semiring)


def swap_k(X: Fin, Y: Fin, semiring: Semiring = PROB) -> FinMarkov:
    return FinMarkov(tensor_obj(X, Y), tensor_obj(Y, X), swap(semiring), semiring)


def fst_k(X: Fin, Y: Fin, semiring: Semiring = PROB) -> FinMarkov:
    return FinMarkov(tensor_obj(X, Y), X, fst(semiring), semiring)


def snd_k(X: Fin, Y: Fin, semiring: Semiring = PROB) -> FinMarkov:
    return FinMarkov(tensor_obj(X, Y), Y, snd(semiring), semiring)


def from_matrix(
    X: Fin,
    Y: Fin,
    rows: Sequence[Sequence[Any]],
    semiring: Semiring = PROB,
) -> FinMarkov:
    """Morphism whose ``i``-th row gives the weights of ``X.elems[i]``.

    Zero entries are dropped; rows are taken as given (no normalization).

    Raises:
        ValueError: On a row/column count mismatch, or when the kernel is
            queried outside *X*.
    """
    if len(rows) != len(X):
        raise ValueError(f"row count {len(rows)} does not match domain size {len(X)}")
    table = [list(r) for r in rows]
    for r in table:
        if len(r) != len(Y):
            raise ValueError(f"column count {len(r)} does not match codomain size {len(Y)}")

    def kernel(x: Any) -> Dist:
        i = X.index_of(x)
        if i < 0:
            raise ValueError(f"{x!r} is not an element of the domain")
        return Dist(
            semiring,
            ((y, w) for y, w in zip(Y.elems, table[i]) if not semiring.iszero(w)),
        )

    return FinMarkov(X, Y, kernel, semiring)


# ═══════════════════════════════════════════════════════════════════
# COMPARISON
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class KernelMismatch:
    """First codomain point at which two morphisms disagree for one input."""

    input: Any
    point: Any
    observed: Any
    expected: Any


def matrices_close(
    R: Semiring,
    a: Sequence[Sequence[Any]],
    b: Sequence[Sequence[Any]],
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> bool:
    if len(a) != len(b):
        return False
    for ra, rb in zip(a, b):
        if len(ra) != len(rb):
            return False
        if not all(R.close(x, y, tolerance) for x, y in zip(ra, rb)):
            return False
    return True


def kernel_mismatches(
    observed: FinMarkov,
    expected: FinMarkov,
    tolerance: Optional[float] = DEFAULT_TOLERANCE,
) -> tuple[KernelMismatch, ...]:
    """Compare two parallel morphisms row by row.

    Returns at most one :class:`KernelMismatch` per domain element: the
    first codomain point (in enumeration order) whose weights differ.
    """
    R = observed.semiring
    Y = observed.codomain
    found: list[KernelMismatch] = []
    for x in observed.domain.elems:
        for y, lhs, rhs in zip(Y.elems, observed.row(x), expected.row(x)):
            if not R.close(lhs, rhs, tolerance):
                found.append(KernelMismatch(x, y, lhs, rhs))
                break
    return tuple(found)


def is_row_stochastic(f: FinMarkov, tolerance: Optional[float] = DEFAULT_TOLERANCE) -> bool:
    """True when every row of *f* carries total weight ``one``."""
    R = f.semiring
    return all(R.close(R.sum(f.row(x)), R.one, tolerance) for x in f.domain.elems)
