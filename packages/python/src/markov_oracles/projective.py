"""
Finite projective families of distributions.

A projective family over an index set ``J`` assigns to every finite subset
``F ⊆ J`` a marginal distribution over *cylinder sections* (assignments of
a value to each index in ``F``).  Kolmogorov consistency asks that
restricting the marginal of a larger subset to a smaller one reproduces the
smaller marginal.

Representation:
    cylinder section   tuple of ``(index, value)`` pairs in subset order;
                       hashable, so it can key a :class:`Dist`.
    limit section      a callable ``index -> value`` (a point of the
                       infinite product); :class:`LimitSection` is the
                       hashable form produced by patching and extension.

Tail events are boolean-valued kernels on limit sections.  A tail event is
invariant when changing finitely many coordinates (a *patch*) never flips
its deterministic value.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from markov_oracles.dist import Dist, DistLike, as_dist, pushforward
from markov_oracles.kernel import I_FIN, Fin, FinMarkov, deterministic
from markov_oracles.semiring import PROB, Semiring

logger = logging.getLogger(__name__)

# Indices inspected when classifying a non-collection index iterable
COUNTABILITY_SAMPLE_LIMIT = 64

CylinderSection = tuple
Patch = Union[Mapping, Iterable[tuple[Any, Any]]]


# ── Sections ───────────────────────────────────────────────────────


def make_section(pairs: Patch) -> CylinderSection:
    """Normalize a mapping or ``(index, value)`` pairs into a cylinder section."""
    items = pairs.items() if isinstance(pairs, Mapping) else pairs
    return tuple((j, x) for j, x in items)


def section_lookup(section: CylinderSection, index: Any) -> Any:
    for j, x in section:
        if j == index:
            return x
    raise KeyError(index)


def restrict_section(section: CylinderSection, subset: Sequence[Any]) -> CylinderSection:
    """Keep the indices of *subset* that *section* defines, in subset order."""
    lookup = dict(section)
    return tuple((j, lookup[j]) for j in subset if j in lookup)


def section_values(section: CylinderSection, subset: Sequence[Any]) -> tuple:
    """Values of *section* listed in *subset* order.

    Raises:
        KeyError: If an index of *subset* is missing from the section.
    """
    lookup = dict(section)
    return tuple(lookup[j] for j in subset)


@dataclass(frozen=True)
class LimitSection:
    """Point of the product: explicit values over a fallback section."""

    explicit: CylinderSection
    fallback: Callable[[Any], Any]

    def __call__(self, index: Any) -> Any:
        for j, x in self.explicit:
            if j == index:
                return x
        return self.fallback(index)


def _is_subset(finite: Sequence[Any], larger: Sequence[Any]) -> bool:
    pool = list(larger)
    return all(j in pool for j in finite)


# ═══════════════════════════════════════════════════════════════════
# WITNESSES AND FAMILIES
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CountabilityWitness:
    """kind ∈ {"finite", "countablyInfinite"}."""

    kind: str
    sample: tuple
    size: Optional[int] = None
    reason: str = ""


@dataclass(frozen=True)
class MeasurabilityWitness:
    """kind ∈ {"unknown", "measurable", "standardBorel"}."""

    kind: str
    reason: str = ""


def infer_countability(index: Iterable[Any]) -> CountabilityWitness:
    """Classify an index set as finite (a sized collection) or countable."""
    if isinstance(index, Collection):
        snapshot = tuple(index)
        return CountabilityWitness(
            "finite", snapshot, len(snapshot), f"explicit enumeration of {len(snapshot)} indices"
        )
    sample: tuple = ()
    if iter(index) is not index:
        sample = tuple(itertools.islice(index, COUNTABILITY_SAMPLE_LIMIT))
    return CountabilityWitness(
        "countablyInfinite", sample, None, "index iterable without a known length"
    )


@dataclass(frozen=True, eq=False)
class ProjectiveFamily:
    """A family of finite marginals with carrier adapters.

    Attributes:
        semiring:      Weight semiring of every marginal.
        index:         The index set ``J``.
        coordinate:    One-dimensional marginal of each index.
        marginal:      ``F ↦ Dist[cylinder section over F]``.
        project:       ``(carrier, F) ↦`` the carrier's cylinder section over F.
        update:        ``(carrier, patch) ↦`` patched carrier, when supported.
        extend:        ``(F, section) ↦`` a carrier agreeing with the section.
        consistency:   Optional direct check of ``(finite, larger)`` pairs.
        countability:  Countability witness of the index set.
        measurability: Optional measurability witness of the coordinates.
    """

    semiring: Semiring
    index: Iterable[Any]
    coordinate: Callable[[Any], Dist] = field(repr=False)
    marginal: Callable[[Sequence[Any]], Dist] = field(repr=False)
    project: Callable[[Any, Sequence[Any]], CylinderSection] = field(repr=False)
    update: Optional[Callable[[Any, CylinderSection], Any]] = field(default=None, repr=False)
    extend: Optional[Callable[[Sequence[Any], CylinderSection], Any]] = field(default=None, repr=False)
    consistency: Optional[Callable[[Sequence[Any], Sequence[Any]], bool]] = field(default=None, repr=False)
    countability: Optional[CountabilityWitness] = None
    measurability: Optional[MeasurabilityWitness] = None

    @property
    def countable(self) -> bool:
        return self.countability is not None and self.countability.kind in ("finite", "countablyInfinite")

    @property
    def measurable(self) -> bool:
        return self.measurability is not None

    @property
    def standard_borel(self) -> bool:
        return self.measurability is not None and self.measurability.kind == "standardBorel"


def pushforward_cylinder(d: Dist, subset: Sequence[Any]) -> Dist:
    """Restrict every section of *d* to *subset*, merging collisions."""
    return pushforward(d, lambda s: restrict_section(s, subset))


def independent_indexed_product(
    R: Semiring,
    index: Iterable[Any],
    coordinate: Callable[[Any], DistLike],
    measurability: Optional[MeasurabilityWitness] = None,
    countability: Optional[CountabilityWitness] = None,
) -> ProjectiveFamily:
    """Product family of independent coordinates.

    The marginal over ``F = [j₁, …, jₙ]`` weighs the section
    ``((j₁, x₁), …, (jₙ, xₙ))`` by ``Π coordinate(jₖ)(xₖ)``.  Zero-weight
    sections are omitted.

    Example::

        >>> coin = lambda j: {0: 0.5, 1: 0.5}
        >>> fam = independent_indexed_product(PROB, [0, 1, 2], coin)
        >>> fam.marginal([0, 1]).weight(((0, 1), (1, 0)))
        0.25
    """

    def coord(j: Any) -> Dist:
        return as_dist(R, coordinate(j))

    def marginal(finite: Sequence[Any]) -> Dist:
        acc: dict[CylinderSection, Any] = {(): R.one}
        for j in finite:
            dj = coord(j)
            nxt: dict[CylinderSection, Any] = {}
            for section, weight in acc.items():
                for value, p in dj.items():
                    w = R.mul(weight, p)
                    if R.iszero(w):
                        continue
                    key = section + ((j, value),)
                    nxt[key] = R.add(nxt[key], w) if key in nxt else w
            acc = nxt
        return Dist(R, acc)

    def project(carrier: Callable[[Any], Any], finite: Sequence[Any]) -> CylinderSection:
        return tuple((j, carrier(j)) for j in finite)

    def update(carrier: Callable[[Any], Any], patch: CylinderSection) -> LimitSection:
        return LimitSection(make_section(patch), carrier)

    def default_value(j: Any) -> Any:
        support = coord(j).support()
        if not support:
            raise ValueError(f"coordinate {j!r} has no support value")
        return support[0]

    def extend(finite: Sequence[Any], section: CylinderSection) -> LimitSection:
        lookup = dict(section)
        for j in finite:
            if j not in lookup:
                raise ValueError(f"cylinder section missing value for index {j!r}")
        return LimitSection(make_section(section), default_value)

    def consistency(finite: Sequence[Any], larger: Sequence[Any]) -> bool:
        if not _is_subset(finite, larger):
            return False
        return marginal(finite) == pushforward_cylinder(marginal(larger), finite)

    return ProjectiveFamily(
        semiring=R,
        index=index,
        coordinate=coord,
        marginal=marginal,
        project=project,
        update=update,
        extend=extend,
        consistency=consistency,
        countability=countability if countability is not None else infer_countability(index),
        measurability=measurability,
    )


# ═══════════════════════════════════════════════════════════════════
# KOLMOGOROV CONSISTENCY
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class KolmogorovTest:
    finite: tuple
    larger: tuple


def _as_test(test: Any) -> KolmogorovTest:
    if isinstance(test, KolmogorovTest):
        return test
    if isinstance(test, Mapping):
        return KolmogorovTest(tuple(test["finite"]), tuple(test["larger"]))
    finite, larger = test
    return KolmogorovTest(tuple(finite), tuple(larger))


@dataclass(frozen=True)
class KolmogorovConsistencyResult:
    ok: bool
    failures: tuple[KolmogorovTest, ...]
    countable: bool
    measurable: bool
    standard_borel: bool
    countability: Optional[CountabilityWitness] = None


def run_kolmogorov_consistency(
    family: ProjectiveFamily,
    tests: Iterable[Any],
) -> KolmogorovConsistencyResult:
    """Check ``marginal(F) == restrict(marginal(G), F)`` for each ``F ⊆ G``.

    *tests* holds :class:`KolmogorovTest` values, ``{"finite", "larger"}``
    mappings or ``(finite, larger)`` pairs.  A test whose ``finite`` is not
    a subset of ``larger`` is a failure.
    """
    failures: list[KolmogorovTest] = []
    for raw in tests:
        test = _as_test(raw)
        if not _is_subset(test.finite, test.larger):
            failures.append(test)
            continue
        if family.consistency is not None:
            ok = family.consistency(test.finite, test.larger)
        else:
            small = family.marginal(test.finite)
            ok = small == pushforward_cylinder(family.marginal(test.larger), test.finite)
        if not ok:
            failures.append(test)

    logger.debug("Kolmogorov consistency: %d failure(s)", len(failures))
    return KolmogorovConsistencyResult(
        ok=not failures,
        failures=tuple(failures),
        countable=family.countable,
        measurable=family.measurable,
        standard_borel=family.standard_borel,
        countability=family.countability,
    )


# ═══════════════════════════════════════════════════════════════════
# TAIL EVENTS
# ═══════════════════════════════════════════════════════════════════


def apply_patch(family: ProjectiveFamily, carrier: Any, patch: Patch) -> Any:
    """Overwrite finitely many coordinates of *carrier*.

    Raises:
        ValueError: If the family has no update adapter.
    """
    if family.update is None:
        raise ValueError("projective family does not expose a finite-update adapter")
    return family.update(carrier, make_section(patch))


def deterministic_boolean_value(R: Semiring, dist: DistLike) -> bool:
    """The sole boolean carrying weight in *dist*; ``False`` when none does.

    Raises:
        ValueError: If both ``True`` and ``False`` carry weight.
    """
    outcome: Optional[bool] = None
    for key, weight in as_dist(R, dist).items():
        if R.iszero(weight):
            continue
        if outcome is None:
            outcome = bool(key)
        elif outcome != bool(key):
            raise ValueError("distribution is not deterministic over booleans")
    return bool(outcome)


@dataclass(frozen=True)
class TailCounterexample:
    original: Any
    modified: Any


@dataclass(frozen=True)
class TailInvarianceResult:
    ok: bool
    counterexamples: tuple[TailCounterexample, ...]
    countable: bool
    measurable: bool
    standard_borel: bool


def check_tail_event_invariance(
    family: ProjectiveFamily,
    tail_event: Callable[[Any], DistLike],
    samples: Iterable[Any],
    patches: Iterable[Patch],
) -> TailInvarianceResult:
    """Check that no patch flips the tail event on any sample.

    Every ``(sample, patch)`` pair whose patched value differs from the
    sample's own value is recorded as a counterexample.
    """
    R = family.semiring
    patch_list = [make_section(p) for p in patches]
    counterexamples: list[TailCounterexample] = []
    for sample in samples:
        base = deterministic_boolean_value(R, tail_event(sample))
        for patch in patch_list:
            modified = apply_patch(family, sample, patch)
            if deterministic_boolean_value(R, tail_event(modified)) != base:
                counterexamples.append(TailCounterexample(sample, modified))

    logger.debug("tail invariance: %d counterexample(s)", len(counterexamples))
    return TailInvarianceResult(
        ok=not counterexamples,
        counterexamples=tuple(counterexamples),
        countable=family.countable,
        measurable=family.measurable,
        standard_borel=family.standard_borel,
    )


# ═══════════════════════════════════════════════════════════════════
# KOLMOGOROV EXTENSION
# ═══════════════════════════════════════════════════════════════════


def _union(subsets: Iterable[Sequence[Any]]) -> tuple:
    keys: list[Any] = []
    for subset in subsets:
        for j in subset:
            if j not in keys:
                keys.append(j)
    return tuple(keys)


@dataclass(frozen=True)
class KolmogorovExtensionResult:
    """Extension measure over carriers and its per-subset reductions.

    ``reductions`` pairs each requested subset with whether projecting the
    measure onto it reproduces the family marginal.
    """

    ok: bool
    reason: str
    base_subset: tuple = ()
    measure: Optional[Dist] = field(default=None, repr=False)
    reductions: tuple[tuple[tuple, bool], ...] = ()


def kolmogorov_extension_measure(
    family: ProjectiveFamily,
    subsets: Sequence[Sequence[Any]],
) -> Optional[Dist]:
    """Lift the marginal over the union of *subsets* to a measure on carriers.

    Returns ``None`` when the family cannot extend sections.
    """
    if family.extend is None:
        return None
    base = _union(subsets)
    extend = family.extend
    return pushforward(family.marginal(base), lambda s: extend(base, s))


def check_kolmogorov_extension_universal_property(
    family: ProjectiveFamily,
    subsets: Sequence[Sequence[Any]],
) -> KolmogorovExtensionResult:
    """The extension measure projects onto every subset's own marginal."""
    measure = kolmogorov_extension_measure(family, subsets)
    if measure is None:
        return KolmogorovExtensionResult(False, "projective family does not supply an extension builder")

    base = _union(subsets)
    reductions = []
    for subset in subsets:
        sub = tuple(subset)
        projected = pushforward(measure, lambda c, sub=sub: family.project(c, sub))
        reductions.append((sub, projected == family.marginal(sub)))

    failed = sum(1 for _, ok in reductions if not ok)
    if failed:
        reason = f"{failed} reduction check(s) failed to match the marginal"
    else:
        reason = "extension measure reproduces every requested marginal"
    return KolmogorovExtensionResult(failed == 0, reason, base, measure, tuple(reductions))


# ═══════════════════════════════════════════════════════════════════
# BRIDGE TO FINITE KERNELS
# ═══════════════════════════════════════════════════════════════════


def indexed_product_obj(index: Sequence[Any], values: Union[Fin, Sequence[Any]]) -> Fin:
    """Flat-tuple product object ``Π_{j ∈ index} values``.

    Elements are tuples ordered like *index*; enumeration is lexicographic.
    """
    vals = values.elems if isinstance(values, Fin) else tuple(values)
    return Fin(tuple(itertools.product(vals, repeat=len(index))))


def prior_from_family(
    family: ProjectiveFamily,
    finite: Sequence[Any],
    product: Fin,
    domain: Fin = I_FIN,
) -> FinMarkov:
    """Constant kernel ``domain -> product`` emitting the marginal over *finite*.

    Sections are flattened to value tuples in *finite* order, so *product*
    should come from :func:`indexed_product_obj` over the same indices.
    """
    order = tuple(finite)
    flat = pushforward(family.marginal(order), lambda s: section_values(s, order))
    return FinMarkov(domain, product, lambda _: flat, family.semiring)


def cylinder_projection(
    product: Fin,
    index: Sequence[Any],
    subset: Sequence[Any],
    target: Optional[Fin] = None,
    semiring: Semiring = PROB,
) -> FinMarkov:
    """Deterministic restriction ``X_index -> X_subset`` on flat tuples.

    Without *target*, the codomain enumerates the distinct restrictions of
    *product*'s elements in first-seen order.

    Raises:
        ValueError: If *subset* names an index outside *index*.
    """
    positions = []
    for j in subset:
        if j not in index:
            raise ValueError(f"index {j!r} is not a coordinate of the product")
        positions.append(list(index).index(j))

    def restrict(xs: tuple) -> tuple:
        return tuple(xs[p] for p in positions)

    if target is None:
        seen: list[tuple] = []
        for xs in product.elems:
            r = restrict(xs)
            if r not in seen:
                seen.append(r)
        target = Fin(tuple(seen))
    return FinMarkov(product, target, deterministic(semiring, restrict), semiring)
