"""Tests for finite projective families, Kolmogorov consistency and tail
invariance.

The running example is a product of independent fair coins indexed by a
finite prefix of the naturals.
"""

import itertools

import pytest

from markov_oracles.dist import Dist, dirac
from markov_oracles.kernel import I_FIN, mk_fin
from markov_oracles.projective import (
    CountabilityWitness,
    KolmogorovTest,
    LimitSection,
    MeasurabilityWitness,
    ProjectiveFamily,
    apply_patch,
    check_kolmogorov_extension_universal_property,
    check_tail_event_invariance,
    cylinder_projection,
    deterministic_boolean_value,
    independent_indexed_product,
    indexed_product_obj,
    infer_countability,
    kolmogorov_extension_measure,
    make_section,
    prior_from_family,
    pushforward_cylinder,
    restrict_section,
    run_kolmogorov_consistency,
    section_lookup,
    section_values,
)
from markov_oracles.semiring import PROB


def fair_coin(j):
    return {0: 0.5, 1: 0.5}


@pytest.fixture
def coins3():
    return independent_indexed_product(PROB, [0, 1, 2], fair_coin)


@pytest.fixture
def coins6():
    return independent_indexed_product(PROB, list(range(6)), fair_coin)


# ═══════════════════════════════════════════════════════════════════
# Sections
# ═══════════════════════════════════════════════════════════════════


class TestSections:

    def test_make_section(self):
        assert make_section({0: 1, 5: 0}) == ((0, 1), (5, 0))
        assert make_section([(2, "x")]) == ((2, "x"),)

    def test_lookup_and_restrict(self):
        s = ((0, 1), (1, 0), (2, 1))
        assert section_lookup(s, 1) == 0
        with pytest.raises(KeyError):
            section_lookup(s, 7)
        assert restrict_section(s, [2, 0]) == ((2, 1), (0, 1))
        assert restrict_section(s, [3]) == ()
        assert section_values(s, [1, 2]) == (0, 1)

    def test_limit_section(self):
        point = LimitSection(((5, 1),), lambda j: 0)
        assert point(5) == 1
        assert point(100) == 0

    def test_limit_sections_are_hashable_values(self):
        fallback = lambda j: 0
        assert LimitSection(((0, 1),), fallback) == LimitSection(((0, 1),), fallback)
        assert len({LimitSection((), fallback), LimitSection((), fallback)}) == 1


# ═══════════════════════════════════════════════════════════════════
# Marginals & Kolmogorov consistency
# ═══════════════════════════════════════════════════════════════════


class TestIndependentProduct:

    def test_marginal_weights(self, coins3):
        m = coins3.marginal([0, 1])
        assert m.weight(((0, 1), (1, 0))) == pytest.approx(0.25)
        assert len(m) == 4
        assert m.mass() == pytest.approx(1.0)

    def test_empty_marginal_is_unit(self, coins3):
        assert coins3.marginal([]) == Dist(PROB, {(): 1.0})

    def test_zero_weight_sections_omitted(self):
        family = independent_indexed_product(PROB, [0, 1], lambda j: {0: 1.0, 1: 0.0})
        assert len(family.marginal([0, 1])) == 1

    def test_pushforward_cylinder(self, coins3):
        restricted = pushforward_cylinder(coins3.marginal([0, 1, 2]), [2])
        assert restricted == coins3.marginal([2])

    def test_countability(self, coins3):
        assert coins3.countable
        assert coins3.countability.kind == "finite"
        assert coins3.countability.size == 3
        assert not coins3.measurable
        assert not coins3.standard_borel


class TestKolmogorovConsistency:

    def test_fair_coins_consistent(self, coins3):
        tests = [
            KolmogorovTest((0,), (0, 1, 2)),
            {"finite": [1, 2], "larger": [0, 1, 2]},
            ([0, 1, 2], [0, 1, 2]),
        ]
        result = run_kolmogorov_consistency(coins3, tests)
        assert result.ok
        assert result.failures == ()
        assert result.countable

    def test_non_subset_fails(self, coins3):
        result = run_kolmogorov_consistency(coins3, [([0, 3], [0, 1, 2])])
        assert not result.ok
        assert result.failures == (KolmogorovTest((0, 3), (0, 1, 2)),)

    def test_inconsistent_family_without_adapter(self, coins3):
        def marginal(finite):
            # every singleton marginal claims a biased coin
            if len(finite) == 1:
                return Dist(PROB, {((finite[0], 0),): 0.9, ((finite[0], 1),): 0.1})
            return coins3.marginal(finite)

        family = ProjectiveFamily(
            semiring=PROB,
            index=[0, 1, 2],
            coordinate=coins3.coordinate,
            marginal=marginal,
            project=coins3.project,
        )
        result = run_kolmogorov_consistency(family, [([0], [0, 1]), ([0, 1], [0, 1, 2])])
        assert not result.ok
        assert result.failures == (KolmogorovTest((0,), (0, 1)),)
        assert not result.countable

    def test_measurability_flags(self):
        family = independent_indexed_product(
            PROB, [0, 1], fair_coin, measurability=MeasurabilityWitness("standardBorel", "finite coin")
        )
        result = run_kolmogorov_consistency(family, [([0], [0, 1])])
        assert result.measurable
        assert result.standard_borel


class TestCountability:

    def test_collection_is_finite(self):
        witness = infer_countability(range(4))
        assert witness == CountabilityWitness("finite", (0, 1, 2, 3), 4, "explicit enumeration of 4 indices")

    def test_iterator_is_countably_infinite(self):
        naturals = itertools.count()
        witness = infer_countability(naturals)
        assert witness.kind == "countablyInfinite"
        assert witness.size is None
        assert next(naturals) == 0

    def test_family_over_naturals(self):
        family = independent_indexed_product(PROB, itertools.count(), fair_coin)
        assert family.countable
        assert family.countability.kind == "countablyInfinite"
        assert family.marginal([10, 20]).mass() == pytest.approx(1.0)


# ═══════════════════════════════════════════════════════════════════
# Tail events
# ═══════════════════════════════════════════════════════════════════


def all_zero(j):
    return 0


def zero_until_four_then_one(j):
    return 1 if j > 4 else 0


def _coordinate_five_is_zero(carrier):
    return dirac(PROB, carrier(5) == 0)


def _eventually_zero(carrier):
    # Depends only on coordinates beyond the observed window
    return dirac(PROB, all(carrier(j) == 0 for j in range(6, 12)))


class TestTailInvariance:

    def test_patch(self, coins6):
        patched = apply_patch(coins6, all_zero, {5: 1})
        assert patched(5) == 1
        assert patched(4) == 0

    def test_patch_requires_update_adapter(self, coins3):
        family = ProjectiveFamily(PROB, [0], coins3.coordinate, coins3.marginal, coins3.project)
        with pytest.raises(ValueError, match="finite-update"):
            apply_patch(family, all_zero, {0: 1})

    def test_patched_coordinate_event_flips(self, coins6):
        result = check_tail_event_invariance(
            coins6,
            _coordinate_five_is_zero,
            [all_zero, zero_until_four_then_one],
            [{0: 1}, {5: 1}],
        )
        assert not result.ok
        assert len(result.counterexamples) == 1
        cex = result.counterexamples[0]
        assert cex.original is all_zero
        assert cex.modified(5) == 1

    def test_tail_measurable_event_is_invariant(self, coins6):
        result = check_tail_event_invariance(
            coins6,
            _eventually_zero,
            [all_zero, zero_until_four_then_one],
            [{0: 1}, {5: 1}],
        )
        assert result.ok
        assert result.counterexamples == ()
        assert result.countable

    def test_deterministic_boolean_value(self):
        assert deterministic_boolean_value(PROB, {True: 1.0})
        assert not deterministic_boolean_value(PROB, {False: 1.0, True: 0.0})
        assert not deterministic_boolean_value(PROB, {})
        with pytest.raises(ValueError, match="not deterministic"):
            deterministic_boolean_value(PROB, {True: 0.5, False: 0.5})


# ═══════════════════════════════════════════════════════════════════
# Kolmogorov extension
# ═══════════════════════════════════════════════════════════════════


class TestExtension:

    def test_universal_property(self, coins3):
        result = check_kolmogorov_extension_universal_property(coins3, [[0], [1, 2]])
        assert result.ok
        assert result.base_subset == (0, 1, 2)
        assert result.reductions == (((0,), True), ((1, 2), True))
        assert result.measure.mass() == pytest.approx(1.0)
        assert len(result.measure) == 8

    def test_measure_points_are_limit_sections(self, coins3):
        measure = kolmogorov_extension_measure(coins3, [[0, 1]])
        point = next(iter(measure))
        assert isinstance(point, LimitSection)
        # coordinates outside the base subset fall back to a support value
        assert point(7) == 0

    def test_fallback_reads_coordinate_on_each_lookup(self):
        support = {7: {1: 1.0}}
        family = independent_indexed_product(PROB, [0], lambda j: support.get(j, {0: 1.0}))
        point = family.extend([0], ((0, 0),))
        assert point(7) == 1
        support[7] = {0: 1.0}
        assert point(7) == 0
        assert family.extend([0], ((0, 0),))(7) == 0

    def test_missing_extend_adapter(self, coins3):
        family = ProjectiveFamily(PROB, [0], coins3.coordinate, coins3.marginal, coins3.project)
        assert kolmogorov_extension_measure(family, [[0]]) is None
        result = check_kolmogorov_extension_universal_property(family, [[0]])
        assert not result.ok
        assert "extension builder" in result.reason

    def test_extend_rejects_incomplete_section(self, coins3):
        with pytest.raises(ValueError, match="missing value"):
            coins3.extend([0, 1], ((0, 1),))


# ═══════════════════════════════════════════════════════════════════
# Bridge to finite kernels
# ═══════════════════════════════════════════════════════════════════


class TestBridge:

    def test_indexed_product_obj(self):
        product = indexed_product_obj([0, 1, 2], mk_fin([0, 1]))
        assert len(product) == 8
        assert product.elems[0] == (0, 0, 0)
        assert product.elems[-1] == (1, 1, 1)

    def test_prior_from_family(self, coins3):
        product = indexed_product_obj([0, 1, 2], [0, 1])
        prior = prior_from_family(coins3, [0, 1, 2], product)
        assert prior.domain is I_FIN
        assert prior.codomain is product
        assert prior(()).weight((0, 1, 0)) == pytest.approx(0.125)
        assert prior(()).mass() == pytest.approx(1.0)

    def test_cylinder_projection(self):
        product = indexed_product_obj([0, 1, 2], [0, 1])
        proj = cylinder_projection(product, [0, 1, 2], [2, 1])
        assert proj.domain is product
        assert len(proj.codomain) == 4
        assert proj((0, 1, 0)) == dirac(PROB, (0, 1))

    def test_cylinder_projection_with_target(self):
        product = indexed_product_obj([0, 1], [0, 1])
        target = mk_fin([(0,), (1,)])
        proj = cylinder_projection(product, [0, 1], [0], target)
        assert proj.codomain is target

    def test_cylinder_projection_unknown_index(self):
        product = indexed_product_obj([0, 1], [0, 1])
        with pytest.raises(ValueError, match="not a coordinate"):
            cylinder_projection(product, [0, 1], [4])
