"""Tests for the Kolmogorov and Hewitt–Savage zero–one oracles.

Setup: three independent fair coins ``X_{0,1,2}`` drawn from the unit
object, finite marginals ``F = [0]``, ``[1, 2]`` and ``[0, 1, 2]`` and a
statistic ``s: X_J -> T``.  A constant statistic certifies every
obligation; a statistic reading coordinate 0 breaks independence and
determinism at once.
"""

import pytest

from markov_oracles.determinism import is_deterministic
from markov_oracles.kernel import det_k, mk_fin
from markov_oracles.permutation import FiniteSymmetry, coordinate_permutation
from markov_oracles.projective import (
    cylinder_projection,
    independent_indexed_product,
    indexed_product_obj,
    prior_from_family,
    run_kolmogorov_consistency,
)
from markov_oracles.semiring import PROB
from markov_oracles.zero_one import (
    HewittSavageReport,
    KolmogorovFiniteMarginal,
    ZeroOneFailure,
    build_hewitt_savage_witness,
    build_kolmogorov_zero_one_witness,
    check_hewitt_savage_zero_one,
    check_kolmogorov_zero_one,
)

INDEX = [0, 1, 2]


def fair_coin(j):
    return {0: 0.5, 1: 0.5}


def _setup(coordinate=fair_coin):
    family = independent_indexed_product(PROB, INDEX, coordinate)
    product = indexed_product_obj(INDEX, [0, 1])
    prior = prior_from_family(family, INDEX, product)
    marginals = [
        KolmogorovFiniteMarginal("F[0]", cylinder_projection(product, INDEX, [0])),
        ("F[1,2]", cylinder_projection(product, INDEX, [1, 2])),
        ("F[0,1,2]", cylinder_projection(product, INDEX, INDEX)),
    ]
    return family, product, prior, marginals


def _constant_stat(product):
    return det_k(product, mk_fin(["tail"]), lambda xs: "tail")


def _first_coordinate_stat(product):
    return det_k(product, mk_fin([0, 1]), lambda xs: xs[0])


def _parity_stat(product):
    return det_k(product, mk_fin([0, 1]), lambda xs: sum(xs) % 2)


# ═══════════════════════════════════════════════════════════════════
# Witness construction
# ═══════════════════════════════════════════════════════════════════


class TestWitness:

    def test_marginal_pairs_are_normalized(self):
        _, product, prior, marginals = _setup()
        witness = build_kolmogorov_zero_one_witness(prior, _constant_stat(product), marginals, "coins")
        assert [m.name for m in witness.finite_marginals] == ["F[0]", "F[1,2]", "F[0,1,2]"]
        assert all(isinstance(m, KolmogorovFiniteMarginal) for m in witness.finite_marginals)
        assert witness.label == "coins"

    def test_statistic_must_consume_prior_codomain(self):
        _, product, prior, marginals = _setup()
        other = indexed_product_obj(INDEX, [0, 1])
        with pytest.raises(ValueError, match="prior codomain"):
            build_kolmogorov_zero_one_witness(prior, _constant_stat(other), marginals)

    def test_marginal_must_consume_product(self):
        _, product, prior, _ = _setup()
        other = indexed_product_obj(INDEX, [0, 1])
        stray = [("F[0]", cylinder_projection(other, INDEX, [0]))]
        with pytest.raises(ValueError, match=r"finite marginal 0 \(F\[0\]\)"):
            build_kolmogorov_zero_one_witness(prior, _constant_stat(product), stray)

    def test_hewitt_savage_builder_validates(self):
        _, product, prior, marginals = _setup()
        other = indexed_product_obj(INDEX, [0, 1])
        with pytest.raises(ValueError):
            build_hewitt_savage_witness(prior, _constant_stat(other), marginals, [])

    def test_hewitt_savage_rejects_foreign_symmetry_at_build_time(self):
        _, product, prior, marginals = _setup()
        other = indexed_product_obj(INDEX, [0, 1])
        stray = coordinate_permutation(other, [2, 1, 0], "stray swap")
        with pytest.raises(ValueError, match="'stray swap' is not an endomorphism"):
            build_hewitt_savage_witness(prior, _constant_stat(product), marginals, [stray])

    def test_hewitt_savage_rejects_symmetry_leaving_the_product(self):
        _, product, prior, marginals = _setup()
        leaving = FiniteSymmetry("leave", det_k(product, mk_fin(["x"]), lambda xs: "x"))
        with pytest.raises(ValueError, match="endomorphism"):
            build_hewitt_savage_witness(prior, _constant_stat(product), marginals, [leaving])


# ═══════════════════════════════════════════════════════════════════
# Kolmogorov
# ═══════════════════════════════════════════════════════════════════


class TestKolmogorovZeroOne:

    def test_marginals_are_consistent(self):
        family, _, _, _ = _setup()
        tests = [([0], [0, 1, 2]), ([1, 2], [0, 1, 2]), ([0, 1, 2], [0, 1, 2])]
        result = run_kolmogorov_consistency(family, tests)
        assert result.ok
        assert result.failures == ()

    def test_constant_tail_statistic_holds(self):
        _, product, prior, marginals = _setup()
        witness = build_kolmogorov_zero_one_witness(prior, _constant_stat(product), marginals, "coins")
        report = check_kolmogorov_zero_one(witness)
        assert report.holds
        assert report.deterministic
        assert report.ci_family_verified
        assert report.failures == ()
        assert report.global_independence.holds
        assert [m.name for m in report.marginal_checks] == ["F[0]", "F[1,2]", "F[0,1,2]"]
        assert all(m.report.holds for m in report.marginal_checks)
        assert report.composite(()).support() == ("tail",)
        assert report.tolerance == 1e-9
        assert report.details.startswith("coins: all finite marginals verify")

    def test_coordinate_statistic_fails_every_family(self):
        _, product, prior, marginals = _setup()
        witness = build_kolmogorov_zero_one_witness(prior, _first_coordinate_stat(product), marginals, "coins")
        report = check_kolmogorov_zero_one(witness)
        assert not report.holds
        assert not report.deterministic
        assert not report.ci_family_verified
        names = [f.name for f in report.failures]
        assert names == ["global", "F[0]", "F[0,1,2]", "determinism"]
        by_name = {m.name: m.report.holds for m in report.marginal_checks}
        assert by_name == {"F[0]": False, "F[1,2]": True, "F[0,1,2]": False}
        assert report.failures[-1] == ZeroOneFailure("determinism", "composite s ∘ p failed determinism check")
        assert report.details == "coins: 4 obligation(s) failed."

    def test_parity_is_independent_but_not_deterministic(self):
        _, product, prior, marginals = _setup()
        witness = build_kolmogorov_zero_one_witness(prior, _parity_stat(product), [marginals[1]])
        report = check_kolmogorov_zero_one(witness)
        # parity of three fair coins is independent of any two of them
        assert report.ci_family_verified
        assert not report.deterministic
        assert [f.name for f in report.failures] == ["determinism"]
        assert report.details == "Kolmogorov zero–one: 1 obligation(s) failed."

    def test_no_marginals(self):
        _, product, prior, _ = _setup()
        report = check_kolmogorov_zero_one(
            build_kolmogorov_zero_one_witness(prior, _constant_stat(product), [])
        )
        assert report.holds
        assert report.global_independence is None
        assert report.marginal_checks == ()

    def test_composite_matches_recognizer(self):
        _, product, prior, marginals = _setup()
        witness = build_kolmogorov_zero_one_witness(prior, _parity_stat(product), marginals)
        report = check_kolmogorov_zero_one(witness)
        assert report.deterministic == is_deterministic(PROB, report.composite, prior.domain.elems).det

    @pytest.mark.parametrize("stat", [_constant_stat, _first_coordinate_stat, _parity_stat])
    def test_tolerance_idempotence(self, stat):
        _, product, prior, marginals = _setup()
        witness = build_kolmogorov_zero_one_witness(prior, stat(product), marginals)
        tight = check_kolmogorov_zero_one(witness, tolerance=1e-9)
        loose = check_kolmogorov_zero_one(witness, tolerance=1e-6)
        assert tight.holds == loose.holds
        assert [f.name for f in tight.failures] == [f.name for f in loose.failures]
        assert loose.tolerance == 1e-6


# ═══════════════════════════════════════════════════════════════════
# Hewitt–Savage
# ═══════════════════════════════════════════════════════════════════


class TestHewittSavageZeroOne:

    def test_symmetric_product_is_permutation_invariant(self):
        _, product, prior, marginals = _setup()
        swap = coordinate_permutation(product, [2, 1, 0], "swap 0↔2")
        witness = build_hewitt_savage_witness(prior, _constant_stat(product), marginals, [swap], "coins")
        report = check_hewitt_savage_zero_one(witness)
        assert isinstance(report, HewittSavageReport)
        assert report.permutation_invariant
        assert report.permutation_failures == ()
        assert report.holds
        assert report.details.startswith("coins: Kolmogorov hypotheses and permutation invariance")

    def test_symmetric_statistic_still_needs_determinism(self):
        _, product, prior, marginals = _setup()
        swap = coordinate_permutation(product, [2, 1, 0], "swap 0↔2")
        witness = build_hewitt_savage_witness(prior, _parity_stat(product), marginals, [swap])
        report = check_hewitt_savage_zero_one(witness)
        assert report.permutation_invariant
        assert not report.deterministic
        assert not report.holds
        assert report.permutation_report.symmetry_reports[0].prior_invariant

    def test_violating_permutation_is_listed(self):
        skewed = lambda j: {0: 0.1, 1: 0.9} if j == 0 else {0: 0.5, 1: 0.5}
        _, product, prior, marginals = _setup(skewed)
        swap02 = coordinate_permutation(product, [2, 1, 0], "swap 0↔2")
        swap12 = coordinate_permutation(product, [0, 2, 1], "swap 1↔2")
        witness = build_hewitt_savage_witness(
            prior, _first_coordinate_stat(product), marginals, [swap02, swap12], "skewed"
        )
        report = check_hewitt_savage_zero_one(witness)
        assert not report.permutation_invariant
        assert report.permutation_failures == ("swap 0↔2",)
        assert report.failures[-1] == ZeroOneFailure("swap 0↔2", "swap 0↔2")
        assert not report.holds
        assert report.details == f"skewed: detected {len(report.failures)} issue(s)."

    def test_inherits_kolmogorov_fields(self):
        _, product, prior, marginals = _setup()
        witness = build_hewitt_savage_witness(prior, _constant_stat(product), marginals, [])
        report = check_hewitt_savage_zero_one(witness, tolerance=1e-6)
        assert report.tolerance == 1e-6
        assert report.ci_family_verified
        assert report.witness is witness
        assert len(report.marginal_checks) == 3
