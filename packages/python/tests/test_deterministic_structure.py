"""Tests for deterministic morphisms as comonoid homomorphisms.

Covers the determinism/comonoid-homomorphism equivalence, determinism of
tensor-valued kernels via their marginals, and the determinism lemma
(conditional independence plus a deterministic statistic gives a
deterministic composite).
"""

import pytest

from markov_oracles.comonoid import build_markov_comonoid_witness
from markov_oracles.conditional import build_markov_conditional_witness
from markov_oracles.deterministic_structure import (
    DeterminismLemmaWitness,
    build_markov_deterministic_witness,
    build_markov_positivity_witness,
    certify_deterministic_function,
    check_determinism_lemma,
    check_deterministic_comonoid,
    check_deterministic_tensor_via_marginals,
)
from markov_oracles.kernel import FinMarkov, det_k, from_matrix, mk_fin, tensor_obj

_TOL = 1e-9


@pytest.fixture
def status():
    return build_markov_comonoid_witness(mk_fin(["calibrated", "uncalibrated"]), "status")


@pytest.fixture
def verdict():
    return build_markov_comonoid_witness(mk_fin(["ok", "inspect"]), "verdict")


# ═══════════════════════════════════════════════════════════════════
# Determinism vs comonoid homomorphism
# ═══════════════════════════════════════════════════════════════════


class TestDeterministicComonoid:

    def test_certified_function(self, status, verdict):
        witness = certify_deterministic_function(
            status, verdict, lambda s: "ok" if s == "calibrated" else "inspect"
        )
        report = check_deterministic_comonoid(witness, _TOL)
        assert report.holds
        assert report.deterministic
        assert report.comonoid_hom
        assert report.equivalent
        assert report.base("uncalibrated") == "inspect"
        assert report.details == "Morphism status → verdict is deterministic and preserves copy/discard."

    def test_noisy_arrow(self, status, verdict):
        arrow = from_matrix(status.object, verdict.object, [[0.82, 0.18], [0.0, 1.0]])
        report = check_deterministic_comonoid(
            build_markov_deterministic_witness(status, verdict, arrow, "calibration"), _TOL
        )
        assert not report.holds
        assert not report.deterministic
        assert not report.comonoid_hom
        assert report.equivalent
        assert report.preserves_discard
        laws = [f.law for f in report.failures]
        assert laws == ["determinism", "copy"]
        assert report.failures[0].counterexample.input == "calibrated"
        assert report.details == "2 determinism check(s) failed for calibration."

    def test_half_mass_fails_both_sides(self, status, verdict):
        arrow = FinMarkov(status.object, verdict.object, lambda s: {"ok": 0.5})
        report = check_deterministic_comonoid(
            build_markov_deterministic_witness(status, verdict, arrow), _TOL
        )
        assert not report.deterministic
        assert not report.preserves_copy
        assert not report.preserves_discard
        assert report.equivalent

    def test_witness_object_mismatch(self, status, verdict):
        stray = det_k(mk_fin(["calibrated", "uncalibrated"]), verdict.object, lambda s: "ok")
        with pytest.raises(ValueError, match="domain"):
            build_markov_deterministic_witness(status, verdict, stray)
        arrow = det_k(status.object, mk_fin(["ok"]), lambda s: "ok")
        with pytest.raises(ValueError, match="codomain"):
            build_markov_deterministic_witness(status, verdict, arrow)


# ═══════════════════════════════════════════════════════════════════
# Positivity
# ═══════════════════════════════════════════════════════════════════


class TestTensorViaMarginals:

    @pytest.fixture
    def setup(self):
        A = build_markov_comonoid_witness(mk_fin([0, 1, 2]))
        B = build_markov_comonoid_witness(mk_fin(["even", "odd"]))
        C = build_markov_comonoid_witness(mk_fin([False, True]))
        return A, build_markov_positivity_witness(B, C, "parity ⊗ flag")

    def test_deterministic_tensor(self, setup):
        A, positivity = setup
        arrow = det_k(
            A.object,
            positivity.tensor.object,
            lambda n: ("even" if n % 2 == 0 else "odd", n > 1),
        )
        report = check_deterministic_tensor_via_marginals(A, positivity, arrow, tolerance=_TOL)
        assert report.holds
        assert report.tensor.deterministic
        assert report.left.deterministic
        assert report.right.deterministic

    def test_noise_in_one_factor(self, setup):
        A, positivity = setup
        arrow = FinMarkov(
            A.object,
            positivity.tensor.object,
            lambda n: {("even", False): 0.5, ("even", True): 0.5},
        )
        report = check_deterministic_tensor_via_marginals(A, positivity, arrow, tolerance=_TOL)
        assert report.equivalent
        assert not report.tensor.deterministic
        assert report.left.deterministic
        assert not report.right.deterministic
        assert report.details == "Determinism of parity ⊗ flag matches the determinism of both marginals."

    def test_arrow_must_land_in_tensor(self, setup):
        A, positivity = setup
        arrow = det_k(A.object, tensor_obj(positivity.left.object, positivity.right.object), lambda n: ("odd", True))
        with pytest.raises(ValueError, match="positivity witness tensor"):
            check_deterministic_tensor_via_marginals(A, positivity, arrow)


# ═══════════════════════════════════════════════════════════════════
# Determinism lemma
# ═══════════════════════════════════════════════════════════════════


def _lemma_witness(p_weights, label=None):
    A = build_markov_comonoid_witness(mk_fin(["a"]), "A")
    X = build_markov_comonoid_witness(mk_fin([0, 1, 2, 3]), "X")
    T = build_markov_comonoid_witness(mk_fin(["small", "big"]), "T")
    s = certify_deterministic_function(X, T, lambda x: "small" if x < 2 else "big", "size")
    p = FinMarkov(A.object, X.object, lambda a: p_weights)
    # X and its statistic drawn together: a ↦ Σ p(x)·δ(x, s(x))
    joint = p.then(det_k(X.object, tensor_obj(X.object, T.object), lambda x: (x, s.base(x))))
    conditional = build_markov_conditional_witness(A, [X, T], joint, "X ⊗ T")
    return DeterminismLemmaWitness(conditional, p, s, label=label)


class TestDeterminismLemma:

    def test_composite_deterministic_under_independence(self):
        report = check_determinism_lemma(_lemma_witness({0: 0.5, 1: 0.5}, "sizes"), tolerance=_TOL)
        assert report.holds
        assert report.conditional.holds
        assert report.deterministic.holds
        assert report.composite.deterministic
        assert report.composite_arrow("a").support() == ("small",)
        assert report.details.startswith("sizes: composite")

    def test_dependence_breaks_lemma(self):
        report = check_determinism_lemma(_lemma_witness({0: 0.5, 3: 0.5}), tolerance=_TOL)
        assert not report.holds
        laws = {f.law for f in report.failures}
        assert laws == {"conditionalIndependence", "compositeDeterminism"}
        assert report.details.startswith("determinism lemma: detected 2 issue(s)")

    def test_marginal_mismatch(self):
        witness = _lemma_witness({0: 0.5, 1: 0.5})
        other_p = FinMarkov(witness.p.domain, witness.p.codomain, lambda a: {1: 1.0})
        stray = DeterminismLemmaWitness(witness.conditional, other_p, witness.deterministic)
        report = check_determinism_lemma(stray, tolerance=_TOL)
        assert "marginalMismatch" in {f.law for f in report.failures}

    def test_index_validation(self):
        witness = _lemma_witness({0: 1.0})
        same = DeterminismLemmaWitness(witness.conditional, witness.p, witness.deterministic, 0, 0)
        with pytest.raises(ValueError, match="distinct"):
            check_determinism_lemma(same)
        outside = DeterminismLemmaWitness(witness.conditional, witness.p, witness.deterministic, 0, 2)
        with pytest.raises(ValueError, match="outside"):
            check_determinism_lemma(outside)

    def test_object_validation(self):
        witness = _lemma_witness({0: 1.0})
        swapped = DeterminismLemmaWitness(witness.conditional, witness.p, witness.deterministic, 1, 0)
        with pytest.raises(ValueError, match="kernel p"):
            check_determinism_lemma(swapped)
