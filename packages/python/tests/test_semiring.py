"""Tests for the shipped semirings and the oracle tolerance rule.

Every kernel carries the semiring its weights live in:

  - PROB      (+, ×, 0, 1) over non-negative floats, numeric
  - BOOL      (or, and, False, True)
  - MAX_PLUS  (max, +, -inf, 0)
  - LOG_PROB  (logaddexp, +, -inf, 0)
"""

import math
import pytest

from markov_oracles.semiring import BOOL, LOG_PROB, MAX_PLUS, PROB, Semiring


# ═══════════════════════════════════════════════════════════════════
# Identities
# ═══════════════════════════════════════════════════════════════════


class TestIdentities:

    @pytest.mark.parametrize("R", [PROB, BOOL, MAX_PLUS, LOG_PROB], ids=lambda r: r.name)
    def test_zero_is_additive_identity(self, R):
        assert R.eq(R.add(R.zero, R.one), R.one)
        assert R.eq(R.add(R.one, R.zero), R.one)

    @pytest.mark.parametrize("R", [PROB, BOOL, MAX_PLUS, LOG_PROB], ids=lambda r: r.name)
    def test_one_is_multiplicative_identity(self, R):
        assert R.eq(R.mul(R.one, R.one), R.one)

    @pytest.mark.parametrize("R", [PROB, BOOL, MAX_PLUS, LOG_PROB], ids=lambda r: r.name)
    def test_zero_annihilates(self, R):
        assert R.iszero(R.mul(R.zero, R.one))
        assert R.iszero(R.mul(R.one, R.zero))

    def test_empty_sum_is_zero(self):
        assert PROB.sum([]) == 0.0
        assert MAX_PLUS.sum([]) == float("-inf")

    def test_empty_product_is_one(self):
        assert PROB.prod([]) == 1.0
        assert BOOL.prod([]) is True


class TestShippedInstances:

    def test_prob_sum_and_prod(self):
        assert PROB.sum([0.25, 0.25, 0.5]) == pytest.approx(1.0)
        assert PROB.prod([0.5, 0.5]) == pytest.approx(0.25)

    def test_bool_is_possibility(self):
        assert BOOL.add(False, True) is True
        assert BOOL.mul(True, False) is False
        assert BOOL.iszero(False)
        assert not BOOL.iszero(True)

    def test_max_plus_takes_best_path(self):
        assert MAX_PLUS.add(-3.0, -1.0) == -1.0
        assert MAX_PLUS.mul(-3.0, -1.0) == -4.0

    def test_log_prob_adds_in_log_space(self):
        half = math.log(0.5)
        assert LOG_PROB.add(half, half) == pytest.approx(0.0)
        assert LOG_PROB.mul(half, half) == pytest.approx(math.log(0.25))

    def test_log_prob_neg_inf_is_zero(self):
        assert LOG_PROB.add(float("-inf"), -2.0) == -2.0
        assert LOG_PROB.iszero(float("-inf"))

    def test_prob_eq_absorbs_representation_noise(self):
        assert PROB.eq(0.1 + 0.2, 0.3)
        assert not PROB.eq(0.3, 0.3001)

    def test_infinities_compare_equal(self):
        assert MAX_PLUS.eq(float("-inf"), float("-inf"))

    def test_only_prob_is_numeric(self):
        assert PROB.numeric
        assert not BOOL.numeric
        assert not MAX_PLUS.numeric
        assert not LOG_PROB.numeric


# ═══════════════════════════════════════════════════════════════════
# Tolerance rule
# ═══════════════════════════════════════════════════════════════════


class TestClose:

    def test_numeric_uses_absolute_tolerance(self):
        assert PROB.close(0.5, 0.5 + 1e-10, 1e-9)
        assert not PROB.close(0.5, 0.5 + 1e-6, 1e-9)
        assert PROB.close(0.5, 0.5 + 1e-6, 1e-5)

    def test_numeric_without_tolerance_uses_eq(self):
        assert PROB.close(0.3, 0.1 + 0.2)
        assert not PROB.close(0.5, 0.5 + 1e-9)

    def test_non_numeric_ignores_tolerance(self):
        assert not MAX_PLUS.close(0.0, 1e-6, 1.0)
        assert BOOL.close(True, True, 1e-9)

    def test_custom_semiring_without_is_zero_falls_back_to_eq(self):
        counting = Semiring(
            name="counting",
            zero=0,
            one=1,
            add=lambda a, b: a + b,
            mul=lambda a, b: a * b,
            eq=lambda a, b: a == b,
        )
        assert counting.iszero(0)
        assert not counting.iszero(2)
        assert counting.sum([1, 2, 3]) == 6

    def test_semiring_is_immutable(self):
        with pytest.raises(AttributeError):
            PROB.name = "other"  # type: ignore[misc]
