"""Tests for impurity criteria."""

import pytest

from mlplayback.criteria import Criterion, entropy, gini, impurity, variance


class TestClassificationCriteria:

    def test_pure_subset_is_zero(self):
        assert gini([5, 0], 5) == 0.0
        assert entropy([5, 0], 5) == 0.0

    def test_fifty_fifty(self):
        assert gini([3, 3], 6) == pytest.approx(0.5)
        assert entropy([3, 3], 6) == pytest.approx(1.0)

    def test_three_uniform_classes(self):
        assert gini([2, 2, 2], 6) == pytest.approx(2 / 3)
        assert entropy([2, 2, 2], 6) == pytest.approx(1.5849625007)

    def test_empty_subset(self):
        assert gini([0, 0], 0) == 0.0
        assert entropy([0, 0], 0) == 0.0


class TestVariance:

    def test_constant_values(self):
        assert variance([2.5, 2.5, 2.5]) == 0.0

    def test_known_value(self):
        # mean 2, deviations -1, 0, 1
        assert variance([1.0, 2.0, 3.0], 3) == pytest.approx(2 / 3)

    def test_empty(self):
        assert variance([]) == 0.0


class TestDispatch:

    @pytest.mark.parametrize("criterion,func,arg", [
        (Criterion.GINI, gini, [1, 3]),
        (Criterion.ENTROPY, entropy, [1, 3]),
        (Criterion.VARIANCE, variance, [0.0, 1.0, 5.0, 2.0]),
    ])
    def test_impurity_dispatches(self, criterion, func, arg):
        assert impurity(criterion, arg, 4) == func(arg, 4)

    def test_accepts_string_names(self):
        assert impurity('gini', [1, 1], 2) == pytest.approx(0.5)

    def test_classification_flag(self):
        assert Criterion.GINI.is_classification
        assert Criterion.ENTROPY.is_classification
        assert not Criterion.VARIANCE.is_classification
