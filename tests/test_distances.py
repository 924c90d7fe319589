# Copyright 2025 Roblox Corporation
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for the distances package."""

import math

import numpy as np
import pytest

from outlierfactor.distances import (
    AbsolutePearsonCorrelationDistance,
    EuclideanDistance,
    ManhattanDistance,
    PearsonCorrelationDistance,
    SquaredEuclideanDistance,
    SquaredPearsonCorrelationDistance,
    WeightedAbsolutePearsonCorrelationDistance,
    WeightedPearsonCorrelationDistance,
    WeightedSquaredPearsonCorrelationDistance,
    available_distance_functions,
    get_distance_function,
)
from outlierfactor.distances.correlation import clamp_correlation
from outlierfactor.errors import ConfigurationError, DegenerateDistanceError

WEIGHTS = [0.5, 1.0, 2.0, 0.25, 1.5]

METRIC_FUNCTIONS = [
    EuclideanDistance(),
    EuclideanDistance(WEIGHTS),
    SquaredEuclideanDistance(),
    ManhattanDistance(),
    ManhattanDistance(WEIGHTS),
]

CORRELATION_FUNCTIONS = [
    PearsonCorrelationDistance(),
    SquaredPearsonCorrelationDistance(),
    AbsolutePearsonCorrelationDistance(),
    WeightedPearsonCorrelationDistance(WEIGHTS),
    WeightedSquaredPearsonCorrelationDistance(WEIGHTS),
    WeightedAbsolutePearsonCorrelationDistance(WEIGHTS),
]


class TestMetricDistances:
    """Test suite for the Minkowski-family distances."""

    def test_known_values(self):
        assert EuclideanDistance().distance([0.0, 0.0], [3.0, 4.0]) == 5.0
        assert SquaredEuclideanDistance().distance([0.0, 0.0], [3.0, 4.0]) == 25.0
        assert ManhattanDistance().distance([1.0, 2.0, 3.0], [4.0, 0.0, 3.0]) == 5.0

    def test_weighted_values(self):
        assert EuclideanDistance([1.0, 4.0]).distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(
            math.sqrt(73.0)
        )
        assert ManhattanDistance([2.0, 0.5]).distance([0.0, 0.0], [3.0, 4.0]) == 8.0

    def test_to_many_matches_distance(self):
        rng = np.random.default_rng(3)
        a = rng.standard_normal(5)
        block = rng.standard_normal((10, 5))
        for fn in METRIC_FUNCTIONS:
            row = fn.to_many(a, block)
            assert row.shape == (10,)
            for i in range(10):
                assert row[i] == fn.distance(a, block[i])

    @pytest.mark.parametrize("fn", METRIC_FUNCTIONS, ids=repr)
    def test_symmetry(self, fn):
        rng = np.random.default_rng(11)
        for _ in range(20):
            a, b = rng.standard_normal((2, 5))
            assert fn.distance(a, b) == fn.distance(b, a)

    def test_identical_vectors_have_zero_distance(self):
        v = [1.5, -2.0, 3.25, 0.0, 7.0]
        for fn in METRIC_FUNCTIONS:
            assert fn.distance(v, v) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(ConfigurationError):
            EuclideanDistance().distance([1.0, 2.0], [1.0, 2.0, 3.0])
        with pytest.raises(ConfigurationError):
            EuclideanDistance([1.0, 1.0]).distance([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])


class TestCorrelationDistances:
    """Test suite for the Pearson-correlation distances."""

    def test_perfect_positive_correlation(self):
        a = [1.0, 2.0, 3.0, 4.0]
        b = [2.0, 4.0, 6.0, 8.0]
        assert PearsonCorrelationDistance().distance(a, b) == 0.0
        assert SquaredPearsonCorrelationDistance().distance(a, b) == 0.0
        assert AbsolutePearsonCorrelationDistance().distance(a, b) == 0.0

    def test_perfect_negative_correlation(self):
        a = [1.0, 2.0, 3.0, 4.0]
        b = [8.0, 6.0, 4.0, 2.0]
        assert PearsonCorrelationDistance().distance(a, b) == 2.0
        assert SquaredPearsonCorrelationDistance().distance(a, b) == 0.0
        assert AbsolutePearsonCorrelationDistance().distance(a, b) == 0.0

    def test_uncorrelated(self):
        a = [1.0, 0.0, -1.0, 0.0]
        b = [0.0, 1.0, 0.0, -1.0]
        assert PearsonCorrelationDistance().distance(a, b) == 1.0
        assert SquaredPearsonCorrelationDistance().distance(a, b) == 1.0

    @pytest.mark.parametrize("fn", CORRELATION_FUNCTIONS, ids=repr)
    def test_symmetry(self, fn):
        rng = np.random.default_rng(5)
        for _ in range(20):
            a, b = rng.standard_normal((2, 5))
            assert fn.distance(a, b) == pytest.approx(fn.distance(b, a), rel=1e-12, abs=1e-15)

    def test_zero_variance_is_degenerate(self):
        fn = SquaredPearsonCorrelationDistance()
        with pytest.raises(DegenerateDistanceError):
            fn.distance([1.0, 1.0, 1.0], [1.0, 2.0, 3.0])
        with pytest.raises(DegenerateDistanceError):
            fn.distance([1.0, 2.0, 3.0], [0.1, 0.1, 0.1])

    def test_to_many_marks_undefined_with_nan(self):
        fn = SquaredPearsonCorrelationDistance()
        block = np.array([[1.0, 2.0, 3.0], [5.0, 5.0, 5.0], [3.0, 2.0, 1.0]])
        row = fn.to_many(np.array([2.0, 4.0, 6.0]), block)
        assert row[0] == pytest.approx(0.0, abs=1e-12)
        assert math.isnan(row[1])
        assert row[2] == pytest.approx(0.0, abs=1e-12)

    def test_zero_weights_are_ignored(self):
        a = [1.0, 2.0, 3.0, 100.0]
        b = [2.0, 4.0, 6.0, -50.0]
        fn = WeightedSquaredPearsonCorrelationDistance([1.0, 1.0, 1.0, 0.0])
        assert fn.distance(a, b) == pytest.approx(0.0, abs=1e-12)

    def test_all_zero_weights_are_degenerate(self):
        fn = WeightedPearsonCorrelationDistance([0.0, 0.0, 0.0])
        with pytest.raises(DegenerateDistanceError):
            fn.distance([1.0, 2.0, 3.0], [3.0, 1.0, 2.0])

    def test_constant_over_active_dimensions_is_degenerate(self):
        fn = WeightedSquaredPearsonCorrelationDistance([1.0, 1.0, 0.0])
        with pytest.raises(DegenerateDistanceError):
            fn.distance([4.0, 4.0, 9.0], [1.0, 2.0, 3.0])

    def test_all_ones_weights_match_unweighted(self):
        rng = np.random.default_rng(21)
        a = rng.standard_normal(6)
        block = rng.standard_normal((25, 6))
        pairs = [
            (PearsonCorrelationDistance(), WeightedPearsonCorrelationDistance([1.0] * 6)),
            (
                SquaredPearsonCorrelationDistance(),
                WeightedSquaredPearsonCorrelationDistance([1.0] * 6),
            ),
            (
                AbsolutePearsonCorrelationDistance(),
                WeightedAbsolutePearsonCorrelationDistance([1.0] * 6),
            ),
        ]
        for unweighted, weighted in pairs:
            np.testing.assert_allclose(
                weighted.to_many(a, block), unweighted.to_many(a, block), rtol=1e-12, atol=1e-15
            )

    def test_weights_scale_invariance(self):
        rng = np.random.default_rng(8)
        a, b = rng.standard_normal((2, 5))
        weights = np.array(WEIGHTS)
        first = WeightedSquaredPearsonCorrelationDistance(weights).distance(a, b)
        second = WeightedSquaredPearsonCorrelationDistance(weights * 10.0).distance(a, b)
        assert first == pytest.approx(second, rel=1e-9)

    def test_weights_length_mismatch(self):
        fn = WeightedSquaredPearsonCorrelationDistance([1.0, 1.0])
        with pytest.raises(ConfigurationError):
            fn.distance([1.0, 2.0, 3.0], [3.0, 2.0, 1.0])


class TestClamping:
    """Correlation coefficients are clamped to [-1, 1] before forming a distance."""

    def test_clamp_correlation(self):
        clamped = clamp_correlation(np.array([1.0000000000000002, -1.0000000000000002, 0.3, np.nan]))
        assert clamped[0] == 1.0
        assert clamped[1] == -1.0
        assert clamped[2] == 0.3
        assert math.isnan(clamped[3])

    def test_distances_stay_in_range(self):
        rng = np.random.default_rng(13)
        vectors = rng.standard_normal((40, 6)) * rng.uniform(1e-3, 1e3, size=(40, 1))
        squared = SquaredPearsonCorrelationDistance()
        absolute = AbsolutePearsonCorrelationDistance()
        pearson = PearsonCorrelationDistance()
        for v in vectors:
            sq = squared.to_many(v, vectors)
            ab = absolute.to_many(v, vectors)
            pe = pearson.to_many(v, vectors)
            assert np.all((sq >= 0.0) & (sq <= 1.0))
            assert np.all((ab >= 0.0) & (ab <= 1.0))
            assert np.all((pe >= 0.0) & (pe <= 2.0))

    def test_self_distance_is_not_negative(self):
        rng = np.random.default_rng(17)
        fn = SquaredPearsonCorrelationDistance()
        for v in rng.standard_normal((50, 6)):
            d = fn.distance(v, v)
            assert 0.0 <= d <= 1e-12


class TestRegistry:
    """Test suite for name-based lookup."""

    def test_names(self):
        names = available_distance_functions()
        for name in ["euclidean", "manhattan", "pearson", "squared_pearson", "absolute_pearson"]:
            assert name in names

    def test_unweighted_and_weighted_variants(self):
        assert isinstance(get_distance_function("euclidean"), EuclideanDistance)
        assert isinstance(get_distance_function("L2"), EuclideanDistance)
        assert isinstance(
            get_distance_function("squared_pearson"), SquaredPearsonCorrelationDistance
        )
        fn = get_distance_function("squared_pearson", weights=[1.0, 2.0])
        assert isinstance(fn, WeightedSquaredPearsonCorrelationDistance)
        assert fn.dimension == 2
        weighted = get_distance_function("weighted_squared_pearson", weights=[1.0, 2.0])
        assert weighted == fn

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            get_distance_function("cosine-ish")

    def test_equality_and_hash(self):
        assert EuclideanDistance() == EuclideanDistance()
        assert hash(EuclideanDistance()) == hash(EuclideanDistance())
        assert EuclideanDistance() != EuclideanDistance([1.0, 1.0])
        assert EuclideanDistance() != ManhattanDistance()
