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

"""Tests for the density formulae module."""

import math

import numpy as np
import pytest

from outlierfactor.density_formulae import (
    average_chaining_distance,
    density_ratio,
    local_reachability_density,
    mean_distance,
    spread_ratio,
)
from outlierfactor.score_types import Degeneracy


class TestAverageChainingDistance:
    """Test suite for average_chaining_distance."""

    def test_single_neighbor(self):
        assert average_chaining_distance(np.array([2.5]), np.array([[0.0]])) == 2.5

    def test_two_neighbors(self):
        # Hops: query -> 0 costs 1.0 (weight 2), {query, 0} -> 1 costs 1.5 (weight 1).
        query = np.array([1.0, 2.0])
        pairwise = np.array([[0.0, 1.5], [1.5, 0.0]])
        assert average_chaining_distance(query, pairwise) == pytest.approx((2 * 1.0 + 1.5) / 3)

    def test_path_uses_closest_connected_point(self):
        # Points on a line: query at 0, neighbors at 1, 2 and 3.
        query = np.array([1.0, 2.0, 3.0])
        pairwise = np.array(
            [
                [0.0, 1.0, 2.0],
                [1.0, 0.0, 1.0],
                [2.0, 1.0, 0.0],
            ]
        )
        # Every hop costs 1.0, so the weighted mean is 1.0.
        assert average_chaining_distance(query, pairwise) == pytest.approx(1.0)

    def test_chain_is_shorter_than_mean_distance(self):
        query = np.array([1.0, 2.0, 3.0])
        pairwise = np.abs(query[:, None] - query[None, :])
        assert average_chaining_distance(query, pairwise) < mean_distance(query)

    def test_ties_pick_first_position(self):
        # Neighbors 0 and 1 are both at distance 1 from the query point. Connecting 0
        # first gives hops 1.0, 0.1, 1.0; connecting 1 first would give 1.0, 1.0, 0.1.
        query = np.array([1.0, 1.0, 2.0])
        pairwise = np.array(
            [
                [0.0, 1.5, 0.1],
                [1.5, 0.0, 5.0],
                [0.1, 5.0, 0.0],
            ]
        )
        expected = (3 * 1.0 + 2 * 0.1 + 1 * 1.0) / 6
        assert average_chaining_distance(query, pairwise) == pytest.approx(expected)

    def test_duplicates_give_zero(self):
        assert average_chaining_distance(np.zeros(3), np.zeros((3, 3))) == 0.0

    def test_empty_and_undefined(self):
        assert average_chaining_distance(np.empty(0), np.empty((0, 0))) is None
        assert average_chaining_distance(np.array([1.0, np.nan]), np.zeros((2, 2))) is None
        pairwise = np.array([[0.0, np.nan], [np.nan, 0.0]])
        assert average_chaining_distance(np.array([1.0, 1.0]), pairwise) is None


class TestLocalReachabilityDensity:
    """Test suite for local_reachability_density."""

    def test_uses_neighbor_k_distance(self):
        # reach = [max(2, 1), max(1, 3)] = [2, 3]
        lrd = local_reachability_density(np.array([1.0, 3.0]), np.array([2.0, 1.0]))
        assert lrd == pytest.approx(2 / 5)

    def test_all_zero_reachability(self):
        assert local_reachability_density(np.zeros(2), np.zeros(2)) == math.inf

    def test_empty(self):
        assert local_reachability_density(np.empty(0), np.empty(0)) is None


class TestRatios:
    """Test suite for spread_ratio and density_ratio."""

    def test_spread_ratio(self):
        assert spread_ratio(2.0, [1.0, 1.0]) == (2.0, None)
        assert spread_ratio(1.0, [1.0, 1.0, 1.0]) == (1.0, None)

    def test_spread_ratio_duplicates(self):
        assert spread_ratio(0.0, [0.0, 0.0]) == (1.0, Degeneracy.DUPLICATE_NEIGHBORHOOD)

    def test_spread_ratio_unbounded(self):
        score, reason = spread_ratio(0.5, [0.0, 0.0])
        assert score == math.inf
        assert reason is Degeneracy.UNBOUNDED_RATIO

    def test_spread_ratio_empty(self):
        assert spread_ratio(1.0, []) == (None, Degeneracy.EMPTY_NEIGHBORHOOD)

    def test_density_ratio(self):
        assert density_ratio(0.5, [1.0, 1.0]) == (2.0, None)
        assert density_ratio(1.0, [1.0]) == (1.0, None)

    def test_density_ratio_degenerate(self):
        assert density_ratio(math.inf, [math.inf, 2.0]) == (1.0, Degeneracy.DUPLICATE_NEIGHBORHOOD)
        assert density_ratio(1.0, [math.inf, 2.0]) == (math.inf, Degeneracy.UNBOUNDED_RATIO)
        assert density_ratio(1.0, []) == (None, Degeneracy.EMPTY_NEIGHBORHOOD)

    def test_mean_distance(self):
        assert mean_distance(np.array([1.0, 2.0, 6.0])) == 3.0
        assert mean_distance(np.empty(0)) is None
