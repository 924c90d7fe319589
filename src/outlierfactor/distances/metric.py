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

"""Minkowski-family distances, optionally weighted per dimension."""

import numpy as np

from outlierfactor.distances.base import DistanceFunction


class SquaredEuclideanDistance(DistanceFunction):
    """Sum of (weighted) squared coordinate differences. Not a metric, but monotone in Euclidean."""

    name = "sqeuclidean"

    def _to_many(self, a: np.ndarray, block: np.ndarray) -> np.ndarray:
        delta = block - a
        squares = delta * delta
        if self.weights is not None:
            squares = squares * self.weights
        return np.sum(squares, axis=1)


class EuclideanDistance(SquaredEuclideanDistance):
    """Euclidean (L2) distance. With weights: ``sqrt(sum(w * (a - b)**2))``."""

    name = "euclidean"

    def _to_many(self, a: np.ndarray, block: np.ndarray) -> np.ndarray:
        return np.sqrt(super()._to_many(a, block))


class ManhattanDistance(DistanceFunction):
    """Manhattan (L1) distance. With weights: ``sum(w * |a - b|)``."""

    name = "manhattan"

    def _to_many(self, a: np.ndarray, block: np.ndarray) -> np.ndarray:
        delta = np.abs(block - a)
        if self.weights is not None:
            delta = delta * self.weights
        return np.sum(delta, axis=1)
