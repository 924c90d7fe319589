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

"""Correlation-based distances.

These distances compare the *shape* of two vectors: the dimension-wise values of each
vector are treated as a sample, and the Pearson correlation coefficient ``r`` between
the two samples is turned into a dissimilarity. Vectors whose attribute values are
strictly positively (or, for the squared and absolute variants, negatively) correlated
are close; uncorrelated vectors are far apart.

None of these distances satisfies the triangle inequality.

The coefficient is undefined when one of the vectors is constant over the dimensions
with non-zero weight. The kernels return NaN for such pairs, which ``distance`` reports
as ``DegenerateDistanceError``.

Floating-point error can push ``|r|`` slightly above 1. The coefficient is clamped to
[-1, 1] before the distance is formed, so every distance stays inside its nominal range.
"""

from typing import Optional, Sequence

import numpy as np

from outlierfactor.distances.base import DistanceFunction


def clamp_correlation(r: np.ndarray) -> np.ndarray:
    """Clamp correlation coefficients to [-1, 1]. NaN entries are preserved."""
    return np.clip(r, -1.0, 1.0)


def _centered(rows: np.ndarray, weights: np.ndarray, total_weight: float) -> np.ndarray:
    means = np.sum(rows * weights, axis=1) / total_weight
    return rows - means[:, np.newaxis]


def pearson_coefficients(
    a: np.ndarray, block: np.ndarray, weights: Optional[np.ndarray] = None
) -> np.ndarray:
    """(Weighted) Pearson correlation between ``a`` and every row of ``block``.

    With weights, means, variances and the covariance are weighted sums normalized by
    the total weight. Weights are used as given; they are neither validated nor
    renormalized.

    Args:
        a: Vector of shape (D,).
        block: Array of shape (M, D).
        weights: Optional weights of shape (D,).

    Returns:
        Array of shape (M,) with coefficients clamped to [-1, 1]; NaN where undefined.
    """
    if weights is None:
        weights = np.ones(a.shape[0], dtype=np.float64)
    active = weights != 0
    total_weight = float(np.sum(weights))
    if not active.any() or not total_weight > 0:
        return np.full(block.shape[0], np.nan)

    # a goes through exactly the same code path as the rows of block, which keeps
    # the coefficient bit-for-bit symmetric in its arguments.
    centered_a = _centered(a[np.newaxis, :], weights, total_weight)
    centered_block = _centered(block, weights, total_weight)

    sum_xy = np.sum(weights * (centered_block * centered_a), axis=1)
    sum_xx = np.sum(weights * (centered_a * centered_a), axis=1)
    sum_yy = np.sum(weights * (centered_block * centered_block), axis=1)
    denominator = np.sqrt(sum_xx * sum_yy)

    # Constant vectors (over the active dimensions) have no defined coefficient,
    # even if rounding in the mean leaves a tiny non-zero variance behind.
    constant_a = np.all(a[active] == a[active][0])
    constant_block = np.all(block[:, active] == block[:, active][:, :1], axis=1)
    undefined = constant_block | constant_a | ~(denominator > 0)

    with np.errstate(divide="ignore", invalid="ignore"):
        r = sum_xy / denominator
    r = np.where(undefined, np.nan, r)
    return clamp_correlation(r)


class CorrelationDistance(DistanceFunction):
    def _to_many(self, a: np.ndarray, block: np.ndarray) -> np.ndarray:
        return self.from_correlation(pearson_coefficients(a, block, self.weights))

    @staticmethod
    def from_correlation(r: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class PearsonCorrelationDistance(CorrelationDistance):
    """``1 - r``; ranges over [0, 2], anti-correlated vectors are farthest apart."""

    name = "pearson"

    @staticmethod
    def from_correlation(r: np.ndarray) -> np.ndarray:
        return 1.0 - r


class SquaredPearsonCorrelationDistance(CorrelationDistance):
    """``1 - r**2``; ranges over [0, 1], the sign of the correlation is ignored."""

    name = "squared_pearson"

    @staticmethod
    def from_correlation(r: np.ndarray) -> np.ndarray:
        return 1.0 - r * r


class AbsolutePearsonCorrelationDistance(CorrelationDistance):
    """``1 - |r|``; ranges over [0, 1]."""

    name = "absolute_pearson"

    @staticmethod
    def from_correlation(r: np.ndarray) -> np.ndarray:
        return 1.0 - np.abs(r)


class WeightedPearsonCorrelationDistance(PearsonCorrelationDistance):
    """Weighted variant of ``PearsonCorrelationDistance``."""

    name = "weighted_pearson"

    def __init__(self, weights: Sequence[float]):
        super().__init__(weights)


class WeightedSquaredPearsonCorrelationDistance(SquaredPearsonCorrelationDistance):
    """Weighted variant of ``SquaredPearsonCorrelationDistance``.

    With an all-ones weight vector this computes the same values as the unweighted
    function.
    """

    name = "weighted_squared_pearson"

    def __init__(self, weights: Sequence[float]):
        super().__init__(weights)


class WeightedAbsolutePearsonCorrelationDistance(AbsolutePearsonCorrelationDistance):
    """Weighted variant of ``AbsolutePearsonCorrelationDistance``."""

    name = "weighted_absolute_pearson"

    def __init__(self, weights: Sequence[float]):
        super().__init__(weights)
