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

"""
Local density estimators.

An estimator turns the neighbor set of a point into one number describing how tightly
packed the neighborhood is, and knows how to combine a point's number with those of its
neighbors into an outlier factor. The formulae live in ``density_formulae``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Type

import numpy as np

from outlierfactor.dataset import Dataset
from outlierfactor.density_formulae import (
    average_chaining_distance,
    density_ratio,
    local_reachability_density,
    mean_distance,
    spread_ratio,
)
from outlierfactor.distances.base import DistanceFunction
from outlierfactor.errors import ConfigurationError
from outlierfactor.neighbors import NeighborSet
from outlierfactor.score_types import Degeneracy


@dataclass(frozen=True)
class EstimationContext:
    """Read-only state of a scoring run that estimators may consult.

    Attributes:
        dataset: The dataset being scored.
        distance_function: The distance function of the run.
        neighborhoods: Neighbor set of every point, by dataset position.
    """

    dataset: Dataset
    distance_function: DistanceFunction
    neighborhoods: Sequence[NeighborSet]


class LocalDensityEstimator(ABC):
    """Computes a per-point local density estimate and the resulting outlier factor."""

    name: str = "estimator"

    @abstractmethod
    def estimate(
        self, index: int, neighbors: NeighborSet, context: EstimationContext
    ) -> Optional[float]:
        """Estimate for the point at ``index``; None if it cannot be computed."""

    @abstractmethod
    def combine(
        self, own: float, neighbor_estimates: Sequence[float]
    ) -> Tuple[Optional[float], Optional[Degeneracy]]:
        """Outlier factor of a point from its own and its neighbors' estimates."""

    def __repr__(self):
        return f"{type(self).__name__}()"


class ChainingDistanceEstimator(LocalDensityEstimator):
    """Average chaining distance, the connectivity estimate of COF.

    Unlike a plain mean of k-NN distances, the chaining distance follows the shortest
    set-based path through the neighborhood, so points sitting on a thin, low-density
    line of neighbors are not mistaken for outliers.
    """

    name = "cof"

    def estimate(
        self, index: int, neighbors: NeighborSet, context: EstimationContext
    ) -> Optional[float]:
        if len(neighbors) == 0 or neighbors.has_undefined:
            return None
        vectors = context.dataset.vectors
        members = vectors[neighbors.indices]
        pairwise = np.stack(
            [context.distance_function.to_many(vectors[i], members) for i in neighbors.indices]
        )
        return average_chaining_distance(neighbors.distances, pairwise)

    def combine(self, own, neighbor_estimates):
        return spread_ratio(own, neighbor_estimates)


class MeanDistanceEstimator(LocalDensityEstimator):
    """Arithmetic mean of the k-NN distances."""

    name = "knn_mean"

    def estimate(
        self, index: int, neighbors: NeighborSet, context: EstimationContext
    ) -> Optional[float]:
        if neighbors.has_undefined:
            return None
        return mean_distance(neighbors.distances)

    def combine(self, own, neighbor_estimates):
        return spread_ratio(own, neighbor_estimates)


class ReachabilityDensityEstimator(LocalDensityEstimator):
    """Local reachability density, the estimate of LOF."""

    name = "lof"

    def estimate(
        self, index: int, neighbors: NeighborSet, context: EstimationContext
    ) -> Optional[float]:
        if len(neighbors) == 0 or neighbors.has_undefined:
            return None
        neighbor_sets = [context.neighborhoods[i] for i in neighbors.indices]
        if any(len(s) == 0 or s.has_undefined for s in neighbor_sets):
            return None
        k_distances = np.array([s.k_distance for s in neighbor_sets], dtype=np.float64)
        return local_reachability_density(neighbors.distances, k_distances)

    def combine(self, own, neighbor_estimates):
        return density_ratio(own, neighbor_estimates)


_ESTIMATORS: Dict[str, Type[LocalDensityEstimator]] = {
    ChainingDistanceEstimator.name: ChainingDistanceEstimator,
    MeanDistanceEstimator.name: MeanDistanceEstimator,
    ReachabilityDensityEstimator.name: ReachabilityDensityEstimator,
}


def get_estimator(name: str) -> LocalDensityEstimator:
    """Create an estimator by name: ``"cof"``, ``"knn_mean"`` or ``"lof"``."""
    key = name.lower().strip()
    if key not in _ESTIMATORS:
        raise ConfigurationError(
            f"Unknown estimator {name!r}; expected one of {sorted(_ESTIMATORS)}"
        )
    return _ESTIMATORS[key]()
