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
k-nearest-neighbor query providers.

The outlier scorer does not index data itself; it asks a ``NeighborQueryProvider`` for
the neighbors of each point. A provider returns, for a point and a neighbor count k,
the ``min(k, N - 1)`` nearest other points sorted ascending by distance. Equal distances
are ordered by dataset position, and pairs whose distance is undefined come last.

Three providers are included:

- ``BruteForceNeighborProvider``: exact numpy scan, works with every distance function.
- ``TorchNeighborProvider``: computes blocks of the distance matrix with torch, which is
  much faster on large datasets and can run on a GPU.
- ``CachedNeighborProvider``: memoizes the answers of another provider across runs.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import torch

from outlierfactor.dataset import Dataset
from outlierfactor.distances.base import DistanceFunction
from outlierfactor.distances.correlation import CorrelationDistance, clamp_correlation
from outlierfactor.distances.metric import (
    EuclideanDistance,
    ManhattanDistance,
    SquaredEuclideanDistance,
)
from outlierfactor.errors import ConfigurationError

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeighborSet:
    """The ordered k nearest neighbors of one query point.

    Attributes:
        indices: Dataset positions of the neighbors, nearest first.
        distances: Distances to the query point. Undefined distances are stored as inf.
        undefined: True where the distance to the query point is undefined.
    """

    indices: np.ndarray
    distances: np.ndarray
    undefined: np.ndarray

    def __len__(self) -> int:
        return int(self.indices.shape[0])

    @property
    def has_undefined(self) -> bool:
        return bool(np.any(self.undefined))

    @property
    def k_distance(self) -> Optional[float]:
        """Distance to the farthest neighbor, or None for an empty set."""
        if len(self) == 0:
            return None
        return float(self.distances[-1])

    @classmethod
    def empty(cls) -> "NeighborSet":
        return cls(
            indices=np.empty(0, dtype=np.intp),
            distances=np.empty(0, dtype=np.float64),
            undefined=np.empty(0, dtype=bool),
        )


def select_neighbors(query_index: int, row: np.ndarray, k: int) -> NeighborSet:
    """Build the NeighborSet of ``query_index`` from its full row of distances.

    Args:
        query_index: Position of the query point; it is never its own neighbor.
        row: Distances from the query point to every point (NaN = undefined).
        k: Requested number of neighbors.

    Returns:
        The ``min(k, len(row) - 1)`` nearest neighbors.
    """
    positions = np.arange(row.shape[0])
    others = positions != query_index
    positions = positions[others]
    row = row[others]
    undefined = np.isnan(row)
    keys = np.where(undefined, np.inf, row)
    # lexsort orders by the last key first: defined before undefined, then by distance,
    # then by position.
    order = np.lexsort((positions, keys, undefined))[:k]
    return NeighborSet(
        indices=positions[order],
        distances=keys[order],
        undefined=undefined[order],
    )


class NeighborQueryProvider(ABC):
    """Answers k-nearest-neighbor queries over a fixed dataset."""

    def __init__(self, dataset: Dataset):
        self.dataset = dataset

    @abstractmethod
    def query(self, index: int, k: int, distance_function: DistanceFunction) -> NeighborSet:
        """Return the ``min(k, N - 1)`` nearest neighbors of the point at ``index``."""

    def query_many(
        self, indices: Sequence[int], k: int, distance_function: DistanceFunction
    ) -> List[NeighborSet]:
        """Answer several queries at once. Providers may override this to batch work."""
        return [self.query(index, k, distance_function) for index in indices]

    def _check_k(self, k: int) -> None:
        if not isinstance(k, (int, np.integer)) or isinstance(k, bool) or k < 0:
            raise ConfigurationError(f"k must be a non-negative integer, got {k!r}")


class BruteForceNeighborProvider(NeighborQueryProvider):
    """Exact neighbor search by computing the distance to every other point."""

    def query(self, index: int, k: int, distance_function: DistanceFunction) -> NeighborSet:
        self._check_k(k)
        vectors = self.dataset.vectors
        row = distance_function.to_many(vectors[index], vectors)
        return select_neighbors(index, row, k)


def _scaled(tensor: torch.Tensor, weights: Optional[torch.Tensor]) -> torch.Tensor:
    if weights is None:
        return tensor
    return tensor * weights


class TorchNeighborProvider(NeighborQueryProvider):
    """Neighbor search on distance-matrix blocks computed with torch.

    Supports the Euclidean, squared Euclidean, Manhattan and Pearson-correlation
    families, weighted or not (weights must be non-negative). Other distance functions
    are answered with the numpy kernels row by row.

    Results are exact up to floating-point rounding: they are reproducible run to run on
    the same device, but may differ from ``BruteForceNeighborProvider`` in the last bits.
    """

    def __init__(
        self,
        dataset: Dataset,
        device: Optional[str] = None,
        batch_size: int = 1024,
    ):
        """Initialize the TorchNeighborProvider.

        Args:
            dataset: The dataset to search.
            device: Torch device name. Defaults to CUDA when available, else CPU.
            batch_size: Number of query rows per distance-matrix block.
        """
        super().__init__(dataset)
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {batch_size}")
        if device is None:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = torch.device(device)
        self.batch_size = batch_size
        self.points = torch.tensor(dataset.vectors.copy(), dtype=torch.float64, device=self.device)

    def query(self, index: int, k: int, distance_function: DistanceFunction) -> NeighborSet:
        return self.query_many([index], k, distance_function)[0]

    def query_many(
        self, indices: Sequence[int], k: int, distance_function: DistanceFunction
    ) -> List[NeighborSet]:
        self._check_k(k)
        kernel = self._kernel_for(distance_function)
        indices = list(indices)
        results = []
        for start in range(0, len(indices), self.batch_size):
            chunk = indices[start:start + self.batch_size]
            if kernel is None:
                vectors = self.dataset.vectors
                rows = np.stack([distance_function.to_many(vectors[i], vectors) for i in chunk])
            else:
                with torch.no_grad():
                    rows = kernel(self.points[chunk], distance_function)
            for index, row in zip(chunk, rows):
                results.append(select_neighbors(index, row, k))
        return results

    def _weights(self, distance_function: DistanceFunction) -> Optional[torch.Tensor]:
        if distance_function.weights is None:
            return None
        return torch.tensor(distance_function.weights.copy(), dtype=torch.float64, device=self.device)

    def _kernel_for(
        self, distance_function: DistanceFunction
    ) -> Optional[Callable[[torch.Tensor, DistanceFunction], np.ndarray]]:
        distance_function.check_dimension(self.dataset.dimension)
        if distance_function.weights is not None and np.any(distance_function.weights < 0):
            LOG.debug("Negative weights are not supported by the torch kernels; using numpy")
            return None
        if isinstance(distance_function, EuclideanDistance):
            return self._minkowski_kernel(2.0, squared=False)
        if isinstance(distance_function, SquaredEuclideanDistance):
            return self._minkowski_kernel(2.0, squared=True)
        if isinstance(distance_function, ManhattanDistance):
            return self._minkowski_kernel(1.0, squared=False)
        if isinstance(distance_function, CorrelationDistance):
            return self._correlation_kernel
        LOG.debug(f"No torch kernel for {type(distance_function).__name__}; using numpy")
        return None

    def _minkowski_kernel(self, p: float, squared: bool):
        def kernel(queries: torch.Tensor, distance_function: DistanceFunction) -> np.ndarray:
            weights = self._weights(distance_function)
            if weights is not None and p == 2.0:
                # sum(w * d**2) == sum((sqrt(w) * d)**2)
                weights = torch.sqrt(weights)
            matrix = torch.cdist(
                _scaled(queries, weights),
                _scaled(self.points, weights),
                p=p,
                compute_mode="donot_use_mm_for_euclid_dist",
            )
            if squared:
                matrix = matrix * matrix
            return matrix.cpu().numpy()

        return kernel

    def _correlation_kernel(
        self, queries: torch.Tensor, distance_function: CorrelationDistance
    ) -> np.ndarray:
        weights = self._weights(distance_function)
        if weights is None:
            weights = torch.ones(self.points.shape[1], dtype=torch.float64, device=self.device)
        active = weights != 0
        total_weight = torch.sum(weights)
        if not bool(torch.any(active)) or not bool(total_weight > 0):
            return np.full((queries.shape[0], self.points.shape[0]), np.nan)

        def centered(rows: torch.Tensor) -> torch.Tensor:
            means = torch.sum(rows * weights, dim=1) / total_weight
            return rows - means[:, None]

        def constant(rows: torch.Tensor) -> torch.Tensor:
            values = rows[:, active]
            return torch.all(values == values[:, :1], dim=1)

        centered_queries = centered(queries)
        centered_points = centered(self.points)
        covariance = (centered_queries * weights) @ centered_points.T
        var_queries = torch.sum(weights * centered_queries * centered_queries, dim=1)
        var_points = torch.sum(weights * centered_points * centered_points, dim=1)
        denominator = torch.sqrt(var_queries[:, None] * var_points[None, :])
        r = covariance / denominator

        undefined = (
            constant(queries)[:, None]
            | constant(self.points)[None, :]
            | ~(denominator > 0)
        )
        r = torch.where(undefined, torch.full_like(r, float("nan")), r)
        return distance_function.from_correlation(clamp_correlation(r.cpu().numpy()))


class CachedNeighborProvider(NeighborQueryProvider):
    """Memoizes the answers of another provider.

    Neighbor sets are normally discarded at the end of a scoring run. Wrapping a provider
    in this class keeps them for as long as the wrapper lives, which avoids repeating the
    dominant k-NN cost when the same dataset is scored several times (for example with
    different estimators).
    """

    def __init__(self, provider: NeighborQueryProvider):
        super().__init__(provider.dataset)
        self.provider = provider
        self._cache: Dict[Tuple[int, int, Hashable], NeighborSet] = {}

    def query(self, index: int, k: int, distance_function: DistanceFunction) -> NeighborSet:
        key = (int(index), int(k), distance_function.cache_key)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        result = self.provider.query(index, k, distance_function)
        self._cache[key] = result
        return result

    def query_many(
        self, indices: Sequence[int], k: int, distance_function: DistanceFunction
    ) -> List[NeighborSet]:
        indices = list(indices)
        missing = [
            i for i in indices
            if (int(i), int(k), distance_function.cache_key) not in self._cache
        ]
        if missing:
            for index, result in zip(missing, self.provider.query_many(missing, k, distance_function)):
                self._cache[(int(index), int(k), distance_function.cache_key)] = result
        return [self._cache[(int(i), int(k), distance_function.cache_key)] for i in indices]

    def clear_cache(self) -> None:
        """Drop every cached neighbor set."""
        cache_size = len(self._cache)
        self._cache.clear()
        LOG.info(f"Cleared neighbor cache ({cache_size} entries removed)")

    def get_cache_info(self) -> dict:
        """
        Get information about the current neighbor cache.

        Returns:
            Dictionary with the number of cached neighbor sets and the distinct
            (k, distance function) combinations they were computed for.
        """
        return {
            "cache_size": len(self._cache),
            "queries": sorted({(k, key[0]) for _, k, key in self._cache}, key=str),
        }

    def remove_from_cache(self, distance_function: DistanceFunction) -> bool:
        """
        Remove all neighbor sets computed with a given distance function.

        Returns:
            True if any entry was removed.
        """
        keys = [key for key in self._cache if key[2] == distance_function.cache_key]
        for key in keys:
            del self._cache[key]
        if keys:
            LOG.info(f"Removed {len(keys)} cached neighbor sets for {distance_function!r}")
        return bool(keys)
