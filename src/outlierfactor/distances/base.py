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
Base class for distance functions.

A distance function maps a pair of fixed-length numeric vectors to a non-negative
float. All implementations are vectorized: ``to_many`` computes the distances from one
vector to every row of a block, and ``distance`` is defined through it so that both
entry points always agree bit for bit.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np

from outlierfactor.errors import ConfigurationError, DegenerateDistanceError


class DistanceFunction(ABC):
    """Symmetric dissimilarity between two vectors of the same dimension.

    Subclasses implement ``_to_many``. Entries of its result that are NaN mark pairs
    for which the distance is undefined; ``distance`` turns such an entry into a
    ``DegenerateDistanceError``.
    """

    name: str = "distance"

    def __init__(self, weights: Optional[Sequence[float]] = None):
        self.weights: Optional[np.ndarray] = None
        if weights is not None:
            weights = np.array(weights, dtype=np.float64)
            if weights.ndim != 1:
                raise ConfigurationError(
                    f"Weights must be a one-dimensional sequence, got shape {weights.shape}"
                )
            weights.flags.writeable = False
            self.weights = weights

    @property
    def dimension(self) -> Optional[int]:
        """Dimension this function is bound to, or None if it accepts any dimension."""
        if self.weights is None:
            return None
        return int(self.weights.shape[0])

    @property
    def cache_key(self) -> Tuple:
        """Hashable identity: two functions with equal keys compute identical distances."""
        weights = None if self.weights is None else tuple(self.weights.tolist())
        return (type(self).__name__, weights)

    def __eq__(self, other):
        if not isinstance(other, DistanceFunction):
            return NotImplemented
        return self.cache_key == other.cache_key

    def __hash__(self):
        return hash(self.cache_key)

    def __repr__(self):
        if self.weights is None:
            return f"{type(self).__name__}()"
        return f"{type(self).__name__}(weights={self.weights.tolist()})"

    def check_dimension(self, dimension: int) -> None:
        """Raise ConfigurationError if the bound weights do not match ``dimension``."""
        if self.dimension is not None and self.dimension != dimension:
            raise ConfigurationError(
                f"{self.name} has {self.dimension} weights but the vectors have dimension {dimension}"
            )

    def to_many(self, a, block) -> np.ndarray:
        """Distances from vector ``a`` to every row of ``block``.

        Args:
            a: Vector of shape (D,).
            block: Array of shape (M, D).

        Returns:
            Float array of shape (M,). NaN entries mark undefined distances.
        """
        a = np.asarray(a, dtype=np.float64)
        block = np.asarray(block, dtype=np.float64)
        if block.ndim == 1:
            block = block[np.newaxis, :]
        if a.shape[0] != block.shape[1]:
            raise ConfigurationError(
                f"Dimension mismatch: {a.shape[0]} vs {block.shape[1]}"
            )
        self.check_dimension(a.shape[0])
        return self._to_many(a, block)

    def distance(self, a, b) -> float:
        """Distance between two vectors.

        Raises:
            DegenerateDistanceError: If the distance is undefined for this pair.
        """
        value = float(self.to_many(a, np.asarray(b, dtype=np.float64)[np.newaxis, :])[0])
        if value != value:
            raise DegenerateDistanceError(
                f"{self.name} is undefined for the given pair of vectors"
            )
        return value

    def __call__(self, a, b) -> float:
        return self.distance(a, b)

    @abstractmethod
    def _to_many(self, a: np.ndarray, block: np.ndarray) -> np.ndarray:
        """Vectorized kernel; inputs are validated float64 arrays."""
