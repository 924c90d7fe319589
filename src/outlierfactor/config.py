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

"""Configuration of an outlier scoring run."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import numpy as np

from outlierfactor.dataset import Dataset
from outlierfactor.distances.base import DistanceFunction
from outlierfactor.distances.registry import get_distance_function
from outlierfactor.errors import ConfigurationError
from outlierfactor.estimators import get_estimator

LOG = logging.getLogger(__name__)

K_POLICIES = ("strict", "clamp")


@dataclass
class ScorerConfig:
    """Parameters of an outlier scoring run, validated once before any work starts.

    Attributes:
        k: Number of nearest neighbors per point.
        distance: Distance function instance, or a name understood by
            ``get_distance_function``.
        weights: Per-dimension weights; only used when ``distance`` is a name.
        estimator: Density estimator name: "cof", "knn_mean" or "lof".
        k_policy: What to do when ``k >= N``. "strict" rejects the run, "clamp" uses
            ``N - 1`` neighbors.
        n_jobs: Worker threads per pass. 1 runs everything in the calling thread.
        explain: Whether to record each point's neighbors in the result.
    """

    k: int
    distance: Union[str, DistanceFunction] = "euclidean"
    weights: Optional[Sequence[float]] = None
    estimator: str = "cof"
    k_policy: str = "strict"
    n_jobs: int = 1
    explain: bool = False
    _distance_function: Optional[DistanceFunction] = field(
        default=None, init=False, repr=False, compare=False
    )

    def validate(self) -> None:
        """Check the parameters that do not depend on the dataset.

        Raises:
            ConfigurationError: On the first invalid parameter.
        """
        if not isinstance(self.k, (int, np.integer)) or isinstance(self.k, bool):
            raise ConfigurationError(f"k must be an integer, got {self.k!r}")
        if self.k <= 0:
            raise ConfigurationError(f"k must be positive, got {self.k}")
        if self.k_policy not in K_POLICIES:
            raise ConfigurationError(
                f"k_policy must be one of {K_POLICIES}, got {self.k_policy!r}"
            )
        if not isinstance(self.n_jobs, int) or self.n_jobs < 1:
            raise ConfigurationError(f"n_jobs must be a positive integer, got {self.n_jobs!r}")
        if isinstance(self.distance, DistanceFunction) and self.weights is not None:
            raise ConfigurationError(
                "weights can only be given together with a distance function name"
            )
        get_estimator(self.estimator)
        self.resolve_distance()

    def resolve_distance(self) -> DistanceFunction:
        """The distance function of the run, built from its name on first use."""
        if self._distance_function is None:
            if isinstance(self.distance, DistanceFunction):
                self._distance_function = self.distance
            elif isinstance(self.distance, str):
                self._distance_function = get_distance_function(self.distance, self.weights)
            else:
                raise ConfigurationError(
                    f"distance must be a name or a DistanceFunction, got {self.distance!r}"
                )
        return self._distance_function

    def validate_for(self, dataset: Dataset) -> int:
        """Check the parameters against a dataset.

        Args:
            dataset: The dataset about to be scored.

        Returns:
            The effective k: ``self.k``, or ``N - 1`` when clamped.

        Raises:
            ConfigurationError: If the dataset is empty, ``k >= N`` under the strict
                policy, or the distance weights do not match the vector dimension.
        """
        self.validate()
        n = len(dataset)
        if n == 0:
            raise ConfigurationError("Cannot score an empty dataset")
        self.resolve_distance().check_dimension(dataset.dimension)

        if self.k < n:
            return int(self.k)
        if self.k_policy == "strict":
            raise ConfigurationError(
                f"k={self.k} must be smaller than the dataset size {n} "
                "(use k_policy='clamp' to fall back to N - 1 neighbors)"
            )
        LOG.info("Clamping k=%d to %d for a dataset of %d points", self.k, n - 1, n)
        return n - 1

    def to_dict(self) -> Dict[str, Any]:
        distance = self.distance
        if isinstance(distance, DistanceFunction):
            weights = None if distance.weights is None else distance.weights.tolist()
            distance = distance.name
        else:
            weights = None if self.weights is None else [float(w) for w in self.weights]
        return {
            "k": int(self.k),
            "distance": distance,
            "weights": weights,
            "estimator": self.estimator,
            "k_policy": self.k_policy,
            "n_jobs": self.n_jobs,
            "explain": self.explain,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScorerConfig":
        """Build a config from a mapping such as the output of ``to_dict``."""
        unknown = set(data) - {
            "k", "distance", "weights", "estimator", "k_policy", "n_jobs", "explain"
        }
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        if "k" not in data:
            raise ConfigurationError("Configuration is missing 'k'")
        config = cls(**data)
        config.validate()
        return config
