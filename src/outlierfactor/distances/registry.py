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
Lookup of distance functions by name.

Names map to an unweighted and a weighted implementation; the weighted one is chosen
whenever a weight vector is supplied.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Type
import logging

from outlierfactor.distances.base import DistanceFunction
from outlierfactor.distances.correlation import (
    AbsolutePearsonCorrelationDistance,
    PearsonCorrelationDistance,
    SquaredPearsonCorrelationDistance,
    WeightedAbsolutePearsonCorrelationDistance,
    WeightedPearsonCorrelationDistance,
    WeightedSquaredPearsonCorrelationDistance,
)
from outlierfactor.distances.metric import (
    EuclideanDistance,
    ManhattanDistance,
    SquaredEuclideanDistance,
)
from outlierfactor.errors import ConfigurationError

LOG = logging.getLogger(__name__)

_REGISTRY: Dict[str, Tuple[Type[DistanceFunction], Type[DistanceFunction]]] = {
    "euclidean": (EuclideanDistance, EuclideanDistance),
    "sqeuclidean": (SquaredEuclideanDistance, SquaredEuclideanDistance),
    "manhattan": (ManhattanDistance, ManhattanDistance),
    "pearson": (PearsonCorrelationDistance, WeightedPearsonCorrelationDistance),
    "squared_pearson": (
        SquaredPearsonCorrelationDistance,
        WeightedSquaredPearsonCorrelationDistance,
    ),
    "absolute_pearson": (
        AbsolutePearsonCorrelationDistance,
        WeightedAbsolutePearsonCorrelationDistance,
    ),
}

_ALIASES = {
    "l2": "euclidean",
    "l1": "manhattan",
    "cityblock": "manhattan",
    "weighted_pearson": "pearson",
    "weighted_squared_pearson": "squared_pearson",
    "weighted_absolute_pearson": "absolute_pearson",
}


def available_distance_functions() -> List[str]:
    """Names accepted by ``get_distance_function``."""
    return sorted(_REGISTRY)


def get_distance_function(
    name: str,
    weights: Optional[Sequence[float]] = None,
) -> DistanceFunction:
    """
    Create a distance function from its name.

    Args:
        name: One of ``available_distance_functions()`` (case-insensitive), or an alias
            such as ``"l2"``.
        weights: Optional per-dimension weights. Selects the weighted variant.

    Returns:
        A new DistanceFunction instance.

    Raises:
        ConfigurationError: If the name is unknown.
    """
    key = name.lower().strip()
    key = _ALIASES.get(key, key)
    if key not in _REGISTRY:
        raise ConfigurationError(
            f"Unknown distance function {name!r}; expected one of {available_distance_functions()}"
        )

    unweighted_cls, weighted_cls = _REGISTRY[key]
    if weights is None:
        LOG.debug(f"Creating distance function: {unweighted_cls.__name__}")
        return unweighted_cls()

    LOG.debug(f"Creating weighted distance function: {weighted_cls.__name__}")
    return weighted_cls(weights)
