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

"""Local density formulae and outlier-factor ratios.

This module contains the per-point estimates (how tightly packed the neighborhood of a
point is) and the functions that combine a point's estimate with those of its neighbors
into an outlier factor. Two families of estimates exist:

- *spread* estimates are distance-like (larger means sparser): average chaining
  distance (COF) and mean k-NN distance. The factor is own / mean(neighbors).
- *density* estimates are inverse distances (larger means denser): local reachability
  density (LOF). The factor is mean(neighbors) / own.

Sums are accumulated sequentially in neighbor order so results do not depend on numpy's
reduction strategy.
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from outlierfactor.score_types import Degeneracy


def average_chaining_distance(
    query_distances: np.ndarray, pairwise_distances: np.ndarray
) -> Optional[float]:
    """Average chaining distance of a point over its neighborhood.

    The chaining path starts at the query point and repeatedly connects the pending
    neighbor that is closest to any already connected point (the query point included).
    With r neighbors, the i-th connection cost (1-based) gets weight ``r + 1 - i``, so
    early, short hops count more than late ones. The weighted sum is normalized by
    ``r * (r + 1) / 2``.

    Among pending neighbors at equal distance, the one with the lowest position in the
    neighbor set is connected first.

    Args:
        query_distances: Distances from the query point to its r neighbors.
        pairwise_distances: (r, r) distances among the neighbors.

    Returns:
        The average chaining distance, or None if the neighborhood is empty or any of
        the distances is undefined (NaN).
    """
    r = query_distances.shape[0]
    if r == 0:
        return None
    if np.any(np.isnan(query_distances)) or np.any(np.isnan(pairwise_distances)):
        return None

    reach = np.array(query_distances, dtype=np.float64)
    pending = np.ones(r, dtype=bool)
    total = 0.0
    for weight in range(r, 0, -1):
        candidates = np.flatnonzero(pending)
        nearest = int(candidates[np.argmin(reach[candidates])])
        total += float(reach[nearest]) * weight
        pending[nearest] = False
        reach = np.minimum(reach, pairwise_distances[nearest])
    return total / (r * 0.5 * (r + 1.0))


def mean_distance(distances: np.ndarray) -> Optional[float]:
    """Arithmetic mean of the k-NN distances, or None for an empty neighborhood."""
    if distances.shape[0] == 0 or np.any(np.isnan(distances)):
        return None
    return sum(float(d) for d in distances) / distances.shape[0]


def local_reachability_density(
    distances: np.ndarray, neighbor_k_distances: np.ndarray
) -> Optional[float]:
    """Local reachability density as used by LOF.

    The reachability distance of p from neighbor o is ``max(k_distance(o), d(p, o))``;
    the density is the inverse of its mean over the neighborhood.

    Args:
        distances: Distances from the point to its neighbors.
        neighbor_k_distances: k-distance of each neighbor (distance to its own farthest
            neighbor).

    Returns:
        The density; ``inf`` when all reachability distances are zero; None for an empty
        neighborhood or undefined distances.
    """
    n = distances.shape[0]
    if n == 0 or np.any(np.isnan(distances)) or np.any(np.isnan(neighbor_k_distances)):
        return None
    reachability = np.maximum(neighbor_k_distances, distances)
    total = sum(float(d) for d in reachability)
    if total > 0:
        return n / total
    return math.inf


def spread_ratio(
    own: float, neighbor_estimates: Sequence[float]
) -> Tuple[Optional[float], Optional[Degeneracy]]:
    """Outlier factor for distance-like estimates: ``own * n / sum(neighbors)``.

    When every neighbor estimate is zero the ratio is unbounded: it is 1.0 if the
    point's own estimate is zero as well (all points coincide) and ``inf`` otherwise.

    Returns:
        (score, degeneracy) where degeneracy is None for an ordinary score.
    """
    n = len(neighbor_estimates)
    if n == 0:
        return None, Degeneracy.EMPTY_NEIGHBORHOOD
    total = sum(neighbor_estimates)
    if total > 0:
        return own * n / total, None
    if own > 0:
        return math.inf, Degeneracy.UNBOUNDED_RATIO
    return 1.0, Degeneracy.DUPLICATE_NEIGHBORHOOD


def density_ratio(
    own: float, neighbor_estimates: Sequence[float]
) -> Tuple[Optional[float], Optional[Degeneracy]]:
    """Outlier factor for density estimates: ``sum(neighbors) / (n * own)``.

    An infinitely dense point (it coincides with all its neighbors) scores 1.0. An
    ordinary point next to an infinitely dense neighbor scores ``inf``.

    Returns:
        (score, degeneracy) where degeneracy is None for an ordinary score.
    """
    n = len(neighbor_estimates)
    if n == 0:
        return None, Degeneracy.EMPTY_NEIGHBORHOOD
    if math.isinf(own):
        return 1.0, Degeneracy.DUPLICATE_NEIGHBORHOOD
    total = sum(neighbor_estimates)
    if math.isinf(total):
        return math.inf, Degeneracy.UNBOUNDED_RATIO
    return total / (own * n), None
