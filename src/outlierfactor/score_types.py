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

"""Data types for outlier scoring results."""

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Optional


class Degeneracy(enum.Enum):
    """Why a point's score is undefined or only defined by convention.

    ``EMPTY_NEIGHBORHOOD``, ``UNDEFINED_DISTANCE`` and ``DEGENERATE_NEIGHBOR`` come
    with an undefined score (None). ``DUPLICATE_NEIGHBORHOOD`` is scored exactly 1.0 and
    ``UNBOUNDED_RATIO`` is scored ``inf``.
    """

    # The point has no neighbors (single-point dataset with k clamped to 0).
    EMPTY_NEIGHBORHOOD = "empty_neighborhood"
    # A distance needed for the point's own estimate is undefined.
    UNDEFINED_DISTANCE = "undefined_distance"
    # The point's estimate is fine, but a neighbor's estimate is undefined.
    DEGENERATE_NEIGHBOR = "degenerate_neighbor"
    # The point and all its neighbors coincide: 0 / 0, scored as 1.0.
    DUPLICATE_NEIGHBORHOOD = "duplicate_neighborhood"
    # The neighbors coincide but the point does not: x / 0, scored as inf.
    UNBOUNDED_RATIO = "unbounded_ratio"

    @property
    def is_undefined(self) -> bool:
        return self in (
            Degeneracy.EMPTY_NEIGHBORHOOD,
            Degeneracy.UNDEFINED_DISTANCE,
            Degeneracy.DEGENERATE_NEIGHBOR,
        )


# Score of a point whose outlier factor cannot be computed.
UNDEFINED_SCORE = None


@dataclass
class ScoreMeta:
    """Range information for a set of outlier-factor scores.

    Outlier factors are quotients: 1.0 is the inlier baseline, values far above 1.0 are
    outliers. No normalization is applied to the scores themselves.

    Attributes:
        observed_min: Smallest finite score, or None if there is none.
        observed_max: Largest finite score, or None if there is none.
        theoretical_min: Lower bound of the score range.
        theoretical_max: Upper bound of the score range.
        baseline: Score of a perfectly typical point.
    """

    observed_min: Optional[float] = None
    observed_max: Optional[float] = None
    theoretical_min: float = 0.0
    theoretical_max: float = math.inf
    baseline: float = 1.0


@dataclass
class OutlierResult:
    """Result of scoring every point of a dataset.

    Attributes:
        scores: Mapping of point id to outlier score; higher is more anomalous. Every
            point of the dataset has exactly one entry. Undefined scores are None.
        estimates: Mapping of point id to the local density estimate the score was
            derived from (None when undefined).
        degenerate: Points whose score is undefined or defined only by convention,
            with the reason.
        algorithm: Name of the density estimator (e.g. "cof").
        k: Effective neighborhood size used for the run.
        distance_name: Name of the distance function used.
        score_meta: Range information for the scores.
        explanations: Optional per-point neighbor records, present when the scorer was
            configured with ``explain=True``.
    """

    scores: Dict[Hashable, Optional[float]]
    estimates: Dict[Hashable, Optional[float]]
    algorithm: str
    k: int
    distance_name: str
    degenerate: Dict[Hashable, Degeneracy] = field(default_factory=dict)
    score_meta: ScoreMeta = field(default_factory=ScoreMeta)
    explanations: Optional[Dict[Hashable, Any]] = None

    def __len__(self) -> int:
        return len(self.scores)

    def undefined_ids(self):
        """Ids of the points without a defined score, in dataset order."""
        return [pid for pid, score in self.scores.items() if score is None]
