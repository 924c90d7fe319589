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
outlierfactor - density- and connectivity-based outlier scoring.

This library scores every point of a numeric dataset by comparing the density of its
k-nearest-neighbor neighborhood with the densities of its neighbors (COF, LOF).
"""

from outlierfactor.config import ScorerConfig
from outlierfactor.dataset import Dataset
from outlierfactor.distances import (
    DistanceFunction,
    EuclideanDistance,
    ManhattanDistance,
    PearsonCorrelationDistance,
    SquaredEuclideanDistance,
    SquaredPearsonCorrelationDistance,
    WeightedSquaredPearsonCorrelationDistance,
    get_distance_function,
)
from outlierfactor.errors import (
    ConfigurationError,
    DegenerateDistanceError,
    OutlierFactorError,
    ProviderFailure,
)
from outlierfactor.estimators import (
    ChainingDistanceEstimator,
    MeanDistanceEstimator,
    ReachabilityDensityEstimator,
    get_estimator,
)
from outlierfactor.evaluation import (
    average_precision,
    rank_outliers,
    roc_auc,
    roc_auc_for_label,
    top_outliers,
)
from outlierfactor.neighbors import (
    BruteForceNeighborProvider,
    CachedNeighborProvider,
    NeighborQueryProvider,
    NeighborSet,
    TorchNeighborProvider,
)
from outlierfactor.outlier_scorer import OutlierScorer, score
from outlierfactor.score_types import Degeneracy, OutlierResult

__all__ = [
    "OutlierScorer",
    "score",
    "ScorerConfig",
    "Dataset",
    "OutlierResult",
    "Degeneracy",
    "DistanceFunction",
    "EuclideanDistance",
    "SquaredEuclideanDistance",
    "ManhattanDistance",
    "PearsonCorrelationDistance",
    "SquaredPearsonCorrelationDistance",
    "WeightedSquaredPearsonCorrelationDistance",
    "get_distance_function",
    "ChainingDistanceEstimator",
    "MeanDistanceEstimator",
    "ReachabilityDensityEstimator",
    "get_estimator",
    "NeighborQueryProvider",
    "NeighborSet",
    "BruteForceNeighborProvider",
    "TorchNeighborProvider",
    "CachedNeighborProvider",
    "rank_outliers",
    "top_outliers",
    "roc_auc",
    "roc_auc_for_label",
    "average_precision",
    "OutlierFactorError",
    "ConfigurationError",
    "DegenerateDistanceError",
    "ProviderFailure",
]
