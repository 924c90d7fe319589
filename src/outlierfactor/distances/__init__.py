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

from outlierfactor.distances.base import DistanceFunction
from outlierfactor.distances.correlation import (
    AbsolutePearsonCorrelationDistance,
    PearsonCorrelationDistance,
    SquaredPearsonCorrelationDistance,
    WeightedAbsolutePearsonCorrelationDistance,
    WeightedPearsonCorrelationDistance,
    WeightedSquaredPearsonCorrelationDistance,
    pearson_coefficients,
)
from outlierfactor.distances.metric import (
    EuclideanDistance,
    ManhattanDistance,
    SquaredEuclideanDistance,
)
from outlierfactor.distances.registry import (
    available_distance_functions,
    get_distance_function,
)

__all__ = [
    "DistanceFunction",
    "EuclideanDistance",
    "SquaredEuclideanDistance",
    "ManhattanDistance",
    "PearsonCorrelationDistance",
    "SquaredPearsonCorrelationDistance",
    "AbsolutePearsonCorrelationDistance",
    "WeightedPearsonCorrelationDistance",
    "WeightedSquaredPearsonCorrelationDistance",
    "WeightedAbsolutePearsonCorrelationDistance",
    "pearson_coefficients",
    "available_distance_functions",
    "get_distance_function",
]
