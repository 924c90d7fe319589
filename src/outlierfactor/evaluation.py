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

"""Ranking and evaluation of outlier scores.

The scorer never thresholds or normalizes its output; this module turns an
``OutlierResult`` into ranked anomaly lists and compares it against ground-truth labels.

Ranking metrics only depend on the order of the scores. Scores are therefore replaced
by order-preserving ranks before they are handed to scikit-learn, which makes infinite
scores and undefined (None) scores usable: undefined points rank below every defined
one, and equal scores share a rank and count as ties.
"""

from typing import Collection, Hashable, List, Mapping, Optional, Tuple, Union

import numpy as np
from sklearn.metrics import average_precision_score, roc_auc_score

from outlierfactor.dataset import Dataset
from outlierfactor.errors import ConfigurationError
from outlierfactor.score_types import OutlierResult


def rank_outliers(result: OutlierResult) -> List[Hashable]:
    """Point ids sorted from most to least anomalous.

    Ties keep the dataset order; undefined scores come last.
    """
    ids = list(result.scores)
    order = sorted(
        range(len(ids)),
        key=lambda i: _sort_key(result.scores[ids[i]], i),
    )
    return [ids[i] for i in order]


def _sort_key(score: Optional[float], position: int):
    if score is None:
        return (1, 0.0, position)
    return (0, -score, position)


def top_outliers(result: OutlierResult, m: int) -> List[Tuple[Hashable, Optional[float]]]:
    """The ``m`` highest-scoring points as (id, score) pairs."""
    if m < 0:
        raise ConfigurationError(f"m must be non-negative, got {m}")
    return [(pid, result.scores[pid]) for pid in rank_outliers(result)[:m]]


def _ranks(result: OutlierResult) -> np.ndarray:
    values = np.array(
        [-np.inf if s is None else s for s in result.scores.values()], dtype=np.float64
    )
    _, ranks = np.unique(values, return_inverse=True)
    return ranks.reshape(-1).astype(np.float64)


def _labels_for(result: OutlierResult, positive_ids: Collection[Hashable]) -> np.ndarray:
    positives = set(positive_ids)
    unknown = positives.difference(result.scores)
    if unknown:
        raise ConfigurationError(f"{len(unknown)} positive ids are not in the result")
    y_true = np.array([pid in positives for pid in result.scores], dtype=bool)
    if y_true.all() or not y_true.any():
        raise ConfigurationError(
            "Ranking metrics need at least one positive and one negative point"
        )
    return y_true


def roc_auc(result: OutlierResult, positive_ids: Collection[Hashable]) -> float:
    """Area under the ROC curve of the score ranking.

    Args:
        result: Scores to evaluate.
        positive_ids: Ids of the true outliers; all other points are inliers.

    Returns:
        AUC in [0, 1]; 0.5 is a random ranking, 1.0 ranks every outlier first.
    """
    y_true = _labels_for(result, positive_ids)
    return float(roc_auc_score(y_true, _ranks(result)))


def average_precision(result: OutlierResult, positive_ids: Collection[Hashable]) -> float:
    """Average precision of the score ranking (area under the precision-recall curve)."""
    y_true = _labels_for(result, positive_ids)
    return float(average_precision_score(y_true, _ranks(result)))


def roc_auc_for_label(
    result: OutlierResult,
    labels: Union[Dataset, Mapping[Hashable, Hashable]],
    positive_label: Hashable = "Noise",
) -> float:
    """ROC AUC where the points carrying ``positive_label`` are the true outliers.

    Args:
        result: Scores to evaluate.
        labels: A labelled Dataset, or a mapping of point id to class label.
        positive_label: Label of the outlier class.
    """
    if isinstance(labels, Dataset):
        positive_ids = labels.ids_with_label(positive_label)
    else:
        positive_ids = [pid for pid, label in labels.items() if label == positive_label]
    return roc_auc(result, positive_ids)
