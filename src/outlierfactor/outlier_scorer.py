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
Module for the outlier scorer.

This module provides the OutlierScorer class, which computes a local outlier factor for
every point of a dataset.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar, Union

import numpy as np

from outlierfactor.config import ScorerConfig
from outlierfactor.dataset import Dataset
from outlierfactor.distances.base import DistanceFunction
from outlierfactor.errors import ConfigurationError, OutlierFactorError, ProviderFailure
from outlierfactor.estimators import EstimationContext, LocalDensityEstimator, get_estimator
from outlierfactor.neighbors import BruteForceNeighborProvider, NeighborQueryProvider, NeighborSet
from outlierfactor.score_types import Degeneracy, OutlierResult, ScoreMeta

LOG = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class OutlierScorer:
    """Score every point of a dataset by comparing its local density to its neighbors'.

    The scorer runs three passes over the dataset, each finished before the next starts:

    1. Neighbor pass: the k nearest neighbors of every point are requested from a
       ``NeighborQueryProvider`` and checked (size, ordering, self-exclusion).
    2. Density pass: the configured ``LocalDensityEstimator`` computes one estimate per
       point from its neighbor set. Each estimate is computed exactly once.
    3. Ratio pass: every point's estimate is combined with the cached estimates of its
       neighbors into an outlier factor. A factor near 1 means the point is as dense as
       its neighborhood; a factor well above 1 means it is sparser, i.e. an outlier.

    Per-point numeric problems (undefined correlation distances, empty neighborhoods)
    never abort a run: the affected points get an undefined score (None) and are listed in
    ``OutlierResult.degenerate``. Invalid parameters are rejected before any work starts
    with ``ConfigurationError``; a misbehaving provider aborts the run with
    ``ProviderFailure``.

    Each pass can be spread over a thread pool (``n_jobs > 1``). Results are collected
    in point order, so the output does not depend on the number of workers and repeated
    runs over the same input are bit-identical.

    By default COF (connectivity-based outlier factor) is computed, which models the
    neighborhood with the average chaining distance. LOF and a plain k-NN distance ratio
    are available through ``ScorerConfig.estimator``.
    """

    def __init__(
        self,
        config: ScorerConfig,
        provider_factory: Callable[[Dataset], NeighborQueryProvider] = BruteForceNeighborProvider,
        estimator: Optional[LocalDensityEstimator] = None,
    ):
        """Initialize the OutlierScorer.

        Args:
            config: Scoring parameters. Validated immediately.
            provider_factory: Called with the dataset to create its neighbor provider when
                ``score`` is not given one explicitly.
            estimator: Optional estimator instance overriding ``config.estimator``.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        config.validate()
        self.config = config
        self.distance_function: DistanceFunction = config.resolve_distance()
        self.estimator: LocalDensityEstimator = estimator or get_estimator(config.estimator)
        self.provider_factory = provider_factory

    def score(
        self, dataset: Dataset, provider: Optional[NeighborQueryProvider] = None
    ) -> OutlierResult:
        """Compute the outlier score of every point.

        Args:
            dataset: The dataset to score. It is not modified.
            provider: Optional neighbor provider for ``dataset``, e.g. a
                ``CachedNeighborProvider`` shared between runs.

        Returns:
            OutlierResult with exactly one score per point.

        Raises:
            ConfigurationError: If the parameters do not fit the dataset.
            ProviderFailure: If the neighbor provider fails or returns invalid neighbors.
        """
        k = self.config.validate_for(dataset)
        if provider is None:
            provider = self.provider_factory(dataset)
        elif provider.dataset is not dataset:
            raise ConfigurationError("The neighbor provider was built for a different dataset")

        n = len(dataset)
        LOG.info(
            "Scoring %d points with %s (k=%d, distance=%s, n_jobs=%d)",
            n,
            self.estimator.name,
            k,
            self.distance_function.name,
            self.config.n_jobs,
        )

        neighborhoods = self._neighbor_pass(dataset, provider, k)

        context = EstimationContext(
            dataset=dataset,
            distance_function=self.distance_function,
            neighborhoods=neighborhoods,
        )
        estimates: List[Optional[float]] = self._map(
            lambda i: self.estimator.estimate(i, neighborhoods[i], context), range(n)
        )

        outcomes = self._map(
            lambda i: self._score_point(i, neighborhoods[i], estimates), range(n)
        )

        return self._build_result(dataset, k, neighborhoods, estimates, outcomes)

    def _map(self, fn: Callable[[T], R], items: Sequence[T]) -> List[R]:
        if self.config.n_jobs == 1:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.config.n_jobs) as pool:
            return list(pool.map(fn, items))

    def _neighbor_pass(
        self, dataset: Dataset, provider: NeighborQueryProvider, k: int
    ) -> List[NeighborSet]:
        n = len(dataset)
        chunk_size = max(1, math.ceil(n / self.config.n_jobs))
        chunks = [list(range(start, min(start + chunk_size, n))) for start in range(0, n, chunk_size)]

        def query_chunk(chunk: List[int]) -> List[NeighborSet]:
            return provider.query_many(chunk, k, self.distance_function)

        try:
            answers = self._map(query_chunk, chunks)
        except OutlierFactorError:
            raise
        except Exception as e:
            raise ProviderFailure(f"Neighbor query failed: {e}") from e

        neighborhoods = [neighbors for chunk in answers for neighbors in chunk]
        if len(neighborhoods) != n:
            raise ProviderFailure(
                f"Provider answered {len(neighborhoods)} queries, expected {n}"
            )
        expected = min(k, n - 1)
        for index, neighbors in enumerate(neighborhoods):
            self._check_neighbors(index, neighbors, expected, n)
        return neighborhoods

    @staticmethod
    def _check_neighbors(index: int, neighbors: NeighborSet, expected: int, n: int) -> None:
        if len(neighbors) != expected:
            raise ProviderFailure(
                f"Provider returned {len(neighbors)} neighbors for point {index}, expected {expected}"
            )
        if expected == 0:
            return
        indices = np.asarray(neighbors.indices)
        if np.any(indices < 0) or np.any(indices >= n):
            raise ProviderFailure(f"Provider returned out-of-range neighbors for point {index}")
        if np.any(indices == index):
            raise ProviderFailure(f"Provider returned point {index} as its own neighbor")
        if np.unique(indices).shape[0] != indices.shape[0]:
            raise ProviderFailure(f"Provider returned duplicate neighbors for point {index}")

        undefined = np.asarray(neighbors.undefined, dtype=bool)
        if np.any(undefined[:-1] & ~undefined[1:]):
            raise ProviderFailure(
                f"Provider returned undefined distances before defined ones for point {index}"
            )
        defined = np.asarray(neighbors.distances)[~undefined]
        if np.any(np.isnan(defined)) or np.any(np.diff(defined) < 0):
            raise ProviderFailure(f"Provider returned unsorted neighbors for point {index}")

    def _score_point(
        self, index: int, neighbors: NeighborSet, estimates: Sequence[Optional[float]]
    ) -> Tuple[Optional[float], Optional[Degeneracy]]:
        own = estimates[index]
        if own is None:
            if len(neighbors) == 0:
                return None, Degeneracy.EMPTY_NEIGHBORHOOD
            return None, Degeneracy.UNDEFINED_DISTANCE
        neighbor_estimates = [estimates[j] for j in neighbors.indices]
        if any(estimate is None for estimate in neighbor_estimates):
            return None, Degeneracy.DEGENERATE_NEIGHBOR
        return self.estimator.combine(own, neighbor_estimates)

    def _build_result(
        self,
        dataset: Dataset,
        k: int,
        neighborhoods: Sequence[NeighborSet],
        estimates: Sequence[Optional[float]],
        outcomes: Sequence[Tuple[Optional[float], Optional[Degeneracy]]],
    ) -> OutlierResult:
        scores = {}
        estimates_by_id = {}
        degenerate = {}
        for point_id, estimate, (score, reason) in zip(dataset.ids, estimates, outcomes):
            scores[point_id] = None if score is None else float(score)
            estimates_by_id[point_id] = None if estimate is None else float(estimate)
            if reason is not None:
                degenerate[point_id] = reason
            if LOG.isEnabledFor(logging.DEBUG):
                LOG.debug(f"Point {point_id!r}: estimate={estimate}, score={score}, degeneracy={reason}")

        finite = [s for s in scores.values() if s is not None and math.isfinite(s)]
        score_meta = ScoreMeta(
            observed_min=min(finite) if finite else None,
            observed_max=max(finite) if finite else None,
        )

        explanations = None
        if self.config.explain:
            explanations = {}
            for point_id, neighbors in zip(dataset.ids, neighborhoods):
                explanations[point_id] = {
                    "neighbors": [dataset.ids[j] for j in neighbors.indices],
                    "distances": [
                        None if undefined else float(d)
                        for d, undefined in zip(neighbors.distances, neighbors.undefined)
                    ],
                    "estimate": estimates_by_id[point_id],
                }

        undefined_count = sum(1 for s in scores.values() if s is None)
        if undefined_count:
            LOG.warning(
                "%d of %d points have an undefined outlier score", undefined_count, len(scores)
            )
        LOG.info("Scored %d points (%d degenerate)", len(scores), len(degenerate))

        return OutlierResult(
            scores=scores,
            estimates=estimates_by_id,
            algorithm=self.estimator.name,
            k=k,
            distance_name=self.distance_function.name,
            degenerate=degenerate,
            score_meta=score_meta,
            explanations=explanations,
        )


def score(
    dataset: Union[Dataset, Sequence[Sequence[float]], np.ndarray],
    k: int,
    distance_function: Union[str, DistanceFunction] = "euclidean",
    weights: Optional[Sequence[float]] = None,
    provider: Optional[NeighborQueryProvider] = None,
    **options,
) -> OutlierResult:
    """Score every point of ``dataset`` in one call.

    Args:
        dataset: A Dataset, or an (N, D) array-like that is wrapped into one.
        k: Number of nearest neighbors per point.
        distance_function: Distance function instance or name.
        weights: Per-dimension weights when ``distance_function`` is a name.
        provider: Optional neighbor provider bound to ``dataset``.
        **options: Remaining ``ScorerConfig`` fields (estimator, k_policy, n_jobs, explain).

    Returns:
        OutlierResult with exactly one score per point.
    """
    if not isinstance(dataset, Dataset):
        dataset = Dataset(dataset)
    config = ScorerConfig(k=k, distance=distance_function, weights=weights, **options)
    return OutlierScorer(config).score(dataset, provider=provider)
