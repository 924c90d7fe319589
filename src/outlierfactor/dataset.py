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

"""In-memory dataset of fixed-dimension vectors."""

from typing import Dict, Hashable, List, Optional, Sequence

import numpy as np
import torch

from outlierfactor.errors import ConfigurationError


class Dataset:
    """A read-only collection of N vectors of dimension D.

    Points are addressed two ways: by their position ``0..N-1`` (used internally and by
    neighbor providers) and by a stable identifier (used in results). Identifiers default
    to the positions.
    """

    def __init__(
        self,
        vectors,
        ids: Optional[Sequence[Hashable]] = None,
        labels: Optional[Sequence[Hashable]] = None,
    ):
        """Initialize the Dataset.

        Args:
            vectors: Array-like or torch.Tensor of shape (N, D).
            ids: Optional unique identifiers, one per vector.
            labels: Optional class labels, one per vector. Only used for evaluation.

        Raises:
            ConfigurationError: If the vectors are not a finite 2-D array, or ids/labels
                do not match the number of vectors.
        """
        if isinstance(vectors, torch.Tensor):
            vectors = vectors.detach().cpu().numpy()
        try:
            vectors = np.array(vectors, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Vectors must be numeric: {e}") from e

        if vectors.ndim != 2:
            raise ConfigurationError(
                f"Vectors must form a 2-D array of shape (N, D), got shape {vectors.shape}"
            )
        if not np.all(np.isfinite(vectors)):
            raise ConfigurationError("Vectors must not contain NaN or infinite values")
        vectors.flags.writeable = False
        self.vectors: np.ndarray = vectors

        if ids is None:
            ids = list(range(vectors.shape[0]))
        else:
            ids = list(ids)
        if len(ids) != vectors.shape[0]:
            raise ConfigurationError(
                f"Got {len(ids)} ids for {vectors.shape[0]} vectors"
            )
        self.ids: List[Hashable] = ids
        self._positions: Dict[Hashable, int] = {pid: i for i, pid in enumerate(ids)}
        if len(self._positions) != len(ids):
            raise ConfigurationError("Point ids must be unique")

        if labels is not None:
            labels = list(labels)
            if len(labels) != vectors.shape[0]:
                raise ConfigurationError(
                    f"Got {len(labels)} labels for {vectors.shape[0]} vectors"
                )
        self.labels: Optional[List[Hashable]] = labels

    def __len__(self) -> int:
        return self.vectors.shape[0]

    def __repr__(self) -> str:
        return f"Dataset(size={len(self)}, dimension={self.dimension})"

    @property
    def dimension(self) -> int:
        return self.vectors.shape[1]

    def index_of(self, point_id: Hashable) -> int:
        """Position of the point with the given identifier."""
        try:
            return self._positions[point_id]
        except KeyError:
            raise KeyError(f"Unknown point id: {point_id!r}") from None

    def vector(self, point_id: Hashable) -> np.ndarray:
        return self.vectors[self.index_of(point_id)]

    def ids_with_label(self, label: Hashable) -> List[Hashable]:
        """Identifiers of all points carrying ``label``."""
        if self.labels is None:
            raise ConfigurationError("Dataset has no labels")
        return [pid for pid, lbl in zip(self.ids, self.labels) if lbl == label]
