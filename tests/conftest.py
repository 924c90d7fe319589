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

"""Shared test fixtures and configurations for outlierfactor tests."""

import os
import sys
import pathlib
import pytest
import numpy as np
import logging


# Ensure the package under src/ is importable without installation
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
_SRC_PATH = _REPO_ROOT / "src"
if str(_SRC_PATH) not in sys.path:
    sys.path.insert(0, str(_SRC_PATH))

from outlierfactor.dataset import Dataset  # noqa: E402

REFERENCE_DATA_ENV = "OUTLIERFACTOR_REFERENCE_DATA"


# Set up logging for tests
@pytest.fixture(autouse=True)
def setup_logging():
    """Set up logging for all tests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    yield
    # Reset logging after test
    logging.getLogger().handlers = []


@pytest.fixture
def cluster_with_outlier():
    """A tight Gaussian cluster plus one isolated point (the last one)."""

    def _generate(n_cluster=30, dim=3, seed=42, outlier_offset=10.0):
        rng = np.random.default_rng(seed)
        cluster = rng.normal(0.0, 0.1, size=(n_cluster, dim))
        outlier = np.full((1, dim), outlier_offset)
        return Dataset(np.vstack([cluster, outlier]))

    return _generate


@pytest.fixture
def random_dataset():
    """Generate a random dataset for testing."""

    def _generate(n_samples=60, dim=4, seed=7):
        rng = np.random.default_rng(seed)
        return Dataset(rng.standard_normal((n_samples, dim)))

    return _generate


def load_labelled_ascii(path):
    """Read a whitespace-separated file of numeric columns followed by a class label.

    Lines starting with '#' are ignored. Point ids start at 1.
    """
    vectors = []
    labels = []
    with open(path) as handle:
        for line in handle:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            fields = line.split()
            numbers = []
            label_parts = []
            for token in fields:
                try:
                    numbers.append(float(token))
                except ValueError:
                    label_parts.append(token)
            vectors.append(numbers)
            labels.append(" ".join(label_parts))
    return Dataset(vectors, ids=range(1, len(vectors) + 1), labels=labels)


@pytest.fixture
def reference_dataset():
    path = os.environ.get(REFERENCE_DATA_ENV)
    return load_labelled_ascii(path)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "reference: mark test as requiring the reference dataset")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


def pytest_runtest_setup(item):
    """Skip tests based on markers unless explicitly enabled."""
    # Skip reference-data tests unless the data file is available
    if "reference" in item.keywords:
        path = os.environ.get(REFERENCE_DATA_ENV)
        if not path or not os.path.exists(path):
            pytest.skip(
                f"Reference data is not available. Set {REFERENCE_DATA_ENV} to the "
                "outlier-axis-subspaces-6d.ascii file to run this test."
            )
