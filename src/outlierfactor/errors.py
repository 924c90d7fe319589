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

"""Exception types raised by outlierfactor."""


class OutlierFactorError(Exception):
    """Base class for all errors raised by this library."""


class ConfigurationError(OutlierFactorError, ValueError):
    """Invalid scoring parameters or input data, detected before any scoring work starts.

    Typical causes are a non-positive ``k``, ``k`` not smaller than the dataset size
    without a fallback policy, or a weight vector whose length does not match the
    dimension of the vectors.
    """


class DegenerateDistanceError(OutlierFactorError, ArithmeticError):
    """A distance is mathematically undefined for the given pair of vectors.

    Raised by correlation distances when one of the vectors has zero variance over
    the weighted dimensions. Inside a scoring run this never aborts the run; the
    affected points are reported through ``OutlierResult.degenerate`` instead.
    """


class ProviderFailure(OutlierFactorError, RuntimeError):
    """The neighbor query provider could not satisfy a request.

    This is a run-level failure: it indicates a configuration or data problem on the
    provider side rather than a per-point numeric edge case.
    """
