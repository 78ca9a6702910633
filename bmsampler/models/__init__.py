# Copyright 2025 NeuroBM Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Models module for BMSampler.

This module provides the layer types whose activations can be sampled:
- Layer pairs (RBMs) with Bernoulli, Binomial(2, p), Gaussian and
  categorical visible nodes
- PartitionedRBM: block-diagonal composition of layer pairs
- MultimodalDBM: stack of layer pairs forming a deep Boltzmann machine
- Distribution kernels for in-place stochastic transformations
"""

from .rbm import (
    AbstractRBM,
    BernoulliRBM,
    Binomial2BernoulliRBM,
    GaussianBernoulliRBM,
    GaussianBernoulliRBM2,
    Softmax0BernoulliRBM,
    BernoulliGaussianRBM,
    RBM_TYPES,
)
from .partitioned import PartitionedRBM
from .dbm import MultimodalDBM, LayerPair
from .utils import (
    sigm,
    sigm_,
    bernoulli_,
    binomial2_,
    sigm_bernoulli_,
    gaussian_noise_,
    softmax0_,
    categorical0_,
    check_ranges,
)

__all__ = [
    # Layer pairs
    "AbstractRBM",
    "BernoulliRBM",
    "Binomial2BernoulliRBM",
    "GaussianBernoulliRBM",
    "GaussianBernoulliRBM2",
    "Softmax0BernoulliRBM",
    "BernoulliGaussianRBM",
    "RBM_TYPES",

    # Composition
    "PartitionedRBM",
    "MultimodalDBM",
    "LayerPair",

    # Distribution kernels
    "sigm",
    "sigm_",
    "bernoulli_",
    "binomial2_",
    "sigm_bernoulli_",
    "gaussian_noise_",
    "softmax0_",
    "categorical0_",
    "check_ranges",
]
