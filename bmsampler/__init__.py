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
BMSampler: Gibbs sampling in Restricted and multimodal Deep Boltzmann Machines.
"""

from .models import (
    BernoulliRBM,
    Binomial2BernoulliRBM,
    GaussianBernoulliRBM,
    GaussianBernoulliRBM2,
    Softmax0BernoulliRBM,
    BernoulliGaussianRBM,
    PartitionedRBM,
    MultimodalDBM,
)
from .sampling import (
    init_particles,
    gibbs_sample_,
    gibbs_sample_cond_,
    sample_particles,
    samples,
    samples_from,
    seeded_generator,
)

__version__ = "0.1.0"
__all__ = [
    "BernoulliRBM",
    "Binomial2BernoulliRBM",
    "GaussianBernoulliRBM",
    "GaussianBernoulliRBM2",
    "Softmax0BernoulliRBM",
    "BernoulliGaussianRBM",
    "PartitionedRBM",
    "MultimodalDBM",
    "init_particles",
    "gibbs_sample_",
    "gibbs_sample_cond_",
    "sample_particles",
    "samples",
    "samples_from",
    "seeded_generator",
]
