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
Sampling module for BMSampler.

This module provides Gibbs sampling in RBMs and multimodal DBMs:
- Particles: allocation and initialization of chain states
- Gibbs sampling driver with conditional (clamped) variant
- Convenience entry points for unconditioned and conditional samples
"""

from .particles import (
    Particles,
    BoltzmannMachine,
    new_particles,
    new_particles_like,
    init_particles,
    check_particles,
    layer_sizes,
)
from .gibbs import ParticleBuffers, gibbs_sample_, gibbs_sample_cond_, as_variable_mask
from .api import sample_particles, samples, samples_from, seeded_generator

__all__ = [
    # Particles
    "Particles",
    "BoltzmannMachine",
    "new_particles",
    "new_particles_like",
    "init_particles",
    "check_particles",
    "layer_sizes",

    # Gibbs sampling
    "ParticleBuffers",
    "gibbs_sample_",
    "gibbs_sample_cond_",
    "as_variable_mask",

    # Entry points
    "sample_particles",
    "samples",
    "samples_from",
    "seeded_generator",
]
