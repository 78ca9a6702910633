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
Sampling entry points for RBMs and DBMs

This module provides convenience functions for generating samples:
- Unconditioned particles after a burn-in phase
- Samples from conditional distributions given fixed visible variables
- Chains started from given visible states
- Seeded random number generators for reproducible sampling
"""

from typing import Iterable, List, Mapping, Optional, Tuple, Union
import torch
import numpy as np
import logging

from ..models.dbm import LayerPair
from .gibbs import _as_index, gibbs_sample_, gibbs_sample_cond_
from .particles import BoltzmannMachine, Particles, first_layer, init_particles

logger = logging.getLogger(__name__)

Conditions = Union[Mapping[int, float], Iterable[Tuple[int, float]]]


def seeded_generator(seed: int, device: Optional[torch.device] = None) -> torch.Generator:
    """Create a random number generator with a fixed seed."""
    generator = torch.Generator(device=device or torch.device('cpu'))
    generator.manual_seed(seed)
    return generator


def sample_particles(
    bm: BoltzmannMachine,
    n_particles: int,
    burnin: int = 10,
    generator: Optional[torch.Generator] = None
) -> Particles:
    """
    Sample by running ``n_particles`` randomly initialized Gibbs chains.

    Args:
        bm: RBM, partitioned RBM or DBM
        n_particles: Number of parallel chains
        burnin: Number of Gibbs sampling steps
        generator: Random number generator

    Returns:
        Particles containing ``n_particles`` generated samples for all layers
    """
    particles = init_particles(bm, n_particles, generator=generator)
    gibbs_sample_(particles, bm, burnin, generator=generator)
    return particles


def _as_conditions(conditions: Optional[Conditions]) -> List[Tuple[int, float]]:
    if conditions is None:
        return []
    if isinstance(conditions, Mapping):
        conditions = conditions.items()
    return [(_as_index(idx), float(value)) for idx, value in conditions]


def samples(
    bm: BoltzmannMachine,
    n_samples: int,
    burnin: int = 50,
    conditions: Optional[Conditions] = None,
    samplelast: bool = True,
    generator: Optional[torch.Generator] = None
) -> torch.Tensor:
    """
    Generate samples of the visible layer by running a Gibbs sampler.

    This can also be used for sampling from a conditional distribution by
    specifying ``conditions``.

    Args:
        bm: RBM, partitioned RBM or DBM
        n_samples: Number of samples
        burnin: Number of Gibbs sampling steps
        conditions: Visible variables and the values to condition on, as a
            mapping or pairs of (column index, value), e.g. ``{0: 1.0, 2: 0.0}``
        samplelast: Whether to sample in the last step (True) or to return
            the potential of the visible nodes (False)
        generator: Random number generator

    Returns:
        Visible activations [n_samples, n_visible]

    Raises:
        ValueError: If a condition index is not an integer or refers to a
            non-existing visible node
    """
    particles = init_particles(bm, n_samples, generator=generator)
    visible = first_layer(bm)
    n_steps = burnin if samplelast else max(burnin - 1, 0)
    conditions = _as_conditions(conditions)

    if not conditions:
        gibbs_sample_(particles, bm, n_steps, generator=generator)
        if not samplelast:
            visible.visible_potential(particles[1], out=particles[0])
        return particles[0]

    varmask = torch.zeros(visible.n_visible, dtype=torch.bool)
    for idx, value in conditions:
        if not 0 <= idx < visible.n_visible:
            raise ValueError(f"Condition on visible node {idx} out of range [0, {visible.n_visible})")
        varmask[idx] = True
        particles[0][:, idx] = value

    gibbs_sample_cond_(particles, bm, varmask, n_steps, generator=generator)
    if not samplelast:
        visible.visible_potential(particles[1], out=particles[0])
        for idx, value in conditions:
            particles[0][:, idx] = value

    # return the visible layer's activations
    return particles[0]


def samples_from(
    rbm: LayerPair,
    init: Union[torch.Tensor, np.ndarray],
    burnin: int = 50,
    samplelast: bool = True,
    generator: Optional[torch.Generator] = None
) -> torch.Tensor:
    """
    Run Gibbs chains in an RBM, starting from given visible states.

    The hidden layer is first sampled from ``init``; afterwards ``burnin``
    Gibbs steps are performed. If ``samplelast`` is False, the visible update
    of the last step yields the potential of the visible nodes instead of a
    sample.

    Args:
        rbm: RBM or partitioned RBM
        init: Initial visible states [n_samples, n_visible]
        burnin: Number of Gibbs sampling steps
        samplelast: Whether to sample in the last step
        generator: Random number generator

    Returns:
        Visible activations [n_samples, n_visible]
    """
    v = torch.as_tensor(init, dtype=rbm.dtype, device=rbm.device).clone()
    particles = [v, rbm.sample_hidden(v, generator=generator)]

    n_steps = burnin if samplelast else max(burnin - 1, 0)
    gibbs_sample_(particles, rbm, n_steps, generator=generator)

    if not samplelast:
        rbm.visible_potential(particles[1], out=particles[0])

    return particles[0]
