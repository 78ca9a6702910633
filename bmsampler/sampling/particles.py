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
Particles for Gibbs sampling in RBMs and DBMs

Particles are a list of matrices, one per layer. The i'th matrix contains in
each row the states of the nodes of the i'th layer; rows with the same index
across all matrices form one joint activation state of the Boltzmann machine.
The size of the i'th matrix is therefore (n_particles, n_nodes in layer i).
"""

from typing import List, Optional, Union
import torch
import logging

from ..models.dbm import LayerPair, MultimodalDBM

logger = logging.getLogger(__name__)

Particles = List[torch.Tensor]
BoltzmannMachine = Union[LayerPair, MultimodalDBM]


def layer_models(bm: BoltzmannMachine) -> List[LayerPair]:
    """Layer pairs of ``bm``, from the visible layer upwards."""
    if isinstance(bm, MultimodalDBM):
        return list(bm)
    return [bm]


def first_layer(bm: BoltzmannMachine) -> LayerPair:
    """Layer pair containing the visible layer of ``bm``."""
    return layer_models(bm)[0]


def layer_sizes(bm: BoltzmannMachine) -> List[int]:
    """Number of nodes per layer of ``bm``."""
    if isinstance(bm, MultimodalDBM):
        return bm.layer_sizes
    return [bm.n_visible, bm.n_hidden]


def new_particles(bm: BoltzmannMachine, n_particles: int) -> Particles:
    """
    Allocate uninitialized particles for ``bm``.

    Args:
        bm: RBM, partitioned RBM or DBM
        n_particles: Number of particles (rows)

    Returns:
        One (n_particles x layer size) matrix per layer
    """
    if n_particles < 0:
        raise ValueError(f"Number of particles must be non-negative, got {n_particles}")
    return [
        torch.empty(n_particles, size, dtype=bm.dtype, device=bm.device)
        for size in layer_sizes(bm)
    ]


def new_particles_like(particles: Particles) -> Particles:
    """Allocate uninitialized particles with the same shapes as ``particles``."""
    return [torch.empty_like(p) for p in particles]


def init_particles(
    bm: BoltzmannMachine,
    n_particles: int,
    biased: bool = False,
    generator: Optional[torch.Generator] = None
) -> Particles:
    """
    Create particles for Gibbs sampling in ``bm``.

    For Bernoulli distributed nodes, the particles are initialized with
    Bernoulli(p) distributed values. If ``biased`` is False, p is 0.5,
    otherwise the logistic function of the bias values is used as the nodes'
    individual p's. Gaussian nodes are drawn from a standard normal
    distribution; if ``biased`` is True, the distribution is shifted by the
    bias (and scaled with the standard deviation, depending on the model).
    Categorical variables take each category (including the implicit one)
    with equal probability, or follow the softmax of the bias if ``biased``.

    The layers are initialized from the visible layer upwards.

    Args:
        bm: RBM, partitioned RBM or DBM
        n_particles: Number of particles
        biased: Whether to use the biases for initialization
        generator: Random number generator

    Returns:
        Initialized particles
    """
    particles = new_particles(bm, n_particles)
    models = layer_models(bm)

    models[0].init_visible_nodes_(particles[0], biased, generator)
    for i, rbm in enumerate(models):
        rbm.init_hidden_nodes_(particles[i + 1], biased, generator)

    logger.debug(
        f"Initialized {n_particles} particles for layers {layer_sizes(bm)} "
        f"(biased={biased})"
    )
    return particles


def _same_device(actual: torch.device, expected: torch.device) -> bool:
    # a device without index (e.g. "cuda") matches any index of its type
    if actual.type != expected.type:
        return False
    return expected.index is None or actual.index == expected.index


def check_particles(particles: Particles, bm: BoltzmannMachine) -> None:
    """
    Validate that ``particles`` fit the layers of ``bm``.

    Raises:
        ValueError: If the number of layers, the shapes, the dtype or the
            device do not match
    """
    sizes = layer_sizes(bm)
    if len(particles) != len(sizes):
        raise ValueError(f"Expected particles for {len(sizes)} layers, got {len(particles)}")

    n_particles = particles[0].shape[0] if particles[0].dim() == 2 else -1
    for i, (p, size) in enumerate(zip(particles, sizes)):
        if p.dim() != 2 or tuple(p.shape) != (n_particles, size):
            raise ValueError(
                f"Particles of layer {i} have shape {tuple(p.shape)}, "
                f"expected ({n_particles}, {size})"
            )
        if p.dtype != bm.dtype or not _same_device(p.device, torch.device(bm.device)):
            raise ValueError(
                f"Particles of layer {i} have dtype {p.dtype} on {p.device}, "
                f"expected {bm.dtype} on {bm.device}"
            )
