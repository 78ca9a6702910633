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
Block Gibbs sampling in RBMs and multimodal DBMs

This module provides the Gibbs sampling driver:
- Alternating visible/hidden updates for two-layer models
- Simultaneous updates of all layers of a DBM using a double buffer
- Conditional sampling with clamped visible variables
"""

from typing import Iterable, Optional, Sequence, Union
import torch
import numpy as np
import logging

from ..models.dbm import MultimodalDBM
from ..models.utils import sigm_bernoulli_
from .particles import (
    BoltzmannMachine,
    Particles,
    check_particles,
    first_layer,
    new_particles_like,
)

logger = logging.getLogger(__name__)

VariableMask = Union[torch.Tensor, np.ndarray, Sequence[bool]]


class ParticleBuffers:
    """
    Double buffer for simultaneous updates of all layers.

    ``current`` is the caller's particle list, ``next`` receives the new
    states computed from ``current``, and ``scratch`` holds intermediate
    inputs. ``swap`` exchanges the tensors held in the slots of ``current``
    and ``next``, so the caller's list always refers to the latest state
    without copying any tensor data.
    """

    def __init__(self, particles: Particles):
        self.current = particles
        self.next = new_particles_like(particles)
        self.scratch = new_particles_like(particles)

    def swap(self) -> None:
        self.current[:], self.next[:] = self.next[:], self.current[:]


def _check_steps(n_steps: int) -> None:
    if n_steps < 0:
        raise ValueError(f"Number of Gibbs steps must be non-negative, got {n_steps}")


def _as_index(idx) -> int:
    """Column index from an integral value; bools and fractions are rejected."""
    if isinstance(idx, torch.Tensor) and idx.numel() == 1:
        idx = idx.item()
    if isinstance(idx, (bool, np.bool_)):
        raise ValueError(f"Visible node index must be an integer, got {idx!r}")
    if isinstance(idx, (int, np.integer)):
        return int(idx)
    if isinstance(idx, (float, np.floating)) and float(idx).is_integer():
        return int(idx)
    raise ValueError(f"Visible node index must be an integer, got {idx!r}")


def as_variable_mask(cond: Union[VariableMask, Iterable[int]], n_visible: int) -> torch.Tensor:
    """
    Convert a condition specification to a boolean mask over visible nodes.

    Args:
        cond: Boolean mask of length ``n_visible`` or indices of visible nodes
        n_visible: Number of visible nodes

    Returns:
        Boolean tensor [n_visible]

    Raises:
        ValueError: If the mask has the wrong length or an index is not an
            integer within range
    """
    is_tensor_mask = isinstance(cond, torch.Tensor) and cond.dtype == torch.bool
    is_array_mask = isinstance(cond, np.ndarray) and cond.dtype == np.bool_
    if is_tensor_mask or is_array_mask:
        mask = torch.as_tensor(cond).flatten()
        if mask.numel() != n_visible:
            raise ValueError(f"Variable mask has length {mask.numel()}, expected {n_visible}")
        return mask

    cond = list(cond)
    if cond and all(isinstance(c, (bool, np.bool_)) for c in cond):
        if len(cond) != n_visible:
            raise ValueError(f"Variable mask has length {len(cond)}, expected {n_visible}")
        return torch.tensor([bool(c) for c in cond], dtype=torch.bool)

    mask = torch.zeros(n_visible, dtype=torch.bool)
    for idx in cond:
        idx = _as_index(idx)
        if not 0 <= idx < n_visible:
            raise ValueError(f"Visible node index {idx} out of range [0, {n_visible})")
        mask[idx] = True
    return mask


def _clamp_(v: torch.Tensor, mask: torch.Tensor, values: torch.Tensor) -> None:
    v[:, mask] = values[:, mask]


def _gibbs_sample_dbm_(
    particles: Particles,
    dbm: MultimodalDBM,
    n_steps: int,
    mask: Optional[torch.Tensor],
    origvisibles: Optional[torch.Tensor],
    generator: Optional[torch.Generator],
) -> Particles:
    buffers = ParticleBuffers(particles)
    n_layers = len(particles)

    for _ in range(n_steps):
        old, new, scratch = buffers.current, buffers.next, buffers.scratch

        # first layer gets input only from layer above
        dbm[0].sample_visible(old[1], out=new[0], generator=generator)
        if mask is not None:
            _clamp_(new[0], mask, origvisibles)

        # intermediate layers get input from layers above and below,
        # combined before the nonlinearity
        for i in range(1, n_layers - 1):
            dbm[i].visible_input(old[i + 1], out=new[i])
            dbm[i - 1].hidden_input(old[i - 1], out=scratch[i])
            new[i].add_(scratch[i])
            sigm_bernoulli_(new[i], generator)

        # last layer gets input only from layer below
        dbm[-1].sample_hidden(old[-2], out=new[-1], generator=generator)

        buffers.swap()

    return particles


def gibbs_sample_(
    particles: Particles,
    bm: BoltzmannMachine,
    n_steps: int = 5,
    upfactor: float = 1.0,
    downfactor: float = 1.0,
    generator: Optional[torch.Generator] = None
) -> Particles:
    """
    Perform Gibbs sampling on ``particles`` in the Boltzmann machine ``bm``.

    In a two-layer model, each step samples the visible layer from the hidden
    layer (input scaled with ``downfactor``) and then the hidden layer from
    the new visible layer (input scaled with ``upfactor``).

    In a DBM, all layers are updated simultaneously from the state of the
    previous step. In-between layers are assumed to contain only Bernoulli
    distributed nodes. The factors are not used for DBMs.

    The tensors held by ``particles`` may be exchanged during sampling; the
    list itself always holds the current state.

    Args:
        particles: Particles, modified in place (see ``init_particles``)
        bm: RBM, partitioned RBM or DBM
        n_steps: Number of Gibbs sampling steps
        upfactor: Scaling of the hidden input (two-layer models)
        downfactor: Scaling of the visible input (two-layer models)
        generator: Random number generator

    Returns:
        particles
    """
    check_particles(particles, bm)
    _check_steps(n_steps)
    logger.debug(f"Gibbs sampling for {n_steps} steps in {bm!r}")

    if isinstance(bm, MultimodalDBM):
        return _gibbs_sample_dbm_(particles, bm, n_steps, None, None, generator)

    for _ in range(n_steps):
        bm.sample_visible(particles[1], downfactor, out=particles[0], generator=generator)
        bm.sample_hidden(particles[0], upfactor, out=particles[1], generator=generator)
    return particles


def gibbs_sample_cond_(
    particles: Particles,
    bm: BoltzmannMachine,
    cond: Union[VariableMask, Iterable[int]],
    n_steps: int = 5,
    generator: Optional[torch.Generator] = None
) -> Particles:
    """
    Conditional Gibbs sampling on ``particles`` in ``bm``.

    The visible variables selected by ``cond`` are fixed to their values in
    ``particles`` at the time of the call. They are reset after every update
    of the visible layer, which yields samples from the conditional
    distribution given these variables.

    Args:
        particles: Particles, modified in place
        bm: RBM, partitioned RBM or DBM
        cond: Boolean mask over the visible nodes or indices of visible nodes
        n_steps: Number of Gibbs sampling steps
        generator: Random number generator

    Returns:
        particles
    """
    check_particles(particles, bm)
    _check_steps(n_steps)

    mask = as_variable_mask(cond, first_layer(bm).n_visible).to(particles[0].device)
    origvisibles = particles[0].clone()
    logger.debug(
        f"Conditional Gibbs sampling for {n_steps} steps with "
        f"{int(mask.sum())} clamped variables"
    )

    if isinstance(bm, MultimodalDBM):
        return _gibbs_sample_dbm_(particles, bm, n_steps, mask, origvisibles, generator)

    for _ in range(n_steps):
        bm.sample_visible(particles[1], out=particles[0], generator=generator)
        _clamp_(particles[0], mask, origvisibles)
        bm.sample_hidden(particles[0], out=particles[1], generator=generator)
    return particles
