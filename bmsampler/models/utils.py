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
Distribution kernels for stochastic nodes

This module provides the elementwise building blocks used by all layer types:
- Logistic function (scalar and tensor forms)
- Bernoulli and two-trial Binomial draws
- Softmax with an implicit zero-valued category
- Categorical (one-hot) draws with an implicit zero category
- Gaussian noise injection

All ``*_`` functions work in place on their first argument and return it.
Random numbers are taken from the optional ``generator`` so that sampling runs
can be reproduced by seeding a ``torch.Generator``.
"""

from typing import List, Optional, Sequence, Union
import math
import torch
import logging

logger = logging.getLogger(__name__)


def _uniform(shape, like: torch.Tensor, generator: Optional[torch.Generator]) -> torch.Tensor:
    return torch.rand(shape, generator=generator, dtype=like.dtype, device=like.device)


def sigm(x: Union[float, torch.Tensor]) -> Union[float, torch.Tensor]:
    """Logistic function ``1 / (1 + exp(-x))`` for floats and tensors."""
    if isinstance(x, torch.Tensor):
        return torch.sigmoid(x)
    return 1.0 / (1.0 + math.exp(-x))


def sigm_(x: torch.Tensor) -> torch.Tensor:
    """In-place logistic function."""
    return x.sigmoid_()


def bernoulli_(x: torch.Tensor, generator: Optional[torch.Generator] = None) -> torch.Tensor:
    """
    Replace each probability ``p`` in ``x`` with a Bernoulli(p) draw.

    One uniform number is drawn per element in row-major order and the
    element becomes 1.0 if the draw is smaller than ``p``, else 0.0.

    Args:
        x: Tensor of probabilities, overwritten with the samples
        generator: Random number generator (default generator if None)

    Returns:
        x
    """
    u = _uniform(x.shape, x, generator)
    return x.copy_(u < x)


def binomial2_(x: torch.Tensor, generator: Optional[torch.Generator] = None) -> torch.Tensor:
    """
    Replace each probability ``p`` in ``x`` with a Binomial(2, p) draw.

    The value is the sum of two independent Bernoulli(p) draws, so the result
    lies in {0, 1, 2}. Both uniforms for an element are consumed consecutively.

    Args:
        x: Tensor of probabilities, overwritten with the samples
        generator: Random number generator

    Returns:
        x
    """
    u = _uniform((*x.shape, 2), x, generator)
    hits = (u < x.unsqueeze(-1)).to(x.dtype)
    return x.copy_(hits.sum(dim=-1))


def sigm_bernoulli_(x: torch.Tensor, generator: Optional[torch.Generator] = None) -> torch.Tensor:
    """Bernoulli-sample in place from the total input ``x``."""
    return bernoulli_(sigm_(x), generator)


def gaussian_noise_(
    x: torch.Tensor,
    sd: Optional[torch.Tensor] = None,
    generator: Optional[torch.Generator] = None
) -> torch.Tensor:
    """
    Add zero-mean Gaussian noise to ``x`` in place.

    Args:
        x: Means of the Gaussian distributions [..., n_units]
        sd: Standard deviations per unit [n_units] (unit variance if None)
        generator: Random number generator

    Returns:
        x
    """
    noise = torch.randn(x.shape, generator=generator, dtype=x.dtype, device=x.device)
    if sd is not None:
        noise *= sd
    return x.add_(noise)


def _softmax0_last_dim_(x: torch.Tensor) -> torch.Tensor:
    m = torch.max(x, dim=-1, keepdim=True).values
    x.sub_(m).exp_()
    # account for the implicit zero-valued category
    x.div_(x.sum(dim=-1, keepdim=True) + torch.exp(-m))
    return x


def softmax0_(x: torch.Tensor, varranges: Optional[Sequence[range]] = None) -> torch.Tensor:
    """
    Softmax transformation with an implicit zero-valued extra category.

    Applies the softmax to ``[x; 0.0]`` and stores the probabilities of the
    explicit categories in ``x``. The probability of the implicit category is
    ``1 - sum(x)`` and is not stored. If ``x`` is a matrix, the
    transformation is applied to each row. If ``varranges`` is given, it is
    applied to each group of columns separately.

    Args:
        x: Log-odds relative to the implicit category [..., n_categories]
        varranges: Column ranges of the groups (whole last dimension if None)

    Returns:
        x
    """
    if x.shape[-1] == 0:
        return x
    if varranges is None:
        return _softmax0_last_dim_(x)

    for varrange in varranges:
        _softmax0_last_dim_(x[..., varrange.start:varrange.stop])
    return x


def categorical0_(
    x: torch.Tensor,
    varranges: Sequence[range],
    generator: Optional[torch.Generator] = None
) -> torch.Tensor:
    """
    Draw one-hot activations per group from category probabilities.

    Within each group, a single uniform number ``u`` is compared with the
    cumulative probabilities of the categories in column order and the first
    category whose cumulative probability reaches ``u`` is set to 1, all others
    to 0. If the probability mass of the group is exhausted first, the implicit
    zero category wins and the whole group is set to 0.

    Uniform numbers are drawn as a (rows x groups) matrix in row-major order.

    Args:
        x: Category probabilities [n_samples, n_nodes] or [n_nodes]
        varranges: Column ranges of the groups
        generator: Random number generator

    Returns:
        x
    """
    xx = x.unsqueeze(0) if x.dim() == 1 else x
    u = _uniform((xx.shape[0], len(varranges)), xx, generator)

    for k, varrange in enumerate(varranges):
        group = xx[:, varrange.start:varrange.stop]
        # cumulative sums are monotone, so the number of misses is the index
        # of the first hit (== group size if the implicit category wins)
        misses = (torch.cumsum(group, dim=1) < u[:, k:k + 1]).sum(dim=1)
        categories = torch.arange(group.shape[1], device=group.device)
        group.copy_(categories.unsqueeze(0) == misses.unsqueeze(1))

    return x


def check_ranges(ranges: Sequence[Union[range, Sequence[int]]], n_nodes: int) -> List[range]:
    """
    Validate that column ranges partition ``[0, n_nodes)`` without gaps.

    Args:
        ranges: Contiguous column ranges, as ``range`` objects or index sequences
        n_nodes: Number of nodes that must be covered

    Returns:
        List of validated ``range`` objects

    Raises:
        ValueError: If a range is empty, overlapping, out of order, leaves a gap
            or the ranges do not cover all nodes
    """
    checked = []
    previous_stop = 0
    for r in ranges:
        if not isinstance(r, range):
            indices = [int(i) for i in r]
            if not indices or indices != list(range(indices[0], indices[-1] + 1)):
                raise ValueError(f"Range {indices} is not a contiguous index range")
            r = range(indices[0], indices[-1] + 1)
        if r.step != 1 or len(r) == 0:
            raise ValueError(f"Range {r} must be non-empty with step 1")
        if r.start != previous_stop:
            raise ValueError(
                f"Range {r} must start at {previous_stop} (ranges must be "
                f"increasing, non-overlapping and without gaps)"
            )
        previous_stop = r.stop
        checked.append(r)

    if previous_stop != n_nodes:
        raise ValueError(f"Ranges cover {previous_stop} nodes, expected {n_nodes}")
    return checked
